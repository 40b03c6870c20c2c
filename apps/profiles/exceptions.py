"""Profile domain exceptions."""

from framework.exceptions.handler import BusinessException


class ProfileNotFoundException(BusinessException):
    def __init__(self, orcid: str):
        super().__init__(f"Record {orcid} not found", code=404, detail={"orcid": orcid})


class ProfileDeactivatedException(BusinessException):
    def __init__(self, orcid: str):
        super().__init__(f"Record {orcid} is deactivated", code=409, detail={"orcid": orcid})


class EmailAlreadyRegisteredException(BusinessException):
    def __init__(self):
        super().__init__("Email already registered", code=409)


class AlreadyClaimedException(BusinessException):
    def __init__(self, orcid: str):
        super().__init__(f"Record {orcid} has already been claimed", code=409)


class InvalidCredentialsException(BusinessException):
    def __init__(self):
        super().__init__("Invalid credentials", code=401)
