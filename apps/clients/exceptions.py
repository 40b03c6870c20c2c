"""OAuth client domain exceptions."""

from framework.exceptions.handler import BusinessException


class ClientNotFoundException(BusinessException):
    def __init__(self, client_id: str):
        super().__init__(f"Client {client_id} not found", code=404, detail={"client_id": client_id})


class InvalidClientException(BusinessException):
    def __init__(self):
        super().__init__("Invalid client credentials", code=401)


class InvalidGrantException(BusinessException):
    def __init__(self, reason: str):
        super().__init__(f"Invalid authorization code: {reason}", code=400, detail={"error": "invalid_grant"})


class InvalidAuthorizationRequestException(BusinessException):
    def __init__(self, errors):
        super().__init__("Invalid authorization request", code=400, detail={"errors": list(errors)})
