"""Works domain exceptions."""

from typing import Optional
from framework.exceptions.handler import BusinessException


class WorkNotFoundException(BusinessException):
    def __init__(self, orcid: str, put_code):
        super().__init__(
            f"No work with put code {put_code} on record {orcid}",
            code=404,
            detail={"orcid": orcid, "put_code": put_code},
        )


class WrongSourceException(BusinessException):
    def __init__(self, put_code, expected_source: Optional[str]):
        super().__init__(
            f"You are not the source of work {put_code}, so you are not allowed to change it",
            code=403,
            detail={"put_code": put_code, "source": expected_source},
        )


class DuplicatedActivityException(BusinessException):
    def __init__(self, client_name: Optional[str], put_code=None):
        detail = {"client_name": client_name}
        if put_code is not None:
            detail["put_code"] = put_code
        message = f"{client_name or 'This source'} has already added a work with the same external identifier"
        if put_code is not None:
            message += f" (put code {put_code})"
        super().__init__(message, code=409, detail=detail)


class ExceedMaxNumberOfElementsException(BusinessException):
    def __init__(self, limit: int):
        super().__init__(
            f"This record has reached the maximum of {limit} works",
            code=409,
            detail={"max": limit},
        )


class TooManyElementsInBulkException(BusinessException):
    def __init__(self, limit: int):
        super().__init__(
            f"Bulk requests are limited to {limit} elements",
            code=400,
            detail={"max": limit},
        )


class ActivityValidationException(BusinessException):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code=422, detail={"field": field} if field else None)


class InvalidPutCodeException(ActivityValidationException):
    def __init__(self):
        super().__init__("Put code must not be set when creating a work", field="put_code")


class VisibilityMismatchException(ActivityValidationException):
    def __init__(self, original: str, requested: str):
        super().__init__(
            f"Visibility cannot be changed from {original} to {requested} by a client",
            field="visibility",
        )


class MissingGroupableExternalIDException(BusinessException):
    def __init__(self):
        super().__init__(
            "None of the selected works has an external identifier that can be used for grouping",
            code=422,
        )
