from typing import Any, Optional
from pydantic import BaseModel

SUCCESS_CODE = 200


class ResponseModel(BaseModel):
    """Envelope for every JSON body: `code` mirrors the business outcome, not the HTTP status."""

    code: int = SUCCESS_CODE
    message: str = "success"
    data: Optional[Any] = None

    @classmethod
    def envelope(cls, code: int, message: str, data: Any = None) -> dict:
        return cls(code=code, message=message, data=data).model_dump()

    @classmethod
    def success(cls, data: Any = None) -> dict:
        return cls.envelope(SUCCESS_CODE, "success", data)

    @classmethod
    def fail(cls, code: int = 400, message: str = "error", data: Any = None) -> dict:
        return cls.envelope(code, message, data)

    @classmethod
    def error(cls, message: str = "error", code: int = 400, data: Any = None) -> dict:
        return cls.fail(code=code, message=message, data=data)
