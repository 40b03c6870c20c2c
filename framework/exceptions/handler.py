from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from framework.logging.logger import get_logger
from framework.response import ResponseModel
from typing import Any, Dict
from framework.config import settings

logger = get_logger("exception_handler")

class BusinessException(Exception):
    """Base class for business exceptions."""
    def __init__(self, message: str, status_code: int = 200, code: int = 400, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.detail = detail


def exception_to_error(exc: Exception) -> Dict[str, Any]:
    """Convert an exception into the error element used inside bulk responses."""
    if isinstance(exc, BusinessException):
        return {
            "error": {
                "code": exc.code,
                "message": exc.message,
                "detail": exc.detail,
                "type": type(exc).__name__,
            }
        }
    if isinstance(exc, SQLAlchemyError):
        logger.critical(f"DatabaseError inside bulk element: {str(exc)}")
        return {"error": {"code": 500, "message": "Service temporarily unavailable", "detail": None, "type": "DatabaseError"}}
    logger.opt(exception=exc).error(f"Unexpected error inside bulk element: {str(exc)}")
    return {"error": {"code": 500, "message": str(exc), "detail": None, "type": type(exc).__name__}}


def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    trace_id = getattr(request.state, "trace_id", "unknown")

    if isinstance(exc, BusinessException):
        logger.warning(f"Trace[{trace_id}] - BusinessError({type(exc).__name__}): {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=ResponseModel.fail(code=exc.code, message=exc.message, data=exc.detail)
        )

    if isinstance(exc, RequestValidationError):
        logger.error(f"Trace[{trace_id}] - ValidationError: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ResponseModel.fail(code=422, message="Invalid request parameters", data=jsonable_errors(exc))
        )

    if isinstance(exc, SQLAlchemyError):
        logger.critical(f"Trace[{trace_id}] - DatabaseError: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ResponseModel.fail(code=500, message="Service temporarily unavailable")
        )

    logger.opt(exception=True).error(f"Trace[{trace_id}] - UncaughtException: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ResponseModel.fail(
            code=500,
            message="System busy, please try again later",
            data={"trace_id": trace_id} if settings.DEBUG else None
        )
    )


def jsonable_errors(exc: RequestValidationError):
    # pydantic may put exception objects into ctx, which JSONResponse cannot encode
    from fastapi.encoders import jsonable_encoder
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
