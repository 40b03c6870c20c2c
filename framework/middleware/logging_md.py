import uuid
import time
from fastapi import Request
from jose import jwt, JWTError
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from framework.config import settings
from framework.logging.logger import current_request


def _acting_orcid(request: Request) -> str:
    """Best-effort ORCID iD of the caller, for log lines only (no verification of scopes)."""
    token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME)
    auth_header = request.headers.get("Authorization", "")
    if not token and auth_header.lower().startswith("bearer "):
        token = auth_header[7:]
    if not token:
        return "anonymous"
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except JWTError:
        return "invalid-token"
    client_id = payload.get("client_id")
    orcid = payload.get("sub", "unknown")
    return f"{orcid} via {client_id}" if client_id else orcid


class LoggingMiddleware(BaseHTTPMiddleware):
    """Assigns or propagates X-Trace-ID and logs each request's start, outcome and duration."""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-ID") or str(uuid.uuid4())
        request.state.trace_id = trace_id
        token = current_request.set(request)
        started = time.perf_counter()

        with logger.contextualize(trace_id=trace_id, name="http"):
            logger.info(
                f"{request.method} {request.url.path} started | "
                f"client={request.client.host if request.client else 'unknown'} | "
                f"actor={_acting_orcid(request)}"
            )
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(f"{request.method} {request.url.path} failed | error={e} | {_elapsed_ms(started):.2f}ms")
                raise
            finally:
                current_request.reset(token)

            logger.info(f"{request.method} {request.url.path} finished | status={response.status_code} | {_elapsed_ms(started):.2f}ms")
            response.headers["X-Trace-ID"] = trace_id
            return response


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
