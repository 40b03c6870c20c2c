import sys
from pathlib import Path
from contextvars import ContextVar
from typing import Optional
from loguru import logger
from fastapi import Request
from framework.config import settings

# Request being served in this async context; set by LoggingMiddleware
current_request: ContextVar[Optional[Request]] = ContextVar("current_request", default=None)

LOG_DIR = Path(settings.LOG_DIR)

LINE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | Trace:{extra[trace_id]} - {message}"
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<magenta>Trace:{extra[trace_id]}</magenta> - <level>{message}</level>"
)


class LogConfig:
    """Loguru sinks for the API process and for CLI scripts."""

    @classmethod
    def setup_logging(cls):
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        logger.remove()
        logger.configure(extra={"trace_id": "system", "name": "app"})

        logger.add(
            sys.stdout,
            enqueue=True,
            backtrace=True,
            diagnose=settings.DEBUG,
            format=CONSOLE_FORMAT,
            level="INFO",
        )
        # Daily app log, kept a month
        logger.add(
            LOG_DIR / "registry_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            compression="zip",
            enqueue=True,
            format=LINE_FORMAT,
            level="DEBUG",
        )
        logger.add(
            LOG_DIR / "registry_error_{time:YYYY-MM-DD}.log",
            rotation="100 MB",
            enqueue=True,
            format=LINE_FORMAT,
            level="ERROR",
        )

    @classmethod
    def setup_cli_logging(cls, level: str = "WARNING"):
        """CLI scripts log to stderr only so stdout stays machine-readable."""
        logger.remove()
        logger.configure(extra={"trace_id": "cli", "name": "cli"})
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level)


def get_logger(name: str = None, request: Optional[Request] = None):
    """
    Logger bound to a component name.

    The trace id is bound only when a request is known here; otherwise it comes
    from the middleware's `logger.contextualize` at log time, so module-level
    loggers still carry the id of the request being served.
    """
    extra = {"name": name} if name else {}
    active = request or current_request.get()
    if active is not None:
        extra["trace_id"] = getattr(active.state, "trace_id", "unknown")
    return logger.bind(**extra)
