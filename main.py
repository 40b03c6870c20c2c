from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from framework.config import settings
from framework.database.manager import DatabaseManager
from framework.middleware.logging_md import LoggingMiddleware
from framework.logging.logger import LogConfig
from framework.exceptions.handler import BusinessException, global_exception_handler
from framework.response import ResponseModel
from apps.profiles.api.auth_router import router as auth_router
from apps.profiles.api.router import router as profile_router
from apps.works.api.router import router as work_router
from apps.clients.api.router import router as oauth_router
from apps.notifications.api.router import router as notification_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await DatabaseManager.shutdown()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Initialize logging configuration
LogConfig.setup_logging()

# Register global exception handlers
app.add_exception_handler(BusinessException, global_exception_handler)
app.add_exception_handler(RequestValidationError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(LoggingMiddleware)

# Mount routers (prefixes from config)
app.include_router(auth_router, prefix=settings.API_V1_AUTH_PREFIX, tags=["Auth"])
app.include_router(profile_router, prefix=settings.API_V1_PROFILES_PREFIX, tags=["Profiles"])
app.include_router(work_router, prefix=settings.API_V1_PROFILES_PREFIX, tags=["Works"])
app.include_router(oauth_router, prefix=settings.API_V1_OAUTH_PREFIX, tags=["OAuth"])
app.include_router(notification_router, prefix=settings.API_V1_NOTIFICATIONS_PREFIX, tags=["Notifications"])


@app.get("/health", tags=["Health"])
async def health():
    """Liveness plus a ping of every backend driver."""
    backends = await DatabaseManager.get_instance().health()
    status = "ok" if all(backends.values()) else "degraded"
    return ResponseModel.success(data={"status": status, "version": settings.APP_VERSION, "backends": backends})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
