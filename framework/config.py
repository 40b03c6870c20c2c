from typing import Optional
from urllib.parse import quote_plus
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Basic configuration ---
    APP_NAME: str = "Researcher Registry"
    APP_DESCRIPTION: str = "Researcher identity registry: profiles, scholarly works and member API clients"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"  # development, production, testing
    DEBUG: bool = True
    SECRET_KEY: str = "your-super-secret-key-change-it-in-production"

    # --- Database (MySQL/SQLModel) ---
    DB_DRIVER: str = "mysql+aiomysql"
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = "root"
    DB_NAME: str = "registry_db"
    DB_ECHO: bool = False  # log every SQL statement

    @property
    def DATABASE_URL(self) -> str:
        # Build async connection URL
        safe_password = quote_plus(self.DB_PASSWORD)
        return f"{self.DB_DRIVER}://{self.DB_USER}:{safe_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # --- Cache (Redis) ---
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    PROFILE_CACHE_ENABLED: bool = True
    PROFILE_CACHE_TTL_SECONDS: int = 600

    # --- Record limits ---
    MAX_ACTIVITIES: int = 10000
    WORKS_BULK_READ_MAX: int = 100
    WORKS_BULK_WRITE_MAX: int = 100
    DEFAULT_ACTIVITIES_VISIBILITY: str = "public"  # public, limited, private
    ORCID_BASE_URI: str = "https://orcid.org"

    # --- Notification service ---
    NOTIFICATION_DRIVER: str = "mock"  # mock, email
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    AUTHORIZATION_CODE_EXPIRE_MINUTES: int = 10

    # --- Cookie ---
    ACCESS_TOKEN_COOKIE_NAME: str = "access_token"
    COOKIE_SECURE: bool = False  # Set True in production (HTTPS only)
    COOKIE_SAMESITE: str = "lax"  # lax, strict, none

    # --- Logging ---
    LOG_DIR: str = "logs"

    # --- API route prefixes ---
    API_V1_AUTH_PREFIX: str = "/api/v1/auth"
    API_V1_PROFILES_PREFIX: str = "/api/v1/profiles"
    API_V1_OAUTH_PREFIX: str = "/api/v1/oauth"
    API_V1_NOTIFICATIONS_PREFIX: str = "/api/v1/notifications"

    # --- Gunicorn process name (optional) ---
    GUNICORN_PROC_NAME: Optional[str] = None  # Fallback to APP_NAME when empty

    # --- Pydantic ---
    # Load env from project root .env; priority: env vars > .env > defaults
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


# Singleton settings instance
settings = Settings()
