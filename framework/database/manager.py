from typing import Dict

from .sql_driver import SQLDriver
from .redis_driver import RedisDriver


class DatabaseManager:
    """Process-wide holder of the SQL and Redis drivers, built from settings on first use."""

    _instance = None

    def __init__(self, settings):
        self.sql = SQLDriver(settings.DATABASE_URL, echo=settings.DB_ECHO)
        self.redis = RedisDriver(settings.REDIS_URL)

    @classmethod
    def get_instance(cls, settings=None) -> "DatabaseManager":
        if cls._instance is None:
            if settings is None:
                from framework.config import settings as app_settings
                settings = app_settings
            cls._instance = cls(settings)
        return cls._instance

    async def health(self) -> Dict[str, bool]:
        """Ping every driver; keys are driver names."""
        return {driver.name: await driver.ping() for driver in (self.sql, self.redis)}

    @classmethod
    async def shutdown(cls):
        """Dispose drivers of the running instance, if one was created."""
        if cls._instance is None:
            return
        await cls._instance.redis.disconnect()
        await cls._instance.sql.disconnect()
        cls._instance = None
