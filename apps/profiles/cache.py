"""Redis cache of public record views, keyed by ORCID iD."""

import json
from typing import Any, Dict, Optional
from redis.exceptions import RedisError
from framework.config import settings
from framework.database.manager import DatabaseManager
from framework.logging.logger import get_logger

logger = get_logger("profile_cache")

KEY_PREFIX = "registry:profile:"


class ProfileCache:
    """JSON-serialized public views; a cache built without a client does nothing."""

    def __init__(self, client=None, ttl_seconds: int = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or settings.PROFILE_CACHE_TTL_SECONDS

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @staticmethod
    def key(orcid: str) -> str:
        return f"{KEY_PREFIX}{orcid}"

    async def get(self, orcid: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        try:
            raw = await self.client.get(self.key(orcid))
        except RedisError as e:
            logger.warning(f"Profile cache read failed for {orcid}, serving from database: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding unreadable cache entry for {orcid}")
            await self.evict(orcid)
            return None

    async def set(self, orcid: str, view: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            await self.client.set(self.key(orcid), json.dumps(view, default=str), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning(f"Profile cache write failed for {orcid}: {e}")

    async def evict(self, orcid: str) -> None:
        if not self.enabled:
            return
        try:
            await self.client.delete(self.key(orcid))
        except RedisError as e:
            # Entry lives at most ttl_seconds
            logger.warning(f"Profile cache evict failed for {orcid}: {e}")


async def get_profile_cache() -> ProfileCache:
    """Dependency: profile cache over the shared Redis client (disabled by config)."""
    if not settings.PROFILE_CACHE_ENABLED:
        return ProfileCache(None)
    manager = DatabaseManager.get_instance()
    redis_client = manager.redis.get_client()
    if not redis_client:
        await manager.redis.connect()
        redis_client = manager.redis.get_client()
    return ProfileCache(redis_client)
