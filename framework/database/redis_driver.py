import redis.asyncio as redis
from redis.exceptions import RedisError
from .base import BaseDatabaseDriver


class RedisDriver(BaseDatabaseDriver):
    """Lazily built Redis client; backs the public profile view cache."""

    name = "redis"

    def __init__(self, url: str):
        self.url = url
        self.client = None

    async def connect(self):
        if self.client is None:
            self.client = redis.from_url(self.url, decode_responses=True)

    async def disconnect(self):
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def ping(self) -> bool:
        await self.connect()
        try:
            return bool(await self.client.ping())
        except RedisError:
            return False

    def get_client(self):
        return self.client
