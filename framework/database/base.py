from abc import ABC, abstractmethod


class BaseDatabaseDriver(ABC):
    """Contract for the SQL and Redis drivers held by DatabaseManager."""

    name: str = "database"

    @abstractmethod
    async def connect(self):
        """Open the connection or pool; safe to call more than once."""

    @abstractmethod
    async def disconnect(self):
        """Release the connection or pool; the driver can reconnect later."""

    @abstractmethod
    async def ping(self) -> bool:
        """True when the backend answers a trivial round trip."""
