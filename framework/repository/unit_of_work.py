"""
Unit of Work: one session shared by every repository a service touches.
Services own the transaction boundary and call commit/rollback themselves.
"""

from typing import Any, Dict, Optional, Type, TypeVar
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

M = TypeVar("M", bound=SQLModel)


class UnitOfWork:
    """Repositories over a shared session, plus commit/rollback/flush."""

    def __init__(self, session: Optional[AsyncSession] = None):
        if session is None:
            raise ValueError("Session must be provided (see framework.dependencies.get_uow).")

        self.session = session
        self._repositories: Dict[str, Any] = {}

    def get_repository(self, repo_class):
        """Get or create a repository instance (one per class per unit of work)."""
        cache_key = repo_class.__name__
        if cache_key not in self._repositories:
            self._repositories[cache_key] = repo_class(self.session)
        return self._repositories[cache_key]

    async def get(self, model: Type[M], pk: Any) -> Optional[M]:
        """Look up a row of another module's table by primary key, without a repository."""
        if pk is None:
            return None
        return await self.session.get(model, pk)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def flush(self) -> None:
        """Flush pending rows so auto-increment put codes are assigned."""
        await self.session.flush()

    def savepoint(self):
        """Nested transaction; `async with` it to undo one element of a bulk write on failure."""
        return self.session.begin_nested()
