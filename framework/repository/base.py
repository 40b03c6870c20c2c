"""
Repository contract and the generic SQLModel implementation every table repository extends.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Optional, List, Type, Any
from sqlmodel import SQLModel, select, func
from sqlmodel.ext.asyncio.session import AsyncSession

T = TypeVar("T", bound=SQLModel)


class IRepository(ABC, Generic[T]):
    """Data access a service may rely on, whatever the table."""

    @abstractmethod
    async def get_by_id(self, pk: Any) -> Optional[T]:
        """Row by primary key, or None."""

    @abstractmethod
    async def find_one(self, **filters) -> Optional[T]:
        """First row whose columns equal the given values."""

    @abstractmethod
    async def create(self, entity: T) -> T:
        """Stage a new row; the unit of work flushes or commits it."""

    @abstractmethod
    async def update(self, entity: T) -> T:
        """Stage changes to a loaded row."""

    @abstractmethod
    async def delete_entity(self, entity: T) -> None:
        """Stage removal of a loaded row."""


class BaseRepository(IRepository[T]):
    """Column-equality filters and counts over one table.

    ``pk_field`` names the primary key column, so records keyed by a natural
    identifier (an ORCID iD, a client id, an authorization code) share the
    same helpers as integer-keyed ones.
    """

    def __init__(self, session: AsyncSession, model: Type[T], pk_field: str = "id"):
        self.session = session
        self.model = model
        self.pk_field = pk_field

    @property
    def _pk(self):
        return getattr(self.model, self.pk_field)

    def _filtered(self, statement, filters: dict):
        for key, value in filters.items():
            if not hasattr(self.model, key):
                raise AttributeError(f"{self.model.__name__} has no column {key!r}")
            statement = statement.where(getattr(self.model, key) == value)
        return statement

    async def get_by_id(self, pk: Any) -> Optional[T]:
        return await self.find_one(**{self.pk_field: pk})

    async def find_one(self, **filters) -> Optional[T]:
        result = await self.session.exec(self._filtered(select(self.model), filters))
        return result.first()

    async def find_all(self, **filters) -> List[T]:
        result = await self.session.exec(self._filtered(select(self.model), filters))
        return list(result.all())

    async def count(self, **filters) -> int:
        result = await self.session.exec(self._filtered(select(func.count(self._pk)), filters))
        return result.one()

    async def create(self, entity: T) -> T:
        self.session.add(entity)
        return entity

    async def update(self, entity: T) -> T:
        # Loaded rows are already tracked; add() covers detached ones
        self.session.add(entity)
        return entity

    async def delete_entity(self, entity: T) -> None:
        await self.session.delete(entity)
