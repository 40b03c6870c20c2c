"""Notification repository."""

from typing import List
from sqlmodel import select, col
from framework.repository.base import BaseRepository
from .models import Notification


class NotificationRepository(BaseRepository[Notification]):

    def __init__(self, session):
        super().__init__(session, Notification)

    async def list_by_orcid(self, orcid: str, unread_only: bool = False, limit: int = 50, offset: int = 0) -> List[Notification]:
        """Newest first."""
        statement = select(Notification).where(Notification.orcid == orcid)
        if unread_only:
            statement = statement.where(col(Notification.read_at).is_(None))
        statement = statement.order_by(col(Notification.id).desc()).limit(limit).offset(offset)
        result = await self.session.exec(statement)
        return list(result.all())
