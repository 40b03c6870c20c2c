"""Profile repository."""

from typing import Optional
from framework.repository.base import BaseRepository
from .models import Profile


class ProfileRepository(BaseRepository[Profile]):

    def __init__(self, session):
        super().__init__(session, Profile, pk_field="orcid")

    async def get_by_email(self, email: str) -> Optional[Profile]:
        """Find profile by email (stored lowercased)."""
        return await self.find_one(email=email.strip().lower())

    async def exists(self, orcid: str) -> bool:
        return await self.count(orcid=orcid) > 0
