"""Works repository."""

from datetime import datetime
from typing import Iterable, List, Optional
from sqlmodel import select, func, col
from framework.repository.base import BaseRepository
from .models import Work


class WorkRepository(BaseRepository[Work]):

    def __init__(self, session):
        super().__init__(session, Work)

    async def get_work(self, orcid: str, put_code: int) -> Optional[Work]:
        """Get a work by put code, scoped to its owner."""
        return await self.find_one(id=put_code, orcid=orcid)

    async def find_by_orcid(self, orcid: str) -> List[Work]:
        statement = (
            select(Work)
            .where(Work.orcid == orcid)
            .order_by(col(Work.display_index).desc(), col(Work.date_created).desc(), col(Work.id).desc())
        )
        result = await self.session.exec(statement)
        return list(result.all())

    async def find_by_put_codes(self, orcid: str, put_codes: Iterable[int]) -> List[Work]:
        put_codes = list(put_codes)
        if not put_codes:
            return []
        statement = select(Work).where(Work.orcid == orcid, col(Work.id).in_(put_codes))
        result = await self.session.exec(statement)
        return list(result.all())

    async def count_by_orcid(self, orcid: str) -> int:
        return await self.count(orcid=orcid)

    async def max_display_index(self, orcid: str) -> int:
        statement = select(func.max(Work.display_index)).where(Work.orcid == orcid)
        result = await self.session.exec(statement)
        return result.one() or 0

    async def last_modified(self, orcid: str) -> Optional[datetime]:
        statement = select(func.max(Work.last_modified)).where(Work.orcid == orcid)
        result = await self.session.exec(statement)
        return result.one()

    async def remove_works(self, orcid: str, put_codes: Iterable[int]) -> int:
        works = await self.find_by_put_codes(orcid, put_codes)
        for work in works:
            await self.session.delete(work)
        return len(works)

    async def remove_all(self, orcid: str) -> int:
        works = await self.find_all(orcid=orcid)
        for work in works:
            await self.session.delete(work)
        return len(works)

    async def update_visibilities(self, orcid: str, put_codes: Iterable[int], visibility: str, now: datetime) -> int:
        works = await self.find_by_put_codes(orcid, put_codes)
        for work in works:
            work.visibility = visibility
            work.last_modified = now
            self.session.add(work)
        return len(works)
