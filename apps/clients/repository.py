"""Client and authorization code repositories."""

from typing import List
from sqlalchemy import update
from sqlmodel import col
from framework.repository.base import BaseRepository
from .models import AuthorizationCode, ClientDetails


class ClientRepository(BaseRepository[ClientDetails]):

    def __init__(self, session):
        super().__init__(session, ClientDetails, pk_field="client_id")

    async def list_by_owner(self, owner_orcid: str) -> List[ClientDetails]:
        return await self.find_all(owner_orcid=owner_orcid)


class AuthorizationCodeRepository(BaseRepository[AuthorizationCode]):

    def __init__(self, session):
        super().__init__(session, AuthorizationCode, pk_field="code")

    async def redeem(self, code: str) -> bool:
        """Flip `used` only while it is still false; False when another redemption already did."""
        statement = (
            update(AuthorizationCode)
            .where(col(AuthorizationCode.code) == code, col(AuthorizationCode.used) == False)  # noqa: E712
            .values(used=True)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1
