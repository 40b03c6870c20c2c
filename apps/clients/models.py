from sqlmodel import SQLModel, Field, JSON, Column
from sqlalchemy import Text
from typing import Optional, List
from datetime import datetime, timezone


class ClientDetails(SQLModel, table=True):
    """A member application allowed to read and write records on researchers' behalf."""
    __tablename__ = "client_details"

    client_id: str = Field(primary_key=True, max_length=40, description="APP-XXXXXXXXXXXXXXXX")
    client_secret_hash: str = Field(max_length=255)
    name: str = Field(max_length=150)
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    member_name: Optional[str] = Field(default=None, max_length=150)
    website: Optional[str] = Field(default=None, max_length=2000)
    redirect_uris: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    allowed_scopes: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    persistent_tokens_enabled: bool = Field(default=False)
    owner_orcid: str = Field(foreign_key="profiles.orcid", index=True, max_length=19)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuthorizationCode(SQLModel, table=True):
    """One-time code handed to a client after the researcher approves an authorization request."""
    __tablename__ = "authorization_codes"

    code: str = Field(primary_key=True, max_length=64)
    client_id: str = Field(foreign_key="client_details.client_id", index=True, max_length=40)
    orcid: str = Field(foreign_key="profiles.orcid", max_length=19)
    scopes: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    redirect_uri: str = Field(max_length=2000)
    expires_at: datetime
    used: bool = Field(default=False)
