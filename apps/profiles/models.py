from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String, Text
from typing import Optional
from datetime import datetime, timezone
from .visibility import Visibility


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(SQLModel, table=True):
    """A researcher record, keyed by its ORCID iD."""
    __tablename__ = "profiles"

    orcid: str = Field(primary_key=True, max_length=19, description="ORCID iD, XXXX-XXXX-XXXX-XXXX")
    email: str = Field(unique=True, index=True, max_length=320)
    hashed_password: Optional[str] = Field(default=None, max_length=255)

    given_names: str = Field(max_length=150)
    family_name: Optional[str] = Field(default=None, max_length=150)
    credit_name: Optional[str] = Field(default=None, max_length=150)
    biography: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    names_visibility: str = Field(default=Visibility.PUBLIC.value, sa_column=Column(String(20), nullable=False))
    biography_visibility: str = Field(default=Visibility.PUBLIC.value, sa_column=Column(String(20), nullable=False))
    activities_visibility_default: str = Field(
        default=Visibility.PUBLIC.value,
        sa_column=Column(String(20), nullable=False),
        description="Visibility applied to incoming works"
    )

    claimed: bool = Field(default=True, description="False until the researcher sets a password")
    deactivated_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)

    @property
    def is_deactivated(self) -> bool:
        return self.deactivated_at is not None
