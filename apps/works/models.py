from sqlmodel import SQLModel, Field, JSON, Column
from sqlalchemy import String, Text
from typing import Optional, List, Dict
from datetime import datetime, timezone
from apps.profiles.visibility import Visibility


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Work(SQLModel, table=True):
    """A scholarly output on a researcher record; `id` is the work's put code."""
    __tablename__ = "works"

    id: Optional[int] = Field(default=None, primary_key=True)
    orcid: str = Field(foreign_key="profiles.orcid", index=True, max_length=19)

    title: str = Field(max_length=1000)
    subtitle: Optional[str] = Field(default=None, max_length=1000)
    translated_title: Optional[str] = Field(default=None, max_length=1000)
    translated_title_language_code: Optional[str] = Field(default=None, max_length=10)
    journal_title: Optional[str] = Field(default=None, max_length=1000)
    short_description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    citation: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    citation_type: Optional[str] = Field(default=None, max_length=50)
    work_type: str = Field(max_length=100, index=True)
    publication_date: Optional[str] = Field(default=None, max_length=10, description="YYYY, YYYY-MM or YYYY-MM-DD")
    url: Optional[str] = Field(default=None, max_length=2000)
    language_code: Optional[str] = Field(default=None, max_length=10)
    iso2_country: Optional[str] = Field(default=None, max_length=2)

    # JSON columns: assign new lists rather than mutating in place
    contributors: List[Dict] = Field(default_factory=list, sa_column=Column(JSON))
    external_ids: List[Dict] = Field(default_factory=list, sa_column=Column(JSON))

    visibility: str = Field(default=Visibility.PRIVATE.value, sa_column=Column(String(20), nullable=False))
    display_index: int = Field(default=0)

    source_id: Optional[str] = Field(default=None, max_length=19, description="ORCID iD of a user source")
    client_source_id: Optional[str] = Field(default=None, max_length=40, index=True, description="Client id of a member source")

    added_to_profile_date: datetime = Field(default_factory=utcnow)
    date_created: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)

    @property
    def source(self) -> Optional[str]:
        """Effective source id: the client when a member added it, else the user."""
        return self.client_source_id or self.source_id
