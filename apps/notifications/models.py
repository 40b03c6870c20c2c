from sqlmodel import SQLModel, Field, JSON, Column
from typing import Optional, List, Dict
from datetime import datetime, timezone
from enum import Enum


class NotificationType(str, Enum):
    AMENDED = "AMENDED"


class AmendedSection(str, Enum):
    WORK = "WORK"


class ActionType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Notification(SQLModel, table=True):
    """Inbox entry telling a researcher that a trusted party changed their record."""
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    orcid: str = Field(foreign_key="profiles.orcid", index=True, max_length=19)
    notification_type: str = Field(default=NotificationType.AMENDED.value, max_length=30)
    amended_section: str = Field(default=AmendedSection.WORK.value, max_length=30)
    # [{"item_name", "item_type", "put_code", "action_type"}]
    items: List[Dict] = Field(default_factory=list, sa_column=Column(JSON))
    source_client_id: Optional[str] = Field(default=None, max_length=40)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    read_at: Optional[datetime] = Field(default=None)
