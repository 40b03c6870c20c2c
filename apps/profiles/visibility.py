"""Visibility labels and who may see what."""

from enum import Enum
from typing import Optional, Set
from framework.security import CurrentUser, Scope


class Visibility(str, Enum):
    PUBLIC = "public"
    LIMITED = "limited"
    PRIVATE = "private"


def parse_visibility(value: Optional[str]) -> Optional[str]:
    """Normalize a visibility label; None stays None, unknown labels raise ValueError."""
    if value is None:
        return None
    return Visibility(str(value).strip().lower()).value


def allowed_visibilities(viewer: Optional[CurrentUser], orcid: str) -> Set[str]:
    """Visibilities of items on record `orcid` that `viewer` may read."""
    if viewer is None:
        return {Visibility.PUBLIC.value}
    if viewer.is_owner(orcid):
        return {v.value for v in Visibility}
    if viewer.is_api_request and viewer.can_act_on(orcid, Scope.READ_LIMITED):
        return {Visibility.PUBLIC.value, Visibility.LIMITED.value}
    return {Visibility.PUBLIC.value}


def can_view(viewer: Optional[CurrentUser], orcid: str, visibility: str, client_source_id: Optional[str] = None) -> bool:
    """Whether `viewer` may read an item; a client with read-limited access also sees private items it is the source of."""
    if (
        viewer is not None
        and viewer.is_api_request
        and client_source_id is not None
        and viewer.client_id == client_source_id
        and viewer.can_act_on(orcid, Scope.READ_LIMITED)
    ):
        return True
    return visibility in allowed_visibilities(viewer, orcid)
