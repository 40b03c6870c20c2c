"""Request/response shapes for works and conversions to and from the table model."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from .identifiers import ExternalID, dump_external_ids, parse_external_ids
from .models import Work


class Contributor(BaseModel):
    contributor_orcid: Optional[str] = None
    credit_name: Optional[str] = None
    role: Optional[str] = None
    sequence: Optional[str] = None


class WorkForm(BaseModel):
    """Work as submitted by a client or the record owner."""
    put_code: Optional[int] = None
    title: str = ""
    subtitle: Optional[str] = None
    translated_title: Optional[str] = None
    translated_title_language_code: Optional[str] = None
    journal_title: Optional[str] = None
    short_description: Optional[str] = None
    citation: Optional[str] = None
    citation_type: Optional[str] = None
    work_type: str = ""
    publication_date: Optional[str] = None
    url: Optional[str] = None
    language_code: Optional[str] = None
    iso2_country: Optional[str] = None
    contributors: List[Contributor] = Field(default_factory=list)
    external_ids: List[ExternalID] = Field(default_factory=list)
    visibility: Optional[str] = None


class WorkBulkForm(BaseModel):
    bulk: List[WorkForm]


class PutCodesSchema(BaseModel):
    put_codes: List[int]


class VisibilityUpdateSchema(BaseModel):
    put_codes: List[int]
    visibility: str


# Columns copied from a form onto an entity
CONTENT_FIELDS = (
    "title", "subtitle", "translated_title", "translated_title_language_code",
    "journal_title", "short_description", "citation", "citation_type", "work_type",
    "publication_date", "url", "language_code", "iso2_country",
)


def apply_form(form: WorkForm, work: Optional[Work] = None) -> Work:
    """Copy form content onto `work` (or a new entity). Source, owner and put code are left alone."""
    if work is None:
        work = Work(orcid="", title=form.title, work_type=form.work_type)
    for field in CONTENT_FIELDS:
        setattr(work, field, getattr(form, field))
    work.contributors = [c.model_dump() for c in form.contributors]
    work.external_ids = dump_external_ids(form.external_ids)
    work.visibility = form.visibility
    return work


def work_to_dict(work: Work) -> Dict[str, Any]:
    data = {field: getattr(work, field) for field in CONTENT_FIELDS}
    data.update({
        "put_code": work.id,
        "orcid": work.orcid,
        "contributors": list(work.contributors or []),
        "external_ids": list(work.external_ids or []),
        "visibility": work.visibility,
        "display_index": work.display_index,
        "source": {
            "source_orcid": work.source_id,
            "source_client_id": work.client_source_id,
        },
        "created_date": work.date_created.isoformat() if work.date_created else None,
        "last_modified_date": work.last_modified.isoformat() if work.last_modified else None,
    })
    return data


def work_summary(work: Work) -> Dict[str, Any]:
    return {
        "put_code": work.id,
        "title": work.title,
        "work_type": work.work_type,
        "journal_title": work.journal_title,
        "publication_date": work.publication_date,
        "external_ids": list(work.external_ids or []),
        "visibility": work.visibility,
        "display_index": work.display_index,
        "source": work.source,
    }


def group_contributors_by_orcid(contributors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Merge contributors sharing an ORCID iD (or, without one, a credit name) into one entry with all their roles."""
    grouped: List[Dict[str, Any]] = []
    index: Dict[tuple, Dict[str, Any]] = {}
    for contributor in contributors or []:
        orcid = contributor.get("contributor_orcid")
        name = contributor.get("credit_name")
        key = ("orcid", orcid) if orcid else ("name", (name or "").strip().lower())
        entry = index.get(key)
        if entry is None:
            entry = {
                "contributor_orcid": orcid,
                "credit_name": name,
                "roles_and_sequences": [],
            }
            index[key] = entry
            grouped.append(entry)
        elif not entry["credit_name"] and name:
            entry["credit_name"] = name
        role_and_sequence = {"role": contributor.get("role"), "sequence": contributor.get("sequence")}
        if role_and_sequence not in entry["roles_and_sequences"]:
            entry["roles_and_sequences"].append(role_and_sequence)
    return grouped


def work_extended(work: Work) -> Dict[str, Any]:
    data = work_to_dict(work)
    data["contributors_grouped_by_orcid"] = group_contributors_by_orcid(work.contributors)
    return data


def external_ids_of(work: Work) -> List[ExternalID]:
    return parse_external_ids(work.external_ids)
