"""
Validation of incoming works: content checks, external identifier vocabulary
and duplicate detection against works from the same source.
"""

import re
from datetime import date
from typing import Iterable, List, Optional

from apps.profiles.orcid_id import is_valid_orcid_id
from apps.profiles.visibility import parse_visibility
from .exceptions import (
    ActivityValidationException,
    DuplicatedActivityException,
    InvalidPutCodeException,
    VisibilityMismatchException,
)
from .identifiers import (
    RELATIONSHIPS,
    STRICT_TYPES,
    WORK_EXTERNAL_ID_TYPES,
    ExternalID,
    Relationship,
    normalize_external_id,
)
from .models import Work
from .schemas import WorkForm, external_ids_of

WORK_TYPES = {
    "annotation", "artistic-performance", "book", "book-chapter", "book-review",
    "conference-abstract", "conference-paper", "conference-poster", "data-management-plan",
    "data-set", "dictionary-entry", "disclosure", "dissertation-thesis", "edited-book",
    "encyclopedia-entry", "invention", "journal-article", "journal-issue", "lecture-speech",
    "license", "magazine-article", "manual", "newsletter-article", "newspaper-article",
    "online-resource", "other", "patent", "physical-object", "preprint", "registered-copyright",
    "report", "research-technique", "research-tool", "review", "software", "spin-off-company",
    "standards-and-policy", "supervised-student-publication", "technical-standard", "test",
    "trademark", "translation", "website", "working-paper",
}

CITATION_TYPES = {"formatted-unspecified", "bibtex", "ris", "formatted-apa", "formatted-harvard",
                  "formatted-ieee", "formatted-mla", "formatted-vancouver", "formatted-chicago"}

CONTRIBUTOR_ROLES = {"author", "assignee", "editor", "chair-or-translator", "co-investigator",
                     "co-inventor", "graduate-student", "other-inventor", "principal-investigator",
                     "postdoctoral-researcher", "support-staff"}

CONTRIBUTOR_SEQUENCES = {"first", "additional"}

DATE_PATTERN = re.compile(r"^(\d{4})(?:-(\d{2})(?:-(\d{2}))?)?$")
LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}(?:[_-][A-Za-z]{2})?$")
COUNTRY_PATTERN = re.compile(r"^[A-Z]{2}$")


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_publication_date(value: Optional[str]) -> None:
    if value is None:
        return
    match = DATE_PATTERN.match(value)
    if not match:
        raise ActivityValidationException(
            "Publication date must be YYYY, YYYY-MM or YYYY-MM-DD", field="publication_date"
        )
    year, month, day = match.groups()
    try:
        date(int(year), int(month or 1), int(day or 1))
    except ValueError:
        raise ActivityValidationException(f"Invalid publication date: {value}", field="publication_date")


def validate_contributors(form: WorkForm) -> None:
    for contributor in form.contributors:
        if _blank(contributor.contributor_orcid) and _blank(contributor.credit_name):
            raise ActivityValidationException(
                "Each contributor needs an ORCID iD or a credit name", field="contributors"
            )
        if contributor.contributor_orcid and not is_valid_orcid_id(contributor.contributor_orcid):
            raise ActivityValidationException(
                f"Invalid contributor ORCID iD: {contributor.contributor_orcid}", field="contributors"
            )
        if contributor.role and contributor.role not in CONTRIBUTOR_ROLES:
            raise ActivityValidationException(f"Invalid contributor role: {contributor.role}", field="contributors")
        if contributor.sequence and contributor.sequence not in CONTRIBUTOR_SEQUENCES:
            raise ActivityValidationException(
                f"Invalid contributor sequence: {contributor.sequence}", field="contributors"
            )


def validate_external_ids(ext_ids: Iterable[ExternalID], is_api_request: bool) -> List[ExternalID]:
    """Check vocabulary and normalization; returns the normalized identifiers.

    Relationships are mandatory for API requests; the owner's own forms default to `self`.
    """
    normalized: List[ExternalID] = []
    for ext_id in ext_ids:
        ext_id = normalize_external_id(ext_id)
        if ext_id.type not in WORK_EXTERNAL_ID_TYPES:
            raise ActivityValidationException(f"Invalid external identifier type: {ext_id.type!r}", field="external_ids")
        if _blank(ext_id.value):
            raise ActivityValidationException(
                f"External identifier of type {ext_id.type} has no value", field="external_ids"
            )
        if ext_id.relationship is None:
            if is_api_request:
                raise ActivityValidationException(
                    f"External identifier {ext_id.type}:{ext_id.value} has no relationship", field="external_ids"
                )
            ext_id = ext_id.model_copy(update={"relationship": Relationship.SELF.value})
        elif ext_id.relationship not in RELATIONSHIPS:
            raise ActivityValidationException(
                f"Invalid external identifier relationship: {ext_id.relationship!r}", field="external_ids"
            )
        if ext_id.type in STRICT_TYPES and not ext_id.normalized:
            raise ActivityValidationException(
                f"Invalid {ext_id.type} value: {ext_id.value!r}", field="external_ids"
            )
        normalized.append(ext_id)
    return normalized


def validate_work(
    form: WorkForm,
    create: bool,
    is_api_request: bool,
    original_visibility: Optional[str] = None,
) -> WorkForm:
    """Validate a work form; returns a copy with normalized identifiers and visibility."""
    if _blank(form.title):
        raise ActivityValidationException("Title is required", field="title")
    if form.work_type not in WORK_TYPES:
        raise ActivityValidationException(f"Invalid work type: {form.work_type!r}", field="work_type")
    if not _blank(form.translated_title):
        code = form.translated_title_language_code
        if _blank(code) or not LANGUAGE_CODE_PATTERN.match(code):
            raise ActivityValidationException(
                "Translated title requires a valid language code", field="translated_title_language_code"
            )
    if form.language_code and not LANGUAGE_CODE_PATTERN.match(form.language_code):
        raise ActivityValidationException(f"Invalid language code: {form.language_code}", field="language_code")
    validate_publication_date(form.publication_date)
    if form.iso2_country and not COUNTRY_PATTERN.match(form.iso2_country):
        raise ActivityValidationException(f"Invalid country code: {form.iso2_country}", field="iso2_country")
    if form.url and not form.url.lower().startswith(("http://", "https://")):
        raise ActivityValidationException("URL must use http or https", field="url")
    if not _blank(form.citation) and form.citation_type not in CITATION_TYPES:
        raise ActivityValidationException("Citation requires a valid citation type", field="citation_type")
    validate_contributors(form)

    try:
        visibility = parse_visibility(form.visibility)
    except ValueError:
        raise ActivityValidationException(f"Invalid visibility: {form.visibility}", field="visibility")

    if is_api_request:
        if create and form.put_code is not None:
            raise InvalidPutCodeException()
        if not form.external_ids:
            raise ActivityValidationException("At least one external identifier is required", field="external_ids")
        if original_visibility is not None and visibility is not None and visibility != original_visibility:
            raise VisibilityMismatchException(original_visibility, visibility)

    ext_ids = validate_external_ids(form.external_ids, is_api_request)
    return form.model_copy(update={"external_ids": ext_ids, "visibility": visibility})


def is_same_source(work: Work, active_source: Optional[str]) -> bool:
    return active_source is not None and work.source == active_source


def check_external_identifiers_for_duplicates(
    form: WorkForm,
    existing: Work,
    active_source: Optional[str],
    client_name: Optional[str] = None,
) -> None:
    """Raise when the active source already added a work sharing a `self` identifier."""
    if not is_same_source(existing, active_source):
        return
    existing_self = {
        ext_id.key() for ext_id in external_ids_of(existing)
        if ext_id.relationship == Relationship.SELF.value
    }
    if not existing_self:
        return
    for ext_id in form.external_ids:
        if ext_id.relationship == Relationship.SELF.value and ext_id.key() in existing_self:
            raise DuplicatedActivityException(client_name or active_source, put_code=existing.id)
