"""
External identifiers of works: vocabulary, normalization and the keys used
for duplicate detection and grouping.
"""

import re
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel


class Relationship(str, Enum):
    SELF = "self"
    PART_OF = "part-of"
    VERSION_OF = "version-of"
    FUNDED_BY = "funded-by"


RELATIONSHIPS = {r.value for r in Relationship}

# Types whose normalized form must be non-empty for the identifier to be accepted
STRICT_TYPES = {"doi", "isbn", "issn", "pmid", "pmc", "arxiv"}

# Identify a container (journal) rather than the work itself
NON_GROUPABLE_TYPES = {"issn"}

WORK_EXTERNAL_ID_TYPES = {
    "agr", "ark", "arxiv", "asin", "bibcode", "cba", "cienciaiul", "cit", "ctx",
    "dnb", "doi", "eid", "ethos", "handle", "hir", "isbn", "issn", "jfm", "jstor",
    "kuid", "lccn", "lensid", "mr", "oclc", "ol", "osti", "other-id", "pat", "pdb",
    "pmc", "pmid", "proposal-id", "rfc", "rrid", "source-work-id", "ssrn", "uri",
    "urn", "wosuid", "zbl",
}

DOI_PATTERN = re.compile(r"10\.\d{4,9}/\S+", re.IGNORECASE)
ISSN_PATTERN = re.compile(r"(\d{4})-?(\d{3}[\dX])")
PMC_PATTERN = re.compile(r"PMC\s*(\d+)", re.IGNORECASE)
ARXIV_PATTERN = re.compile(
    r"(\d{4}\.\d{4,5}(?:v\d+)?|[a-z\-]+(?:\.[A-Z]{2})?/\d{7}(?:v\d+)?)", re.IGNORECASE
)


class ExternalID(BaseModel):
    type: str
    value: str
    normalized: Optional[str] = None
    normalized_url: Optional[str] = None
    url: Optional[str] = None
    relationship: Optional[str] = None

    @property
    def match_value(self) -> str:
        return self.normalized or self.value.strip().lower()

    def key(self) -> Tuple[str, str, Optional[str]]:
        """Identity used for duplicate detection."""
        return (self.type, self.match_value, self.relationship)

    def group_key(self) -> Tuple[str, str]:
        """Identity used for grouping; relationship is ignored."""
        return (self.type, self.match_value)

    @property
    def is_groupable(self) -> bool:
        return (
            self.relationship in (Relationship.SELF.value, Relationship.VERSION_OF.value)
            and self.type not in NON_GROUPABLE_TYPES
        )


def _normalize_doi(value: str) -> str:
    match = DOI_PATTERN.search(value)
    return match.group(0).lower().rstrip(".") if match else ""


def _normalize_isbn(value: str) -> str:
    digits = re.sub(r"[\s\-]", "", value.upper())
    if digits.startswith("ISBN"):
        digits = digits[4:].lstrip(":")
    if re.fullmatch(r"\d{9}[\dX]", digits) or re.fullmatch(r"\d{13}", digits):
        return digits
    return ""


def _normalize_issn(value: str) -> str:
    match = ISSN_PATTERN.search(value.upper())
    return f"{match.group(1)}-{match.group(2)}" if match else ""


def _normalize_pmid(value: str) -> str:
    value = value.strip().lower()
    for prefix in ("https://pubmed.ncbi.nlm.nih.gov/", "http://www.ncbi.nlm.nih.gov/pubmed/",
                   "https://www.ncbi.nlm.nih.gov/pubmed/", "pmid:", "pmid"):
        if value.startswith(prefix):
            value = value[len(prefix):]
    value = value.strip().strip("/")
    return value if value.isdigit() else ""


def _normalize_pmc(value: str) -> str:
    match = PMC_PATTERN.search(value)
    if match:
        return f"PMC{match.group(1)}"
    value = value.strip()
    return f"PMC{value}" if value.isdigit() else ""


def _normalize_arxiv(value: str) -> str:
    value = value.strip()
    value = re.sub(r"^(https?://arxiv\.org/(abs|pdf)/|arxiv:)", "", value, flags=re.IGNORECASE)
    match = ARXIV_PATTERN.fullmatch(value.removesuffix(".pdf"))
    return match.group(1) if match else ""


def _normalize_default(value: str) -> str:
    return value.strip().lower()


NORMALIZERS: Dict[str, Callable[[str], str]] = {
    "doi": _normalize_doi,
    "isbn": _normalize_isbn,
    "issn": _normalize_issn,
    "pmid": _normalize_pmid,
    "pmc": _normalize_pmc,
    "arxiv": _normalize_arxiv,
}

RESOLVERS: Dict[str, str] = {
    "doi": "https://doi.org/{}",
    "pmid": "https://pubmed.ncbi.nlm.nih.gov/{}",
    "pmc": "https://www.ncbi.nlm.nih.gov/pmc/articles/{}",
    "arxiv": "https://arxiv.org/abs/{}",
    "isbn": "https://www.worldcat.org/isbn/{}",
    "issn": "https://portal.issn.org/resource/ISSN/{}",
    "handle": "https://hdl.handle.net/{}",
}


def normalize(id_type: str, value: str) -> str:
    """Normalized form of an identifier value; empty when it cannot be understood."""
    if value is None:
        return ""
    return NORMALIZERS.get(id_type, _normalize_default)(value)


def normalized_url(id_type: str, normalized_value: str) -> Optional[str]:
    template = RESOLVERS.get(id_type)
    if not template or not normalized_value:
        return None
    return template.format(normalized_value)


def normalize_external_id(ext_id: ExternalID) -> ExternalID:
    """Return a copy with type/relationship tidied and normalized fields filled in."""
    id_type = (ext_id.type or "").strip().lower()
    relationship = ext_id.relationship.strip().lower() if ext_id.relationship else None
    norm = normalize(id_type, ext_id.value or "")
    return ext_id.model_copy(update={
        "type": id_type,
        "value": (ext_id.value or "").strip(),
        "relationship": relationship,
        "normalized": norm or None,
        "normalized_url": normalized_url(id_type, norm),
    })


def parse_external_ids(raw: Optional[Iterable]) -> List[ExternalID]:
    """Build ExternalID objects from stored JSON (or pass through objects)."""
    if not raw:
        return []
    return [item if isinstance(item, ExternalID) else ExternalID(**item) for item in raw]


def dump_external_ids(ext_ids: Iterable[ExternalID]) -> List[dict]:
    return [ext_id.model_dump() for ext_id in ext_ids]


def merge_external_ids(groups: Iterable[Iterable[ExternalID]]) -> List[ExternalID]:
    """Distinct identifiers across several lists, in first-seen order."""
    merged: List[ExternalID] = []
    seen = set()
    for ext_ids in groups:
        for ext_id in ext_ids:
            if ext_id.key() not in seen:
                seen.add(ext_id.key())
                merged.append(ext_id)
    return merged
