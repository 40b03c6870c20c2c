"""ORCID iD generation and checksum validation (ISO 7064 MOD 11-2)."""

import re
import secrets

ORCID_ID_PATTERN = re.compile(r"^\d{4}-\d{4}-\d{4}-\d{3}[\dX]$")

# Block of base numbers handed out to new records
ORCID_BLOCK_START = 15_000_000  # 0000-0001-5000-000x
ORCID_BLOCK_END = 35_000_000  # 0000-0003-5000-000x


def checksum(base_digits: str) -> str:
    """Check character for the 15 base digits of an iD."""
    total = 0
    for digit in base_digits:
        total = (total + int(digit)) * 2
    result = (12 - total % 11) % 11
    return "X" if result == 10 else str(result)


def format_orcid_id(digits: str) -> str:
    return "-".join(digits[i:i + 4] for i in range(0, 16, 4))


def generate_orcid_id() -> str:
    base = str(ORCID_BLOCK_START + secrets.randbelow(ORCID_BLOCK_END - ORCID_BLOCK_START)).zfill(15)
    return format_orcid_id(base + checksum(base))


def is_valid_orcid_id(value) -> bool:
    if not isinstance(value, str) or not ORCID_ID_PATTERN.match(value):
        return False
    digits = value.replace("-", "")
    return checksum(digits[:15]) == digits[15]
