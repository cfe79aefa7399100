"""Regex extraction of amounts, dates and organizations from parsed text."""

import re
from typing import List

from trustrag.models.parse import ExtractedEntities

MAX_ORGANIZATIONS = 10

AMOUNT_PATTERNS = [
    re.compile(r"\$[\d,]+(?:\.\d{2})?"),
    re.compile(r"\b\d+(?:,\d{3})*(?:\.\d{2})?\s*(?:dollars?|USD)\b", re.IGNORECASE),
]

MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)
DATE_PATTERNS = [
    re.compile(r"\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b"),
    re.compile(rf"\b(?:{MONTHS})\s+\d{{1,2}},?\s+\d{{4}}\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}\s+(?:{MONTHS})\s+\d{{4}}\b", re.IGNORECASE),
    re.compile(r"\b\d{4}[/\-]\d{1,2}[/\-]\d{1,2}\b"),
]

ORGANIZATION_PATTERN = re.compile(
    r"\b[A-Z][A-Za-z&]*(?:[ \t]+[A-Z][A-Za-z&]*)*[ \t]+"
    r"(?:Inc\.?|LLC|Corp\.?|Corporation|Foundation|Institute|University|College|Company|Association)\b"
)

STRUCTURE_PATTERNS = [
    re.compile(r"\|\s*[^\n]+\s*\|"),  # pipe tables
    re.compile(r"^\s*[\d\-\*\+]\.\s+", re.MULTILINE),  # numbered or bulleted lists
    re.compile(r"\t{2,}"),  # tab-separated columns
    re.compile(r"^[\-=]{3,}$", re.MULTILINE),  # horizontal rules
]


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def extract_entities(text: str) -> ExtractedEntities:
    """
    Pull monetary amounts, dates and organization names out of text.

    Args:
        text: Extracted document text.

    Returns:
        De-duplicated entities, at most ten organizations.
    """
    amounts = [m.group(0) for pattern in AMOUNT_PATTERNS for m in pattern.finditer(text)]
    dates = [m.group(0) for pattern in DATE_PATTERNS for m in pattern.finditer(text)]
    organizations = [m.group(0) for m in ORGANIZATION_PATTERN.finditer(text)]
    return ExtractedEntities(
        amounts=_unique(amounts),
        dates=_unique(dates),
        organizations=_unique(organizations)[:MAX_ORGANIZATIONS],
    )


def has_structured_data(text: str) -> bool:
    return any(pattern.search(text) for pattern in STRUCTURE_PATTERNS)
