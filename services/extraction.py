"""
Field Extraction

Pattern heuristics that pull proposal fields out of a vendor's email body.
Each extractor is independent and returns None when its label is absent.
"""

import re
from typing import Optional

from schemas.vendor_response import ExtractedFields


APPROACH_SUMMARY_LIMIT = 1000

PRICE_PATTERN = re.compile(r"(?:price|cost|budget)[:\s]*\$?\s*([0-9][0-9,]*(?:\.[0-9]+)?)", re.IGNORECASE)
TIMELINE_PATTERN = re.compile(r"(?:timeline|duration|time)[:\s]*([0-9]+)\s*(?:days|weeks|months)", re.IGNORECASE)
TIMELINE_UNIT_PATTERN = re.compile(r"(days|weeks|months)", re.IGNORECASE)
EXPERIENCE_PATTERN = re.compile(r"(?:experience|years)[:\s]*([0-9]+)\s*(?:years?)", re.IGNORECASE)
TEAM_SIZE_PATTERN = re.compile(r"(?:team size|members)[:\s]*([0-9]+)", re.IGNORECASE)


def _parse_number(raw: str) -> Optional[float]:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def extract_price(text: Optional[str]) -> Optional[float]:
    """Number following a price/cost/budget label, thousands separators stripped."""
    if not text:
        return None
    match = PRICE_PATTERN.search(text)
    if not match:
        return None
    return _parse_number(match.group(1))


def extract_timeline(text: Optional[str]) -> Optional[str]:
    """
    Quantity plus duration unit following a timeline label, e.g. "6 weeks".

    The unit is re-read from the matched span as written; "days" if that fails.
    """
    if not text:
        return None
    match = TIMELINE_PATTERN.search(text)
    if not match:
        return None
    unit_match = TIMELINE_UNIT_PATTERN.search(match.group(0))
    unit = unit_match.group(1) if unit_match else "days"
    return f"{match.group(1)} {unit}"


def extract_experience(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = EXPERIENCE_PATTERN.search(text)
    if not match:
        return None
    return f"{match.group(1)} years"


def extract_team_size(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    match = TEAM_SIZE_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(1))


def summarize_approach(text: Optional[str], limit: int = APPROACH_SUMMARY_LIMIT) -> Optional[str]:
    """Leading slice of the body, used when no structured approach is given."""
    if not text:
        return None
    return text[:limit]


def extract_fields(text: Optional[str]) -> ExtractedFields:
    """Run every extractor over the email text."""
    return ExtractedFields(
        proposed_price=extract_price(text),
        timeline=extract_timeline(text),
        experience=extract_experience(text),
        team_size=extract_team_size(text),
        approach=summarize_approach(text),
    )
