"""Rejects raw experiences that are template artifacts rather than real stints."""
from __future__ import annotations

import re
from typing import Iterable, Optional, Pattern

from profile_canon.services.canonical.temporal import is_present
from profile_canon.services.canonical.types import RawExperience

PLACEHOLDER_COMPANY_PATTERNS = [
    re.compile(r"company name", re.I),
    re.compile(r"your company", re.I),
    re.compile(r"sample company", re.I),
    re.compile(r"organization", re.I),
    re.compile(r"^n/?a$", re.I),
]

PLACEHOLDER_DATE_PATTERNS = [
    re.compile(r"Y{4}", re.I),
    re.compile(r"M{2}", re.I),
    re.compile(r"X{2,}", re.I),
    re.compile(r"not provided", re.I),
]


def matches_any(value: Optional[str], patterns: Iterable[Pattern[str]]) -> bool:
    if not value:
        return False
    stripped = value.strip()
    return any(p.search(stripped) for p in patterns)


def is_placeholder_company(company: Optional[str]) -> bool:
    return matches_any(company, PLACEHOLDER_COMPANY_PATTERNS)


def has_placeholder_dates(record: RawExperience) -> bool:
    """
    True when no date on the record is usable.
    A usable start with no end counts as open-ended, not as a placeholder.
    """
    start = (record.start_date or "").strip()
    end = (record.end_date or "").strip()

    start_usable = bool(start) and not matches_any(start, PLACEHOLDER_DATE_PATTERNS)
    end_usable = bool(end) and not matches_any(end, PLACEHOLDER_DATE_PATTERNS)
    ongoing = bool(record.is_current) or is_present(end) or (not end and start_usable)

    return not (start_usable or end_usable or ongoing)


def should_skip_experience(record: Optional[RawExperience]) -> bool:
    if record is None:
        return True

    title = (record.title or "").strip()
    company = (record.company or "").strip()

    has_identity = bool(title) or bool(company and not is_placeholder_company(company))
    if not has_identity:
        return True

    return has_placeholder_dates(record)
