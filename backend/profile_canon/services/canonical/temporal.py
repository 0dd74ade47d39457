"""Date parsing and interval logic for loosely formatted employment dates.

Handles the formats resumes and profile exports actually contain:
- "2019" (year only)
- "2019-07" (year-month)
- "2019-07-15" / full ISO timestamps
- "July 2019", "Jul 2019", "07/2019", "07/15/2019"
- "Present" (any casing, also inside "Jan 2020 - Present")

Parsed values are tagged (known / present / unknown) instead of leaning on a
far-future sentinel; open ends become math.inf only inside interval arithmetic.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from profile_canon.services.canonical.config import CFG


class DateKind(str, Enum):
    KNOWN = "known"
    PRESENT = "present"
    UNKNOWN = "unknown"


class Granularity(str, Enum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"


@dataclass(frozen=True)
class ParsedDate:
    kind: DateKind
    value: Optional[date] = None
    granularity: Optional[Granularity] = None

    @property
    def is_known(self) -> bool:
        return self.kind is DateKind.KNOWN

    @property
    def is_present(self) -> bool:
        return self.kind is DateKind.PRESENT

    @property
    def is_unknown(self) -> bool:
        return self.kind is DateKind.UNKNOWN


UNKNOWN = ParsedDate(DateKind.UNKNOWN)
PRESENT = ParsedDate(DateKind.PRESENT)


@dataclass(frozen=True)
class DateRange:
    start: ParsedDate = UNKNOWN
    end: ParsedDate = UNKNOWN


_PRESENT_RE = re.compile(r"\bpresent\b", re.I)
_YEAR_RE = re.compile(r"^\d{4}$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

_MONTH_FORMATS = ("%B %Y", "%b %Y", "%m/%Y", "%b. %Y")
_DAY_FORMATS = ("%m/%d/%Y", "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y")


def is_present(value: Optional[str]) -> bool:
    if not value:
        return False
    return bool(_PRESENT_RE.search(value.strip()))


def parse_date(value: Optional[str]) -> ParsedDate:
    """Parse one date string; anything unparseable is UNKNOWN, never an error."""
    if not value or not value.strip():
        return UNKNOWN

    raw = value.strip()
    if is_present(raw):
        return PRESENT

    if _YEAR_RE.match(raw):
        try:
            return ParsedDate(DateKind.KNOWN, date(int(raw), 1, 1), Granularity.YEAR)
        except ValueError:
            # "0000" and friends fall outside date's range
            return UNKNOWN

    m = _YEAR_MONTH_RE.match(raw)
    if m:
        try:
            return ParsedDate(DateKind.KNOWN, date(int(m.group(1)), int(m.group(2)), 1), Granularity.MONTH)
        except ValueError:
            return UNKNOWN

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return ParsedDate(DateKind.KNOWN, parsed.date(), Granularity.DAY)
    except ValueError:
        pass

    for fmt in _MONTH_FORMATS:
        try:
            parsed = datetime.strptime(raw, fmt)
            return ParsedDate(DateKind.KNOWN, parsed.date().replace(day=1), Granularity.MONTH)
        except ValueError:
            continue

    for fmt in _DAY_FORMATS:
        try:
            return ParsedDate(DateKind.KNOWN, datetime.strptime(raw, fmt).date(), Granularity.DAY)
        except ValueError:
            continue

    return UNKNOWN


def build_range(start_date: Optional[str], end_date: Optional[str], is_current: bool = False) -> DateRange:
    start = parse_date(start_date)
    end = parse_date(end_date)
    if is_current or end.is_present:
        end = PRESENT
    return DateRange(start=start, end=end)


def _ordinal(point: ParsedDate, *, open_value: float = math.inf) -> float:
    if point.is_known:
        return float(point.value.toordinal())
    if point.is_present:
        return math.inf
    return open_value


def _gap_days(a: float, b: float) -> float:
    if a == b:
        return 0.0
    return abs(a - b)


def ranges_overlap_or_adjacent(a: DateRange, b: DateRange, *, window_days: Optional[int] = None) -> bool:
    """
    True when two stints overlap or sit within `window_days` of each other.
    An unknown start on either side cannot disprove overlap, so it counts as True.
    """
    if a.start.is_unknown or b.start.is_unknown:
        return True

    window = CFG.adjacent_range_window_days if window_days is None else window_days

    start_a = _ordinal(a.start)
    start_b = _ordinal(b.start)
    end_a = _ordinal(a.end)
    end_b = _ordinal(b.end)

    if start_a <= end_b and start_b <= end_a:
        return True

    return _gap_days(end_a, start_b) <= window or _gap_days(end_b, start_a) <= window


def earliest(a: ParsedDate, b: ParsedDate) -> ParsedDate:
    """Earlier of two starts; UNKNOWN never wins over a value."""
    if a.is_unknown:
        return b
    if b.is_unknown:
        return a
    return a if _ordinal(a) <= _ordinal(b) else b


def latest(a: ParsedDate, b: ParsedDate) -> ParsedDate:
    """Later of two ends; PRESENT dominates, UNKNOWN never wins over a value."""
    if a.is_unknown:
        return b
    if b.is_unknown:
        return a
    return a if _ordinal(a) >= _ordinal(b) else b


def widen(group: DateRange, other: DateRange) -> DateRange:
    return DateRange(start=earliest(group.start, other.start), end=latest(group.end, other.end))


def sort_key_desc(point: ParsedDate) -> float:
    """Key for most-recent-first sorting: present and unknown ends come first."""
    return -_ordinal(point)


def min_known(points: Iterable[ParsedDate]) -> Optional[ParsedDate]:
    result: Optional[ParsedDate] = None
    for point in points:
        if point.is_known and (result is None or point.value < result.value):
            result = point
    return result


def max_known(points: Iterable[ParsedDate]) -> Optional[ParsedDate]:
    result: Optional[ParsedDate] = None
    for point in points:
        if point.is_known and (result is None or point.value > result.value):
            result = point
    return result


def render_date(point: Optional[ParsedDate]) -> Optional[str]:
    """
    Render a parsed date back to storage form: "Present", "YYYY" for year-only
    input, "YYYY-MM" for everything finer.
    """
    if point is None or point.is_unknown:
        return None
    if point.is_present:
        return "Present"
    if point.granularity is Granularity.YEAR:
        return f"{point.value.year:04d}"
    return f"{point.value.year:04d}-{point.value.month:02d}"


def months_between(start: date, end: date) -> int:
    """Whole months covered by [start, end], counted inclusively, at least 1."""
    if start > end:
        start, end = end, start
    total = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        total -= 1
    return max(1, total + 1)
