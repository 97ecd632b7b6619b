"""
Record selection helpers used by the table/map views.

Pure functions over FlatRecord sequences, so a filtered subset can be fed
straight back into compute_stats().
"""

import math
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ltvboard.models.ltv import FLAT_WIRE_FIELDS, FlatRecord


DEFAULT_PAGE_SIZE = 50
DEFAULT_SORT_KEY = "firstAppearanceDate"

_DIGIT_RUNS = re.compile(r"(\d+)")


@dataclass(frozen=True)
class RecordFilter:
    """Criteria a record must meet. Unset criteria match everything."""

    line: Optional[str] = None
    track: Optional[str] = None
    max_speed: Optional[float] = None
    reason: Optional[str] = None  # case-insensitive substring
    csv_only: bool = False
    active_only: bool = False

    def matches(self, record: FlatRecord) -> bool:
        if self.line and record.line != self.line:
            return False
        if self.track and record.track != self.track:
            return False
        if self.max_speed is not None and record.speed_num > self.max_speed:
            return False
        if self.reason and self.reason.lower() not in record.reason.lower():
            return False
        if self.csv_only and not record.csv:
            return False
        if self.active_only and not record.active:
            return False
        return True


@dataclass(frozen=True)
class Page:
    items: tuple[FlatRecord, ...]
    page: int
    page_size: int
    total: int
    total_pages: int


def filter_records(records: Sequence[FlatRecord], flt: RecordFilter) -> list[FlatRecord]:
    return [r for r in records if flt.matches(r)]


def natural_key(value) -> tuple:
    """Sort key comparing digit runs numerically ("L10" after "L9")."""
    text = "" if value is None else str(value)
    parts = _DIGIT_RUNS.split(text.lower())
    return tuple(
        (1, int(part), "") if part.isdigit() else (0, 0, part)
        for part in parts
        if part
    )


def sort_records(
    records: Sequence[FlatRecord],
    key: str = DEFAULT_SORT_KEY,
    descending: bool = True,
) -> list[FlatRecord]:
    """
    Sort by a wire field name (e.g. "speedNum", "lastSeen").

    Raises KeyError for an unknown field.
    """
    attr = FLAT_WIRE_FIELDS[key]
    return sorted(records, key=lambda r: natural_key(getattr(r, attr)), reverse=descending)


def paginate(
    records: Sequence[FlatRecord],
    page: int = 0,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    """Zero-based page slice. Pages past the end are empty."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    page = max(page, 0)
    start = page * page_size
    return Page(
        items=tuple(records[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=len(records),
        total_pages=math.ceil(len(records) / page_size),
    )
