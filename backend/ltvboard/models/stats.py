"""
Aggregate statistics model.

A StatsSnapshot is derived from a collection of FlatRecords and holds no
reference back to it. All sequences are tuples built per computation.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SpeedBucket:
    """Records whose speed falls in [speed, speed + 10)."""

    speed: int
    count: int


@dataclass(frozen=True)
class ReasonCount:
    reason: str
    count: int


@dataclass(frozen=True)
class TimelinePoint:
    """Counts for one snapshot date."""

    date: Optional[int]  # ms since epoch (UTC), None if date_str is not a date
    date_str: str
    count: int           # first seen on this date
    resolved: int        # last seen on the previous snapshot date
    active: int          # open on this date


@dataclass(frozen=True)
class TrackCount:
    track: str
    count: int


@dataclass(frozen=True)
class LineSummary:
    line: str
    count: int
    avg_speed: int


@dataclass(frozen=True)
class StatsSnapshot:
    """Aggregate views over a collection of FlatRecords."""

    total: int
    active_count: int
    lines: int
    avg_speed: int
    min_speed: float
    max_speed: float
    critical_count: int
    csv_count: int
    total_km: float

    speed_distribution: tuple[SpeedBucket, ...]
    reason_distribution: tuple[ReasonCount, ...]
    timeline_data: tuple[TimelinePoint, ...]
    track_distribution: tuple[TrackCount, ...]
    line_data: tuple[LineSummary, ...]
