"""
Aggregate statistics over flattened LTV records.

Every function here is pure: it reads the records once (or once plus a
sort) and returns freshly built values. compute_stats() is the same entry
point the server uses and what consumers call on a filtered subset.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from ltvboard.models.ltv import FlatRecord, SpeedCategory
from ltvboard.models.stats import (
    LineSummary,
    ReasonCount,
    SpeedBucket,
    StatsSnapshot,
    TimelinePoint,
    TrackCount,
)


SPEED_BUCKET_WIDTH = 10
TOP_REASONS = 12
UNKNOWN_REASON = "UNKNOWN"
UNKNOWN_TRACK = "?"


def compute_stats(records: Sequence[FlatRecord]) -> StatsSnapshot:
    """Compute every aggregate view for `records`. Empty input yields zeros."""
    totals = compute_totals(records)
    return StatsSnapshot(
        **totals,
        speed_distribution=speed_distribution(records),
        reason_distribution=reason_distribution(records),
        timeline_data=timeline(records),
        track_distribution=track_distribution(records),
        line_data=line_summary(records),
    )


def compute_totals(records: Sequence[FlatRecord]) -> dict:
    """Headline counts and speed figures (keys match StatsSnapshot fields)."""
    speeds = np.array([r.speed_num for r in records], dtype=np.float64)
    moving = speeds[speeds > 0]

    if moving.size:
        avg_speed = round_half_up(_mean(moving))
        min_speed = float(np.min(moving))
        max_speed = float(np.max(moving))
    else:
        avg_speed, min_speed, max_speed = 0, 0.0, 0.0

    return {
        "total": len(records),
        "active_count": sum(1 for r in records if r.active),
        "lines": len({r.line for r in records}),
        "avg_speed": avg_speed,
        "min_speed": min_speed,
        "max_speed": max_speed,
        "critical_count": sum(
            1 for r in records if r.category is SpeedCategory.CRITICAL
        ),
        "csv_count": sum(1 for r in records if r.csv),
        "total_km": _finite_sum([r.km_length for r in records]),
    }


def speed_distribution(records: Sequence[FlatRecord]) -> tuple[SpeedBucket, ...]:
    """Sparse 10 km/h buckets, ascending."""
    if not records:
        return ()
    speeds = np.array([r.speed_num for r in records], dtype=np.float64)
    # Bucket indices stay float; int64 cannot hold speeds past 2**63
    indices, counts = np.unique(np.floor(speeds / SPEED_BUCKET_WIDTH), return_counts=True)
    return tuple(
        SpeedBucket(speed=int(i) * SPEED_BUCKET_WIDTH, count=int(c))
        for i, c in zip(indices, counts)
    )


def reason_distribution(records: Sequence[FlatRecord]) -> tuple[ReasonCount, ...]:
    """Most frequent normalized reasons, at most TOP_REASONS entries."""
    counts: dict[str, int] = {}
    for r in records:
        reason = r.reason.strip().upper() or UNKNOWN_REASON
        counts[reason] = counts.get(reason, 0) + 1

    # sorted() is stable: equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return tuple(ReasonCount(reason=k, count=v) for k, v in ranked[:TOP_REASONS])


def timeline(records: Sequence[FlatRecord]) -> tuple[TimelinePoint, ...]:
    """
    New / open / resolved counts per snapshot date.

    The earliest first-appearance date is not emitted: records first seen on
    it include the backlog that existed before observation started. It is
    still the reference point for the resolved count of the next date.

    For each emitted date d (with previous snapshot date p):
    - count: first_appearance_date == d
    - active: first_appearance_date <= d and last_seen >= d
    - resolved: first_appearance_date <= p and last_seen == p

    Comparisons are on the ISO date strings.
    """
    all_dates = sorted({r.first_appearance_date for r in records if r.first_appearance_date})
    if len(all_dates) < 2:
        return ()

    first_seen = np.array([r.first_appearance_date for r in records], dtype=str)
    last_seen = np.array([r.last_seen for r in records], dtype=str)

    points = []
    for idx in range(1, len(all_dates)):
        date = all_dates[idx]
        prev = all_dates[idx - 1]
        points.append(TimelinePoint(
            date=date_to_timestamp_ms(date),
            date_str=date,
            count=int(np.count_nonzero(first_seen == date)),
            resolved=int(np.count_nonzero((first_seen <= prev) & (last_seen == prev))),
            active=int(np.count_nonzero((first_seen <= date) & (last_seen >= date))),
        ))
    return tuple(points)


def track_distribution(records: Sequence[FlatRecord]) -> tuple[TrackCount, ...]:
    """Records per track, most common first."""
    counts: dict[str, int] = {}
    for r in records:
        track = r.track or UNKNOWN_TRACK
        counts[track] = counts.get(track, 0) + 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return tuple(TrackCount(track=k, count=v) for k, v in ranked)


def line_summary(records: Sequence[FlatRecord]) -> tuple[LineSummary, ...]:
    """Record count and mean speed (zero speeds included) per line."""
    speeds: dict[str, list[float]] = {}
    for r in records:
        speeds.setdefault(r.line, []).append(r.speed_num)

    summaries = [
        LineSummary(
            line=line,
            count=len(values),
            avg_speed=round_half_up(_mean(np.array(values, dtype=np.float64))),
        )
        for line, values in speeds.items()
    ]
    summaries.sort(key=lambda s: s.count, reverse=True)
    return tuple(summaries)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (2.5 -> 3, -2.5 -> -2). Non-finite gives 0."""
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def _mean(values: np.ndarray) -> float:
    """Mean of a non-empty array that stays finite when the plain sum overflows."""
    with np.errstate(over="ignore"):
        mean = float(np.mean(values))
    if not math.isfinite(mean):
        mean = float(np.sum(values / values.size))
    return mean


def _finite_sum(values: Sequence[float]) -> float:
    """Sum of `values`; an overflowing total degrades to 0 like any non-finite number."""
    with np.errstate(over="ignore"):
        total = float(np.sum(np.array(values, dtype=np.float64)))
    return total if math.isfinite(total) else 0.0


def date_to_timestamp_ms(date_str: str) -> Optional[int]:
    """Milliseconds since the epoch for a date string read as UTC."""
    ts = pd.to_datetime(date_str, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return int(ts.value // 1_000_000)
