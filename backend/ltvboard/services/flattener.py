"""
Flattener for grouped LTV records.

Turns `{line: [RawRecord, ...]}` into one ordered list of FlatRecords with
numeric speed, segment length and the dataset-wide active flag.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional, Sequence

from ltvboard.models.ltv import FlatRecord, RawRecord


# Longest leading decimal literal, after optional whitespace ("30 km/h" -> 30)
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_number(value: Any) -> float:
    """
    Parse the leading number of a text field.

    Returns 0.0 for anything without a usable finite number. Never raises.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value))
        if match is None:
            return 0.0
        try:
            number = float(match.group(1))
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def find_max_last_seen(groups: Mapping[str, Sequence[RawRecord]]) -> Optional[str]:
    """Latest `last_seen` across every line (string order), None if no records."""
    latest: Optional[str] = None
    for records in groups.values():
        for record in records:
            if latest is None or record.last_seen > latest:
                latest = record.last_seen
    return latest


def flatten_records(
    groups: Mapping[str, Sequence[RawRecord]],
    max_last_seen: Optional[str] = None,
) -> list[FlatRecord]:
    """
    Flatten grouped records in line order, then record order.

    `max_last_seen` must be the dataset-wide maximum; it is computed here
    when not supplied.
    """
    if max_last_seen is None:
        max_last_seen = find_max_last_seen(groups)

    flat: list[FlatRecord] = []
    for line, records in groups.items():
        for record in records:
            flat.append(_flatten_one(line, record, max_last_seen))
    return flat


def _flatten_one(line: str, record: RawRecord, max_last_seen: Optional[str]) -> FlatRecord:
    speed_num = parse_number(record.speed)
    if speed_num < 0:
        speed_num = 0.0

    start_km = parse_number(record.start_km)
    end_km = parse_number(record.end_km)
    km_length = abs(end_km - start_km)
    if not math.isfinite(km_length):
        km_length = 0.0

    return FlatRecord.from_raw(
        record,
        line=line,
        speed_num=speed_num,
        km_length=km_length,
        active=max_last_seen is not None and record.last_seen == max_last_seen,
    )
