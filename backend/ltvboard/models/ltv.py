"""
LTV record models.

RawRecord mirrors one entry of the stored snapshot document (grouped by line).
FlatRecord is the enriched, line-tagged form produced by the flattener.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Optional


# Wire name (as stored / served) -> attribute name
WIRE_FIELDS = {
    "code": "code",
    "stations": "stations",
    "track": "track",
    "startKm": "start_km",
    "endKm": "end_km",
    "speed": "speed",
    "reason": "reason",
    "startDateTime": "start_date_time",
    "endDateTime": "end_date_time",
    "schedule": "schedule",
    "csv": "csv",
    "comment": "comment",
    "firstAppearanceDate": "first_appearance_date",
    "lastSeen": "last_seen",
    "latitude": "latitude",
    "longitude": "longitude",
}

FLAT_WIRE_FIELDS = {
    **WIRE_FIELDS,
    "line": "line",
    "speedNum": "speed_num",
    "kmLength": "km_length",
    "active": "active",
}


class SpeedCategory(Enum):
    """Severity band of a restricted speed (km/h)."""

    CRITICAL = "critical"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    REDUCED = "reduced"


def speed_category(speed: float) -> SpeedCategory:
    if speed <= 30:
        return SpeedCategory.CRITICAL
    if speed <= 60:
        return SpeedCategory.LOW
    if speed <= 80:
        return SpeedCategory.MEDIUM
    if speed <= 120:
        return SpeedCategory.HIGH
    return SpeedCategory.REDUCED


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_coordinate(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass(frozen=True)
class RawRecord:
    """A single speed restriction as stored in the snapshot document."""

    code: str = ""
    stations: str = ""
    track: str = ""
    start_km: str = ""
    end_km: str = ""
    speed: str = ""
    reason: str = ""
    start_date_time: str = ""
    end_date_time: str = ""
    schedule: str = ""
    csv: bool = False
    comment: str = ""
    first_appearance_date: str = ""  # ISO date of the first snapshot containing it
    last_seen: str = ""              # ISO date of the last snapshot containing it
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RawRecord":
        """
        Build a record from its stored (camelCase) shape.

        Missing text fields become empty strings; the numeric-looking text
        fields are kept verbatim and only interpreted by the flattener.
        """
        kwargs: dict[str, Any] = {}
        for wire, attr in WIRE_FIELDS.items():
            value = data.get(wire)
            if attr == "csv":
                kwargs[attr] = bool(value)
            elif attr in ("latitude", "longitude"):
                kwargs[attr] = _as_coordinate(value)
            else:
                kwargs[attr] = _as_text(value)
        return cls(**kwargs)


@dataclass(frozen=True)
class FlatRecord(RawRecord):
    """RawRecord tagged with its line and the derived analytical fields."""

    line: str = ""
    speed_num: float = 0.0
    km_length: float = 0.0
    active: bool = False

    @classmethod
    def from_raw(
        cls,
        raw: RawRecord,
        line: str,
        speed_num: float,
        km_length: float,
        active: bool,
    ) -> "FlatRecord":
        base = {f.name: getattr(raw, f.name) for f in fields(RawRecord)}
        return cls(
            **base,
            line=line,
            speed_num=speed_num,
            km_length=km_length,
            active=active,
        )

    @property
    def category(self) -> SpeedCategory:
        return speed_category(self.speed_num)