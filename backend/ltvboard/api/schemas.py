"""
API schemas (Pydantic models) for responses.

Field names are snake_case in Python and camelCase on the wire, matching
the stored record document.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ltvboard.models.ltv import FlatRecord
from ltvboard.models.stats import StatsSnapshot
from ltvboard.services.filters import Page


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Record Schemas
# ============================================================================

class FlatRecordResponse(CamelModel):
    """One enriched speed restriction."""
    code: str
    stations: str
    track: str
    start_km: str
    end_km: str
    speed: str
    reason: str
    start_date_time: str
    end_date_time: str
    schedule: str
    csv: bool
    comment: str
    first_appearance_date: str
    last_seen: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    line: str
    speed_num: float
    km_length: float
    active: bool

    @classmethod
    def from_record(cls, record: FlatRecord) -> "FlatRecordResponse":
        return cls(
            code=record.code,
            stations=record.stations,
            track=record.track,
            start_km=record.start_km,
            end_km=record.end_km,
            speed=record.speed,
            reason=record.reason,
            start_date_time=record.start_date_time,
            end_date_time=record.end_date_time,
            schedule=record.schedule,
            csv=record.csv,
            comment=record.comment,
            first_appearance_date=record.first_appearance_date,
            last_seen=record.last_seen,
            latitude=record.latitude,
            longitude=record.longitude,
            line=record.line,
            speed_num=record.speed_num,
            km_length=record.km_length,
            active=record.active,
        )


# ============================================================================
# Stats Schemas
# ============================================================================

class SpeedBucketResponse(CamelModel):
    speed: int
    count: int


class ReasonCountResponse(CamelModel):
    reason: str
    count: int


class TimelinePointResponse(CamelModel):
    """Snapshot-date counts; `date` is ms since epoch for plotting."""
    date: Optional[int] = None
    date_str: str
    count: int
    resolved: int
    active: int


class TrackCountResponse(CamelModel):
    track: str
    count: int


class LineSummaryResponse(CamelModel):
    line: str
    count: int
    avg_speed: int


class StatsResponse(CamelModel):
    """Aggregate views over a record collection."""
    total: int
    active_count: int
    lines: int
    avg_speed: int
    min_speed: float
    max_speed: float
    critical_count: int
    csv_count: int
    total_km: float

    speed_distribution: list[SpeedBucketResponse]
    reason_distribution: list[ReasonCountResponse]
    timeline_data: list[TimelinePointResponse]
    track_distribution: list[TrackCountResponse]
    line_data: list[LineSummaryResponse]

    @classmethod
    def from_stats(cls, stats: StatsSnapshot) -> "StatsResponse":
        return cls(
            total=stats.total,
            active_count=stats.active_count,
            lines=stats.lines,
            avg_speed=stats.avg_speed,
            min_speed=stats.min_speed,
            max_speed=stats.max_speed,
            critical_count=stats.critical_count,
            csv_count=stats.csv_count,
            total_km=stats.total_km,
            speed_distribution=[
                SpeedBucketResponse(speed=b.speed, count=b.count)
                for b in stats.speed_distribution
            ],
            reason_distribution=[
                ReasonCountResponse(reason=r.reason, count=r.count)
                for r in stats.reason_distribution
            ],
            timeline_data=[
                TimelinePointResponse(
                    date=p.date,
                    date_str=p.date_str,
                    count=p.count,
                    resolved=p.resolved,
                    active=p.active,
                )
                for p in stats.timeline_data
            ],
            track_distribution=[
                TrackCountResponse(track=t.track, count=t.count)
                for t in stats.track_distribution
            ],
            line_data=[
                LineSummaryResponse(line=l.line, count=l.count, avg_speed=l.avg_speed)
                for l in stats.line_data
            ],
        )


class DataResponse(BaseModel):
    """Full payload consumed by the dashboards."""
    raw: list[FlatRecordResponse]
    stats: StatsResponse


# ============================================================================
# Table Schemas
# ============================================================================

class RecordPageResponse(CamelModel):
    """One page of filtered, sorted records."""
    items: list[FlatRecordResponse]
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page) -> "RecordPageResponse":
        return cls(
            items=[FlatRecordResponse.from_record(r) for r in page.items],
            page=page.page,
            page_size=page.page_size,
            total=page.total,
            total_pages=page.total_pages,
        )


# ============================================================================
# Reload Schemas
# ============================================================================

class ReloadResponse(CamelModel):
    """Result of a forced reload."""
    path: Optional[str]
    record_count: int
    loaded_at: str


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
