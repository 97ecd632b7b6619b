"""
API routes for LTV data and statistics.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ltvboard.api.schemas import (
    DataResponse,
    ErrorResponse,
    FlatRecordResponse,
    RecordPageResponse,
    ReloadResponse,
    StatsResponse,
)
from ltvboard.models.ltv import FLAT_WIRE_FIELDS
from ltvboard.services.aggregator import compute_stats
from ltvboard.services.filters import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_KEY,
    RecordFilter,
    filter_records,
    paginate,
    sort_records,
)
from ltvboard.services.repository import DataSnapshot, LtvRepository, get_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["data"])

SERVE_ERROR = "Failed to fetch data"


def record_filter(
    line: Optional[str] = Query(None, description="Only this line"),
    track: Optional[str] = Query(None, description="Only this track"),
    max_speed: Optional[float] = Query(None, ge=0, description="Speed at most this (km/h)"),
    reason: Optional[str] = Query(None, description="Reason contains this text"),
    csv_only: bool = Query(False, description="Only records with a CSV notice"),
    active_only: bool = Query(False, description="Only records in the latest snapshot"),
) -> RecordFilter:
    return RecordFilter(
        line=line,
        track=track,
        max_speed=max_speed,
        reason=reason,
        csv_only=csv_only,
        active_only=active_only,
    )


def _current_snapshot(repo: LtvRepository) -> DataSnapshot:
    try:
        return repo.load()
    except Exception:
        logger.exception("Error fetching LTV data")
        raise HTTPException(status_code=500, detail=SERVE_ERROR)


@router.get("/data", response_model=DataResponse, responses={500: {"model": ErrorResponse}})
def get_data(repo: LtvRepository = Depends(get_repository)):
    """
    Get every flattened record plus the aggregate statistics.

    The payload is built in full before it is returned; any failure
    yields a 500 with no partial data.
    """
    snapshot = _current_snapshot(repo)
    try:
        return DataResponse(
            raw=[FlatRecordResponse.from_record(r) for r in snapshot.records],
            stats=StatsResponse.from_stats(snapshot.stats),
        )
    except Exception:
        logger.exception("Error building LTV payload")
        raise HTTPException(status_code=500, detail=SERVE_ERROR)


@router.get("/stats", response_model=StatsResponse, responses={500: {"model": ErrorResponse}})
def get_stats(
    flt: RecordFilter = Depends(record_filter),
    repo: LtvRepository = Depends(get_repository),
):
    """
    Get statistics recomputed over the records matching the filter.

    With no filter this equals the `stats` part of /api/data.
    """
    snapshot = _current_snapshot(repo)
    if flt == RecordFilter():
        return StatsResponse.from_stats(snapshot.stats)
    return StatsResponse.from_stats(compute_stats(filter_records(snapshot.records, flt)))


@router.get("/records", response_model=RecordPageResponse, responses={500: {"model": ErrorResponse}})
def get_records(
    flt: RecordFilter = Depends(record_filter),
    sort_key: str = Query(DEFAULT_SORT_KEY, description="Field to sort by (wire name)"),
    sort_dir: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(0, ge=0),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=1000),
    repo: LtvRepository = Depends(get_repository),
):
    """
    Get one page of filtered, sorted records for the table view.
    """
    if sort_key not in FLAT_WIRE_FIELDS:
        raise HTTPException(status_code=400, detail=f"Unknown sort key: {sort_key}")

    snapshot = _current_snapshot(repo)
    selected = filter_records(snapshot.records, flt)
    ordered = sort_records(selected, sort_key, descending=sort_dir == "desc")
    return RecordPageResponse.from_page(paginate(ordered, page, page_size))


@router.post("/reload", response_model=ReloadResponse, responses={500: {"model": ErrorResponse}})
def reload_data(repo: LtvRepository = Depends(get_repository)):
    """
    Re-read the source now instead of waiting for the watcher.

    If the source is broken the previous data keeps being served.
    """
    try:
        snapshot = repo.reload()
    except Exception as e:
        logger.error(f"Error reloading LTV data: {e}")
        raise HTTPException(status_code=500, detail="Failed to reload data")

    return ReloadResponse(
        path=str(repo.source_path) if repo.source_path else None,
        record_count=len(snapshot.records),
        loaded_at=snapshot.loaded_at.isoformat(),
    )
