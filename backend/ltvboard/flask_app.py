"""
LTV Dashboard - Flask Backend

Alternative to FastAPI for environments where FastAPI isn't available.
Same API structure, different framework.
"""

import logging
import math
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

from ltvboard.api.schemas import DataResponse, FlatRecordResponse, RecordPageResponse, StatsResponse
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
from ltvboard.services.repository import get_repository, init_repository
from ltvboard.services.watcher import PollingFileWatcher


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Create Flask app
app = Flask(__name__)


# Default source document
DEFAULT_DATA_PATH = Path("./public/data/ltv.json")

SERVE_ERROR = "Failed to fetch data"


def _flag(name: str) -> bool:
    return request.args.get(name, "false").lower() in ("1", "true", "yes")


def _parse_max_speed(value: Optional[str]) -> Optional[float]:
    """Finite, non-negative speed limit or None; ValueError otherwise."""
    if not value:
        return None
    max_speed = float(value)
    if not math.isfinite(max_speed) or max_speed < 0:
        raise ValueError(f"Invalid max_speed: {value}")
    return max_speed


def _filter_from_args() -> RecordFilter:
    """Build a RecordFilter from query parameters."""
    return RecordFilter(
        line=request.args.get("line") or None,
        track=request.args.get("track") or None,
        max_speed=_parse_max_speed(request.args.get("max_speed")),
        reason=request.args.get("reason") or None,
        csv_only=_flag("csv_only"),
        active_only=_flag("active_only"),
    )


def _error(detail: str, status: int):
    return jsonify({"detail": detail}), status


# ============================================================================
# Health Endpoints
# ============================================================================

@app.route("/")
def root():
    """Root endpoint - basic health check."""
    return jsonify({
        "name": "LTV Dashboard",
        "version": "0.1.0",
        "status": "running",
    })


@app.route("/health")
def health_check():
    """Health check endpoint."""
    repo = get_repository()
    return jsonify({
        "status": "healthy",
        "data_path": str(repo.source_path) if repo.source_path else None,
        "loaded": repo.snapshot is not None,
        "record_count": repo.record_count,
    })


# ============================================================================
# Data Endpoints
# ============================================================================

@app.route("/api/data", methods=["GET"])
def get_data():
    """Get every flattened record plus the aggregate statistics."""
    try:
        snapshot = get_repository().load()
        payload = DataResponse(
            raw=[FlatRecordResponse.from_record(r) for r in snapshot.records],
            stats=StatsResponse.from_stats(snapshot.stats),
        )
        return jsonify(payload.model_dump(by_alias=True))
    except Exception:
        logger.exception("Error fetching LTV data")
        return _error(SERVE_ERROR, 500)


@app.route("/api/stats", methods=["GET"])
def get_stats():
    """Get statistics recomputed over the records matching the filter."""
    try:
        flt = _filter_from_args()
    except ValueError:
        return _error("max_speed must be a number", 400)

    try:
        snapshot = get_repository().load()
        stats = compute_stats(filter_records(snapshot.records, flt))
        return jsonify(StatsResponse.from_stats(stats).model_dump(by_alias=True))
    except Exception:
        logger.exception("Error computing LTV stats")
        return _error(SERVE_ERROR, 500)


@app.route("/api/records", methods=["GET"])
def get_records():
    """Get one page of filtered, sorted records."""
    sort_key = request.args.get("sort_key", DEFAULT_SORT_KEY)
    sort_dir = request.args.get("sort_dir", "desc")
    if sort_key not in FLAT_WIRE_FIELDS:
        return _error(f"Unknown sort key: {sort_key}", 400)
    if sort_dir not in ("asc", "desc"):
        return _error(f"Invalid sort direction: {sort_dir}", 400)

    try:
        flt = _filter_from_args()
        page = int(request.args.get("page", 0))
        page_size = int(request.args.get("page_size", DEFAULT_PAGE_SIZE))
    except ValueError:
        return _error("Invalid numeric query parameter", 400)
    page_size = max(1, min(1000, page_size))

    try:
        snapshot = get_repository().load()
    except Exception:
        logger.exception("Error fetching LTV data")
        return _error(SERVE_ERROR, 500)

    selected = filter_records(snapshot.records, flt)
    ordered = sort_records(selected, sort_key, descending=sort_dir == "desc")
    page_data = RecordPageResponse.from_page(paginate(ordered, page, page_size))
    return jsonify(page_data.model_dump(by_alias=True))


@app.route("/api/reload", methods=["POST"])
def reload_data():
    """Re-read the source now; previous data is kept on failure."""
    repo = get_repository()
    try:
        snapshot = repo.reload()
    except Exception as e:
        logger.error(f"Error reloading LTV data: {e}")
        return _error("Failed to reload data", 500)

    return jsonify({
        "path": str(repo.source_path) if repo.source_path else None,
        "recordCount": len(snapshot.records),
        "loadedAt": snapshot.loaded_at.isoformat(),
    })


# ============================================================================
# Startup
# ============================================================================

def create_app(data_path: Optional[Path] = None, watch: bool = True) -> Flask:
    """Create and configure the Flask app."""
    if data_path is None:
        data_path = DEFAULT_DATA_PATH

    if data_path.exists():
        watcher = PollingFileWatcher(data_path) if watch else None
        init_repository(data_path, watcher=watcher)
        logger.info(f"Initialized repository with data file: {data_path}")
    else:
        logger.info(f"Data file not found: {data_path}")

    return app


if __name__ == "__main__":
    import sys

    # Allow specifying the data file as argument
    data_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_DATA_PATH

    create_app(data_path)
    app.run(host="0.0.0.0", port=8000, debug=True)
