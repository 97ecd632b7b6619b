"""
LTV Dashboard - FastAPI Backend

Main application entry point and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ltvboard.api.data import router as data_router
from ltvboard.services.repository import LtvRepository, get_repository, init_repository
from ltvboard.services.store_parser import SourceLoadError
from ltvboard.services.watcher import PollingFileWatcher


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


APP_NAME = "LTV Dashboard"
APP_VERSION = "0.1.0"

# Default source document (can be overridden via environment)
DEFAULT_DATA_PATH = Path("./public/data/ltv.json")
DATA_PATH_ENV = "LTV_DATA_PATH"
WATCH_INTERVAL_ENV = "LTV_WATCH_INTERVAL"
WATCH_ENV = "LTV_WATCH"


def watch_enabled() -> bool:
    return os.getenv(WATCH_ENV, "1") not in ("0", "false", "False")


def watch_interval() -> float:
    return float(os.getenv(WATCH_INTERVAL_ENV, "1.0"))


def configure_repository(data_path: Path) -> LtvRepository:
    """Create the global repository for `data_path`, watching it if enabled."""
    watcher = PollingFileWatcher(data_path, watch_interval()) if watch_enabled() else None
    return init_repository(data_path, watcher=watcher)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {APP_NAME} backend")

    repo = get_repository()
    if repo.source_path is None:
        data_path = Path(os.getenv(DATA_PATH_ENV, str(DEFAULT_DATA_PATH)))
        if data_path.exists():
            repo = configure_repository(data_path)
            try:
                repo.load()
            except SourceLoadError as e:
                logger.error(f"Initial load failed: {e}")
            except Exception:
                # Keep serving; /api/data reports the failure until a reload succeeds
                logger.exception("Initial load failed")
        else:
            logger.info(f"Data file not found: {data_path}")
            logger.info(f"Set {DATA_PATH_ENV} to point at the LTV snapshot")

    yield

    # Shutdown
    get_repository().close()
    logger.info(f"Shutting down {APP_NAME} backend")


# Create FastAPI app
app = FastAPI(
    title=APP_NAME,
    description="""
    Backend API for railway temporary speed restriction (LTV) dashboards.

    ## Features
    - Load the grouped-by-line LTV snapshot document
    - Flatten records with numeric speed, segment length and active flag
    - Aggregate speed, reason, track, line and timeline statistics
    - Reload automatically when the snapshot file changes

    ## Data Flow
    1. GET /api/data for all records and statistics
    2. GET /api/stats with filters for statistics over a subset
    3. GET /api/records for the paginated table
    """,
    version=APP_VERSION,
    lifespan=lifespan,
)


# CORS middleware (allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(data_router)


@app.get("/")
async def root():
    """Root endpoint - basic health check."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
    }


@app.get("/health")
def health_check(repo: LtvRepository = Depends(get_repository)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "data_path": str(repo.source_path) if repo.source_path else None,
        "loaded": repo.snapshot is not None,
        "record_count": repo.record_count,
    }
