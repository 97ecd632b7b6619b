"""
LTV Repository - owns the cached (records, stats) snapshot.

Loads the record store once, keeps the derived data in memory and swaps it
for a freshly computed one whenever the source file changes.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ltvboard.models.ltv import FlatRecord
from ltvboard.models.stats import StatsSnapshot
from ltvboard.services.aggregator import compute_stats
from ltvboard.services.flattener import find_max_last_seen, flatten_records
from ltvboard.services.store_parser import RecordSource, RecordStoreParser
from ltvboard.services.watcher import SourceWatcher


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataSnapshot:
    """One published (records, stats) pair. Never mutated after creation."""

    records: tuple[FlatRecord, ...]
    stats: StatsSnapshot
    loaded_at: datetime


def build_snapshot(source_path: Path, parser: Optional[RecordSource] = None) -> DataSnapshot:
    """Read the source and run flattener + aggregator over it."""
    parser = parser or RecordStoreParser()
    logger.info(f"Processing LTV data from {source_path}...")

    groups = parser.parse_file(source_path)
    max_last_seen = find_max_last_seen(groups)
    records = tuple(flatten_records(groups, max_last_seen))
    stats = compute_stats(records)

    logger.info(f"Processed {len(records)} records (latest snapshot: {max_last_seen or 'none'})")
    return DataSnapshot(
        records=records,
        stats=stats,
        loaded_at=datetime.now(timezone.utc),
    )


class LtvRepository:
    """
    Repository holding the current LTV snapshot.

    Readers use `snapshot` (or `load()`); the reference is replaced in a
    single assignment so a reader sees either the old or the new pair.
    Load and reload are serialized by one lock.
    """

    def __init__(
        self,
        source_path: Optional[Path] = None,
        watcher: Optional[SourceWatcher] = None,
        parser: Optional[RecordSource] = None,
    ):
        """
        Initialize the repository.

        Args:
            source_path: Snapshot document. If None, must be set later.
            watcher: Change notifier started after the first successful load.
            parser: Record source adapter (defaults to the JSON store parser).
        """
        self._source_path: Optional[Path] = Path(source_path) if source_path else None
        self._watcher = watcher
        self._parser = parser or RecordStoreParser()
        self._snapshot: Optional[DataSnapshot] = None
        self._lock = threading.Lock()
        self._watching = False

    @property
    def source_path(self) -> Optional[Path]:
        return self._source_path

    @property
    def snapshot(self) -> Optional[DataSnapshot]:
        return self._snapshot

    @property
    def record_count(self) -> int:
        snapshot = self._snapshot
        return len(snapshot.records) if snapshot else 0

    def load(self) -> DataSnapshot:
        """
        Return the cached snapshot, building it on first use.

        Raises:
            SourceLoadError: the source could not be read on first load.
            RuntimeError: no source path configured.
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        with self._lock:
            if self._snapshot is None:
                self._snapshot = build_snapshot(self._require_source(), self._parser)
            self._start_watching()
            return self._snapshot

    def reload(self) -> DataSnapshot:
        """
        Recompute from the current source and publish the result.

        On failure the exception propagates and the previous snapshot stays.
        A successful reload before the first load() starts the watcher too.
        """
        with self._lock:
            snapshot = build_snapshot(self._require_source(), self._parser)
            self._snapshot = snapshot
            self._start_watching()
            return snapshot

    def handle_source_changed(self) -> None:
        """Watcher callback: reload, keeping the last good data on failure."""
        try:
            self.reload()
        except Exception as e:
            logger.error(f"Error reloading data, keeping previous snapshot: {e}")

    def set_source_path(self, source_path: Path, watcher: Optional[SourceWatcher] = None) -> None:
        """Point at a different source; data is loaded again on next access."""
        self.close()
        with self._lock:
            self._source_path = Path(source_path)
            self._watcher = watcher
            self._snapshot = None

    def close(self) -> None:
        """Stop watching the source."""
        if self._watcher is not None and self._watching:
            self._watcher.stop()
        self._watching = False

    def _require_source(self) -> Path:
        if self._source_path is None:
            raise RuntimeError("No LTV data source configured")
        return self._source_path

    def _start_watching(self) -> None:
        if self._watcher is None or self._watching:
            return
        try:
            self._watcher.start(self.handle_source_changed)
            self._watching = True
        except Exception as e:
            logger.error(f"Could not set up watcher: {e}")


# Global repository instance (set up by app initialization)
_repository: Optional[LtvRepository] = None


def get_repository() -> LtvRepository:
    """Get the global repository instance."""
    global _repository
    if _repository is None:
        _repository = LtvRepository()
    return _repository


def init_repository(
    source_path: Path,
    watcher: Optional[SourceWatcher] = None,
) -> LtvRepository:
    """Initialize the global repository with a source document."""
    global _repository
    if _repository is not None:
        _repository.close()
    _repository = LtvRepository(source_path, watcher=watcher)
    return _repository
