"""
Change notification for the record store file.

The repository only depends on the SourceWatcher protocol, so tests (or a
different deployment) can inject their own trigger.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Protocol


logger = logging.getLogger(__name__)


ChangeCallback = Callable[[], None]


class SourceWatcher(Protocol):
    """Calls back when the watched source changes."""

    def start(self, callback: ChangeCallback) -> None:
        ...

    def stop(self) -> None:
        ...


class PollingFileWatcher:
    """
    Polls a file's mtime and size on a daemon thread.

    The callback runs on the watcher thread, once per detected change.
    """

    def __init__(self, path: Path, interval_s: float = 1.0):
        self.path = Path(path)
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_signature: Optional[tuple[int, int]] = None
        self._missing = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, callback: ChangeCallback) -> None:
        if self.running:
            return
        self._stop.clear()
        self._last_signature = self._signature()
        self._thread = threading.Thread(
            target=self._run,
            args=(callback,),
            name=f"watch:{self.path.name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Watching file: {self.path}")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval_s * 2)
            self._thread = None

    def check(self) -> bool:
        """Return True if the file changed since the last check."""
        signature = self._signature()
        if signature is None:
            # Missing file: keep the old signature until it reappears
            if not self._missing:
                logger.warning(f"Watched file is missing, skipping until it reappears: {self.path}")
                self._missing = True
            return False
        self._missing = False
        if signature == self._last_signature:
            return False
        self._last_signature = signature
        return True

    def _signature(self) -> Optional[tuple[int, int]]:
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return (stat.st_mtime_ns, stat.st_size)

    def _run(self, callback: ChangeCallback) -> None:
        while not self._stop.wait(self.interval_s):
            if not self.check():
                continue
            logger.info(f"Data file changed, reloading: {self.path}")
            try:
                callback()
            except Exception:
                logger.exception(f"Change callback failed for {self.path}")
