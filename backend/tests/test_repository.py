"""
Tests for the LTV repository (cache + reload) and the file watcher.
"""

import json
import threading

import pytest

from ltvboard.services.repository import LtvRepository, build_snapshot
from ltvboard.services.store_parser import SourceLoadError
from ltvboard.services.watcher import PollingFileWatcher


def write_document(path, records_per_line: dict):
    path.write_text(json.dumps(records_per_line), encoding="utf-8")


def record(code: str, last_seen: str, speed: str = "60") -> dict:
    return {
        "code": code,
        "speed": speed,
        "startKm": "1",
        "endKm": "2",
        "firstAppearanceDate": "2024-01-01",
        "lastSeen": last_seen,
    }


class FakeWatcher:
    """Watcher whose change notification is fired by the test."""

    def __init__(self):
        self.callback = None
        self.start_calls = 0
        self.stopped = False

    def start(self, callback):
        self.callback = callback
        self.start_calls += 1

    def stop(self):
        self.stopped = True

    def fire(self):
        self.callback()


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "ltv.json"
    write_document(path, {
        "L100": [record("A1", "2024-02-01"), record("A2", "2024-01-01")],
        "L200": [record("B1", "2024-02-01")],
    })
    return path


@pytest.fixture
def watcher():
    return FakeWatcher()


@pytest.fixture
def repo(data_file, watcher):
    return LtvRepository(data_file, watcher=watcher)


class TestLoad:
    """Tests for first load and caching."""

    def test_starts_empty(self, repo):
        assert repo.snapshot is None
        assert repo.record_count == 0

    def test_load_builds_snapshot(self, repo):
        snapshot = repo.load()

        assert len(snapshot.records) == 3
        assert snapshot.stats.total == 3
        assert snapshot.stats.active_count == 2
        assert repo.record_count == 3

    def test_load_is_cached(self, repo):
        """Second load returns the same object without recomputing."""
        first = repo.load()
        second = repo.load()

        assert first is second

    def test_load_starts_watcher_once(self, repo, watcher):
        repo.load()
        repo.load()

        assert watcher.start_calls == 1
        assert watcher.callback == repo.handle_source_changed

    def test_initial_failure_raises(self, tmp_path, watcher):
        repo = LtvRepository(tmp_path / "missing.json", watcher=watcher)

        with pytest.raises(SourceLoadError):
            repo.load()
        assert repo.snapshot is None
        assert watcher.start_calls == 0

    def test_no_source_configured(self):
        with pytest.raises(RuntimeError):
            LtvRepository().load()

    def test_empty_document(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("{}")

        snapshot = LtvRepository(path).load()

        assert snapshot.records == ()
        assert snapshot.stats.total == 0


class TestReload:
    """Tests for change-driven reload."""

    def test_change_replaces_snapshot(self, repo, data_file, watcher):
        old = repo.load()
        write_document(data_file, {"L300": [record("C1", "2024-03-01")]})

        watcher.fire()

        new = repo.snapshot
        assert new is not old
        assert [r.code for r in new.records] == ["C1"]
        assert new.stats.lines == 1
        # Old pair is untouched
        assert len(old.records) == 3

    def test_active_recomputed(self, repo, data_file, watcher):
        repo.load()
        write_document(data_file, {
            "L100": [record("A1", "2024-02-01"), record("A3", "2024-03-01")],
        })

        watcher.fire()

        active = [r.code for r in repo.snapshot.records if r.active]
        assert active == ["A3"]

    def test_corrupt_source_keeps_previous(self, repo, data_file, watcher):
        old = repo.load()
        data_file.write_text("{not json")

        watcher.fire()  # must not raise

        assert repo.snapshot is old

    def test_explicit_reload_raises(self, repo, data_file):
        old = repo.load()
        data_file.write_text("[]")

        with pytest.raises(SourceLoadError):
            repo.reload()
        assert repo.snapshot is old

    def test_set_source_path(self, repo, tmp_path, watcher):
        repo.load()
        other = tmp_path / "other.json"
        write_document(other, {"L1": [record("X", "2024-01-01")]})

        repo.set_source_path(other)

        assert watcher.stopped
        assert repo.snapshot is None
        assert [r.code for r in repo.load().records] == ["X"]

    def test_reload_before_load_starts_watcher(self, repo, watcher):
        repo.reload()
        snapshot = repo.load()

        assert watcher.start_calls == 1
        assert repo.snapshot is snapshot

        repo.reload()
        assert watcher.start_calls == 1

    def test_failed_reload_does_not_start_watcher(self, tmp_path, watcher):
        repo = LtvRepository(tmp_path / "missing.json", watcher=watcher)

        with pytest.raises(SourceLoadError):
            repo.reload()
        assert watcher.start_calls == 0

    def test_close_stops_watcher(self, repo, watcher):
        repo.load()
        repo.close()
        assert watcher.stopped


class TestBuildSnapshot:
    def test_build(self, data_file):
        snapshot = build_snapshot(data_file)

        assert [r.line for r in snapshot.records] == ["L100", "L100", "L200"]
        assert snapshot.loaded_at is not None


class TestPollingFileWatcher:
    """Tests for the polling watcher."""

    def test_check_detects_change(self, data_file):
        watcher = PollingFileWatcher(data_file, interval_s=0.05)
        watcher._last_signature = watcher._signature()

        assert not watcher.check()
        data_file.write_text('{"L1": []}')
        assert watcher.check()
        assert not watcher.check()

    def test_missing_file_is_not_a_change(self, tmp_path):
        watcher = PollingFileWatcher(tmp_path / "nope.json")
        assert not watcher.check()

    def test_missing_file_warned_once(self, data_file, caplog):
        watcher = PollingFileWatcher(data_file)
        watcher._last_signature = watcher._signature()
        data_file.unlink()

        with caplog.at_level("WARNING", logger="ltvboard.services.watcher"):
            assert not watcher.check()
            assert not watcher.check()
        assert len([r for r in caplog.records if "missing" in r.getMessage()]) == 1

        write_document(data_file, {"L1": [record("X", "2024-01-01")]})
        assert watcher.check()

    def test_thread_fires_callback(self, data_file):
        changed = threading.Event()
        watcher = PollingFileWatcher(data_file, interval_s=0.05)
        watcher.start(changed.set)
        try:
            assert watcher.running
            data_file.write_text('{"L1": [], "L2": []}')
            assert changed.wait(timeout=5)
        finally:
            watcher.stop()
        assert not watcher.running

    def test_repository_reloads_from_watcher_thread(self, data_file):
        repo = LtvRepository(data_file, watcher=PollingFileWatcher(data_file, interval_s=0.05))
        first = repo.load()
        try:
            write_document(data_file, {"L9": [record("Z1", "2024-05-01")]})
            for _ in range(100):
                if repo.snapshot is not first:
                    break
                threading.Event().wait(0.05)
            assert [r.code for r in repo.snapshot.records] == ["Z1"]
        finally:
            repo.close()
