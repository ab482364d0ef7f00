"""
Smoke test: aircraft.json on disk -> position store -> event bus.

Runs both loops in their background threads against a real file and an
in-memory sink, then steps through the relay's life-cycle scenarios with
single ticks.
"""

import json
import os
import threading
import time
from datetime import timedelta
from pathlib import Path
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from relay.errors import SinkError
from relay.monitor import IngestLoop
from relay.sources import FileSnapshotSource
from relay.store import PositionStore
from relay.updater import PublishLoop

TEST_TIMEOUT = 5  # seconds


class MemorySink:
    """Collects published messages; can be switched into failing mode."""

    def __init__(self):
        self.messages = []
        self.failing = False
        self._lock = threading.Lock()

    def publish(self, key: str, value: bytes):
        if self.failing:
            raise SinkError("broker unavailable")
        with self._lock:
            self.messages.append(json.loads(value))

    def flights(self):
        with self._lock:
            return [m["flight"] for m in self.messages]


class SnapshotFile:
    """Writes aircraft.json with a strictly increasing modification time."""

    def __init__(self, path: Path):
        self.path = path
        self.mtime = 1_700_000_000.0

    def write(self, aircraft):
        # Replace atomically so a running monitor never sees a half-written file
        staging = self.path.with_suffix(".tmp")
        staging.write_text(json.dumps({"now": time.time(), "messages": 10, "aircraft": aircraft}))
        self.mtime += 1.0
        os.utime(staging, (self.mtime, self.mtime))
        os.replace(staging, self.path)


def wait_for(condition, timeout=TEST_TIMEOUT):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def snapshot(tmp_path):
    return SnapshotFile(tmp_path / "aircraft.json")


@pytest.fixture
def relay(snapshot):
    """Store, ingest loop and publish loop wired as in production."""
    store = PositionStore()
    sink = MemorySink()
    cancel = threading.Event()
    monitor = IngestLoop(
        FileSnapshotSource(str(snapshot.path)),
        store,
        interval=timedelta(milliseconds=10),
        max_age=timedelta(seconds=60),
        station="smoke",
        cancel=cancel,
    )
    updater = PublishLoop(sink, store, interval=timedelta(milliseconds=20), cancel=cancel)
    yield store, sink, monitor, updater
    cancel.set()
    monitor.stop()
    updater.stop()


def test_background_relay(snapshot, relay):
    """Both loops relay a new aircraft and ignore an unchanged one."""
    store, sink, monitor, updater = relay
    snapshot.write([{"flight": "A", "lat": 1.0, "lon": 2.0, "alt_geom": 100, "track": 90.0, "seen": 5.0}])

    monitor.start()
    updater.start()

    assert wait_for(lambda: sink.flights() == ["A"]), "aircraft A was not published"
    assert sink.messages[0]["groundStationName"] == "smoke"

    snapshot.write([{"flight": "A", "lat": 1.0, "lon": 2.0, "alt_geom": 100, "track": 90.0, "seen": 6.0, "rssi": -9.0}])
    assert wait_for(lambda: store.get("A") is not None and store.get("A").dirty is False)
    time.sleep(0.1)
    assert sink.flights() == ["A"]

    snapshot.write([{"flight": "A", "lat": 1.0, "lon": 2.0, "alt_geom": 100, "track": 95.0, "seen": 1.0}])
    assert wait_for(lambda: sink.flights() == ["A", "A"]), "moved aircraft A was not republished"
    assert sink.messages[-1]["track"] == 95.0

    snapshot.write([])
    assert wait_for(lambda: len(store) == 0), "departed aircraft was not purged"


def test_change_gating_scenario(snapshot, relay):
    """new -> published -> identical re-ingest -> moved."""
    store, sink, monitor, updater = relay
    record = {"flight": "A", "lat": 1.0, "lon": 2.0, "alt_geom": 100, "track": 90.0, "seen": 5.0}

    snapshot.write([record])
    monitor.tick()
    assert store.get("A").dirty is True

    updater.tick()
    assert store.get("A").dirty is False

    snapshot.write([record])
    monitor.tick()
    assert store.get("A").dirty is False
    assert store.get("A").version == 1

    snapshot.write([dict(record, track=95.0)])
    monitor.tick()
    assert store.get("A").dirty is True


@pytest.mark.parametrize("second_snapshot", [
    [],
    [{"flight": "B", "lat": 1.0, "lon": 2.0, "seen": 90.0}],
])
def test_expiry_scenario(snapshot, relay, second_snapshot):
    """An aircraft is purged when it disappears or when it is too old."""
    store, sink, monitor, updater = relay

    snapshot.write([{"flight": "B", "lat": 1.0, "lon": 2.0, "seen": 30.0}])
    monitor.tick()
    assert "B" in store

    snapshot.write(second_snapshot)
    monitor.tick()
    assert "B" not in store


def test_sink_failure_scenario(snapshot, relay):
    """A failed publish is retried on the next tick without touching other entries."""
    store, sink, monitor, updater = relay
    snapshot.write([
        {"flight": "A", "lat": 1.0, "lon": 2.0, "seen": 1.0},
        {"flight": "B", "lat": 3.0, "lon": 4.0, "seen": 1.0},
    ])
    monitor.tick()

    sink.failing = True
    assert updater.tick() == 0
    assert sorted(store.dirty_identities()) == ["A", "B"]

    sink.failing = False
    assert updater.tick() == 2
    assert store.dirty_identities() == []
    assert sorted(store.identities()) == ["A", "B"]
    assert sorted(sink.flights()) == ["A", "B"]


def test_corrupt_snapshot_is_skipped(snapshot, relay):
    store, sink, monitor, updater = relay
    snapshot.write([{"flight": "A", "lat": 1.0, "lon": 2.0, "seen": 1.0}])
    monitor.tick()

    snapshot.path.write_text('{"aircraft": [{"flight": "A", ')
    snapshot.mtime += 1.0
    os.utime(snapshot.path, (snapshot.mtime, snapshot.mtime))

    assert monitor.tick() is False
    assert "A" in store
