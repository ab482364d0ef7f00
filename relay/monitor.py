"""
Snapshot monitor (ingest loop).

On every tick the snapshot source is checked for a newer modification time.
A newer snapshot is read, decoded, merged into the position store and then
used to purge aircraft that are no longer reported or have gone stale.
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, List, Optional

from pydantic import ValidationError

from contracts.constants import (
    POLL_STATUS_DECODE_ERROR,
    POLL_STATUS_MERGED,
    POLL_STATUS_SOURCE_ERROR,
    POLL_STATUS_UNCHANGED,
    REJECT_REASON_INVALID,
    REJECT_REASON_NO_FLIGHT,
    REJECT_REASON_NO_POSITION,
)
from contracts.validation import Scan
from relay.errors import DecodeError, SourceAccessError
from relay.metrics import AIRCRAFT_MERGED, AIRCRAFT_REJECTED, SNAPSHOT_POLLS
from relay.normalize import (
    decode_snapshot,
    normalize_record,
    now_micros,
    raw_identity,
    raw_seen,
    to_aircraft,
)
from relay.store import PositionStore

logger = logging.getLogger(__name__)


class IngestLoop:
    """Polls a snapshot source and merges changed aircraft into the store."""

    def __init__(
        self,
        source,
        store: PositionStore,
        interval: timedelta,
        max_age: timedelta,
        station: str,
        cancel: Optional[threading.Event] = None,
        clock: Callable[[], int] = now_micros,
    ):
        """
        Args:
            source: snapshot source (see relay.sources)
            store: position store shared with the publish loop
            interval: time between polls of the source
            max_age: aircraft last seen longer ago than this are purged
            station: name stamped on every record as groundStationName
            cancel: event that stops the loop when set
            clock: ingest time in microseconds, used for records without a timestamp
        """
        if store is None:
            raise ValueError("no position store provided")
        if source is None:
            raise ValueError("no snapshot source provided")

        self.source = source
        self.store = store
        self.interval = interval
        self.max_age = max_age
        self.station = station
        self.clock = clock
        self._cancel = cancel or threading.Event()
        self._last_modified: Optional[float] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def last_modified(self) -> Optional[float]:
        return self._last_modified

    def tick(self) -> bool:
        """
        Run one poll cycle.

        Returns:
            True if a new snapshot was merged, False otherwise.
        """
        try:
            modified = self.source.modified_time()
        except SourceAccessError as e:
            SNAPSHOT_POLLS.labels(status=POLL_STATUS_SOURCE_ERROR).inc()
            logger.error(f"Failed to stat snapshot: {e}")
            return False

        if self._last_modified is not None and modified <= self._last_modified:
            SNAPSHOT_POLLS.labels(status=POLL_STATUS_UNCHANGED).inc()
            return False

        try:
            body = self.source.read()
        except SourceAccessError as e:
            SNAPSHOT_POLLS.labels(status=POLL_STATUS_SOURCE_ERROR).inc()
            logger.error(f"Failed to read snapshot: {e}")
            return False

        # A snapshot that fails to decode is not retried until the source changes again
        self._last_modified = modified

        try:
            scan = decode_snapshot(body)
        except DecodeError as e:
            SNAPSHOT_POLLS.labels(status=POLL_STATUS_DECODE_ERROR).inc()
            logger.error(f"Failed to parse snapshot: {e}")
            return False

        changed = self.merge(scan)
        removed = self.purge(scan)
        SNAPSHOT_POLLS.labels(status=POLL_STATUS_MERGED).inc()
        logger.debug(
            f"Snapshot merged: {len(scan.aircraft)} reported, "
            f"{changed} changed, {len(removed)} purged, {len(self.store)} tracked"
        )
        return True

    def merge(self, scan: Scan) -> int:
        """Normalize and upsert every admissible record. Returns the number that changed."""
        changed = 0

        for raw in scan.aircraft:
            try:
                record = to_aircraft(raw)
            except ValidationError as e:
                AIRCRAFT_REJECTED.labels(reason=REJECT_REASON_INVALID).inc()
                logger.warning(f"Skipping malformed record {raw_identity(raw)!r}: {e}")
                continue

            record = normalize_record(record, self.station, self.clock)

            if not record.flight:
                AIRCRAFT_REJECTED.labels(reason=REJECT_REASON_NO_FLIGHT).inc()
                continue
            if record.lat == 0 or record.lon == 0:
                AIRCRAFT_REJECTED.labels(reason=REJECT_REASON_NO_POSITION).inc()
                continue

            if self.store.upsert(record):
                changed += 1
                AIRCRAFT_MERGED.inc()
                logger.debug(
                    f"{record.flight}: lat={record.lat} lon={record.lon} "
                    f"alt_geom={record.alt_geom} alt_baro={record.alt_baro} track={record.track}"
                )

        return changed

    def purge(self, scan: Scan) -> List[str]:
        """
        Evict aircraft missing from the snapshot or older than max_age.

        Presence is judged on every record in the snapshot, including the
        ones merge skipped.
        """
        seen_ages = {raw_identity(raw): raw_seen(raw) for raw in scan.aircraft}
        return self.store.purge(seen_ages, self.max_age)

    def run(self):
        """Poll until cancelled. Errors never end the loop."""
        logger.info(f"Monitoring {self.source} every {self.interval.total_seconds()}s")

        while not self._cancel.wait(self.interval.total_seconds()):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Unexpected error in snapshot monitor: {e}", exc_info=True)

        logger.info("Terminating snapshot monitor")

    def start(self):
        """Start the monitor in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Snapshot monitor already running")
            return

        self._thread = threading.Thread(target=self.run, name="ingest-loop", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        """Cancel the monitor and wait for the current tick to finish."""
        self._cancel.set()
        if self._thread:
            self._thread.join(timeout=timeout)
