"""
Position updater (publish loop).

On every tick the position store is scanned for dirty aircraft. Each one is
published as its own message; the dirty flag is cleared only after the sink
confirms delivery, so a failing sink is retried on every tick until it
recovers or the loop is cancelled.
"""

import logging
import threading
import time
from datetime import timedelta
from typing import Optional

from contracts.constants import WIRE_FORMAT_FA, WIRE_FORMATS
from contracts.validation import encode_aircraft_message
from relay.errors import SinkError
from relay.metrics import MESSAGES_PUBLISHED, PUBLISH_FAILURES, PUBLISH_LATENCY
from relay.store import PositionStore

logger = logging.getLogger(__name__)


class PublishLoop:
    """Publishes dirty aircraft from the store to the event bus."""

    def __init__(
        self,
        sink,
        store: PositionStore,
        interval: timedelta,
        wire_format: str = WIRE_FORMAT_FA,
        cancel: Optional[threading.Event] = None,
    ):
        if store is None:
            raise ValueError("no position store provided")
        if sink is None:
            raise ValueError("no sink provided")
        if wire_format not in WIRE_FORMATS:
            raise ValueError(f"Unknown wire format: {wire_format}")

        self.sink = sink
        self.store = store
        self.interval = interval
        self.wire_format = wire_format
        self._cancel = cancel or threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> int:
        """
        Publish every dirty aircraft once.

        Returns:
            Number of aircraft published successfully.
        """
        published = 0

        for flight in self.store.dirty_identities():
            pending = self.store.pending(flight)
            if pending is None:
                # Purged or published since the scan
                continue
            record, version = pending

            try:
                body = encode_aircraft_message(record, self.wire_format)
            except ValueError as e:
                # Not representable as JSON; dropped until the aircraft changes again
                PUBLISH_FAILURES.inc()
                logger.error(f"Failed to encode {flight}: {e}")
                self.store.mark_clean(flight, version)
                continue

            start_time = time.time()
            try:
                self.sink.publish(flight, body)
            except SinkError as e:
                PUBLISH_FAILURES.inc()
                logger.error(f"Failed to publish {flight}: {e}")
                continue
            PUBLISH_LATENCY.observe(time.time() - start_time)

            self.store.mark_clean(flight, version)
            MESSAGES_PUBLISHED.inc()
            published += 1

        if published:
            logger.info(f"Published {published} aircraft")
        return published

    def run(self):
        """Publish until cancelled. Errors never end the loop."""
        logger.info(f"Publishing updates every {self.interval.total_seconds()}s")

        while not self._cancel.wait(self.interval.total_seconds()):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Unexpected error in position updater: {e}", exc_info=True)

        logger.info("Terminating position updater")

    def start(self):
        """Start the updater in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Position updater already running")
            return

        self._thread = threading.Thread(target=self.run, name="publish-loop", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        """Cancel the updater and wait for the current tick to finish."""
        self._cancel.set()
        if self._thread:
            self._thread.join(timeout=timeout)
