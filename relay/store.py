"""
In-memory position store with per-aircraft dirty tracking.

The store is the only state shared between the ingest and publish loops.
Every read and write of its mapping goes through a single lock, held just
long enough to read-modify-write one entry or to sweep the whole mapping.
It is never held while a message is being published.
"""

import logging
import math
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from contracts.constants import PURGE_REASON_ABSENT, PURGE_REASON_STALE
from contracts.validation import Aircraft
from relay.detector import has_moved
from relay.errors import IdentityError
from relay.metrics import AIRCRAFT_PURGED, AIRCRAFT_TRACKED
from relay.normalize import is_admissible

logger = logging.getLogger(__name__)


@dataclass
class StoreEntry:
    """Latest record for one aircraft and whether it still needs publishing."""
    record: Aircraft
    dirty: bool = True
    version: int = 1


def _is_stale(seen: Optional[float], max_age: timedelta) -> bool:
    # Ages count in whole seconds
    if seen is None or not math.isfinite(seen):
        return False
    return int(seen) > max_age.total_seconds()


class PositionStore:
    """
    Mapping of flight identity -> StoreEntry.

    The ingest loop is the only writer of records; the publish loop is the
    only caller of mark_clean. Records are immutable, so references handed
    out by the store stay consistent after the lock is released.
    """

    def __init__(self):
        self._entries: Dict[str, StoreEntry] = {}
        self._lock = threading.Lock()

    def upsert(self, record: Aircraft) -> bool:
        """
        Insert or replace the record for its flight.

        Returns:
            True if the store changed (new aircraft, or the aircraft moved),
            False if the existing entry was left untouched.
        """
        if not is_admissible(record):
            logger.debug(f"Refusing inadmissible record: flight={record.flight!r}")
            return False

        with self._lock:
            entry = self._entries.get(record.flight)
            if entry is None:
                self._entries[record.flight] = StoreEntry(record=record)
                AIRCRAFT_TRACKED.set(len(self._entries))
                return True

            try:
                moved = has_moved(record, entry.record)
            except IdentityError as e:
                logger.warning(f"Ignoring update for {record.flight}: {e}")
                return False

            if not moved:
                return False

            entry.record = record
            entry.dirty = True
            entry.version += 1
            return True

    def remove_if_absent(self, identities: Iterable[str]) -> List[str]:
        """Remove every aircraft whose flight is not in `identities`."""
        present = set(identities)
        with self._lock:
            removed = self._remove_absent(present)
            AIRCRAFT_TRACKED.set(len(self._entries))
        return removed

    def remove_if_stale(
        self,
        max_age: timedelta,
        seen_ages: Optional[Mapping[str, Optional[float]]] = None,
    ) -> List[str]:
        """
        Remove every aircraft last seen more than `max_age` ago.

        `seen_ages` optionally supplies fresher seen ages (from the latest
        snapshot) than the ones held in the stored records.
        """
        with self._lock:
            removed = self._remove_stale(max_age, seen_ages or {})
            AIRCRAFT_TRACKED.set(len(self._entries))
        return removed

    def purge(self, seen_ages: Mapping[str, Optional[float]], max_age: timedelta) -> List[str]:
        """
        Single eviction sweep run after each merge.

        Args:
            seen_ages: every flight present in the latest snapshot, mapped to
                the seen age it was reported with (None if not reported).
            max_age: maximum seen age an aircraft may have and stay tracked.

        Returns:
            Flights removed from the store.
        """
        with self._lock:
            removed = self._remove_absent(seen_ages.keys())
            removed += self._remove_stale(max_age, seen_ages)
            AIRCRAFT_TRACKED.set(len(self._entries))

        if removed:
            logger.info(f"Purged {len(removed)} aircraft")
        return removed

    def _remove_absent(self, present) -> List[str]:
        removed = [flight for flight in self._entries if flight not in present]
        for flight in removed:
            del self._entries[flight]
            AIRCRAFT_PURGED.labels(reason=PURGE_REASON_ABSENT).inc()
        return removed

    def _remove_stale(self, max_age: timedelta, seen_ages: Mapping[str, Optional[float]]) -> List[str]:
        removed = []
        for flight, entry in self._entries.items():
            seen = seen_ages.get(flight)
            if seen is None:
                seen = entry.record.seen
            if _is_stale(seen, max_age):
                removed.append(flight)

        for flight in removed:
            del self._entries[flight]
            AIRCRAFT_PURGED.labels(reason=PURGE_REASON_STALE).inc()
        return removed

    # ------------------------------------------------------------------
    # Publish path
    # ------------------------------------------------------------------

    def dirty_identities(self) -> List[str]:
        """Flights with changes that have not been published yet."""
        with self._lock:
            return [flight for flight, entry in self._entries.items() if entry.dirty]

    def pending(self, flight: str) -> Optional[tuple[Aircraft, int]]:
        """
        Return (record, version) if the flight is still tracked and dirty.

        Returns None once the aircraft has been purged or already published.
        """
        with self._lock:
            entry = self._entries.get(flight)
            if entry is None or not entry.dirty:
                return None
            return entry.record, entry.version

    def mark_clean(self, flight: str, version: int) -> bool:
        """
        Clear the dirty flag after `version` of the record was published.

        Leaves the entry dirty when a newer record was merged while the
        publish was in flight, so that record is published on the next scan.
        """
        with self._lock:
            entry = self._entries.get(flight)
            if entry is None or entry.version != version:
                return False
            entry.dirty = False
            return True

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def get(self, flight: str) -> Optional[StoreEntry]:
        """Copy of the entry for a flight."""
        with self._lock:
            entry = self._entries.get(flight)
            if entry is None:
                return None
            return StoreEntry(record=entry.record, dirty=entry.dirty, version=entry.version)

    def identities(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, flight: str) -> bool:
        with self._lock:
            return flight in self._entries
