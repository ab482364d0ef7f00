"""
Snapshot decoding and record normalization.

The receiver's JSON schema changed over time (dump1090 -> dump1090-fa). Both
shapes are mapped onto the single internal Aircraft record here, so the
store and the loops never see upstream schema differences.
"""

import json
import logging
import math
import time
from typing import Any, Callable, Dict, Optional

from contracts.constants import RECORD_TYPE_AIRCRAFT
from contracts.validation import Aircraft, LegacyAircraft, Scan, validate_scan
from relay.errors import DecodeError

logger = logging.getLogger(__name__)

# Fields only the legacy dump1090 schema uses
LEGACY_FIELDS = frozenset({"altitude", "speed", "vert_rate", "nucp"})
# Fields only dump1090-fa uses for the same data
FA_ALTITUDE_FIELDS = frozenset({"alt_baro", "alt_geom"})


def decode_snapshot(body: bytes) -> Scan:
    """
    Decode an aircraft.json body.

    Raises:
        DecodeError: if the body is not JSON or not shaped like a snapshot.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}")

    is_valid, scan, error = validate_scan(data)
    if not is_valid:
        raise DecodeError(error)
    return scan


def is_legacy(raw: Dict[str, Any]) -> bool:
    """True if the record uses the pre-dump1090-fa field names."""
    return bool(LEGACY_FIELDS & raw.keys()) and not (FA_ALTITUDE_FIELDS & raw.keys())


def from_legacy(raw: Dict[str, Any]) -> Aircraft:
    """Map a legacy dump1090 record onto the internal record."""
    legacy = LegacyAircraft.model_validate(raw)
    data = legacy.model_dump(exclude={"altitude", "speed", "vert_rate", "nucp"})
    data["alt_baro"] = legacy.altitude
    if legacy.speed is not None:
        data["gs"] = legacy.speed
    if legacy.vert_rate is not None:
        data["baro_rate"] = legacy.vert_rate
    return Aircraft.model_validate(data)


def to_aircraft(raw: Dict[str, Any]) -> Aircraft:
    """
    Build the internal record from a raw snapshot entry of either schema.

    Raises:
        pydantic.ValidationError: if a field cannot be coerced.
    """
    if is_legacy(raw):
        return from_legacy(raw)
    return Aircraft.model_validate(raw)


def raw_identity(raw: Dict[str, Any]) -> str:
    """Trimmed flight identity of a raw snapshot entry ("" if unknown)."""
    flight = raw.get("flight")
    if not isinstance(flight, str):
        return ""
    return flight.strip()


def raw_seen(raw: Dict[str, Any]) -> Optional[float]:
    seen = raw.get("seen")
    if isinstance(seen, bool) or not isinstance(seen, (int, float)):
        return None
    try:
        seen = float(seen)
    except OverflowError:
        return None
    return seen if math.isfinite(seen) else None


def is_admissible(record: Aircraft) -> bool:
    """Records without a flight or with a zero coordinate are never stored."""
    return bool(record.flight) and record.lat != 0 and record.lon != 0


def now_micros() -> int:
    return time.time_ns() // 1000


def normalize_record(
    record: Aircraft,
    station: str,
    clock: Callable[[], int] = now_micros,
) -> Aircraft:
    """
    Clean a record before it is merged.

    Trims the flight, stamps the record type and station name, and stamps
    the ingest time only when the receiver did not supply a timestamp.
    """
    update = {
        "flight": record.flight.strip(),
        "type": RECORD_TYPE_AIRCRAFT,
        "station_name": station,
    }
    if not record.timestamp:
        update["timestamp"] = clock()
    return record.model_copy(update=update)
