"""
Validation library for ADS-B relay message contracts.

Provides Pydantic models for the receiver snapshot (aircraft.json), the
internal aircraft record, and the outbound message formats.
"""

import json
from typing import Any, Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from contracts.constants import (
    ALTITUDE_GROUND,
    RECORD_TYPE_AIRCRAFT,
    WIRE_FORMAT_FA,
    WIRE_FORMAT_LEGACY,
)


def _altitude_feet(v):
    """Coerce a reported altitude to integer feet ("ground" reads as 0)."""
    if v is None:
        return 0
    if isinstance(v, str):
        if v.strip().lower() == ALTITUDE_GROUND:
            return 0
        return v
    if isinstance(v, float):
        return int(round(v))
    return v


# ============================================================================
# Receiver Snapshot
# ============================================================================

class Scan(BaseModel):
    """One aircraft.json snapshot as written by the receiver."""
    now: float = Field(0.0, description="Time the file was generated, seconds since epoch")
    messages: int = Field(0, description="Total Mode S messages processed since start")
    aircraft: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("aircraft", mode="before")
    @classmethod
    def default_aircraft(cls, v):
        """A null aircraft list is an empty snapshot."""
        return [] if v is None else v


# ============================================================================
# Aircraft Records
# ============================================================================

class Aircraft(BaseModel):
    """
    Last known state of one aircraft, using dump1090-fa field names.

    Field definitions: https://github.com/flightaware/dump1090/blob/master/README-json.md

    Fields the relay does not interpret are carried verbatim (extra="allow").
    Records are immutable; the relay replaces them rather than editing them.
    """
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True, allow_inf_nan=False)

    hex: Optional[str] = None
    flight: str = ""
    alt_baro: int = 0
    alt_geom: int = 0
    gs: Optional[float] = None
    ias: Optional[int] = None
    tas: Optional[int] = None
    mach: Optional[float] = None
    track: float = 0.0
    track_rate: Optional[float] = None
    roll: Optional[float] = None
    mag_heading: Optional[float] = None
    true_heading: Optional[float] = None
    baro_rate: Optional[int] = None
    geom_rate: Optional[int] = None
    squawk: Optional[str] = None
    emergency: Optional[str] = None
    category: Optional[str] = None
    nav_qnh: Optional[float] = None
    nav_altitude_mcp: Optional[int] = None
    nav_heading: Optional[float] = None
    lat: float = 0.0
    lon: float = 0.0
    nic: Optional[int] = None
    rc: Optional[int] = None
    seen_pos: Optional[float] = None
    version: Optional[int] = None
    nic_baro: Optional[int] = None
    nac_p: Optional[int] = None
    nac_v: Optional[int] = None
    sil: Optional[int] = None
    sil_type: Optional[str] = None
    gva: Optional[int] = None
    sda: Optional[int] = None
    messages: Optional[int] = None
    seen: float = Field(0.0, description="Seconds since a message was last received")
    rssi: Optional[float] = None
    timestamp: int = Field(0, description="Microseconds since epoch when the record was created")
    type: Optional[str] = None
    station_name: Optional[str] = Field(None, alias="groundStationName")

    @field_validator("flight", mode="before")
    @classmethod
    def default_flight(cls, v):
        return "" if v is None else v

    @field_validator("alt_baro", "alt_geom", mode="before")
    @classmethod
    def parse_altitude(cls, v):
        return _altitude_feet(v)

    @field_validator("lat", "lon", "track", "seen", mode="before")
    @classmethod
    def default_zero(cls, v):
        return 0.0 if v is None else v


class LegacyAircraft(BaseModel):
    """
    Aircraft record as written by older dump1090 builds.

    Only the fields whose names changed in dump1090-fa are declared; the rest
    pass through untouched.
    """
    model_config = ConfigDict(extra="allow", allow_inf_nan=False)

    flight: Optional[str] = None
    altitude: int = 0
    speed: Optional[int] = None
    vert_rate: Optional[int] = None
    nucp: Optional[int] = None

    @field_validator("altitude", mode="before")
    @classmethod
    def parse_altitude(cls, v):
        return _altitude_feet(v)


# ============================================================================
# Outbound Messages
# ============================================================================

class AircraftMessage(BaseModel):
    """Outbound message in the dump1090-fa format (one aircraft per message)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    flight: str = Field(min_length=1)
    lat: float = Field(ge=-90, le=90, description="Latitude in degrees (WGS84)")
    lon: float = Field(ge=-180, le=180, description="Longitude in degrees (WGS84)")
    type: Literal["AIRCRAFT"]
    station_name: str = Field(alias="groundStationName")
    timestamp: int = Field(gt=0)


class LegacyAircraftMessage(BaseModel):
    """Outbound message in the legacy dump1090 consumer format."""
    model_config = ConfigDict(populate_by_name=True)

    flight: str
    lon: float
    lat: float
    track: float
    speed: Optional[int] = None
    hex: Optional[str] = None
    squawk: Optional[str] = None
    seen: Optional[float] = None
    seen_pos: Optional[float] = None
    messages: Optional[int] = None
    category: Optional[str] = None
    nucp: Optional[int] = None
    timestamp: Optional[int] = None
    altitude: int
    vert_rate: Optional[int] = None
    rssi: Optional[float] = None
    type: str
    station_name: Optional[str] = Field(None, alias="groundStationName")


# Keys the legacy consumers expect even when their value is zero
LEGACY_REQUIRED_KEYS = frozenset(
    {"flight", "lon", "lat", "track", "hex", "altitude", "type", "groundStationName"}
)


def _omit_empty(data: dict, keep: frozenset = frozenset()) -> dict:
    """Drop None, zero and empty values except for the keys in `keep`."""
    result = {}
    for key, value in data.items():
        if key in keep:
            result[key] = "" if value is None else value
        elif value:
            result[key] = value
    return result


def _whole(value: Optional[float]) -> Optional[int]:
    return None if value is None else int(round(value))


def to_legacy_message(record: Aircraft) -> LegacyAircraftMessage:
    """Map an internal record onto the legacy consumer format."""
    return LegacyAircraftMessage(
        flight=record.flight,
        lon=record.lon,
        lat=record.lat,
        track=record.track,
        speed=record.tas or _whole(record.gs),  # True Air Speed, else ground speed
        hex=record.hex,
        squawk=record.squawk,
        seen=record.seen,
        seen_pos=record.seen_pos,
        messages=record.messages,
        category=record.category,
        timestamp=record.timestamp,
        altitude=record.alt_geom or record.alt_baro,  # Geometric Altitude, else barometric
        vert_rate=record.geom_rate or record.baro_rate,
        rssi=record.rssi,
        type=record.type or RECORD_TYPE_AIRCRAFT,
        station_name=record.station_name,
    )


def encode_aircraft_message(record: Aircraft, wire_format: str = WIRE_FORMAT_FA) -> bytes:
    """
    Encode one aircraft record as a JSON message body.

    Zero-valued optional fields are omitted, matching what downstream
    consumers of the receiver's own JSON expect.
    """
    if wire_format == WIRE_FORMAT_FA:
        data = _omit_empty(record.model_dump(by_alias=True))
    elif wire_format == WIRE_FORMAT_LEGACY:
        message = to_legacy_message(record)
        data = _omit_empty(message.model_dump(by_alias=True), keep=LEGACY_REQUIRED_KEYS)
    else:
        raise ValueError(f"Unknown wire format: {wire_format}")
    return json.dumps(data, allow_nan=False).encode()


# ============================================================================
# Validation Functions
# ============================================================================

def validate_scan(data: Any) -> tuple[bool, Optional[Scan], Optional[str]]:
    """
    Validate a decoded aircraft.json body.

    Returns:
        (is_valid, scan_or_none, error_message_or_none)
    """
    try:
        scan = Scan.model_validate(data)
        return True, scan, None
    except ValidationError as e:
        return False, None, str(e)


def validate_aircraft(data: dict) -> tuple[bool, Optional[Aircraft], Optional[str]]:
    """
    Validate a single aircraft record in the dump1090-fa shape.

    Returns:
        (is_valid, aircraft_or_none, error_message_or_none)
    """
    try:
        aircraft = Aircraft.model_validate(data)
        return True, aircraft, None
    except ValidationError as e:
        return False, None, str(e)


def validate_aircraft_message(data: dict) -> tuple[bool, Optional[AircraftMessage], Optional[str]]:
    """
    Validate an outbound dump1090-fa format message.

    Returns:
        (is_valid, message_or_none, error_message_or_none)
    """
    try:
        message = AircraftMessage.model_validate(data)
        return True, message, None
    except ValidationError as e:
        return False, None, str(e)


def validate_legacy_message(data: dict) -> tuple[bool, Optional[LegacyAircraftMessage], Optional[str]]:
    """
    Validate an outbound legacy format message.

    Returns:
        (is_valid, message_or_none, error_message_or_none)
    """
    try:
        message = LegacyAircraftMessage.model_validate(data)
        return True, message, None
    except ValidationError as e:
        return False, None, str(e)
