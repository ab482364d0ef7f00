"""
ADS-B Relay Contracts Package

Provides shared constants and validation for snapshot and message contracts.
"""

from contracts.constants import *
from contracts.validation import (
    Scan,
    Aircraft,
    LegacyAircraft,
    AircraftMessage,
    LegacyAircraftMessage,
    encode_aircraft_message,
    to_legacy_message,
    validate_scan,
    validate_aircraft,
    validate_aircraft_message,
    validate_legacy_message,
)

__all__ = [
    # Constants
    "KAFKA_TOPIC_AIRCRAFT",
    "RECORD_TYPE_AIRCRAFT",
    "WIRE_FORMAT_FA",
    "WIRE_FORMAT_LEGACY",
    "WIRE_FORMATS",
    "CONTENT_TYPE_JSON",
    "HEADER_CONTENT_TYPE",
    # Models
    "Scan",
    "Aircraft",
    "LegacyAircraft",
    "AircraftMessage",
    "LegacyAircraftMessage",
    # Encoding
    "encode_aircraft_message",
    "to_legacy_message",
    # Validators
    "validate_scan",
    "validate_aircraft",
    "validate_aircraft_message",
    "validate_legacy_message",
]
