"""
Shared constants for the ADS-B relay.

This module provides a single source of truth for:
- Kafka topic names
- Record types stamped by the relay
- Wire formats and message headers

All relay modules and scripts should import from this module to ensure consistency.
"""

# Kafka Topic Names
KAFKA_TOPIC_AIRCRAFT = "adsb.aircraft"

# Record type stamped on every relayed record
RECORD_TYPE_AIRCRAFT = "AIRCRAFT"

# Value dump1090 reports for alt_baro when the aircraft is on the ground
ALTITUDE_GROUND = "ground"

# Wire Formats
WIRE_FORMAT_FA = "fa"
WIRE_FORMAT_LEGACY = "legacy"
WIRE_FORMATS = (WIRE_FORMAT_FA, WIRE_FORMAT_LEGACY)

# Message headers
CONTENT_TYPE_JSON = "application/json"
HEADER_CONTENT_TYPE = "content-type"

# Snapshot poll outcomes (metric labels)
POLL_STATUS_MERGED = "merged"
POLL_STATUS_UNCHANGED = "unchanged"
POLL_STATUS_SOURCE_ERROR = "source_error"
POLL_STATUS_DECODE_ERROR = "decode_error"

# Rejection / purge reasons (metric labels)
REJECT_REASON_NO_FLIGHT = "no_flight"
REJECT_REASON_NO_POSITION = "no_position"
REJECT_REASON_INVALID = "invalid"
PURGE_REASON_ABSENT = "absent"
PURGE_REASON_STALE = "stale"
