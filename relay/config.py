"""Configuration for the relay, read from environment variables."""

import logging
import os
import re
import socket
from dataclasses import dataclass
from datetime import timedelta

from contracts.constants import KAFKA_TOPIC_AIRCRAFT, WIRE_FORMAT_FA, WIRE_FORMATS

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration such as "500ms", "5s", "1m30s" or a bare number of seconds.

    Raises:
        ValueError: if the value is not a duration.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    try:
        return timedelta(seconds=float(text))
    except (ValueError, OverflowError):
        pass

    position = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=seconds)


def lookup_env_or_str(key: str, default: str) -> str:
    """Value of an environment variable, or `default` when unset or empty."""
    value = os.getenv(key)
    if not value:
        return default
    return value


def lookup_env_or_duration(key: str, default: timedelta) -> timedelta:
    """Duration from an environment variable; falls back to `default` if unset or invalid."""
    value = os.getenv(key)
    if not value:
        return default
    try:
        return parse_duration(value)
    except ValueError as e:
        logger.warning(f"Ignoring {key}={value!r} ({e}); using {default.total_seconds()}s")
        return default


def lookup_env_or_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring {key}={value!r} (not an integer); using {default}")
        return default


@dataclass
class Settings:
    """Relay configuration."""

    aircraft_file: str
    monitor_freq: timedelta
    update_freq: timedelta
    max_age: timedelta
    station: str
    broker: str
    topic: str
    topic_retention: timedelta
    wire_format: str
    http_timeout: timedelta
    metrics_port: int
    log_level: str


def load_settings() -> Settings:
    """Read the relay configuration from the environment."""
    wire_format = lookup_env_or_str("RELAY_WIRE_FORMAT", WIRE_FORMAT_FA).lower()
    if wire_format not in WIRE_FORMATS:
        logger.warning(f"Ignoring RELAY_WIRE_FORMAT={wire_format!r}; using {WIRE_FORMAT_FA}")
        wire_format = WIRE_FORMAT_FA

    return Settings(
        aircraft_file=lookup_env_or_str("ADSB_AIRCRAFT_FILE", "/run/dump1090-fa/aircraft.json"),
        monitor_freq=lookup_env_or_duration("ADSB_MONITOR_FREQ", timedelta(seconds=1)),
        update_freq=lookup_env_or_duration("ADSB_UPDATE_FREQ", timedelta(seconds=5)),
        max_age=lookup_env_or_duration("ADSB_MAX_AGE", timedelta(seconds=60)),
        station=lookup_env_or_str("ADSB_STATION", socket.gethostname()),
        broker=lookup_env_or_str("REDPANDA_BROKER", "redpanda:9092"),
        topic=lookup_env_or_str("KAFKA_TOPIC_AIRCRAFT", KAFKA_TOPIC_AIRCRAFT),
        topic_retention=lookup_env_or_duration("KAFKA_TOPIC_RETENTION", timedelta(minutes=10)),
        wire_format=wire_format,
        http_timeout=lookup_env_or_duration("HTTP_SOURCE_TIMEOUT", timedelta(seconds=5)),
        metrics_port=lookup_env_or_int("METRICS_PORT", 8001),
        log_level=lookup_env_or_str("LOG_LEVEL", "INFO").upper(),
    )
