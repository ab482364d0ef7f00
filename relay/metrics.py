"""
Prometheus metrics for the relay service.
"""

from prometheus_client import Counter, Gauge, Histogram

SNAPSHOT_POLLS = Counter(
    'relay_snapshot_polls_total',
    'Snapshot source polls',
    ['status']  # merged, unchanged, source_error, decode_error
)

AIRCRAFT_MERGED = Counter(
    'relay_aircraft_merged_total',
    'Records that changed the position store'
)

AIRCRAFT_REJECTED = Counter(
    'relay_aircraft_rejected_total',
    'Records skipped during merge',
    ['reason']
)

AIRCRAFT_PURGED = Counter(
    'relay_aircraft_purged_total',
    'Aircraft removed from the position store',
    ['reason']  # absent, stale
)

AIRCRAFT_TRACKED = Gauge(
    'relay_aircraft_tracked',
    'Aircraft currently held in the position store'
)

MESSAGES_PUBLISHED = Counter(
    'relay_messages_published_total',
    'Aircraft messages delivered to the event bus'
)

PUBLISH_FAILURES = Counter(
    'relay_publish_failures_total',
    'Aircraft messages that failed to publish'
)

PUBLISH_LATENCY = Histogram(
    'relay_publish_latency_seconds',
    'Time to publish and flush one aircraft message',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)
