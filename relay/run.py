#!/usr/bin/env python3
"""
ADS-B Relay - watches a receiver's aircraft.json and publishes changed aircraft.

Runs two loops against a shared position store:
- snapshot monitor: merges new snapshots and purges departed/stale aircraft
- position updater: publishes each changed aircraft to the event bus
"""

import logging
import signal
import sys
import threading

from prometheus_client import start_http_server

from relay.config import load_settings
from relay.errors import SinkError
from relay.monitor import IngestLoop
from relay.sink import KafkaSink
from relay.sources import FileSnapshotSource, open_source
from relay.store import PositionStore
from relay.topics import create_admin_client, ensure_topic
from relay.updater import PublishLoop

logger = logging.getLogger("relay")


def main():
    settings = load_settings()

    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    logger.info("=" * 50)
    logger.info("ADS-B Relay")
    logger.info(f"Snapshot: {settings.aircraft_file}")
    logger.info(f"Monitor interval: {settings.monitor_freq.total_seconds()}s")
    logger.info(f"Update interval: {settings.update_freq.total_seconds()}s")
    logger.info(f"Max age: {settings.max_age.total_seconds()}s")
    logger.info(f"Station: {settings.station}")
    logger.info(f"Broker: {settings.broker} topic={settings.topic} format={settings.wire_format}")
    logger.info("=" * 50)

    source = open_source(settings.aircraft_file, timeout=settings.http_timeout.total_seconds())
    if isinstance(source, FileSnapshotSource) and not source.exists():
        logger.error(f"Snapshot file not found: {settings.aircraft_file}")
        sys.exit(1)

    sink = KafkaSink(settings.broker, settings.topic)
    try:
        sink.check_connection()
    except SinkError as e:
        logger.error(str(e))
        sys.exit(1)

    if not ensure_topic(create_admin_client(settings.broker), settings.topic, settings.topic_retention):
        logger.warning(f"Topic {settings.topic} is not available; publishes will be retried until it is")

    if settings.metrics_port:
        start_http_server(settings.metrics_port)
        logger.info(f"Prometheus metrics available on :{settings.metrics_port}")

    cancel = threading.Event()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        cancel.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    store = PositionStore()
    monitor = IngestLoop(
        source,
        store,
        interval=settings.monitor_freq,
        max_age=settings.max_age,
        station=settings.station,
        cancel=cancel,
    )
    updater = PublishLoop(
        sink,
        store,
        interval=settings.update_freq,
        wire_format=settings.wire_format,
        cancel=cancel,
    )

    updater.start()
    monitor.start()

    # Main thread only waits for the shutdown signal
    cancel.wait()

    monitor.stop()
    updater.stop()
    sink.close()
    logger.info("Relay stopped")


if __name__ == "__main__":
    main()
