#!/usr/bin/env python3
"""
Create the Kafka topic the relay publishes to, before the relay first runs.

The relay also does this on startup; the script is for brokers where the
relay's client is not allowed to create topics.
"""

import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), ".."))

from relay.config import load_settings
from relay.topics import create_admin_client, ensure_topic, verify_topic, wait_for_broker

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    settings = load_settings()
    admin_client = create_admin_client(settings.broker)

    logger.info(f"Waiting for broker at {settings.broker}...")
    if not wait_for_broker(admin_client):
        sys.exit(1)

    if not ensure_topic(admin_client, settings.topic, settings.topic_retention):
        sys.exit(1)

    verify_topic(admin_client, settings.topic, settings.topic_retention)
    logger.info("Topic initialization complete")


if __name__ == "__main__":
    main()
