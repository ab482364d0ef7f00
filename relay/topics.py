"""
Topic administration for the relay's output topic.

Aircraft messages describe live positions and are worthless after a few
minutes, so the topic is append-only with a short retention. Consumers that
miss a message pick up the aircraft's next change.
"""

import logging
import time
from datetime import timedelta
from typing import Dict

from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import AdminClient, ConfigResource, NewTopic

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(minutes=10)


def topic_config(retention: timedelta = DEFAULT_RETENTION) -> Dict[str, str]:
    """Broker-side settings for the aircraft topic."""
    return {
        "cleanup.policy": "delete",
        "retention.ms": str(int(retention.total_seconds() * 1000)),
    }


def create_admin_client(broker: str) -> AdminClient:
    return AdminClient({
        "bootstrap.servers": broker,
        "client.id": "adsb-relay-admin",
    })


def wait_for_broker(admin_client, max_retries: int = 30, retry_delay: float = 2.0) -> bool:
    """Poll cluster metadata until the broker answers or retries run out."""
    for attempt in range(1, max_retries + 1):
        try:
            admin_client.list_topics(timeout=5)
            return True
        except KafkaException as e:
            logger.debug(f"Broker not ready (attempt {attempt}/{max_retries}): {e}")
            if attempt < max_retries:
                time.sleep(retry_delay)
    logger.error(f"Broker not available after {max_retries} attempts")
    return False


def ensure_topic(
    admin_client,
    topic: str,
    retention: timedelta = DEFAULT_RETENTION,
    partitions: int = 1,
    replication_factor: int = 1,
) -> bool:
    """
    Create the topic unless it already exists.

    Returns:
        True if the topic exists afterwards, False if it could not be created.
    """
    try:
        existing = admin_client.list_topics(timeout=10).topics
    except KafkaException as e:
        logger.error(f"Failed to list topics: {e}")
        return False

    if topic in existing:
        logger.info(f"Topic '{topic}' already exists")
        return True

    new_topic = NewTopic(
        topic,
        num_partitions=partitions,
        replication_factor=replication_factor,
        config=topic_config(retention),
    )
    futures = admin_client.create_topics([new_topic], request_timeout=30)
    try:
        futures[topic].result()
    except KafkaException as e:
        if e.args[0].code() == KafkaError.TOPIC_ALREADY_EXISTS:
            logger.info(f"Topic '{topic}' was created concurrently")
            return True
        logger.error(f"Failed to create topic '{topic}': {e}")
        return False

    logger.info(f"Created topic '{topic}' (retention {retention.total_seconds()}s)")
    return True


def verify_topic(admin_client, topic: str, retention: timedelta = DEFAULT_RETENTION) -> bool:
    """Warn when an existing topic's cleanup policy or retention differs from ours."""
    expected = topic_config(retention)
    resource = ConfigResource(ConfigResource.Type.TOPIC, topic)
    try:
        config = admin_client.describe_configs([resource], request_timeout=10)[resource].result()
    except KafkaException as e:
        logger.warning(f"Could not verify config for '{topic}': {e}")
        return False

    mismatched = {
        key: config[key].value
        for key, value in expected.items()
        if key in config and config[key].value != value
    }
    if mismatched:
        logger.warning(f"Topic '{topic}' config differs from expected {expected}: {mismatched}")
        return False
    return True
