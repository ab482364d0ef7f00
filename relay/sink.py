"""
Kafka publisher for aircraft messages.
"""

import logging
from typing import Optional

from confluent_kafka import KafkaException, Producer

from contracts.constants import CONTENT_TYPE_JSON, HEADER_CONTENT_TYPE
from relay.errors import SinkError

logger = logging.getLogger(__name__)


def create_producer(broker: str, client_id: str = "adsb-relay") -> Producer:
    """
    Create a Kafka producer for relay messages.

    Messages are fire-and-forget from the broker's point of view (acks=1, no
    producer retries): an undelivered message leaves the aircraft dirty and
    the publish loop retries it on its next tick.
    """
    config = {
        "bootstrap.servers": broker,
        "client.id": client_id,
        "acks": "1",
        "retries": 0,
    }
    return Producer(config)


class KafkaSink:
    """Publishes one message per call and reports delivery synchronously."""

    def __init__(
        self,
        broker: str,
        topic: str,
        flush_timeout: float = 5.0,
        producer: Optional[Producer] = None,
    ):
        self.broker = broker
        self.topic = topic
        self.flush_timeout = flush_timeout
        self.producer = producer if producer is not None else create_producer(broker)

    def check_connection(self, timeout: float = 10.0):
        """
        Fetch cluster metadata to make sure the broker is reachable.

        Raises:
            SinkError: if the broker does not answer within `timeout`.
        """
        try:
            self.producer.list_topics(timeout=timeout)
        except KafkaException as e:
            raise SinkError(f"Failed to connect to broker {self.broker}: {e}") from e
        logger.info(f"Connected to broker {self.broker}")

    def publish(self, key: str, value: bytes):
        """
        Publish one message and wait for its delivery report.

        Raises:
            SinkError: if the message was not delivered.
        """
        errors = []

        def delivery_callback(err, msg):
            if err:
                errors.append(err)

        try:
            self.producer.produce(
                self.topic,
                key=key.encode(),
                value=value,
                headers=[(HEADER_CONTENT_TYPE, CONTENT_TYPE_JSON.encode())],
                callback=delivery_callback,
            )
        except (BufferError, KafkaException) as e:
            raise SinkError(f"Failed to enqueue message for {key}: {e}") from e

        remaining = self.producer.flush(self.flush_timeout)
        if remaining:
            raise SinkError(f"{remaining} message(s) not delivered within {self.flush_timeout}s")
        if errors:
            raise SinkError(f"Delivery failed for {key}: {errors[0]}")

    def close(self):
        """Flush anything still queued."""
        remaining = self.producer.flush(self.flush_timeout)
        if remaining:
            logger.warning(f"{remaining} message(s) still queued at shutdown")
