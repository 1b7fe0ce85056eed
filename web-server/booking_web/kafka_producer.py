"""Kafka analytics sink for web-server.

Booking outcomes are published to an analytics topic. Analytics are
fire-and-forget:

- `capture()` only queues the message locally (`produce()`), then serves
  any pending delivery callbacks with `poll(0)`, which does not wait.
  Unlike a request/response publish we never `flush()` per message.
- Delivery failures are reported by the callback and logged.
- Errors raised by `produce()` itself (e.g. a full local queue) propagate;
  the booking form catches and logs them so a broken sink never changes
  what the user sees.

The message key is the eventId, so all analytics for one event land on
the same partition, in order.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from confluent_kafka import Producer

from .config import ANALYTICS_TOPIC, KAFKA_BOOTSTRAP_SERVERS
from .models import AnalyticsEvent

logger = logging.getLogger(__name__)


def create_producer() -> Producer:
    """Create and configure a Confluent Kafka Producer."""
    conf: dict[str, Any] = {
        "bootstrap.servers": KAFKA_BOOTSTRAP_SERVERS,
        # Safe against duplicates when the client retries internally.
        "enable.idempotence": True,
    }
    return Producer(conf)


def _delivery_report(err, msg) -> None:
    """Called by confluent-kafka once the broker acks or rejects a message."""
    if err is not None:
        logger.warning("[Analytics] Delivery failed: %s", err)
    else:
        logger.debug(
            "[Analytics] Delivered to %s [%s] @ offset %s",
            msg.topic(), msg.partition(), msg.offset(),
        )


class KafkaAnalytics:
    """Publishes analytics events to Kafka."""

    def __init__(self, producer: Producer, topic: str = ANALYTICS_TOPIC) -> None:
        self._producer = producer
        self.topic = topic

    def capture(self, event: AnalyticsEvent) -> None:
        payload: bytes = json.dumps(event.model_dump()).encode("utf-8")
        key: bytes = event.eventId.encode("utf-8")

        self._producer.produce(
            topic=self.topic,
            key=key,
            value=payload,
            callback=_delivery_report,
        )
        self._producer.poll(0)

    def flush(self, timeout: float = 5.0) -> int:
        """Wait for queued messages on shutdown. Returns how many are left."""
        remaining = self._producer.flush(timeout)
        if remaining:
            logger.warning("[Analytics] %d message(s) not delivered at shutdown", remaining)
        return remaining
