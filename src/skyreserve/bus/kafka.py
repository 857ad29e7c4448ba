from __future__ import annotations

import json
import logging
from typing import Iterable

from kafka import KafkaProducer

from skyreserve.bus.routing import topic_for
from skyreserve.models.events import ReservationEvent

logger = logging.getLogger(__name__)


class KafkaBus:
    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str = "skyreserve-producer",
        topic_prefix: str = "",
        producer: KafkaProducer | None = None,
    ) -> None:
        self.topic_prefix = topic_prefix
        self._owns_producer = producer is None
        self._producer = producer or KafkaProducer(
            bootstrap_servers=bootstrap_servers,
            client_id=client_id,
            acks="all",
            linger_ms=10,
            retries=3,
            key_serializer=lambda key: key.encode("utf-8"),
            value_serializer=lambda payload: json.dumps(payload, sort_keys=True).encode("utf-8"),
        )

    def publish(self, event: ReservationEvent) -> None:
        topic = topic_for(event.event_type, self.topic_prefix)
        # Flight-scoped events share a partition so seat changes arrive in order.
        self._producer.send(
            topic,
            key=event.partition_key,
            value=event.model_dump(mode="json"),
            headers=[("event_type", event.event_type.value.encode("utf-8"))],
        )
        logger.debug("queued %s event %s on %s", event.event_type.value, event.event_id, topic)

    def publish_many(self, events: Iterable[ReservationEvent]) -> None:
        for event in events:
            self.publish(event)
        self._producer.flush()

    def close(self) -> None:
        if not self._owns_producer:
            return
        self._producer.flush()
        self._producer.close()
