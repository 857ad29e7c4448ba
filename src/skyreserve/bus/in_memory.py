from __future__ import annotations

from collections import defaultdict
from threading import Lock
from typing import Iterable

from skyreserve.bus.routing import topic_for
from skyreserve.models.events import ReservationEvent


class InMemoryBus:
    """Keeps every published event in process, grouped by topic."""

    def __init__(self) -> None:
        self.topics: dict[str, list[ReservationEvent]] = defaultdict(list)
        self._lock = Lock()

    def publish(self, event: ReservationEvent) -> None:
        with self._lock:
            self.topics[topic_for(event.event_type)].append(event)

    def publish_many(self, events: Iterable[ReservationEvent]) -> None:
        for event in events:
            self.publish(event)

    def events(self, topic: str) -> list[ReservationEvent]:
        with self._lock:
            return list(self.topics.get(topic, []))

    def clear(self) -> None:
        with self._lock:
            self.topics.clear()
