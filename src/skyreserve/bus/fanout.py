from __future__ import annotations

import logging
from typing import Any, Iterable

from skyreserve.models.events import ReservationEvent

logger = logging.getLogger(__name__)


class FanoutBus:
    """Publishes to a primary bus and then to any number of mirrors.

    The primary bus is the system of record for events and its failures
    propagate. Mirrors carry events to external transports after the state
    change is already committed, so a mirror failure is logged and the
    remaining mirrors still receive the event.
    """

    def __init__(self, primary: Any, mirrors: Iterable[Any] = ()) -> None:
        self.primary = primary
        self.mirrors = list(mirrors)

    def publish(self, event: ReservationEvent) -> None:
        self.primary.publish(event)
        for mirror in self.mirrors:
            try:
                mirror.publish(event)
            except Exception:
                logger.warning(
                    "mirror %s failed to publish %s event %s",
                    type(mirror).__name__,
                    event.event_type.value,
                    event.event_id,
                    exc_info=True,
                )

    def publish_many(self, events: Iterable[ReservationEvent]) -> None:
        for event in events:
            self.publish(event)

    def close(self) -> None:
        for bus in [self.primary, *self.mirrors]:
            close = getattr(bus, "close", None)
            if callable(close):
                close()
