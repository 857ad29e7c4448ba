from __future__ import annotations

import logging
from typing import Any

from skyreserve.audit.lineage import AuditStore
from skyreserve.models.events import ReservationEvent, ReservationEventType

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Writes each state transition to the audit trail and the event bus."""

    def __init__(self, audit_store: AuditStore | None = None, bus: Any | None = None) -> None:
        self.audit_store = audit_store
        self.bus = bus

    def record(
        self,
        event_type: ReservationEventType,
        component: str,
        customer_id: str | None = None,
        flight_number: str | None = None,
        booking_id: str | None = None,
        output_reference: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        detail = detail or {}
        if self.audit_store:
            self.audit_store.log(
                action=event_type.value,
                component=component,
                customer_id=customer_id,
                flight_number=flight_number,
                output_reference=output_reference or booking_id,
                detail=detail,
            )
        if self.bus is not None:
            self.bus.publish(
                ReservationEvent(
                    event_type=event_type,
                    flight_number=flight_number,
                    customer_id=customer_id,
                    booking_id=booking_id,
                    payload=detail,
                )
            )
        logger.debug("recorded %s for customer=%s flight=%s", event_type.value, customer_id, flight_number)
