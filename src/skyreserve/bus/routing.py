from __future__ import annotations

from skyreserve.models.events import ReservationEventType

FLIGHT_INVENTORY_TOPIC = "flight.inventory"
BOOKING_LIFECYCLE_TOPIC = "booking.lifecycle"
PAYMENT_COMPLETED_TOPIC = "payment.completed"
REFUND_REQUESTED_TOPIC = "refund.requested"
LOYALTY_ACTIVITY_TOPIC = "loyalty.activity"

EVENT_TOPIC_MAP = {
    ReservationEventType.FLIGHT_ADDED: FLIGHT_INVENTORY_TOPIC,
    ReservationEventType.FLIGHT_UPDATED: FLIGHT_INVENTORY_TOPIC,
    ReservationEventType.FLIGHT_DELETED: FLIGHT_INVENTORY_TOPIC,
    ReservationEventType.BOOKING_CONFIRMED: BOOKING_LIFECYCLE_TOPIC,
    ReservationEventType.BOOKING_CANCELLED: BOOKING_LIFECYCLE_TOPIC,
    ReservationEventType.BAGGAGE_ADDED: BOOKING_LIFECYCLE_TOPIC,
    ReservationEventType.PAYMENT_COMPLETED: PAYMENT_COMPLETED_TOPIC,
    ReservationEventType.REFUND_REQUESTED: REFUND_REQUESTED_TOPIC,
    ReservationEventType.TIER_UPGRADED: LOYALTY_ACTIVITY_TOPIC,
    ReservationEventType.POINTS_REDEEMED: LOYALTY_ACTIVITY_TOPIC,
}


def topic_for(event_type: ReservationEventType, prefix: str = "") -> str:
    return f"{prefix}{EVENT_TOPIC_MAP[event_type]}"
