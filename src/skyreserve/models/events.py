from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class ReservationEventType(str, Enum):
    FLIGHT_ADDED = "flight_added"
    FLIGHT_UPDATED = "flight_updated"
    FLIGHT_DELETED = "flight_deleted"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BAGGAGE_ADDED = "baggage_added"
    PAYMENT_COMPLETED = "payment_completed"
    REFUND_REQUESTED = "refund_requested"
    TIER_UPGRADED = "tier_upgraded"
    POINTS_REDEEMED = "points_redeemed"


class ReservationEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: ReservationEventType
    flight_number: str | None = None
    customer_id: str | None = None
    booking_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def partition_key(self) -> str:
        return self.flight_number or self.customer_id or self.event_id
