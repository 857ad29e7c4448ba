from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SeatClass(str, Enum):
    ECONOMY = "Economy"
    BUSINESS = "Business"
    FIRST = "First"


class LoyaltyTier(str, Enum):
    BASIC = "Basic"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"


TIER_ORDER = [LoyaltyTier.BASIC, LoyaltyTier.SILVER, LoyaltyTier.GOLD, LoyaltyTier.PLATINUM]


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class RewardType(str, Enum):
    FREE_FLIGHT = "freeFlight"
    UPGRADE = "upgrade"
    LOUNGE = "lounge"
    BAGGAGE = "baggage"


class AdminPermission(str, Enum):
    MANAGE_FLIGHTS = "manage_flights"
    MANAGE_LOYALTY_PROGRAMS = "manage_loyalty_programs"


class Seat(BaseModel):
    seat_number: str = Field(validation_alias=AliasChoices("seat_number", "seatNumber"))
    seat_class: SeatClass = Field(
        default=SeatClass.ECONOMY,
        validation_alias=AliasChoices("seat_class", "class", "seatClass"),
    )
    occupied: bool = Field(default=False, validation_alias=AliasChoices("occupied", "isOccupied"))

    @field_validator("occupied", mode="before")
    @classmethod
    def _default_non_boolean_to_free(cls, value: Any) -> bool:
        # Anything that is not a real boolean counts as a free seat.
        return value if isinstance(value, bool) else False


class Flight(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    flight_number: str = Field(validation_alias=AliasChoices("flight_number", "flightNumber"))
    origin: str
    destination: str
    departure_time: datetime = Field(validation_alias=AliasChoices("departure_time", "departureTime"))
    arrival_time: datetime = Field(validation_alias=AliasChoices("arrival_time", "arrivalTime"))
    price: Decimal = Field(gt=0)
    airline: str
    seats: list[Seat] = Field(default_factory=list, validation_alias=AliasChoices("seats", "availableSeats"))

    @field_validator("departure_time", "arrival_time")
    @classmethod
    def _assume_utc_when_naive(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def find_seat(self, seat_number: str) -> Seat | None:
        for seat in self.seats:
            if seat.seat_number == seat_number:
                return seat
        return None

    def snapshot(self) -> dict[str, Any]:
        return {
            "flight_number": self.flight_number,
            "origin": self.origin,
            "destination": self.destination,
            "departure_time": self.departure_time.isoformat(),
            "arrival_time": self.arrival_time.isoformat(),
            "airline": self.airline,
            "price": str(self.price),
        }


class Meal(BaseModel):
    meal_type: str


class SpecialRequest(BaseModel):
    request_type: str
    note: str | None = None
    status: str = "Pending"


class BaggageItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    description: str | None = None
    weight_kg: Decimal | None = Field(default=None, ge=0)


class Ticket(BaseModel):
    ticket_id: str
    boarding_pass_url: str
    booking_id: str


class Booking(BaseModel):
    booking_id: str
    customer_id: str
    flight_number: str
    seat_number: str | None = None
    seat_class: SeatClass | None = None
    meal: Meal | None = None
    special_request: SpecialRequest | None = None
    baggage: list[BaggageItem] = Field(default_factory=list)
    ticket: Ticket | None = None
    status: BookingStatus | None = BookingStatus.CONFIRMED
    booking_date: datetime | None = Field(default_factory=utc_now)
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED

    @property
    def display_status(self) -> str:
        return self.status.value if self.status else "Active"


class Payment(BaseModel):
    transaction_id: str = Field(validation_alias=AliasChoices("transaction_id", "transactionId"))
    booking_id: str | None = None
    flight_number: str = Field(validation_alias=AliasChoices("flight_number", "flightNumber"))
    amount: Decimal = Field(validation_alias=AliasChoices("amount", "paymentAmount"))
    method: str = "CreditCard"
    status: str = "Completed"
    card_last_four: str | None = None
    paid_at: datetime = Field(default_factory=utc_now, validation_alias=AliasChoices("paid_at", "date"))


class Refund(BaseModel):
    refund_id: str
    booking_id: str
    flight_number: str
    amount: Decimal
    status: str = "Pending"
    reason: str | None = None
    request_date: datetime = Field(default_factory=utc_now)


class Redemption(BaseModel):
    redemption_id: str
    points_redeemed: int
    reward_type: RewardType
    reward_value: Decimal
    reward_unit: str
    status: str = "Completed"
    redeemed_at: datetime = Field(default_factory=utc_now)


class LoyaltyMembership(BaseModel):
    tier: LoyaltyTier = LoyaltyTier.BASIC
    points_per_dollar: Decimal = Decimal("1")
    date_joined: datetime = Field(default_factory=utc_now)
    tier_upgraded_at: datetime | None = None
    program_id: str | None = None


class LoyaltyProgram(BaseModel):
    program_id: str = Field(validation_alias=AliasChoices("program_id", "programId"))
    program_name: str = Field(validation_alias=AliasChoices("program_name", "programName"))
    points_per_dollar: Decimal = Field(gt=0, validation_alias=AliasChoices("points_per_dollar", "pointsPerDollar"))
    tier: LoyaltyTier = LoyaltyTier.BASIC
    active: bool = True
    valid_till: datetime | None = Field(default=None, validation_alias=AliasChoices("valid_till", "validTill"))


class Identity(BaseModel):
    user_id: str
    name: str
    email: str
    password: str


class Admin(BaseModel):
    identity: Identity
    permissions: list[AdminPermission] = Field(default_factory=list)

    @property
    def user_id(self) -> str:
        return self.identity.user_id

    def can(self, permission: AdminPermission) -> bool:
        return permission in self.permissions


class Customer(BaseModel):
    user_id: str = Field(validation_alias=AliasChoices("user_id", "userId"))
    name: str
    email: str
    password: str
    loyalty_points: int = Field(default=0, ge=0, validation_alias=AliasChoices("loyalty_points", "loyaltyPoints"))
    total_spent: Decimal = Field(default=Decimal("0"), ge=0, validation_alias=AliasChoices("total_spent", "totalSpent"))
    loyalty: LoyaltyMembership | None = None
    bookings: list[Booking] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    refunds: list[Refund] = Field(default_factory=list)
    redemptions: list[Redemption] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_bookings(cls, data: Any) -> Any:
        """Fold the older booking shapes into the single Booking schema.

        Records written before bookings had ids hold either a bare flight
        number or a ``{flightNumber, seatNumber}`` pair. Both become regular
        bookings with no recorded status, which reads as "Active".
        """
        if not isinstance(data, dict) or not data.get("bookings"):
            return data
        customer_id = data.get("user_id") or data.get("userId")
        normalized: list[Any] = []
        for index, entry in enumerate(data["bookings"]):
            if isinstance(entry, str):
                entry = {"flight_number": entry}
            elif isinstance(entry, dict) and "flightNumber" in entry and "flight_number" not in entry:
                entry = {
                    "flight_number": entry["flightNumber"],
                    "seat_number": entry.get("seatNumber"),
                    "baggage": entry.get("baggage") or [],
                }
            elif not isinstance(entry, dict):
                normalized.append(entry)
                continue
            if "booking_id" not in entry:
                entry = {
                    **entry,
                    "booking_id": f"BKG-LEGACY-{customer_id}-{index + 1}",
                    "status": entry.get("status"),
                    "booking_date": entry.get("booking_date"),
                }
            entry = {"customer_id": customer_id, **entry}
            normalized.append(entry)
        return {**data, "bookings": normalized}

    def active_booking_for(self, flight_number: str) -> Booking | None:
        for booking in self.bookings:
            if booking.flight_number == flight_number and booking.is_active:
                return booking
        return None

    def find_booking(self, booking_id: str) -> Booking | None:
        for booking in self.bookings:
            if booking.booking_id == booking_id:
                return booking
        return None
