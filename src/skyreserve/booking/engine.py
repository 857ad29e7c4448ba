from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from skyreserve.activity import ActivityRecorder
from skyreserve.db.repositories import CustomerRepository
from skyreserve.errors import (
    BookingAlreadyCancelled,
    BookingNotFound,
    CustomerNotFound,
    DomainValidationError,
    DuplicateBooking,
    InvalidBaggage,
    SeatNotFound,
    SeatOccupied,
)
from skyreserve.ids import IdGenerator
from skyreserve.inventory.flights import FlightInventory
from skyreserve.locking import KeyedLocks
from skyreserve.models.domain import (
    BaggageItem,
    Booking,
    BookingStatus,
    Customer,
    Meal,
    Refund,
    SeatClass,
    SpecialRequest,
    Ticket,
    utc_now,
)
from skyreserve.models.events import ReservationEventType
from skyreserve.payments.refunds import compute_refund

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)
SORT_KEYS = ("date", "flight", "status")


@dataclass
class BookingOptions:
    seat_number: str | None = None
    seat_class: SeatClass | str | None = None
    meal_type: str | None = None
    special_request_type: str | None = None
    special_request_note: str | None = None
    boarding_pass_url: str | None = None
    baggage: Any = None


@dataclass
class CancellationResult:
    booking: Booking
    refund: Refund
    seat_released: bool


def normalize_baggage(baggage: Any) -> list[BaggageItem]:
    """Accept one baggage item or a list of them."""
    if isinstance(baggage, (dict, BaggageItem)):
        raw_items = [baggage]
    elif isinstance(baggage, list):
        raw_items = baggage
    else:
        raise InvalidBaggage(received=type(baggage).__name__)
    items: list[BaggageItem] = []
    for raw in raw_items:
        if isinstance(raw, BaggageItem):
            items.append(raw)
            continue
        if not isinstance(raw, dict):
            raise InvalidBaggage(received=type(raw).__name__)
        try:
            items.append(BaggageItem.model_validate(raw))
        except ValidationError as exc:
            raise InvalidBaggage(errors=exc.errors(include_url=False, include_context=False)) from exc
    return items


class BookingEngine:
    def __init__(
        self,
        inventory: FlightInventory,
        customers: CustomerRepository | None = None,
        customer_locks: KeyedLocks | None = None,
        ids: IdGenerator | None = None,
        activity: ActivityRecorder | None = None,
    ) -> None:
        self.inventory = inventory
        self.customers = customers or CustomerRepository()
        self.customer_locks = customer_locks or KeyedLocks()
        self.ids = ids or IdGenerator()
        self.activity = activity or ActivityRecorder()

    def book_flight(self, customer_id: str, flight_number: str, options: BookingOptions | None = None) -> Booking:
        return self._create_booking(customer_id, flight_number, options or BookingOptions(), seat_first=False)

    def book_seat_only(self, customer_id: str, flight_number: str, seat_number: str) -> Booking:
        """Reserve a seat without any of the extra booking details.

        Seat state is checked before the duplicate-booking rule, so repeating
        the same seat request reports the occupied seat.
        """
        return self._create_booking(
            customer_id,
            flight_number,
            BookingOptions(seat_number=seat_number),
            seat_first=True,
        )

    def add_baggage(self, customer_id: str, flight_number: str, baggage: Any) -> Booking:
        with self.customer_locks.hold(customer_id):
            customer = self._require_customer(customer_id)
            self.inventory.get_flight(flight_number)
            booking = customer.active_booking_for(flight_number)
            if booking is None:
                raise BookingNotFound(customer_id=customer_id, flight_number=flight_number)
            items = normalize_baggage(baggage)
            booking.baggage.extend(items)
            self.customers.put(customer)
        logger.info("added %d baggage item(s) to booking %s", len(items), booking.booking_id)
        self.activity.record(
            ReservationEventType.BAGGAGE_ADDED,
            component="booking_engine",
            customer_id=customer_id,
            flight_number=flight_number,
            booking_id=booking.booking_id,
            detail={"items": len(items), "total_items": len(booking.baggage)},
        )
        return booking

    def cancel_booking(self, customer_id: str, booking_id: str, reason: str | None = None) -> CancellationResult:
        with self.customer_locks.hold(customer_id):
            customer = self._require_customer(customer_id)
            booking = customer.find_booking(booking_id)
            if booking is None:
                raise BookingNotFound(customer_id=customer_id, booking_id=booking_id)
            if not booking.is_active:
                raise BookingAlreadyCancelled(booking_id=booking_id)

            flight = self.inventory.repository.get(booking.flight_number)
            amount = compute_refund(customer, booking, flight.price if flight else None)
            now = utc_now()
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now
            booking.cancellation_reason = reason
            refund = Refund(
                refund_id=self.ids.refund_id(),
                booking_id=booking.booking_id,
                flight_number=booking.flight_number,
                amount=amount,
                reason=reason,
                request_date=now,
            )
            customer.refunds.append(refund)
            self.customers.put(customer)
            seat_released = self._release_quietly(booking)

        logger.info("booking %s cancelled, refund %s of %s", booking_id, refund.refund_id, refund.amount)
        self.activity.record(
            ReservationEventType.BOOKING_CANCELLED,
            component="booking_engine",
            customer_id=customer_id,
            flight_number=booking.flight_number,
            booking_id=booking_id,
            detail={"reason": reason, "seat_number": booking.seat_number, "seat_released": seat_released},
        )
        self.activity.record(
            ReservationEventType.REFUND_REQUESTED,
            component="booking_engine",
            customer_id=customer_id,
            flight_number=booking.flight_number,
            booking_id=booking_id,
            output_reference=refund.refund_id,
            detail={"amount": str(refund.amount), "status": refund.status},
        )
        return CancellationResult(booking=booking, refund=refund, seat_released=seat_released)

    def get_booking(self, customer_id: str, booking_id: str) -> Booking:
        customer = self._require_customer(customer_id)
        booking = customer.find_booking(booking_id)
        if booking is None:
            raise BookingNotFound(customer_id=customer_id, booking_id=booking_id)
        return booking

    def list_bookings(
        self,
        customer_id: str,
        status: str | None = None,
        sort_by: str | None = None,
    ) -> list[dict[str, Any]]:
        customer = self._require_customer(customer_id)
        if sort_by and sort_by not in SORT_KEYS:
            raise DomainValidationError("sort_by must be one of date, flight, status.", sort_by=sort_by)

        bookings = list(customer.bookings)
        if status:
            wanted = status.strip().lower()
            if wanted == "active":
                bookings = [booking for booking in bookings if booking.is_active]
            else:
                bookings = [booking for booking in bookings if booking.display_status.lower() == wanted]

        if sort_by == "date":
            bookings.sort(key=lambda booking: booking.booking_date or _EARLIEST, reverse=True)
        elif sort_by == "flight":
            bookings.sort(key=lambda booking: booking.flight_number)
        elif sort_by == "status":
            bookings.sort(key=lambda booking: booking.display_status)

        flights: dict[str, Any] = {}
        rows: list[dict[str, Any]] = []
        for booking in bookings:
            if booking.flight_number not in flights:
                flight = self.inventory.repository.get(booking.flight_number)
                flights[booking.flight_number] = flight.snapshot() if flight else None
            row = booking.model_dump(mode="json")
            row["status"] = booking.display_status
            row["flight"] = flights[booking.flight_number]
            rows.append(row)
        return rows

    def _create_booking(
        self,
        customer_id: str,
        flight_number: str,
        options: BookingOptions,
        seat_first: bool,
    ) -> Booking:
        with self.customer_locks.hold(customer_id), self.inventory.locks.hold(flight_number):
            customer = self._require_customer(customer_id)
            flight = self.inventory.get_flight(flight_number)
            if seat_first and options.seat_number:
                seat = flight.find_seat(options.seat_number)
                if seat is None:
                    raise SeatNotFound(flight_number=flight_number, seat_number=options.seat_number)
                if seat.occupied:
                    raise SeatOccupied(flight_number=flight_number, seat_number=options.seat_number)
            existing = customer.active_booking_for(flight_number)
            if existing is not None:
                raise DuplicateBooking(
                    customer_id=customer_id,
                    flight_number=flight_number,
                    booking_id=existing.booking_id,
                )

            booking = self._build_booking(customer, flight_number, options)
            if options.seat_number:
                seat = self.inventory.reserve_seat(flight_number, options.seat_number)
                booking.seat_class = seat.seat_class
            customer.bookings.append(booking)
            try:
                self.customers.put(customer)
            except Exception:
                if booking.seat_number:
                    self.inventory.release_seat(flight_number, booking.seat_number)
                raise

        logger.info(
            "booking %s confirmed for customer %s on flight %s seat=%s",
            booking.booking_id,
            customer_id,
            flight_number,
            booking.seat_number,
        )
        self.activity.record(
            ReservationEventType.BOOKING_CONFIRMED,
            component="booking_engine",
            customer_id=customer_id,
            flight_number=flight_number,
            booking_id=booking.booking_id,
            detail={"seat_number": booking.seat_number, "ticket_issued": booking.ticket is not None},
        )
        return booking

    def _build_booking(self, customer: Customer, flight_number: str, options: BookingOptions) -> Booking:
        booking_id = self.ids.booking_id()
        baggage = normalize_baggage(options.baggage) if options.baggage is not None else []
        special_request = None
        if options.special_request_type:
            special_request = SpecialRequest(
                request_type=options.special_request_type,
                note=options.special_request_note,
            )
        ticket = None
        if options.boarding_pass_url:
            ticket = Ticket(
                ticket_id=self.ids.ticket_id(),
                boarding_pass_url=options.boarding_pass_url,
                booking_id=booking_id,
            )
        return Booking(
            booking_id=booking_id,
            customer_id=customer.user_id,
            flight_number=flight_number,
            seat_number=options.seat_number,
            seat_class=options.seat_class,
            meal=Meal(meal_type=options.meal_type) if options.meal_type else None,
            special_request=special_request,
            baggage=baggage,
            ticket=ticket,
            status=BookingStatus.CONFIRMED,
        )

    def _release_quietly(self, booking: Booking) -> bool:
        if not booking.seat_number:
            return False
        try:
            return self.inventory.release_seat(booking.flight_number, booking.seat_number)
        except Exception:
            # Seat bookkeeping must not undo a recorded cancellation.
            logger.warning(
                "could not release seat %s on flight %s for booking %s",
                booking.seat_number,
                booking.flight_number,
                booking.booking_id,
                exc_info=True,
            )
            return False

    def _require_customer(self, customer_id: str) -> Customer:
        customer = self.customers.get(customer_id)
        if customer is None:
            raise CustomerNotFound(customer_id=customer_id)
        return customer
