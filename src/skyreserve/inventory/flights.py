from __future__ import annotations

import logging
from typing import Any

from skyreserve.activity import ActivityRecorder
from skyreserve.db.repositories import CustomerRepository, FlightRepository
from skyreserve.errors import (
    DuplicateFlightNumber,
    DuplicateSeat,
    FlightHasActiveBookings,
    FlightNotFound,
    InvalidTimeRange,
    SeatNotFound,
    SeatOccupied,
)
from skyreserve.locking import KeyedLocks
from skyreserve.models.domain import Flight, Seat
from skyreserve.models.events import ReservationEventType

logger = logging.getLogger(__name__)

_PATCH_FIELDS = ("departure_time", "arrival_time", "origin", "destination", "price", "airline", "seats")


def _check_times(flight: Flight) -> None:
    if flight.departure_time >= flight.arrival_time:
        raise InvalidTimeRange(
            departure_time=flight.departure_time.isoformat(),
            arrival_time=flight.arrival_time.isoformat(),
        )


def _check_unique_seats(seats: list[Seat]) -> None:
    seen: set[str] = set()
    for seat in seats:
        if seat.seat_number in seen:
            raise DuplicateSeat(seat_number=seat.seat_number)
        seen.add(seat.seat_number)


class FlightInventory:
    def __init__(
        self,
        repository: FlightRepository | None = None,
        locks: KeyedLocks | None = None,
        activity: ActivityRecorder | None = None,
        customers: CustomerRepository | None = None,
    ) -> None:
        self.repository = repository or FlightRepository()
        self.locks = locks or KeyedLocks()
        self.activity = activity or ActivityRecorder()
        self.customers = customers

    def add_flight(self, record: dict[str, Any] | Flight) -> Flight:
        flight = Flight.model_validate(record.model_dump() if isinstance(record, Flight) else record)
        with self.locks.hold(flight.flight_number):
            if self.repository.get(flight.flight_number) is not None:
                raise DuplicateFlightNumber(flight_number=flight.flight_number)
            _check_times(flight)
            _check_unique_seats(flight.seats)
            self.repository.put(flight)
        logger.info("flight %s added with %d seat(s)", flight.flight_number, len(flight.seats))
        self.activity.record(
            ReservationEventType.FLIGHT_ADDED,
            component="flight_inventory",
            flight_number=flight.flight_number,
            detail={"origin": flight.origin, "destination": flight.destination},
        )
        return flight

    def get_flight(self, flight_number: str) -> Flight:
        flight = self.repository.get(flight_number)
        if flight is None:
            raise FlightNotFound(flight_number=flight_number)
        return flight

    def update_flight(self, flight_number: str, patch: dict[str, Any]) -> Flight:
        """Apply the fields present in ``patch`` to an existing flight.

        ``new_flight_number`` renames the flight, which is refused while any
        active booking still references the current number. Time ordering is
        checked on the merged record whenever either timestamp is supplied, so
        a patch that only moves the departure past the stored arrival is
        rejected.
        """
        patch = {key: value for key, value in patch.items() if value is not None}
        new_number = patch.get("new_flight_number")
        if isinstance(new_number, str):
            new_number = new_number.strip()
        renamed = bool(new_number) and new_number != flight_number
        keys = (flight_number, new_number) if renamed else (flight_number,)
        with self.locks.hold_many(*keys):
            current = self.get_flight(flight_number)
            if renamed:
                if self.repository.get(new_number) is not None:
                    raise DuplicateFlightNumber(flight_number=new_number)
                holders = self._active_booking_holders(flight_number)
                if holders:
                    raise FlightHasActiveBookings(flight_number=flight_number, customer_ids=holders)

            merged = current.model_dump()
            merged.update({key: patch[key] for key in _PATCH_FIELDS if key in patch})
            if renamed:
                merged["flight_number"] = new_number
            updated = Flight.model_validate(merged)
            if "departure_time" in patch or "arrival_time" in patch:
                _check_times(updated)
            if "seats" in patch:
                _check_unique_seats(updated.seats)

            if renamed:
                self.repository.rename(flight_number, updated)
            else:
                self.repository.put(updated)
        logger.info("flight %s updated fields=%s", flight_number, sorted(patch))
        self.activity.record(
            ReservationEventType.FLIGHT_UPDATED,
            component="flight_inventory",
            flight_number=updated.flight_number,
            detail={"previous_flight_number": flight_number, "fields": sorted(patch)},
        )
        return updated

    def delete_flight(self, flight_number: str) -> Flight:
        with self.locks.hold(flight_number):
            flight = self.get_flight(flight_number)
            self.repository.delete(flight_number)
        logger.info("flight %s deleted", flight_number)
        self.activity.record(
            ReservationEventType.FLIGHT_DELETED,
            component="flight_inventory",
            flight_number=flight_number,
        )
        return flight

    def _active_booking_holders(self, flight_number: str) -> list[str]:
        if self.customers is None:
            return []
        return [
            customer.user_id
            for customer in self.customers.list()
            if customer.active_booking_for(flight_number) is not None
        ]

    def find_flights(self, origin: str | None = None, destination: str | None = None) -> list[Flight]:
        flights = self.repository.list()
        if origin:
            wanted = origin.strip().lower()
            flights = [flight for flight in flights if flight.origin.strip().lower() == wanted]
        if destination:
            wanted = destination.strip().lower()
            flights = [flight for flight in flights if flight.destination.strip().lower() == wanted]
        return flights

    def reserve_seat(self, flight_number: str, seat_number: str) -> Seat:
        with self.locks.hold(flight_number):
            flight = self.get_flight(flight_number)
            seat = flight.find_seat(seat_number)
            if seat is None:
                raise SeatNotFound(flight_number=flight_number, seat_number=seat_number)
            if seat.occupied:
                raise SeatOccupied(flight_number=flight_number, seat_number=seat_number)
            seat.occupied = True
            self.repository.put(flight)
        logger.info("seat %s reserved on flight %s", seat_number, flight_number)
        return seat

    def release_seat(self, flight_number: str, seat_number: str) -> bool:
        with self.locks.hold(flight_number):
            flight = self.repository.get(flight_number)
            seat = flight.find_seat(seat_number) if flight else None
            if seat is None or not seat.occupied:
                logger.warning(
                    "release of seat %s on flight %s skipped: seat missing or already free",
                    seat_number,
                    flight_number,
                )
                return False
            seat.occupied = False
            self.repository.put(flight)
        logger.info("seat %s released on flight %s", seat_number, flight_number)
        return True
