from __future__ import annotations

from typing import Any


class ReservationError(Exception):
    code = "reservation_error"
    message = "Reservation operation failed."

    def __init__(self, message: str | None = None, **detail: Any) -> None:
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class NotFoundError(ReservationError, LookupError):
    code = "not_found"


class ConflictError(ReservationError):
    code = "conflict"


class DomainValidationError(ReservationError, ValueError):
    code = "validation"


class CustomerNotFound(NotFoundError):
    code = "customer_not_found"
    message = "Customer not found."


class AdminNotFound(NotFoundError):
    code = "admin_not_found"
    message = "Admin not found."


class FlightNotFound(NotFoundError):
    code = "flight_not_found"
    message = "Flight not found."


class SeatNotFound(NotFoundError):
    code = "seat_not_found"
    message = "Seat not found in this flight."


class BookingNotFound(NotFoundError):
    code = "booking_not_found"
    message = "Booking not found."


class DuplicateFlightNumber(ConflictError):
    code = "duplicate_flight_number"
    message = "Flight number must be unique. This flight number already exists."


class DuplicateSeat(ConflictError):
    code = "duplicate_seat"
    message = "Duplicate seats are not allowed in a flight."


class SeatOccupied(ConflictError):
    code = "seat_occupied"
    message = "Seat is already occupied."


class DuplicateBooking(ConflictError):
    code = "duplicate_booking"
    message = "You have already booked this flight."


class BookingAlreadyCancelled(ConflictError):
    code = "booking_already_cancelled"
    message = "Booking is already cancelled."


class EmailAlreadyRegistered(ConflictError):
    code = "email_already_registered"
    message = "Email already registered."


class AlreadyEnrolled(ConflictError):
    code = "already_enrolled"
    message = "Customer is already enrolled in the loyalty program."


class DuplicateProgram(ConflictError):
    code = "duplicate_program"
    message = "Loyalty program id already exists."


class FlightHasActiveBookings(ConflictError):
    code = "flight_has_active_bookings"
    message = "Flight number cannot change while active bookings reference it."


class InvalidTimeRange(DomainValidationError):
    code = "invalid_time_range"
    message = "Flight departure time must be before arrival time."


class NotBooked(DomainValidationError):
    code = "not_booked"
    message = "You have not booked this flight yet."


class AmountMismatch(DomainValidationError):
    code = "amount_mismatch"
    message = "Payment amount must be equal to the total flight cost."


class InvalidCardNumber(DomainValidationError):
    code = "invalid_card_number"
    message = "Invalid credit card number. Must be exactly 12 digits."


class InvalidCvv(DomainValidationError):
    code = "invalid_cvv"
    message = "Invalid CVV. Must be 3 digits."


class InvalidRewardType(DomainValidationError):
    code = "invalid_reward_type"
    message = "Reward type must be one of freeFlight, upgrade, lounge, baggage."


class InsufficientPoints(DomainValidationError):
    code = "insufficient_points"
    message = "Not enough loyalty points for this redemption."


class InvalidBaggage(DomainValidationError):
    code = "invalid_baggage"
    message = "Invalid baggage format. Provide an array or an object."


class MissingField(DomainValidationError):
    code = "missing_field"
    message = "Missing required fields."


class InvalidCredentials(ReservationError):
    code = "invalid_credentials"
    message = "Invalid email or password."


class PermissionDenied(ReservationError):
    code = "permission_denied"
    message = "Admin is not allowed to perform this action."


class NotEnrolled(DomainValidationError):
    code = "not_enrolled"
    message = "Customer is not enrolled in the loyalty program."


class InvalidPointsAmount(DomainValidationError):
    code = "invalid_points_amount"
    message = "Points to redeem must be a positive whole number."
