from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from skyreserve.models.domain import Booking, Customer, Payment

REFUND_RATE = Decimal("0.8")
_CENTS = Decimal("0.01")


def round2(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP)


def find_linked_payment(customer: Customer, booking: Booking) -> Payment | None:
    """Latest payment tied to the booking.

    Payments recorded before bookings carried ids only name the flight; for
    those the latest payment on the same flight is used.
    """
    for payment in reversed(customer.payments):
        if payment.booking_id == booking.booking_id:
            return payment
    for payment in reversed(customer.payments):
        if payment.booking_id is None and payment.flight_number == booking.flight_number:
            return payment
    return None


def compute_refund(customer: Customer, booking: Booking, flight_price: Decimal | None) -> Decimal:
    # Flat rate; time to departure does not change the amount.
    payment = find_linked_payment(customer, booking)
    if payment is not None:
        base = payment.amount
    elif flight_price is not None:
        base = flight_price
    else:
        base = Decimal("0")
    return round2(base * REFUND_RATE)
