from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from skyreserve.booking.engine import BookingOptions
from skyreserve.errors import (
    AmountMismatch,
    CustomerNotFound,
    FlightNotFound,
    InvalidCardNumber,
    InvalidCvv,
    NotBooked,
)
from skyreserve.models.domain import Booking, Customer, LoyaltyTier, Payment
from skyreserve.payments.processor import CardDetails
from skyreserve.payments.refunds import compute_refund, find_linked_payment, round2

CARD = CardDetails(number="123456789012", cvv="123")


def test_payment_is_linked_to_active_booking(runtime, add_flight, customer_id: str) -> None:
    add_flight()
    booking = runtime.bookings.book_flight(customer_id, "SK100", BookingOptions(seat_number="12A"))

    receipt = runtime.payments.pay(customer_id, "SK100", Decimal("300"), CARD)

    assert receipt.payment.transaction_id.startswith("TXN-")
    assert receipt.payment.booking_id == booking.booking_id
    assert receipt.payment.amount == Decimal("300")
    assert receipt.payment.card_last_four == "9012"
    assert receipt.payment.status == "Completed"
    assert receipt.loyalty is None
    stored = runtime.customer_repo.get(customer_id)
    assert [payment.transaction_id for payment in stored.payments] == [receipt.payment.transaction_id]
    assert stored.loyalty_points == 0


def test_payment_accepts_equal_float_amount(runtime, add_flight, customer_id: str) -> None:
    add_flight(price="199.99")
    runtime.bookings.book_flight(customer_id, "SK100")

    receipt = runtime.payments.pay(customer_id, "SK100", 199.99, CARD)

    assert receipt.payment.amount == Decimal("199.99")


def test_enrolled_customer_earns_points(runtime, add_flight, customer_id: str) -> None:
    add_flight(price="200")
    runtime.ledger.enroll_customer(customer_id)
    runtime.bookings.book_flight(customer_id, "SK100")

    receipt = runtime.payments.pay(customer_id, "SK100", "200", CARD)

    assert receipt.loyalty.points_earned == 200
    assert receipt.loyalty.tier_upgraded is False
    stored = runtime.customer_repo.get(customer_id)
    assert stored.loyalty_points == 200
    assert stored.total_spent == Decimal("200")
    assert stored.loyalty.tier == LoyaltyTier.BASIC


def test_payment_crossing_threshold_upgrades_tier(runtime, add_flight, customer_id: str) -> None:
    add_flight(price="1200")
    runtime.ledger.enroll_customer(customer_id)
    runtime.bookings.book_flight(customer_id, "SK100")

    receipt = runtime.payments.pay(customer_id, "SK100", "1200", CARD)

    assert receipt.loyalty.points_earned == 1200
    assert receipt.loyalty.new_tier == LoyaltyTier.SILVER
    assert runtime.customer_repo.get(customer_id).loyalty.tier == LoyaltyTier.SILVER
    assert [event.event_type.value for event in runtime.events.events("loyalty.activity")] == ["tier_upgraded"]
    assert len(runtime.events.events("payment.completed")) == 1


def test_payment_validation_order(runtime, add_flight, customer_id: str) -> None:
    add_flight()
    add_flight("SK200")
    runtime.bookings.book_flight(customer_id, "SK100")

    with pytest.raises(CustomerNotFound):
        runtime.payments.pay("cust-missing", "SK100", "300", CARD)
    with pytest.raises(FlightNotFound):
        runtime.payments.pay(customer_id, "NOPE", "300", CARD)
    with pytest.raises(NotBooked):
        runtime.payments.pay(customer_id, "SK200", "300", CARD)
    with pytest.raises(AmountMismatch):
        runtime.payments.pay(customer_id, "SK100", "299.99", CardDetails(number="123", cvv="1"))
    with pytest.raises(InvalidCardNumber):
        runtime.payments.pay(customer_id, "SK100", "300", CardDetails(number="12345678901", cvv="123"))
    with pytest.raises(InvalidCardNumber):
        runtime.payments.pay(customer_id, "SK100", "300", CardDetails(number="12345678901a", cvv="123"))
    with pytest.raises(InvalidCvv):
        runtime.payments.pay(customer_id, "SK100", "300", CardDetails(number="123456789012", cvv="12"))

    assert runtime.customer_repo.get(customer_id).payments == []


def test_payment_after_cancellation_is_not_booked(runtime, add_flight, customer_id: str) -> None:
    add_flight()
    booking = runtime.bookings.book_flight(customer_id, "SK100")
    runtime.bookings.cancel_booking(customer_id, booking.booking_id)

    with pytest.raises(NotBooked):
        runtime.payments.pay(customer_id, "SK100", "300", CARD)


def _customer_with_payments(*payments: Payment) -> Customer:
    return Customer(user_id="C1", name="Ada", email="ada@example.com", password="pw", payments=list(payments))


def _booking(booking_id: str = "BKG-1", flight_number: str = "SK100") -> Booking:
    return Booking(booking_id=booking_id, customer_id="C1", flight_number=flight_number)


def test_linked_payment_prefers_booking_id() -> None:
    linked = Payment(transaction_id="TXN-1", booking_id="BKG-1", flight_number="SK100", amount=Decimal("300"))
    legacy = Payment(transaction_id="TXN-2", flight_number="SK100", amount=Decimal("250"))
    customer = _customer_with_payments(linked, legacy)

    assert find_linked_payment(customer, _booking()) is linked
    assert compute_refund(customer, _booking(), Decimal("999")) == Decimal("240.00")


def test_legacy_payment_matched_by_flight() -> None:
    older = Payment(transaction_id="TXN-1", flight_number="SK100", amount=Decimal("100"))
    newer = Payment(transaction_id="TXN-2", flight_number="SK100", amount=Decimal("150"))
    other_flight = Payment(transaction_id="TXN-3", flight_number="SK200", amount=Decimal("500"))
    customer = _customer_with_payments(older, newer, other_flight)

    assert find_linked_payment(customer, _booking()) is newer
    assert compute_refund(customer, _booking(), None) == Decimal("120.00")


def test_payment_for_another_booking_is_not_linked() -> None:
    other = Payment(transaction_id="TXN-1", booking_id="BKG-9", flight_number="SK100", amount=Decimal("300"))
    customer = _customer_with_payments(other)

    assert find_linked_payment(customer, _booking()) is None
    assert compute_refund(customer, _booking(), Decimal("200")) == Decimal("160.00")
    assert compute_refund(customer, _booking(), None) == Decimal("0.00")


def test_refund_rounds_half_up() -> None:
    assert round2(Decimal("0.805")) == Decimal("0.81")
    customer = _customer_with_payments(
        Payment(transaction_id="TXN-1", booking_id="BKG-1", flight_number="SK100", amount=Decimal("1.00625"))
    )
    assert compute_refund(customer, _booking(), None) == Decimal("0.81")


def test_concurrent_payments_lose_no_spend(runtime, add_flight, customer_id: str) -> None:
    flight_numbers = [f"SK{index}" for index in range(1, 9)]
    runtime.ledger.enroll_customer(customer_id)
    for number in flight_numbers:
        add_flight(number, price="200")
        runtime.bookings.book_flight(customer_id, number)

    def pay(flight_number: str) -> int:
        return runtime.payments.pay(customer_id, flight_number, "200", CARD).loyalty.points_earned

    with ThreadPoolExecutor(max_workers=8) as pool:
        earned = list(pool.map(pay, flight_numbers))

    # Five payments at rate 1 reach Silver at 1000, three more at rate 2 reach Gold at 1600.
    stored = runtime.customer_repo.get(customer_id)
    assert sum(earned) == 2200
    assert stored.loyalty_points == 2200
    assert stored.total_spent == Decimal("1600")
    assert stored.loyalty.tier == LoyaltyTier.GOLD
    assert len(stored.payments) == 8
