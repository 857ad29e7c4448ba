from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from skyreserve.activity import ActivityRecorder
from skyreserve.booking.engine import BookingEngine
from skyreserve.errors import AmountMismatch, CustomerNotFound, InvalidCardNumber, InvalidCvv, NotBooked
from skyreserve.loyalty.ledger import LoyaltyLedger, SpendResult
from skyreserve.models.domain import Payment
from skyreserve.models.events import ReservationEventType

logger = logging.getLogger(__name__)

_CARD_NUMBER = re.compile(r"[0-9]{12}")
_CVV = re.compile(r"[0-9]{3}")


@dataclass
class CardDetails:
    number: str
    cvv: str


@dataclass
class PaymentReceipt:
    payment: Payment
    loyalty: SpendResult | None = None


def _to_decimal(amount: Decimal | float | int | str) -> Decimal:
    if isinstance(amount, float):
        amount = repr(amount)
    return Decimal(amount)


class PaymentProcessor:
    def __init__(
        self,
        bookings: BookingEngine,
        ledger: LoyaltyLedger,
        activity: ActivityRecorder | None = None,
    ) -> None:
        self.bookings = bookings
        self.ledger = ledger
        self.activity = activity or ActivityRecorder()

    def pay(
        self,
        customer_id: str,
        flight_number: str,
        amount: Decimal | float | int | str,
        card: CardDetails,
    ) -> PaymentReceipt:
        """Take payment for the customer's active booking on a flight.

        Card checks are format-only: 12 digits and a 3 digit CVV. Enrolled
        customers earn points at their current rate before any tier change
        from this payment takes effect.
        """
        customers = self.bookings.customers
        with self.bookings.customer_locks.hold(customer_id):
            customer = customers.get(customer_id)
            if customer is None:
                raise CustomerNotFound(customer_id=customer_id)
            flight = self.bookings.inventory.get_flight(flight_number)
            booking = customer.active_booking_for(flight_number)
            if booking is None:
                raise NotBooked(customer_id=customer_id, flight_number=flight_number)

            try:
                paid = _to_decimal(amount)
            except (InvalidOperation, TypeError, ValueError) as exc:
                raise AmountMismatch(expected=str(flight.price), received=str(amount)) from exc
            if paid != flight.price:
                raise AmountMismatch(expected=str(flight.price), received=str(paid))

            number = str(card.number) if card.number is not None else ""
            if not _CARD_NUMBER.fullmatch(number):
                raise InvalidCardNumber()
            cvv = str(card.cvv) if card.cvv is not None else ""
            if not _CVV.fullmatch(cvv):
                raise InvalidCvv()

            payment = Payment(
                transaction_id=self.bookings.ids.transaction_id(),
                booking_id=booking.booking_id,
                flight_number=flight_number,
                amount=paid,
                card_last_four=number[-4:],
            )
            customer.payments.append(payment)
            loyalty = self.ledger.record_spend(customer, paid) if customer.loyalty is not None else None
            customers.put(customer)

        logger.info("payment %s of %s recorded for booking %s", payment.transaction_id, paid, booking.booking_id)
        self.activity.record(
            ReservationEventType.PAYMENT_COMPLETED,
            component="payment_processor",
            customer_id=customer_id,
            flight_number=flight_number,
            booking_id=booking.booking_id,
            output_reference=payment.transaction_id,
            detail={
                "amount": str(paid),
                "points_earned": loyalty.points_earned if loyalty else 0,
            },
        )
        if loyalty and loyalty.tier_upgraded:
            self.activity.record(
                ReservationEventType.TIER_UPGRADED,
                component="loyalty_ledger",
                customer_id=customer_id,
                detail={
                    "previous_tier": loyalty.previous_tier.value,
                    "new_tier": loyalty.new_tier.value,
                    "total_spent": str(customer.total_spent),
                },
            )
        return PaymentReceipt(payment=payment, loyalty=loyalty)
