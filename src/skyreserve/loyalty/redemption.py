from __future__ import annotations

import logging

from skyreserve.activity import ActivityRecorder
from skyreserve.db.repositories import CustomerRepository
from skyreserve.errors import CustomerNotFound
from skyreserve.locking import KeyedLocks
from skyreserve.loyalty.ledger import LoyaltyLedger
from skyreserve.models.domain import Redemption, RewardType
from skyreserve.models.events import ReservationEventType

logger = logging.getLogger(__name__)


class RedemptionProcessor:
    def __init__(
        self,
        ledger: LoyaltyLedger,
        customers: CustomerRepository | None = None,
        customer_locks: KeyedLocks | None = None,
        activity: ActivityRecorder | None = None,
    ) -> None:
        self.ledger = ledger
        self.customers = customers or ledger.customers
        self.customer_locks = customer_locks or ledger.customer_locks
        self.activity = activity or ActivityRecorder()

    def redeem(self, customer_id: str, points: int, reward_type: str | RewardType) -> Redemption:
        with self.customer_locks.hold(customer_id):
            customer = self.customers.get(customer_id)
            if customer is None:
                raise CustomerNotFound(customer_id=customer_id)
            redemption = self.ledger.redeem(customer, points, reward_type)
            self.customers.put(customer)
        logger.info(
            "customer %s redeemed %d point(s) for %s",
            customer_id,
            redemption.points_redeemed,
            redemption.reward_type.value,
        )
        self.activity.record(
            ReservationEventType.POINTS_REDEEMED,
            component="redemption_processor",
            customer_id=customer_id,
            output_reference=redemption.redemption_id,
            detail={
                "points_redeemed": redemption.points_redeemed,
                "reward_type": redemption.reward_type.value,
                "reward_value": str(redemption.reward_value),
                "reward_unit": redemption.reward_unit,
                "balance": customer.loyalty_points,
            },
        )
        return redemption
