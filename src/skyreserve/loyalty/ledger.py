from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from skyreserve.db.repositories import CustomerRepository
from skyreserve.errors import AlreadyEnrolled, CustomerNotFound, InsufficientPoints, InvalidPointsAmount, NotEnrolled
from skyreserve.ids import IdGenerator
from skyreserve.locking import KeyedLocks
from skyreserve.loyalty.rewards import parse_reward_type, quote_reward
from skyreserve.models.domain import (
    TIER_ORDER,
    Customer,
    LoyaltyMembership,
    LoyaltyTier,
    Redemption,
    RewardType,
    utc_now,
)

logger = logging.getLogger(__name__)

TIER_THRESHOLDS = {
    LoyaltyTier.BASIC: Decimal("0"),
    LoyaltyTier.SILVER: Decimal("1000"),
    LoyaltyTier.GOLD: Decimal("1500"),
    LoyaltyTier.PLATINUM: Decimal("2000"),
}

TIER_RATES = {
    LoyaltyTier.BASIC: Decimal("1"),
    LoyaltyTier.SILVER: Decimal("2"),
    LoyaltyTier.GOLD: Decimal("2.5"),
    LoyaltyTier.PLATINUM: Decimal("3"),
}


@dataclass
class SpendResult:
    points_earned: int
    tier_upgraded: bool
    previous_tier: LoyaltyTier
    new_tier: LoyaltyTier | None = None


def tier_for_spend(total_spent: Decimal) -> LoyaltyTier:
    reached = LoyaltyTier.BASIC
    for tier in TIER_ORDER:
        if total_spent >= TIER_THRESHOLDS[tier]:
            reached = tier
    return reached


class LoyaltyLedger:
    """Points, spend and tier bookkeeping for a single customer record.

    ``enroll``, ``record_spend`` and ``redeem`` mutate the customer passed
    in and leave persistence to the caller, which holds the customer's lock
    for the whole load-modify-save sequence.
    """

    def __init__(
        self,
        customers: CustomerRepository | None = None,
        customer_locks: KeyedLocks | None = None,
        ids: IdGenerator | None = None,
    ) -> None:
        self.customers = customers or CustomerRepository()
        self.customer_locks = customer_locks or KeyedLocks()
        self.ids = ids or IdGenerator()

    def enroll(self, customer: Customer, program_id: str | None = None) -> LoyaltyMembership:
        if customer.loyalty is not None:
            raise AlreadyEnrolled(customer_id=customer.user_id, tier=customer.loyalty.tier.value)
        customer.loyalty = LoyaltyMembership(
            tier=LoyaltyTier.BASIC,
            points_per_dollar=TIER_RATES[LoyaltyTier.BASIC],
            date_joined=utc_now(),
            program_id=program_id,
        )
        customer.loyalty_points = customer.loyalty_points or 0
        return customer.loyalty

    def enroll_customer(self, customer_id: str, program_id: str | None = None) -> Customer:
        with self.customer_locks.hold(customer_id):
            customer = self.customers.get(customer_id)
            if customer is None:
                raise CustomerNotFound(customer_id=customer_id)
            self.enroll(customer, program_id=program_id)
            self.customers.put(customer)
        logger.info("customer %s enrolled at tier %s", customer_id, LoyaltyTier.BASIC.value)
        return customer

    def record_spend(self, customer: Customer, amount: Decimal) -> SpendResult:
        membership = customer.loyalty
        if membership is None:
            raise NotEnrolled(customer_id=customer.user_id)
        amount = Decimal(amount)
        points_earned = int((amount * membership.points_per_dollar).to_integral_value(rounding=ROUND_FLOOR))
        customer.total_spent += amount
        customer.loyalty_points += points_earned

        previous_tier = membership.tier
        reached = tier_for_spend(customer.total_spent)
        if TIER_ORDER.index(reached) <= TIER_ORDER.index(previous_tier):
            return SpendResult(points_earned=points_earned, tier_upgraded=False, previous_tier=previous_tier)

        membership.tier = reached
        membership.points_per_dollar = TIER_RATES[reached]
        membership.tier_upgraded_at = utc_now()
        logger.info(
            "customer %s upgraded %s -> %s at total spend %s",
            customer.user_id,
            previous_tier.value,
            reached.value,
            customer.total_spent,
        )
        return SpendResult(points_earned=points_earned, tier_upgraded=True, previous_tier=previous_tier, new_tier=reached)

    def redeem(self, customer: Customer, points: int, reward_type: str | RewardType) -> Redemption:
        if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
            raise InvalidPointsAmount(points=points)
        quote = quote_reward(parse_reward_type(reward_type), points)
        if quote.points_cost > customer.loyalty_points:
            raise InsufficientPoints(requested=quote.points_cost, balance=customer.loyalty_points)

        customer.loyalty_points -= quote.points_cost
        redemption = Redemption(
            redemption_id=self.ids.redemption_id(),
            points_redeemed=quote.points_cost,
            reward_type=quote.reward_type,
            reward_value=quote.value,
            reward_unit=quote.unit,
        )
        customer.redemptions.append(redemption)
        return redemption
