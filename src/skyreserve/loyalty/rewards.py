from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from skyreserve.errors import InsufficientPoints, InvalidRewardType
from skyreserve.models.domain import RewardType

UPGRADE_COST = 5000
LOUNGE_POINTS_PER_DAY = 500
BAGGAGE_POINTS_PER_KG = 200
FREE_FLIGHT_POINTS_PER_DOLLAR = 100


@dataclass(frozen=True)
class RewardQuote:
    reward_type: RewardType
    points_cost: int
    value: Decimal
    unit: str


def parse_reward_type(raw: str | RewardType) -> RewardType:
    if isinstance(raw, RewardType):
        return raw
    try:
        return RewardType(raw)
    except ValueError as exc:
        raise InvalidRewardType(reward_type=raw) from exc


def quote_reward(reward_type: RewardType, points: int) -> RewardQuote:
    """Price a redemption of ``points`` for ``reward_type``.

    freeFlight converts every point at 100 points per dollar. Upgrades cost a
    flat 5000 points whatever was offered. Lounge days and baggage kilograms
    round down, and an offer too small to buy a single unit is rejected.
    """
    if reward_type == RewardType.FREE_FLIGHT:
        value = (Decimal(points) / FREE_FLIGHT_POINTS_PER_DOLLAR).quantize(Decimal("0.01"))
        return RewardQuote(reward_type, points, value, "USD")
    if reward_type == RewardType.UPGRADE:
        if points < UPGRADE_COST:
            raise InsufficientPoints(required=UPGRADE_COST, offered=points, reward_type=reward_type.value)
        return RewardQuote(reward_type, UPGRADE_COST, Decimal(1), "upgrade")
    if reward_type == RewardType.LOUNGE:
        days = points // LOUNGE_POINTS_PER_DAY
        if days == 0:
            raise InsufficientPoints(required=LOUNGE_POINTS_PER_DAY, offered=points, reward_type=reward_type.value)
        return RewardQuote(reward_type, points, Decimal(days), "days")
    if reward_type == RewardType.BAGGAGE:
        kilograms = points // BAGGAGE_POINTS_PER_KG
        if kilograms == 0:
            raise InsufficientPoints(required=BAGGAGE_POINTS_PER_KG, offered=points, reward_type=reward_type.value)
        return RewardQuote(reward_type, points, Decimal(kilograms), "kg")
    raise InvalidRewardType(reward_type=str(reward_type))
