from __future__ import annotations

import random
import time
from typing import Callable


class IdGenerator:
    """Builds ``<PREFIX>-<epoch-millis>-<4-digit-random>`` identifiers.

    Uniqueness is probabilistic: two ids minted in the same millisecond
    collide with a 1 in 9000 chance.
    """

    def __init__(self, clock: Callable[[], float] | None = None, rng: random.Random | None = None) -> None:
        self._clock = clock or time.time
        self._rng = rng or random.Random()

    def next_id(self, prefix: str) -> str:
        millis = int(self._clock() * 1000)
        return f"{prefix}-{millis}-{self._rng.randint(1000, 9999)}"

    def booking_id(self) -> str:
        return self.next_id("BKG")

    def ticket_id(self) -> str:
        return self.next_id("TKT")

    def transaction_id(self) -> str:
        return self.next_id("TXN")

    def refund_id(self) -> str:
        return self.next_id("RFD")

    def redemption_id(self) -> str:
        return self.next_id("RDM")

    def customer_id(self) -> str:
        return f"cust{int(self._clock() * 1000)}{self._rng.randint(100, 999)}"

    def admin_id(self) -> str:
        return f"admin{int(self._clock() * 1000)}{self._rng.randint(100, 999)}"
