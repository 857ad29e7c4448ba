from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from threading import Lock
from typing import Any

from skyreserve.accounts.service import AccountService
from skyreserve.activity import ActivityRecorder
from skyreserve.audit.lineage import AuditStore
from skyreserve.booking.engine import BookingEngine
from skyreserve.bus import FanoutBus, InMemoryBus, build_transport_bus_from_env
from skyreserve.db.repositories import (
    AdminRepository,
    AuditRepository,
    CustomerRepository,
    FlightRepository,
    LoyaltyProgramRepository,
    MemoryState,
    StorageBackend,
    get_storage_backend,
)
from skyreserve.ids import IdGenerator
from skyreserve.inventory.flights import FlightInventory
from skyreserve.locking import KeyedLocks
from skyreserve.loyalty.ledger import LoyaltyLedger
from skyreserve.loyalty.programs import LoyaltyProgramCatalog
from skyreserve.loyalty.redemption import RedemptionProcessor
from skyreserve.payments.processor import PaymentProcessor

logger = logging.getLogger(__name__)


class ReservationRuntime:
    """Process-wide wiring of stores, locks and engines.

    One instance is built at startup and shared by every request; nothing in
    the engines reaches for module-level state.
    """

    def __init__(
        self,
        seed_dir: Path | None = None,
        state: MemoryState | None = None,
        backend: StorageBackend | None = None,
        ids: IdGenerator | None = None,
        transport_bus: Any | None = None,
    ) -> None:
        self.seed_dir = seed_dir
        self.backend = backend or get_storage_backend()
        self.state = state if state is not None else MemoryState()
        self.ids = ids or IdGenerator()

        self.flight_repo = FlightRepository(self.state, self.backend)
        self.customer_repo = CustomerRepository(self.state, self.backend)
        self.admin_repo = AdminRepository(self.state, self.backend)
        self.program_repo = LoyaltyProgramRepository(self.state, self.backend)
        self.audit = AuditStore(AuditRepository(self.state, self.backend))

        self.events = InMemoryBus()
        self.transport_bus = transport_bus if transport_bus is not None else build_transport_bus_from_env()
        bus = self.events if self.transport_bus is None else FanoutBus(self.events, [self.transport_bus])
        self.activity = ActivityRecorder(audit_store=self.audit, bus=bus)

        self.flight_locks = KeyedLocks()
        self.customer_locks = KeyedLocks()

        self.inventory = FlightInventory(self.flight_repo, self.flight_locks, self.activity, self.customer_repo)
        self.ledger = LoyaltyLedger(self.customer_repo, self.customer_locks, self.ids)
        self.bookings = BookingEngine(self.inventory, self.customer_repo, self.customer_locks, self.ids, self.activity)
        self.payments = PaymentProcessor(self.bookings, self.ledger, self.activity)
        self.redemptions = RedemptionProcessor(self.ledger, activity=self.activity)
        self.accounts = AccountService(self.customer_repo, self.admin_repo, self.ids)
        self.programs = LoyaltyProgramCatalog(self.program_repo, self.accounts)

        self._seeded = False
        self._seed_lock = Lock()

    def ensure_seeded(self) -> None:
        if self._seeded:
            return
        with self._seed_lock:
            if self._seeded:
                return
            if self.seed_dir is not None and self.backend == StorageBackend.MEMORY:
                self.load_seed(self.seed_dir)
            self._seeded = True

    def reset(self) -> None:
        with self._seed_lock:
            self.flight_repo.reset()
            self.customer_repo.reset()
            self.admin_repo.reset()
            self.program_repo.reset()
            self.audit.reset()
            self.events.clear()
            self._seeded = False

    def load_seed(self, seed_dir: Path) -> dict[str, int]:
        """Load ``flights.json``, ``customers.json`` and ``loyaltyPrograms.json``.

        Customer records are stored as written so that older booking shapes
        are normalized the first time they are read.
        """
        counts = {"flights": 0, "customers": 0, "loyalty_programs": 0}
        for row in self._read_json(seed_dir / "flights.json"):
            self.inventory.add_flight(row)
            counts["flights"] += 1
        for row in self._read_json(seed_dir / "customers.json"):
            self.customer_repo.put_raw(row)
            counts["customers"] += 1
        for row in self._read_json(seed_dir / "loyaltyPrograms.json"):
            self.programs.add_program(row)
            counts["loyalty_programs"] += 1
        logger.info("seeded runtime from %s: %s", seed_dir, counts)
        return counts

    def close(self) -> None:
        close = getattr(self.transport_bus, "close", None)
        if callable(close):
            close()

    def event_summary(self) -> dict[str, Any]:
        return {
            "topics": {topic: len(events) for topic, events in sorted(self.events.topics.items())},
            "total_events": sum(len(events) for events in self.events.topics.values()),
        }

    def customer_audit_history(self, customer_id: str) -> list[dict[str, Any]]:
        return [asdict(record) for record in self.audit.get_history(customer_id)]

    def flight_audit_history(self, flight_number: str) -> list[dict[str, Any]]:
        return [asdict(record) for record in self.audit.get_flight_history(flight_number)]

    @staticmethod
    def _read_json(path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        return json.loads(path.read_text(encoding="utf-8"))
