from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from skyreserve.db.repositories import AuditRepository


@dataclass(frozen=True)
class AuditRecord:
    id: str
    timestamp: str
    action: str
    component: str
    customer_id: str | None = None
    flight_number: str | None = None
    output_reference: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> AuditRecord:
        # Stored rows may carry backend columns such as created_at.
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in row.items() if key in known})


class AuditStore:
    """Append-only trail of reservation state transitions.

    Records are never updated or removed; ``reset`` exists for test and
    demo runtimes only.
    """

    def __init__(self, repository: AuditRepository | None = None) -> None:
        self.repository = repository or AuditRepository()

    def reset(self) -> None:
        self.repository.reset()

    def log(
        self,
        action: str,
        component: str,
        customer_id: str | None = None,
        flight_number: str | None = None,
        output_reference: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> AuditRecord:
        record = AuditRecord(
            id=str(uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            action=action,
            component=component,
            customer_id=customer_id,
            flight_number=flight_number,
            output_reference=output_reference,
            detail=dict(detail or {}),
        )
        stored = self.repository.insert(
            {item.name: getattr(record, item.name) for item in fields(AuditRecord)}
        )
        return AuditRecord.from_row(stored)

    def get_lineage(self, output_reference: str) -> list[AuditRecord]:
        """Every record that produced or touched ``output_reference``."""
        return [AuditRecord.from_row(row) for row in self.repository.get_by_output_reference(output_reference)]

    def get_history(self, customer_id: str) -> list[AuditRecord]:
        return [AuditRecord.from_row(row) for row in self.repository.get_by_customer(customer_id)]

    def get_flight_history(self, flight_number: str) -> list[AuditRecord]:
        return [AuditRecord.from_row(row) for row in self.repository.get_by_flight(flight_number)]
