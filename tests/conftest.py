from __future__ import annotations

from typing import Any, Callable

import pytest

from skyreserve.db import StorageBackend
from skyreserve.models.domain import Flight
from skyreserve.runtime import ReservationRuntime


def flight_row(flight_number: str = "SK100", seats: tuple[str, ...] = ("12A", "12B"), **overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "flight_number": flight_number,
        "departure_time": "2026-12-01T08:00:00Z",
        "arrival_time": "2026-12-01T11:00:00Z",
        "origin": "New York",
        "destination": "Chicago",
        "price": "300",
        "airline": "SkyWays",
        "seats": [{"seat_number": seat} for seat in seats],
    }
    row.update(overrides)
    return row


@pytest.fixture
def runtime(monkeypatch) -> ReservationRuntime:
    monkeypatch.setenv("SKYRESERVE_BUS_BACKEND", "memory")
    return ReservationRuntime(backend=StorageBackend.MEMORY)


@pytest.fixture
def add_flight(runtime: ReservationRuntime) -> Callable[..., Flight]:
    def _add(flight_number: str = "SK100", seats: tuple[str, ...] = ("12A", "12B"), **overrides: Any) -> Flight:
        return runtime.inventory.add_flight(flight_row(flight_number, seats, **overrides))

    return _add


@pytest.fixture
def customer_id(runtime: ReservationRuntime) -> str:
    return runtime.accounts.register_customer("Ada Lovelace", "ada@example.com", "pw").user_id
