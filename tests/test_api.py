from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from skyreserve.api import create_app
from skyreserve.db.repositories import StorageBackend
from skyreserve.runtime import ReservationRuntime

SEED_DIR = Path(__file__).resolve().parents[1] / "data" / "seed"
LEGACY_CUSTOMER = "cust1700000000000"


@pytest.fixture
def client(monkeypatch) -> TestClient:
    monkeypatch.setenv("SKYRESERVE_BUS_BACKEND", "memory")
    return TestClient(create_app(ReservationRuntime(SEED_DIR, backend=StorageBackend.MEMORY)))


def _register(client: TestClient, email: str = "ada@example.com") -> str:
    response = client.post("/register", json={"name": "Ada Lovelace", "email": email, "password": "pw"})
    assert response.status_code == 201
    return response.json()["customer"]["user_id"]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_seeded_flights_are_searchable(client: TestClient) -> None:
    response = client.get("/flights", params={"origin": "new york"})

    assert response.status_code == 200
    flights = response.json()
    assert [flight["flight_number"] for flight in flights] == ["F001"]
    seats = {seat["seat_number"]: seat["occupied"] for seat in flights[0]["seats"]}
    assert seats["12B"] is False


def test_unknown_flight_is_404(client: TestClient) -> None:
    response = client.get("/flights/NOPE")

    assert response.status_code == 404
    assert response.json()["code"] == "flight_not_found"


def test_register_and_login(client: TestClient) -> None:
    _register(client)

    login = client.post("/login", json={"email": "ada@example.com", "password": "pw"})
    assert login.status_code == 200
    assert "password" not in login.json()["customer"]
    denied = client.post("/login", json={"email": "ada@example.com", "password": "bad"})
    assert denied.status_code == 401
    assert denied.json()["code"] == "invalid_credentials"
    duplicate = client.post("/register", json={"name": "Ada", "email": "ada@example.com", "password": "pw"})
    assert duplicate.status_code == 409


def test_book_pay_cancel_flow(client: TestClient) -> None:
    customer_id = _register(client)
    other_id = _register(client, "grace@example.com")

    booked = client.post(f"/customer/{customer_id}/bookFlight", json={"flightNumber": "F001", "seatNumber": "12A"})
    assert booked.status_code == 200
    booking_id = booked.json()["booking"]["booking_id"]

    taken = client.post(f"/customer/{other_id}/bookSeat", json={"flightNumber": "F001", "seatNumber": "12A"})
    assert taken.status_code == 409
    assert taken.json()["code"] == "seat_occupied"

    paid = client.post(
        f"/customer/{customer_id}/payment",
        json={"flightNumber": "F001", "paymentAmount": 200, "creditCardNumber": "123456789012", "cvv": "123"},
    )
    assert paid.status_code == 200
    assert paid.json()["paymentDetails"]["booking_id"] == booking_id

    cancelled = client.post(f"/customer/{customer_id}/bookings/{booking_id}/cancel", json={"reason": "sick"})
    assert cancelled.status_code == 200
    body = cancelled.json()
    assert body["refund"]["amount"] == "160.00"
    assert body["booking"]["status"] == "Cancelled"
    assert body["seatReleased"] is True

    again = client.post(f"/customer/{customer_id}/bookings/{booking_id}/cancel")
    assert again.status_code == 409

    seats = {seat["seat_number"]: seat["occupied"] for seat in client.get("/flights/F001").json()["seats"]}
    assert seats["12A"] is False


def test_payment_validation_errors_are_400(client: TestClient) -> None:
    customer_id = _register(client)
    client.post(f"/customer/{customer_id}/bookFlight", json={"flightNumber": "F002"})

    wrong_amount = client.post(
        f"/customer/{customer_id}/payment",
        json={"flightNumber": "F002", "paymentAmount": 10, "creditCardNumber": "123456789012", "cvv": "123"},
    )
    bad_card = client.post(
        f"/customer/{customer_id}/payment",
        json={"flightNumber": "F002", "paymentAmount": 300, "creditCardNumber": "1234", "cvv": "123"},
    )

    assert (wrong_amount.status_code, wrong_amount.json()["code"]) == (400, "amount_mismatch")
    assert (bad_card.status_code, bad_card.json()["code"]) == (400, "invalid_card_number")


def test_enrolled_payment_reports_loyalty(client: TestClient) -> None:
    customer_id = _register(client)
    assert client.post(f"/customer/{customer_id}/enroll").status_code == 201
    client.post(f"/customer/{customer_id}/bookFlight", json={"flightNumber": "F002", "seatNumber": "14D"})

    paid = client.post(
        f"/customer/{customer_id}/payment",
        json={"flightNumber": "F002", "paymentAmount": "300", "creditCardNumber": "123456789012", "cvv": "123"},
    )

    assert paid.json()["loyalty"] == {"pointsEarned": 300, "tierUpgraded": False, "newTier": None}
    assert client.post(f"/customer/{customer_id}/enroll").status_code == 409


def test_legacy_customer_bookings_are_listed(client: TestClient) -> None:
    response = client.get(f"/customer/{LEGACY_CUSTOMER}/bookings", params={"sortBy": "flight"})

    assert response.status_code == 200
    rows = response.json()
    assert [row["flight_number"] for row in rows] == ["F001", "F002"]
    assert [row["status"] for row in rows] == ["Active", "Active"]
    assert rows[1]["seat_number"] == "14C"
    assert rows[1]["flight"]["destination"] == "Los Angeles"


def test_invalid_sort_is_400(client: TestClient) -> None:
    response = client.get(f"/customer/{LEGACY_CUSTOMER}/bookings", params={"sortBy": "price"})

    assert response.status_code == 400


def test_redeem_points(client: TestClient) -> None:
    redeemed = client.post(f"/customer/{LEGACY_CUSTOMER}/redeem", json={"points": 100, "rewardType": "freeFlight"})
    assert redeemed.status_code == 200
    assert redeemed.json()["redemption"]["reward_value"] == "1.00"

    empty = client.post(f"/customer/{LEGACY_CUSTOMER}/redeem", json={"points": 100, "rewardType": "lounge"})
    assert empty.status_code == 400
    assert empty.json()["code"] == "insufficient_points"


def test_flight_admin_routes(client: TestClient) -> None:
    duplicate = client.post(
        "/flights",
        json={
            "flightNumber": "F001",
            "departureTime": "2026-12-01T08:00:00Z",
            "arrivalTime": "2026-12-01T10:00:00Z",
            "origin": "Boston",
            "destination": "Denver",
            "price": 120,
            "airline": "SkyWays",
        },
    )
    assert duplicate.status_code == 409

    bad_times = client.put("/flights/F001", json={"arrivalTime": "2026-12-01T07:00:00Z"})
    assert bad_times.status_code == 400
    assert bad_times.json()["code"] == "invalid_time_range"

    added = client.post(
        "/flights",
        json={
            "flightNumber": "F003",
            "departureTime": "2026-12-03T08:00:00Z",
            "arrivalTime": "2026-12-03T10:00:00Z",
            "origin": "Boston",
            "destination": "Denver",
            "price": 120,
            "airline": "SkyWays",
        },
    )
    assert added.status_code == 201
    renamed = client.put("/flights/F003", json={"newFlightNumber": "F010", "price": 210})
    assert renamed.status_code == 200
    assert renamed.json()["flight"]["flight_number"] == "F010"

    assert client.delete("/flights/F010").status_code == 200
    assert client.delete("/flights/F010").status_code == 404


def test_admin_manages_programs(client: TestClient) -> None:
    admin = client.post("/admin/register", json={"name": "Root", "email": "root@example.com", "password": "pw"})
    admin_id = admin.json()["admin"]["identity"]["user_id"]
    assert "password" not in admin.json()["admin"]["identity"]

    replaced = client.post(
        f"/admin/{admin_id}/manageLoyaltyPrograms",
        json=[{"programId": "LP100", "programName": "Elite", "pointsPerDollar": 4}],
    )

    assert replaced.status_code == 200
    assert [program["program_id"] for program in client.get("/loyaltyPrograms").json()] == ["LP100"]
    assert client.post("/admin/admin-missing/manageLoyaltyPrograms", json=[]).status_code == 404


def test_invalid_program_record_is_400(client: TestClient) -> None:
    response = client.post("/loyaltyPrograms", json={"programId": "LP999", "programName": "Zero", "pointsPerDollar": 0})

    assert response.status_code == 400
    assert response.json()["code"] == "validation"


def test_activity_endpoints(client: TestClient) -> None:
    customer_id = _register(client)
    client.post(f"/customer/{customer_id}/bookFlight", json={"flightNumber": "F001", "seatNumber": "2A"})

    summary = client.get("/events").json()
    audit = client.get(f"/customer/{customer_id}/audit").json()

    assert summary["topics"]["booking.lifecycle"] == 1
    assert summary["topics"]["flight.inventory"] == 2
    assert [row["action"] for row in audit] == ["booking_confirmed"]


def test_flight_audit_route(client: TestClient) -> None:
    customer_id = _register(client)
    client.post(f"/customer/{customer_id}/bookFlight", json={"flightNumber": "F001", "seatNumber": "2A"})

    rows = client.get("/flights/F001/audit").json()

    assert "booking_confirmed" in [row["action"] for row in rows]


def test_add_flight_with_naive_departure(client: TestClient) -> None:
    response = client.post(
        "/flights",
        json={
            "flightNumber": "F500",
            "departureTime": "2026-12-01T08:00:00",
            "arrivalTime": "2026-12-01T10:00:00Z",
            "origin": "Boston",
            "destination": "Denver",
            "price": 120,
            "airline": "SkyWays",
        },
    )

    assert response.status_code == 201
    assert response.json()["flight"]["departure_time"].startswith("2026-12-01T08:00:00")


def test_rename_with_active_booking_is_409(client: TestClient) -> None:
    customer_id = _register(client)
    client.post(f"/customer/{customer_id}/bookFlight", json={"flightNumber": "F002", "seatNumber": "14D"})

    response = client.put("/flights/F002", json={"newFlightNumber": "F020"})

    assert response.status_code == 409
    assert response.json()["code"] == "flight_has_active_bookings"
