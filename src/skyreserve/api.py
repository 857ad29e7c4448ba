from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from skyreserve.booking.engine import BookingOptions
from skyreserve.errors import (
    ConflictError,
    InvalidCredentials,
    NotFoundError,
    PermissionDenied,
    ReservationError,
)
from skyreserve.models.domain import AdminPermission, Customer
from skyreserve.payments.processor import CardDetails
from skyreserve.runtime import ReservationRuntime


def _cors_origins() -> list[str]:
    raw = os.getenv("SKYRESERVE_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if "*" in parsed:
        return ["*"]
    return parsed


def _seed_dir() -> Path:
    return Path(__file__).resolve().parents[2] / "data" / "seed"


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_Body):
    name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(_Body):
    email: str | None = None
    password: str | None = None


class FlightRequest(_Body):
    flight_number: str
    departure_time: str
    arrival_time: str
    origin: str
    destination: str
    price: Decimal
    airline: str
    seats: list[dict[str, Any]] = Field(default_factory=list, validation_alias=AliasChoices("seats", "availableSeats"))


class FlightPatchRequest(_Body):
    new_flight_number: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None
    origin: str | None = None
    destination: str | None = None
    price: Decimal | None = None
    airline: str | None = None
    seats: list[dict[str, Any]] | None = Field(default=None, validation_alias=AliasChoices("seats", "availableSeats"))


class BookFlightRequest(_Body):
    flight_number: str
    seat_number: str | None = None
    seat_class: str | None = None
    meal_type: str | None = None
    special_request_type: str | None = None
    special_request_note: str | None = None
    boarding_pass_url: str | None = None
    baggage: Any = None


class BookSeatRequest(_Body):
    flight_number: str
    seat_number: str


class BaggageRequest(_Body):
    flight_number: str
    baggage: Any = None


class CancelRequest(_Body):
    reason: str | None = None


class PaymentRequest(_Body):
    flight_number: str
    payment_amount: Decimal
    credit_card_number: str | None = None
    cvv: str | None = None


class EnrollRequest(_Body):
    program_id: str | None = None


class RedeemRequest(_Body):
    points: int
    reward_type: str


def _public_customer(customer: Customer) -> dict[str, Any]:
    return customer.model_dump(mode="json", exclude={"password"})


def _status_for(exc: ReservationError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, InvalidCredentials):
        return 401
    if isinstance(exc, PermissionDenied):
        return 403
    return 400


def create_app(runtime: ReservationRuntime) -> FastAPI:
    app = FastAPI(title="SkyReserve API", version="0.1.0")
    runtime.ensure_seeded()
    app.state.runtime = runtime
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ReservationError)
    async def reservation_error_handler(_request: Request, exc: ReservationError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content=jsonable_encoder(exc.to_payload()))

    @app.exception_handler(ValidationError)
    async def record_validation_error_handler(_request: Request, exc: ValidationError) -> JSONResponse:
        # Raised when a stored or submitted record fails the domain models.
        errors = exc.errors(include_url=False, include_context=False)
        return JSONResponse(
            status_code=400,
            content={"code": "validation", "message": "Invalid record.", "detail": {"errors": jsonable_encoder(errors)}},
        )

    @app.get("/")
    def root() -> dict[str, str]:
        return {"service": "skyreserve-api", "status": "ok"}

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/register", status_code=201)
    def register(payload: RegisterRequest) -> dict[str, Any]:
        customer = runtime.accounts.register_customer(payload.name, payload.email, payload.password)
        return {"message": "Customer registered successfully.", "customer": _public_customer(customer)}

    @app.post("/login")
    def login(payload: LoginRequest) -> dict[str, Any]:
        customer = runtime.accounts.login_customer(payload.email, payload.password)
        return {"message": "Customer login successful.", "customer": _public_customer(customer)}

    @app.post("/admin/register", status_code=201)
    def register_admin(payload: RegisterRequest) -> dict[str, Any]:
        admin = runtime.accounts.register_admin(payload.name, payload.email, payload.password)
        return {
            "message": "Admin registered successfully.",
            "admin": admin.model_dump(mode="json", exclude={"identity": {"password"}}),
        }

    @app.post("/admin/login")
    def login_admin(payload: LoginRequest) -> dict[str, Any]:
        admin = runtime.accounts.login_admin(payload.email, payload.password)
        return {
            "message": "Admin login successful.",
            "admin": admin.model_dump(mode="json", exclude={"identity": {"password"}}),
        }

    @app.post("/admin/{admin_id}/manageFlights", status_code=201)
    def manage_flights(admin_id: str, payload: list[FlightRequest]) -> dict[str, Any]:
        runtime.accounts.authorize_admin(admin_id, AdminPermission.MANAGE_FLIGHTS)
        added = [runtime.inventory.add_flight(item.model_dump()) for item in payload]
        return {"message": "Flights added.", "flights": [flight.model_dump(mode="json") for flight in added]}

    @app.post("/admin/{admin_id}/manageLoyaltyPrograms")
    def manage_loyalty_programs(admin_id: str, payload: list[dict[str, Any]]) -> dict[str, Any]:
        programs = runtime.programs.replace_programs(admin_id, payload)
        return {
            "message": "Loyalty programs updated.",
            "loyaltyPrograms": [program.model_dump(mode="json") for program in programs],
        }

    @app.get("/flights")
    def list_flights(origin: str | None = None, destination: str | None = None) -> list[dict[str, Any]]:
        flights = runtime.inventory.find_flights(origin=origin, destination=destination)
        return [flight.model_dump(mode="json") for flight in flights]

    @app.get("/flights/{flight_number}")
    def get_flight(flight_number: str) -> dict[str, Any]:
        return runtime.inventory.get_flight(flight_number).model_dump(mode="json")

    @app.post("/flights", status_code=201)
    def add_flight(payload: FlightRequest) -> dict[str, Any]:
        flight = runtime.inventory.add_flight(payload.model_dump())
        return {"message": "Flight added successfully.", "flight": flight.model_dump(mode="json")}

    @app.put("/flights/{flight_number}")
    def update_flight(flight_number: str, payload: FlightPatchRequest) -> dict[str, Any]:
        flight = runtime.inventory.update_flight(flight_number, payload.model_dump(exclude_none=True))
        return {"message": "Flight updated successfully.", "flight": flight.model_dump(mode="json")}

    @app.delete("/flights/{flight_number}")
    def delete_flight(flight_number: str) -> dict[str, Any]:
        flight = runtime.inventory.delete_flight(flight_number)
        return {"message": "Flight deleted successfully.", "deletedFlight": flight.model_dump(mode="json")}

    @app.get("/loyaltyPrograms")
    def list_loyalty_programs() -> list[dict[str, Any]]:
        return [program.model_dump(mode="json") for program in runtime.programs.list_programs()]

    @app.post("/loyaltyPrograms", status_code=201)
    def add_loyalty_program(payload: dict[str, Any]) -> dict[str, Any]:
        program = runtime.programs.add_program(payload)
        return {"message": "Loyalty program added.", "program": program.model_dump(mode="json")}

    @app.post("/customer/{customer_id}/enroll", status_code=201)
    def enroll(customer_id: str, payload: EnrollRequest | None = None) -> dict[str, Any]:
        customer = runtime.ledger.enroll_customer(customer_id, program_id=payload.program_id if payload else None)
        return {"message": "Enrolled in loyalty program.", "loyalty": customer.loyalty.model_dump(mode="json")}

    @app.post("/customer/{customer_id}/bookFlight")
    def book_flight(customer_id: str, payload: BookFlightRequest) -> dict[str, Any]:
        options = BookingOptions(
            seat_number=payload.seat_number,
            seat_class=payload.seat_class,
            meal_type=payload.meal_type,
            special_request_type=payload.special_request_type,
            special_request_note=payload.special_request_note,
            boarding_pass_url=payload.boarding_pass_url,
            baggage=payload.baggage,
        )
        booking = runtime.bookings.book_flight(customer_id, payload.flight_number, options)
        return {"message": "Flight booked successfully.", "booking": booking.model_dump(mode="json")}

    @app.post("/customer/{customer_id}/bookSeat")
    def book_seat(customer_id: str, payload: BookSeatRequest) -> dict[str, Any]:
        booking = runtime.bookings.book_seat_only(customer_id, payload.flight_number, payload.seat_number)
        return {"message": "Seat booked successfully.", "booking": booking.model_dump(mode="json")}

    @app.post("/customer/{customer_id}/addBaggage")
    def add_baggage(customer_id: str, payload: BaggageRequest) -> dict[str, Any]:
        booking = runtime.bookings.add_baggage(customer_id, payload.flight_number, payload.baggage)
        return {"message": "Baggage added successfully.", "booking": booking.model_dump(mode="json")}

    @app.post("/customer/{customer_id}/bookings/{booking_id}/cancel")
    def cancel_booking(customer_id: str, booking_id: str, payload: CancelRequest | None = None) -> dict[str, Any]:
        result = runtime.bookings.cancel_booking(customer_id, booking_id, reason=payload.reason if payload else None)
        return {
            "message": "Booking cancelled.",
            "booking": result.booking.model_dump(mode="json"),
            "refund": result.refund.model_dump(mode="json"),
            "seatReleased": result.seat_released,
        }

    @app.get("/customer/{customer_id}/bookings")
    def list_bookings(
        customer_id: str,
        status: str | None = None,
        sort_by: str | None = Query(default=None, alias="sortBy"),
    ) -> list[dict[str, Any]]:
        return runtime.bookings.list_bookings(customer_id, status=status, sort_by=sort_by)

    @app.post("/customer/{customer_id}/payment")
    def pay(customer_id: str, payload: PaymentRequest) -> dict[str, Any]:
        receipt = runtime.payments.pay(
            customer_id,
            payload.flight_number,
            payload.payment_amount,
            CardDetails(number=payload.credit_card_number, cvv=payload.cvv),
        )
        response: dict[str, Any] = {
            "message": "Payment successful.",
            "paymentDetails": receipt.payment.model_dump(mode="json"),
        }
        if receipt.loyalty is not None:
            response["loyalty"] = {
                "pointsEarned": receipt.loyalty.points_earned,
                "tierUpgraded": receipt.loyalty.tier_upgraded,
                "newTier": receipt.loyalty.new_tier.value if receipt.loyalty.new_tier else None,
            }
        return response

    @app.post("/customer/{customer_id}/redeem")
    def redeem(customer_id: str, payload: RedeemRequest) -> dict[str, Any]:
        redemption = runtime.redemptions.redeem(customer_id, payload.points, payload.reward_type)
        return {"message": "Points redeemed.", "redemption": redemption.model_dump(mode="json")}

    @app.get("/customer/{customer_id}/audit")
    def customer_audit(customer_id: str) -> list[dict[str, Any]]:
        return runtime.customer_audit_history(customer_id)

    @app.get("/flights/{flight_number}/audit")
    def flight_audit(flight_number: str) -> list[dict[str, Any]]:
        return runtime.flight_audit_history(flight_number)

    @app.get("/events")
    def events() -> dict[str, Any]:
        return runtime.event_summary()

    return app


app = create_app(ReservationRuntime(_seed_dir()))
