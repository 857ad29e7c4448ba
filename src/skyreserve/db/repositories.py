from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

from skyreserve.db.supabase_client import get_client
from skyreserve.models.domain import Admin, Customer, Flight, LoyaltyProgram


class StorageBackend(str, Enum):
    MEMORY = "memory"
    SUPABASE = "supabase"


def get_storage_backend() -> StorageBackend:
    raw = os.getenv("SKYRESERVE_STORAGE_BACKEND", StorageBackend.MEMORY.value).strip().lower()
    if raw == StorageBackend.SUPABASE.value:
        return StorageBackend.SUPABASE
    return StorageBackend.MEMORY


@dataclass
class MemoryState:
    flights: dict[str, dict[str, Any]] = field(default_factory=dict)
    customers: dict[str, dict[str, Any]] = field(default_factory=dict)
    admins: dict[str, dict[str, Any]] = field(default_factory=dict)
    loyalty_programs: dict[str, dict[str, Any]] = field(default_factory=dict)
    audit_log: list[dict[str, Any]] = field(default_factory=list)

    def reset(self) -> None:
        self.flights.clear()
        self.customers.clear()
        self.admins.clear()
        self.loyalty_programs.clear()
        self.audit_log.clear()


class _BaseRepository:
    def __init__(self, state: MemoryState | None = None, backend: StorageBackend | None = None) -> None:
        self.backend = backend or get_storage_backend()
        self.state = state if state is not None else MemoryState()
        self.client = get_client() if self.backend == StorageBackend.SUPABASE else None


class FlightRepository(_BaseRepository):
    table = "flights"

    def reset(self) -> None:
        if self.backend == StorageBackend.MEMORY:
            self.state.flights.clear()
            return
        self.client.table(self.table).delete().neq("flight_number", "").execute()

    def get(self, flight_number: str) -> Flight | None:
        if self.backend == StorageBackend.MEMORY:
            row = self.state.flights.get(flight_number)
            return Flight.model_validate(row) if row else None
        response = self.client.table(self.table).select("*").eq("flight_number", flight_number).limit(1).execute()
        rows = response.data or []
        return Flight.model_validate(rows[0]) if rows else None

    def list(self) -> list[Flight]:
        if self.backend == StorageBackend.MEMORY:
            return [Flight.model_validate(row) for row in self.state.flights.values()]
        response = self.client.table(self.table).select("*").execute()
        return [Flight.model_validate(row) for row in response.data or []]

    def put(self, flight: Flight) -> Flight:
        row = flight.model_dump(mode="json")
        if self.backend == StorageBackend.MEMORY:
            self.state.flights[flight.flight_number] = row
            return flight
        self.client.table(self.table).upsert(row, on_conflict="flight_number").execute()
        return flight

    def delete(self, flight_number: str) -> None:
        if self.backend == StorageBackend.MEMORY:
            self.state.flights.pop(flight_number, None)
            return
        self.client.table(self.table).delete().eq("flight_number", flight_number).execute()

    def rename(self, old_number: str, flight: Flight) -> Flight:
        if self.backend == StorageBackend.MEMORY:
            # Rebuild the mapping so the renamed flight keeps its storage position.
            self.state.flights = {
                (flight.flight_number if key == old_number else key): (
                    flight.model_dump(mode="json") if key == old_number else row
                )
                for key, row in self.state.flights.items()
            }
            return flight
        self.put(flight)
        self.delete(old_number)
        return flight


class CustomerRepository(_BaseRepository):
    table = "customers"

    def reset(self) -> None:
        if self.backend == StorageBackend.MEMORY:
            self.state.customers.clear()
            return
        self.client.table(self.table).delete().neq("user_id", "").execute()

    def get(self, customer_id: str) -> Customer | None:
        if self.backend == StorageBackend.MEMORY:
            row = self.state.customers.get(customer_id)
            return Customer.model_validate(copy.deepcopy(row)) if row else None
        response = self.client.table(self.table).select("*").eq("user_id", customer_id).limit(1).execute()
        rows = response.data or []
        return Customer.model_validate(rows[0]) if rows else None

    def list(self) -> list[Customer]:
        if self.backend == StorageBackend.MEMORY:
            return [Customer.model_validate(copy.deepcopy(row)) for row in self.state.customers.values()]
        response = self.client.table(self.table).select("*").execute()
        return [Customer.model_validate(row) for row in response.data or []]

    def find_by_email(self, email: str) -> Customer | None:
        if self.backend == StorageBackend.MEMORY:
            for customer in self.list():
                if customer.email == email:
                    return customer
            return None
        response = self.client.table(self.table).select("*").eq("email", email).limit(1).execute()
        rows = response.data or []
        return Customer.model_validate(rows[0]) if rows else None

    def put(self, customer: Customer) -> Customer:
        row = customer.model_dump(mode="json")
        if self.backend == StorageBackend.MEMORY:
            self.state.customers[customer.user_id] = row
            return customer
        self.client.table(self.table).upsert(row, on_conflict="user_id").execute()
        return customer

    def put_raw(self, row: dict[str, Any]) -> None:
        """Store a record exactly as written by an older client."""
        key = row.get("user_id") or row["userId"]
        if self.backend == StorageBackend.MEMORY:
            self.state.customers[key] = row
            return
        self.client.table(self.table).upsert(row, on_conflict="user_id").execute()


class AdminRepository(_BaseRepository):
    table = "admins"

    def reset(self) -> None:
        if self.backend == StorageBackend.MEMORY:
            self.state.admins.clear()
            return
        self.client.table(self.table).delete().neq("user_id", "").execute()

    def get(self, admin_id: str) -> Admin | None:
        if self.backend == StorageBackend.MEMORY:
            row = self.state.admins.get(admin_id)
            return Admin.model_validate(row) if row else None
        response = self.client.table(self.table).select("*").eq("user_id", admin_id).limit(1).execute()
        rows = response.data or []
        return self._from_row(rows[0]) if rows else None

    def list(self) -> list[Admin]:
        if self.backend == StorageBackend.MEMORY:
            return [Admin.model_validate(row) for row in self.state.admins.values()]
        response = self.client.table(self.table).select("*").execute()
        return [self._from_row(row) for row in response.data or []]

    def put(self, admin: Admin) -> Admin:
        if self.backend == StorageBackend.MEMORY:
            self.state.admins[admin.user_id] = admin.model_dump(mode="json")
            return admin
        row = {**admin.identity.model_dump(mode="json"), "permissions": [item.value for item in admin.permissions]}
        self.client.table(self.table).upsert(row, on_conflict="user_id").execute()
        return admin

    @staticmethod
    def _from_row(row: dict[str, Any]) -> Admin:
        permissions = row.get("permissions") or []
        identity = {key: row[key] for key in ("user_id", "name", "email", "password")}
        return Admin.model_validate({"identity": identity, "permissions": permissions})


class LoyaltyProgramRepository(_BaseRepository):
    table = "loyalty_programs"

    def reset(self) -> None:
        if self.backend == StorageBackend.MEMORY:
            self.state.loyalty_programs.clear()
            return
        self.client.table(self.table).delete().neq("program_id", "").execute()

    def get(self, program_id: str) -> LoyaltyProgram | None:
        if self.backend == StorageBackend.MEMORY:
            row = self.state.loyalty_programs.get(program_id)
            return LoyaltyProgram.model_validate(row) if row else None
        response = self.client.table(self.table).select("*").eq("program_id", program_id).limit(1).execute()
        rows = response.data or []
        return LoyaltyProgram.model_validate(rows[0]) if rows else None

    def list(self) -> list[LoyaltyProgram]:
        if self.backend == StorageBackend.MEMORY:
            return [LoyaltyProgram.model_validate(row) for row in self.state.loyalty_programs.values()]
        response = self.client.table(self.table).select("*").execute()
        return [LoyaltyProgram.model_validate(row) for row in response.data or []]

    def put(self, program: LoyaltyProgram) -> LoyaltyProgram:
        row = program.model_dump(mode="json")
        if self.backend == StorageBackend.MEMORY:
            self.state.loyalty_programs[program.program_id] = row
            return program
        self.client.table(self.table).upsert(row, on_conflict="program_id").execute()
        return program

    def replace_all(self, programs: list[LoyaltyProgram]) -> list[LoyaltyProgram]:
        if self.backend == StorageBackend.MEMORY:
            self.state.loyalty_programs = {program.program_id: program.model_dump(mode="json") for program in programs}
            return programs
        self.reset()
        if programs:
            self.client.table(self.table).insert([program.model_dump(mode="json") for program in programs]).execute()
        return programs


class AuditRepository(_BaseRepository):
    table = "audit_log"

    def reset(self) -> None:
        if self.backend == StorageBackend.MEMORY:
            self.state.audit_log.clear()
            return
        self.client.table(self.table).delete().neq("action", "").execute()

    def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        row = {**row, "id": row.get("id") or str(uuid4())}
        if self.backend == StorageBackend.MEMORY:
            self.state.audit_log.append(copy.deepcopy(row))
            return row
        response = self.client.table(self.table).insert(row).execute()
        return (response.data or [row])[0]

    def get_by_customer(self, customer_id: str) -> list[dict[str, Any]]:
        return self._where("customer_id", customer_id)

    def get_by_flight(self, flight_number: str) -> list[dict[str, Any]]:
        return self._where("flight_number", flight_number)

    def get_by_output_reference(self, output_reference: str) -> list[dict[str, Any]]:
        return self._where("output_reference", output_reference)

    def _where(self, column: str, value: str) -> list[dict[str, Any]]:
        if self.backend == StorageBackend.MEMORY:
            return [copy.deepcopy(row) for row in self.state.audit_log if row.get(column) == value]
        response = self.client.table(self.table).select("*").eq(column, value).order("timestamp").execute()
        return response.data or []
