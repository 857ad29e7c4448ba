from .repositories import (
    AdminRepository,
    AuditRepository,
    CustomerRepository,
    FlightRepository,
    LoyaltyProgramRepository,
    MemoryState,
    StorageBackend,
    get_storage_backend,
)

__all__ = [
    "AdminRepository",
    "AuditRepository",
    "CustomerRepository",
    "FlightRepository",
    "LoyaltyProgramRepository",
    "MemoryState",
    "StorageBackend",
    "get_storage_backend",
]
