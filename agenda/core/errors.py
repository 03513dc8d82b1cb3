"""Booking error taxonomy.

Services raise these; ``agenda.main`` turns them into
``{"errorKind", "message", "details"}`` JSON responses.
"""
from typing import Any


class BookingError(Exception):
    error_kind = "BookingError"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"errorKind": self.error_kind, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(BookingError):
    """Malformed or missing request field; raised before any store write."""

    error_kind = "ValidationError"
    status_code = 400


class NotFoundError(BookingError):
    error_kind = "NotFoundError"
    status_code = 404


class CapacityExceededError(BookingError):
    error_kind = "CapacityExceededError"
    status_code = 409

    def __init__(self, capacity: int, booked_count: int, message: str | None = None) -> None:
        super().__init__(
            message
            or f"Slot is full: {booked_count} active appointment(s) for capacity {capacity}. "
            "Please choose another time.",
            details={"capacity": capacity, "bookedCount": booked_count},
        )
        self.capacity = capacity
        self.booked_count = booked_count


class PersistenceError(BookingError):
    error_kind = "PersistenceError"
    status_code = 500


class ReconciliationWarning(BookingError):
    """Counter reconciliation failed. Logged only, never raised to callers."""

    error_kind = "ReconciliationWarning"


# Store-level errors (raised by repositories, interpreted by services)


class StoreError(Exception):
    pass


class SchemaDriftError(StoreError):
    """A write referenced an optional column the live schema does not have."""
