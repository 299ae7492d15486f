"""
Errors for the booking flow.
Returned by BookingSession operations (never raised at the visitor) and
raised by backends at the network boundary.
"""

from __future__ import annotations

from typing import Iterator

GENERIC_SUBMISSION_MESSAGE = "Failed to complete booking"
GENERIC_FETCH_MESSAGE = "Failed to load availability"


class BookingError(Exception):
    """Base exception for all booking flow errors."""

    kind = "booking_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class SelectionError(BookingError):
    """Visitor picked a service, date or slot that is not offered or not open."""

    kind = "selection_error"


class InvalidTransition(BookingError):
    """Operation not allowed from the current step."""

    kind = "invalid_transition"


class ValidationErrors(BookingError):
    """One or more customer-form fields are missing or malformed.

    Behaves like a read-only mapping of field name -> message so callers
    can render inline guidance per field.
    """

    kind = "validation_errors"

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = dict(errors)

    def __getitem__(self, field: str) -> str:
        return self.errors[field]

    def __contains__(self, field: object) -> bool:
        return field in self.errors

    def __iter__(self) -> Iterator[str]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "fields": dict(self.errors)}


class FetchError(BookingError):
    """Availability or contractor info could not be loaded."""

    kind = "fetch_error"

    def __init__(self, message: str = GENERIC_FETCH_MESSAGE, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SubmissionError(BookingError):
    """The gateway rejected the booking or could not be reached."""

    kind = "submission_error"

    def __init__(self, message: str = GENERIC_SUBMISSION_MESSAGE, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
