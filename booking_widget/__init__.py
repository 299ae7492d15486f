"""Booking widget session engine.

Drives a visitor through SERVICE → DATE → TIME → DETAILS → CONFIRM against
a contractor's availability oracle and booking gateway.
"""

from booking_widget.exceptions import (
    BookingError,
    FetchError,
    InvalidTransition,
    SelectionError,
    SubmissionError,
    ValidationErrors,
)
from booking_widget.session import BookingSession, StepResult
from booking_widget.steps import BookingStep

__all__ = [
    "BookingError",
    "BookingSession",
    "BookingStep",
    "FetchError",
    "InvalidTransition",
    "SelectionError",
    "StepResult",
    "SubmissionError",
    "ValidationErrors",
]
