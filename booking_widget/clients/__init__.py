"""Booking backend abstractions and implementations."""

from .base import BookingBackend
from .http import HttpBookingBackend, close_default_backend, get_default_backend
from .local import ContractorRecord, InMemoryBookingBackend, ScheduledJob, WorkingDay

__all__ = [
    "BookingBackend",
    "ContractorRecord",
    "HttpBookingBackend",
    "InMemoryBookingBackend",
    "ScheduledJob",
    "WorkingDay",
    "close_default_backend",
    "get_default_backend",
]
