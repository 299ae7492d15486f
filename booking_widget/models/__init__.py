"""Data models for the booking widget."""

from .availability import AvailabilityWindow, DayAvailability, TimeSlot
from .booking import BookingConfirmation, BookingRequest, CustomerForm
from .contractor import (
    BookingWidgetConfig,
    ContractorInfo,
    ServiceType,
    WidgetCustomization,
)

__all__ = [
    "AvailabilityWindow",
    "BookingConfirmation",
    "BookingRequest",
    "BookingWidgetConfig",
    "ContractorInfo",
    "CustomerForm",
    "DayAvailability",
    "ServiceType",
    "TimeSlot",
    "WidgetCustomization",
]
