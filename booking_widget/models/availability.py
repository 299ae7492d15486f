"""Availability records returned by the availability oracle.

The oracle answers one calendar month at a time with a mapping of
``YYYY-MM-DD`` to the day's slots.  These records are read-only from the
session's point of view; the cache in ``booking_widget.availability`` owns
them.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from .base import WireModel


class TimeSlot(WireModel):
    """A bookable start time on a given date."""

    start: str                             # "2025-03-10T09:00" or "09:00"
    start_display: str = ""                # "9:00 AM"
    available: bool = True
    end: Optional[str] = None
    end_display: Optional[str] = None


class DayAvailability(WireModel):
    """One date's entry in an availability window."""

    available: bool = False
    available_count: int = 0
    day_label: str = ""
    slots: list[TimeSlot] = []
    date: Optional[str] = None
    day_name: Optional[str] = None

    def find_slot(self, start: str) -> TimeSlot | None:
        for slot in self.slots:
            if slot.start == start:
                return slot
        return None

    @property
    def open_slots(self) -> list[TimeSlot]:
        return [s for s in self.slots if s.available]


class AvailabilityWindow(BaseModel):
    """All days the oracle returned for one contractor and month."""

    month: str                             # "YYYY-MM"
    days: dict[str, DayAvailability] = {}

    @classmethod
    def from_payload(cls, month: str, payload: dict[str, Any]) -> AvailabilityWindow:
        """Build a window from an oracle response.

        Accepts both the bare ``{date: day}`` mapping and the wrapped
        ``{"success": true, "slots": {date: day}}`` shape.
        """
        raw = payload.get("slots", payload) if isinstance(payload, dict) else {}
        days: dict[str, DayAvailability] = {}
        for date_str, day in raw.items():
            if not isinstance(day, dict):
                continue
            days[date_str] = DayAvailability.model_validate(day)
        return cls(month=month, days=days)

    def get(self, date_str: str) -> DayAvailability | None:
        return self.days.get(date_str)

    def available_dates(self) -> list[str]:
        """Dates with at least one open slot, in calendar order."""
        return sorted(d for d, day in self.days.items() if day.available)
