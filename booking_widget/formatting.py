"""Display helpers for dates, times and booking confirmations."""

from __future__ import annotations

import calendar
import re
from datetime import date

from booking_widget.models.booking import BookingConfirmation

_MONTH_KEY = re.compile(r"(\d{4})-(\d{2})")


def parse_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def slot_clock(start: str) -> str:
    """Return the ``HH:MM`` part of a slot start.

    Slot starts arrive either as ``"09:00"`` or ``"2025-03-10T09:00"``.
    """
    if "T" in start:
        start = start.split("T", 1)[1]
    return start[:5]


def format_time_display(time_str: str) -> str:
    """``"13:30"`` -> ``"1:30 PM"``."""
    hours, minutes = (int(part) for part in slot_clock(time_str).split(":"))
    ampm = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"{display_hours}:{minutes:02d} {ampm}"


def format_day_label(value: str | date) -> str:
    """``2025-03-10`` -> ``"Mon, Mar 10"``."""
    d = parse_date(value)
    return f"{d.strftime('%a, %b')} {d.day}"


def format_date_long(value: str | date) -> str:
    """``2025-03-10`` -> ``"Monday, March 10, 2025"``."""
    d = parse_date(value)
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


def month_key(value: str | date) -> str:
    """``2025-03-10`` -> ``"2025-03"``."""
    d = parse_date(value)
    return f"{d.year:04d}-{d.month:02d}"


def parse_month(key: str) -> tuple[int, int]:
    """``"2025-03"`` -> ``(2025, 3)``.  Raises ValueError for anything else."""
    match = _MONTH_KEY.fullmatch(key or "")
    if not match:
        raise ValueError(f"Invalid month {key!r}, expected YYYY-MM.")
    year, month = int(match.group(1)), int(match.group(2))
    if year < 1 or not 1 <= month <= 12:
        raise ValueError(f"Invalid month {key!r}, expected YYYY-MM.")
    return year, month


def month_bounds(key: str) -> tuple[date, date]:
    """First and last calendar day of a ``YYYY-MM`` month."""
    year, month = parse_month(key)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def shift_month(key: str, delta: int) -> str:
    year, month = parse_month(key)
    index = year * 12 + (month - 1) + delta
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def format_confirmation(confirmation: BookingConfirmation) -> str:
    """Human-readable summary of a confirmed booking."""
    try:
        when = format_date_long(confirmation.scheduled_date)
    except ValueError:
        when = confirmation.scheduled_date

    lines = [
        "Booking confirmed!",
        f"  Confirmation code: {confirmation.confirmation_code}",
        f"  What: {confirmation.service_type} with {confirmation.company_name}",
        f"  When: {when} at {confirmation.scheduled_time}",
        f"  Confirmation sent to: {confirmation.customer_email}",
    ]
    return "\n".join(lines)
