"""In-memory booking backend.

Serves availability and accepts bookings from process memory, using the
same rules as the hosted widget endpoints: working hours per weekday,
fixed-length slots, a lead-time cutoff, a buffer around existing jobs and
a cap on how far ahead visitors may book.  Useful for local development
and as the backend in tests.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable

from booking_widget.exceptions import FetchError, SubmissionError
from booking_widget.formatting import (
    format_day_label,
    format_time_display,
    month_key,
    slot_clock,
)
from booking_widget.models import (
    AvailabilityWindow,
    BookingConfirmation,
    BookingRequest,
    BookingWidgetConfig,
    ContractorInfo,
    DayAvailability,
    ServiceType,
    TimeSlot,
    WidgetCustomization,
)
from booking_widget.validation import is_valid_email

from .base import BookingBackend

logger = logging.getLogger(__name__)

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

CONFIRMATION_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

RATE_LIMIT_WINDOW_SECONDS = 60 * 60
RATE_LIMIT_MAX = 5


@dataclass
class WorkingDay:
    enabled: bool
    start: str = "08:00"
    end: str = "17:00"


def default_working_hours() -> dict[str, WorkingDay]:
    hours = {day: WorkingDay(True, "08:00", "17:00") for day in DAY_NAMES[:5]}
    hours["saturday"] = WorkingDay(False, "09:00", "14:00")
    hours["sunday"] = WorkingDay(False, "09:00", "14:00")
    return hours


@dataclass
class ScheduledJob:
    """An existing appointment that blocks part of a day."""

    id: str
    scheduled_at: datetime
    duration_minutes: int = 60
    service_type: str = ""
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str | None = None
    service_address: str | None = None
    description: str | None = None
    referral_source: str | None = None
    confirmation_code: str = ""
    status: str = "scheduled"


@dataclass
class ContractorRecord:
    """Server-side view of a contractor, including private scheduling rules."""

    id: str
    company_name: str = "Service Provider"
    service_types: list[ServiceType] = field(default_factory=list)
    widget: BookingWidgetConfig = field(
        default_factory=lambda: BookingWidgetConfig(require_phone=True, require_address=True)
    )
    customization: WidgetCustomization = field(default_factory=WidgetCustomization)
    working_hours: dict[str, WorkingDay] = field(default_factory=default_working_hours)
    buffer_minutes: int = 30
    ratings: list[int] = field(default_factory=list)
    logo_url: str | None = None
    service_area: str | None = None
    jobs: list[ScheduledJob] = field(default_factory=list)


def _to_minutes(clock: str) -> int:
    hours, minutes = (int(part) for part in clock.split(":"))
    return hours * 60 + minutes


def _to_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _ranges_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    return start1 < end2 and end1 > start2


def format_phone_e164(phone: str) -> str:
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def generate_confirmation_code(length: int = 6) -> str:
    return "".join(secrets.choice(CONFIRMATION_ALPHABET) for _ in range(length))


class InMemoryBookingBackend(BookingBackend):
    """BookingBackend that computes slots and stores bookings in memory."""

    def __init__(
        self,
        contractors: list[ContractorRecord] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._contractors: dict[str, ContractorRecord] = {
            c.id: c for c in (contractors or [])
        }
        self._clock = clock
        self._rate_limits: dict[str, tuple[float, int]] = {}
        self.availability_calls: list[tuple[str, date, date]] = []

    def add_contractor(self, contractor: ContractorRecord) -> None:
        self._contractors[contractor.id] = contractor

    def get_contractor(self, contractor_id: str) -> ContractorRecord | None:
        return self._contractors.get(contractor_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _enabled_contractor(self, contractor_id: str, error_cls: type) -> ContractorRecord:
        contractor = self._contractors.get(contractor_id)
        if contractor is None:
            raise error_cls("Contractor not found", status_code=404)
        if not contractor.widget.enabled:
            raise error_cls("Online booking is not enabled", status_code=403)
        return contractor

    def _blocked_ranges(
        self, contractor: ContractorRecord, day: date,
    ) -> list[tuple[int, int]]:
        """Minutes-of-day ranges taken by existing jobs (plus buffer)."""
        ranges = []
        for job in contractor.jobs:
            if job.status == "cancelled" or job.scheduled_at.date() != day:
                continue
            job_start = job.scheduled_at.hour * 60 + job.scheduled_at.minute
            ranges.append((
                job_start - contractor.buffer_minutes,
                job_start + job.duration_minutes + contractor.buffer_minutes,
            ))
        return ranges

    def _build_day(
        self, contractor: ContractorRecord, day: date, cutoff: datetime,
    ) -> DayAvailability:
        date_str = day.isoformat()
        day_name = DAY_NAMES[day.weekday()]
        working = contractor.working_hours.get(day_name)

        if not working or not working.enabled:
            return DayAvailability(
                date=date_str, day_name=day_name,
                day_label=format_day_label(day), slots=[], available=False,
            )

        duration = contractor.widget.slot_duration_minutes
        blocked = self._blocked_ranges(contractor, day)
        slots: list[TimeSlot] = []
        current = _to_minutes(working.start)
        day_end = _to_minutes(working.end)

        while current + duration <= day_end:
            slot_end = current + duration
            is_blocked = any(
                _ranges_overlap(current, slot_end, b_start, b_end)
                for b_start, b_end in blocked
            )
            slot_at = datetime.combine(day, datetime.min.time()) + timedelta(minutes=current)
            start_clock, end_clock = _to_clock(current), _to_clock(slot_end)
            slots.append(TimeSlot(
                start=f"{date_str}T{start_clock}",
                start_display=format_time_display(start_clock),
                end=f"{date_str}T{end_clock}",
                end_display=format_time_display(end_clock),
                available=not is_blocked and slot_at >= cutoff,
            ))
            current += duration

        open_count = sum(1 for s in slots if s.available)
        return DayAvailability(
            date=date_str,
            day_name=day_name,
            day_label=format_day_label(day),
            slots=slots,
            available=open_count > 0,
            available_count=open_count,
        )

    def _check_rate_limit(self, client_id: str) -> bool:
        now = time.monotonic()
        window_start, count = self._rate_limits.get(client_id, (now, 0))
        if now - window_start > RATE_LIMIT_WINDOW_SECONDS or count == 0:
            self._rate_limits[client_id] = (now, 1)
            return True
        if count >= RATE_LIMIT_MAX:
            return False
        self._rate_limits[client_id] = (window_start, count + 1)
        return True

    # ------------------------------------------------------------------
    # BookingBackend interface
    # ------------------------------------------------------------------

    async def fetch_contractor_info(self, contractor_id: str) -> ContractorInfo:
        contractor = self._enabled_contractor(contractor_id, FetchError)
        allowed = contractor.widget.allowed_services

        average = None
        if contractor.ratings:
            average = round(sum(contractor.ratings) / len(contractor.ratings), 1)

        return ContractorInfo(
            id=contractor.id,
            company_name=contractor.company_name,
            logo_url=contractor.logo_url,
            service_area=contractor.service_area,
            average_rating=average,
            review_count=len(contractor.ratings),
            booking=contractor.widget,
            customization=contractor.customization,
            service_types=[
                s for s in contractor.service_types if not allowed or s.id in allowed
            ],
        )

    async def fetch_availability(
        self,
        contractor_id: str,
        start: date,
        end: date,
    ) -> AvailabilityWindow:
        self.availability_calls.append((contractor_id, start, end))
        contractor = self._enabled_contractor(contractor_id, FetchError)

        now = self._clock()
        today = now.date()
        max_advance = today + timedelta(days=contractor.widget.max_advance_days)
        cutoff = now + timedelta(hours=contractor.widget.lead_time_hours)

        window = AvailabilityWindow(month=month_key(start))
        day = max(start, today)
        last = min(end, max_advance)
        while day <= last:
            window.days[day.isoformat()] = self._build_day(contractor, day, cutoff)
            day += timedelta(days=1)
        return window

    async def submit_booking(
        self, request: BookingRequest, client_id: str = "local",
    ) -> BookingConfirmation:
        if not self._check_rate_limit(client_id):
            raise SubmissionError(
                "Too many booking requests. Please try again later.", status_code=429,
            )

        required = [request.contractor_id, request.service_type, request.date,
                    request.time, request.customer_name, request.customer_email]
        if not all(value.strip() for value in required):
            raise SubmissionError("Missing required fields", status_code=400)
        if not is_valid_email(request.customer_email):
            raise SubmissionError("Invalid email address", status_code=400)

        contractor = self._enabled_contractor(request.contractor_id, SubmissionError)
        widget = contractor.widget

        if widget.require_phone and not request.customer_phone:
            raise SubmissionError("Phone number is required", status_code=400)
        if request.customer_phone and len(re.sub(r"\D", "", request.customer_phone)) < 10:
            raise SubmissionError("Invalid phone number", status_code=400)
        if widget.require_address and not request.service_address:
            raise SubmissionError("Service address is required", status_code=400)
        if widget.allowed_services and request.service_type not in widget.allowed_services:
            raise SubmissionError(
                "Selected service type is not available for online booking",
                status_code=400,
            )

        try:
            booking_day = date.fromisoformat(request.date)
            booking_start = _to_minutes(slot_clock(request.time))
        except ValueError as exc:
            raise SubmissionError("Invalid date or time", status_code=400) from exc

        service = next(
            (s for s in contractor.service_types if s.id == request.service_type), None,
        )
        slot_duration = widget.slot_duration_minutes
        booking_end = booking_start + slot_duration
        for b_start, b_end in self._blocked_ranges(contractor, booking_day):
            if _ranges_overlap(booking_start, booking_end, b_start, b_end):
                raise SubmissionError(
                    "This time slot is no longer available. "
                    "Please select a different time.",
                    status_code=409,
                )

        code = generate_confirmation_code()
        job = ScheduledJob(
            id=f"job_{len(contractor.jobs) + 1}",
            scheduled_at=datetime.combine(booking_day, datetime.min.time())
            + timedelta(minutes=booking_start),
            duration_minutes=service.duration if service else slot_duration,
            service_type=request.service_type,
            customer_name=request.customer_name.strip(),
            customer_email=request.customer_email.strip().lower(),
            customer_phone=format_phone_e164(request.customer_phone) if request.customer_phone else None,
            service_address=request.service_address,
            description=request.description,
            referral_source=request.referral_source,
            confirmation_code=code,
            status="pending_confirmation",
        )
        contractor.jobs.append(job)

        logger.info("Created job %s for contractor %s", job.id, contractor.id)

        return BookingConfirmation(
            id=job.id,
            confirmation_code=code,
            service_type=service.name if service else request.service_type,
            scheduled_date=request.date,
            scheduled_time=format_time_display(request.time),
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            company_name=contractor.company_name,
        )
