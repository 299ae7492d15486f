"""Per-visitor booking session — drives the booking wizard FSM.

Each visitor's booking attempt gets a BookingSession that:
  1. Loads the contractor's public profile and booking rules
  2. Tracks the current step (SERVICE → DATE → TIME → DETAILS → CONFIRM)
  3. Holds the visitor's selections and customer form
  4. Fetches availability one calendar month at a time through a cache
  5. Validates the form and submits the booking to the gateway

Every operation returns a StepResult — the step after the call plus the
error that rejected it, if any.  Visitor mistakes are never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Optional

from booking_widget.availability import AvailabilityCache
from booking_widget.clients.base import BookingBackend
from booking_widget.clients.http import get_default_backend
from booking_widget.config import settings
from booking_widget.events import BookingEventType, SessionEventLog
from booking_widget.exceptions import (
    BookingError,
    FetchError,
    InvalidTransition,
    SelectionError,
    SubmissionError,
    ValidationErrors,
)
from booking_widget.formatting import (
    format_confirmation,
    month_bounds,
    month_key,
    parse_date,
    parse_month,
    shift_month,
)
from booking_widget.models import (
    BookingConfirmation,
    BookingRequest,
    ContractorInfo,
    CustomerForm,
    ServiceType,
    TimeSlot,
)
from booking_widget.steps import FIRST_STEP, BookingStep, previous_step
from booking_widget.validation import validate_customer_form

log = logging.getLogger("booking_widget.session")

FORM_FIELDS = frozenset(CustomerForm.model_fields)


def mask_email(email: str) -> str:
    """``jane.doe@example.com`` -> ``j***@example.com`` for log lines."""
    local, sep, domain = email.strip().partition("@")
    if not sep or not local:
        return "***"
    return f"{local[0]}***@{domain}"


@dataclass(frozen=True)
class StepResult:
    """Outcome of one session operation."""

    step: BookingStep
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step.value,
            "ok": self.ok,
            "error": self.error.to_dict() if self.error else None,
        }


class BookingSession:
    """One visitor's attempt to book a service appointment.

    Typical lifecycle::

        session = BookingSession("contractor-123", backend=backend)
        await session.start()                     # contractor info + this month

        session.select_service("svc1")            # → DATE
        session.select_date("2025-03-10")         # → TIME
        session.select_time("2025-03-10T09:00")   # → DETAILS
        result = await session.submit(CustomerForm(name=..., email=...))
        if result.ok:                             # → CONFIRM
            print(session.submission_result.confirmation_code)
    """

    def __init__(
        self,
        contractor_id: str,
        backend: BookingBackend | None = None,
        contractor: ContractorInfo | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.contractor_id = contractor_id
        self._backend = backend or get_default_backend()
        self._today = today

        # Set when a SessionRegistry adopts the session
        self._session_id: str = ""
        self._started_at: float = 0.0

        self._cache = AvailabilityCache(self._backend, contractor_id)
        self._events = SessionEventLog()
        self._contractor: ContractorInfo | None = None
        self._viewed_month: str | None = None

        # FSM state
        self._step: BookingStep = FIRST_STEP
        self._selected_service: ServiceType | None = None
        self._selected_date: str | None = None
        self._selected_time: TimeSlot | None = None
        self._customer_form = CustomerForm()
        self._submission_result: BookingConfirmation | None = None
        self._last_error: BookingError | None = None
        self._submitting = False

        if contractor is not None:
            self._apply_contractor(contractor)

    def bind(self, session_id: str, started_at: float) -> None:
        self._session_id = session_id
        self._started_at = started_at

    # ── Read-only state ───────────────────────────────────────

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def step(self) -> BookingStep:
        return self._step

    @property
    def is_done(self) -> bool:
        return self._step == BookingStep.CONFIRM

    @property
    def contractor(self) -> ContractorInfo | None:
        return self._contractor

    @property
    def selected_service(self) -> ServiceType | None:
        return self._selected_service

    @property
    def selected_date(self) -> str | None:
        return self._selected_date

    @property
    def selected_time(self) -> TimeSlot | None:
        return self._selected_time

    @property
    def customer_form(self) -> CustomerForm:
        return self._customer_form

    @property
    def submission_result(self) -> BookingConfirmation | None:
        return self._submission_result

    @property
    def last_error(self) -> str | None:
        """User-facing banner message, if any."""
        return self._last_error.message if self._last_error else None

    @property
    def last_error_detail(self) -> BookingError | None:
        return self._last_error

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def viewed_month(self) -> str | None:
        return self._viewed_month

    @property
    def availability(self) -> AvailabilityCache:
        return self._cache

    @property
    def events(self) -> SessionEventLog:
        return self._events

    @property
    def max_advance_days(self) -> int:
        if self._contractor is not None:
            return self._contractor.booking.max_advance_days
        return settings.default_max_advance_days

    @property
    def require_phone(self) -> bool:
        return bool(self._contractor and self._contractor.booking.require_phone)

    @property
    def require_address(self) -> bool:
        return bool(self._contractor and self._contractor.booking.require_address)

    # ── Internal: transitions ─────────────────────────────────

    def _record(self, event_type: BookingEventType, **data: Any) -> None:
        self._events.record(event_type, self._step, self._session_id, **data)

    def _set_step(self, step: BookingStep) -> None:
        if step == self._step:
            return
        previous = self._step
        self._step = step
        log.info("Booking advance: %s → %s (session %s)",
                 previous.value, step.value, self._session_id or "-")
        self._record(BookingEventType.TRANSITION, **{"from": previous.value, "to": step.value})

    def _advance(self, step: BookingStep) -> StepResult:
        """Apply a successful transition; clears any banner error."""
        self._last_error = None
        self._set_step(step)
        return StepResult(self._step)

    def _reject(self, error: BookingError) -> StepResult:
        """Refuse an operation, leaving the session untouched."""
        log.debug("Rejected at %s: %s", self._step.value, error.message)
        if isinstance(error, SelectionError):
            self._record(BookingEventType.SELECTION_REJECTED, message=error.message)
        return StepResult(self._step, error)

    def _locked(self) -> StepResult | None:
        """Refusal for any edit once confirmed or while a submission is in flight."""
        if self._step == BookingStep.CONFIRM:
            return self._reject(InvalidTransition(
                "Booking is already confirmed. Start a new booking to book again."
            ))
        if self._submitting:
            return self._reject(InvalidTransition(
                "A booking submission is in progress. Wait for it to finish."
            ))
        return None

    def _in_booking_window(self, day: date) -> bool:
        today = self._today()
        return today <= day <= today + timedelta(days=self.max_advance_days)

    # ── Contractor & calendar ─────────────────────────────────

    def _apply_contractor(self, info: ContractorInfo) -> None:
        self._contractor = info
        # A single offered service needs no choosing
        if len(info.service_types) == 1 and self._step == BookingStep.SERVICE:
            self._selected_service = info.service_types[0]
            self._set_step(BookingStep.DATE)

    async def load_contractor(self) -> StepResult:
        """Fetch the contractor's public profile once."""
        if self._contractor is not None:
            return StepResult(self._step)
        try:
            info = await self._backend.fetch_contractor_info(self.contractor_id)
        except FetchError as exc:
            self._last_error = exc
            self._record(BookingEventType.FETCH_ERROR, what="contractor", message=exc.message)
            return StepResult(self._step, exc)
        self._apply_contractor(info)
        return StepResult(self._step)

    async def start(self, month: str | None = None) -> StepResult:
        """Load contractor info, then the calendar month to show first."""
        result = await self.load_contractor()
        if not result.ok:
            return result
        return await self.show_month(month or month_key(self._today()))

    async def show_month(self, month: str) -> StepResult:
        """Navigate the calendar to ``month`` (``YYYY-MM``).

        Cached months are served without a fetch.  A failed fetch leaves the
        month with no selectable dates and sets the banner; showing the
        month again retries.
        """
        try:
            parse_month(month)
        except ValueError as exc:
            return self._reject(SelectionError(str(exc)))

        self._viewed_month = month
        try:
            await self._cache.load(month)
        except FetchError as exc:
            if self._viewed_month == month:
                self._last_error = exc
            self._record(BookingEventType.FETCH_ERROR, what="availability",
                         month=month, message=exc.message)
            return StepResult(self._step, exc)

        # A late response for a month no longer shown is cached but silent
        if self._viewed_month == month and isinstance(self._last_error, FetchError):
            self._last_error = None
        return StepResult(self._step)

    def selectable_dates(self, month: str | None = None) -> list[str]:
        """Dates in ``month`` (default: the shown month) the visitor may pick."""
        month = month or self._viewed_month
        if not month:
            return []
        window = self._cache.get(month)
        if window is None:
            return []
        return [d for d in window.available_dates() if self._in_booking_window(parse_date(d))]

    @property
    def can_go_prev_month(self) -> bool:
        if not self._viewed_month:
            return False
        first, _ = month_bounds(self._viewed_month)
        return first > self._today()

    @property
    def can_go_next_month(self) -> bool:
        if not self._viewed_month:
            return False
        next_first, _ = month_bounds(shift_month(self._viewed_month, 1))
        return next_first <= self._today() + timedelta(days=self.max_advance_days)

    # ── Step controller ───────────────────────────────────────

    def select_service(self, service: ServiceType | str) -> StepResult:
        """Choose a service → DATE."""
        locked = self._locked()
        if locked:
            return locked
        if self._contractor is None:
            return self._reject(SelectionError("Services have not been loaded yet."))

        service_id = service if isinstance(service, str) else service.id
        match = self._contractor.find_service(service_id)
        if match is None:
            return self._reject(SelectionError(f"Service {service_id!r} is not offered."))

        self._selected_service = match
        return self._advance(BookingStep.DATE)

    def select_date(self, value: str | date) -> StepResult:
        """Choose an open date → TIME.  Clears any previously chosen time."""
        locked = self._locked()
        if locked:
            return locked
        if self._selected_service is None:
            return self._reject(InvalidTransition("Choose a service first."))

        try:
            day = parse_date(value)
        except ValueError:
            return self._reject(SelectionError(f"Invalid date {value!r}."))

        if not self._in_booking_window(day):
            return self._reject(SelectionError("That date is outside the booking window."))

        window = self._cache.get(month_key(day))
        availability = window.get(day.isoformat()) if window else None
        if availability is None or not availability.available:
            return self._reject(SelectionError("That date has no open time slots."))

        self._selected_date = day.isoformat()
        self._selected_time = None
        return self._advance(BookingStep.TIME)

    def select_time(self, slot: TimeSlot | str) -> StepResult:
        """Choose an open slot on the selected date → DETAILS."""
        locked = self._locked()
        if locked:
            return locked
        if self._selected_date is None:
            return self._reject(InvalidTransition("Choose a date first."))

        start = slot if isinstance(slot, str) else slot.start
        window = self._cache.get(month_key(self._selected_date))
        availability = window.get(self._selected_date) if window else None
        match = availability.find_slot(start) if availability else None
        if match is None or not match.available:
            return self._reject(SelectionError("That time slot is not available."))

        self._selected_time = match
        return self._advance(BookingStep.DETAILS)

    def go_back(self) -> StepResult:
        """Move one step earlier.  No-op at SERVICE; not allowed at CONFIRM."""
        locked = self._locked()
        if locked:
            return locked
        target = previous_step(self._step)
        if target is None:
            return StepResult(self._step)
        return self._advance(target)

    def update_form(self, **fields: str) -> StepResult:
        """Edit customer form fields.  Edits survive going back a step."""
        locked = self._locked()
        if locked:
            return locked

        unknown = sorted(set(fields) - FORM_FIELDS)
        if unknown:
            return self._reject(ValidationErrors({name: "Unknown field." for name in unknown}))

        self._customer_form = self._customer_form.model_copy(update=fields)
        return StepResult(self._step)

    def dismiss_error(self) -> None:
        self._last_error = None

    async def submit(self, form: CustomerForm | None = None) -> StepResult:
        """Validate the customer form and submit the booking.

        Valid and accepted → CONFIRM.  Invalid → ValidationErrors, stays on
        DETAILS.  Rejected by the gateway → SubmissionError in the banner,
        stays on DETAILS so the visitor can correct and resubmit.  Until the
        gateway answers, every other edit is refused.
        """
        locked = self._locked()
        if locked:
            return locked
        if self._step != BookingStep.DETAILS:
            return self._reject(InvalidTransition("Complete the earlier steps first."))

        if form is not None:
            self._customer_form = form

        errors = validate_customer_form(
            self._customer_form,
            require_phone=self.require_phone,
            require_address=self.require_address,
        )
        if errors:
            self._record(BookingEventType.VALIDATION_FAILED, fields=dict(errors.errors))
            return StepResult(self._step, errors)

        if not (self._selected_service and self._selected_date and self._selected_time):
            return self._reject(InvalidTransition("Complete the earlier steps first."))
        request = BookingRequest.build(
            self.contractor_id,
            self._selected_service,
            self._selected_date,
            self._selected_time,
            self._customer_form,
        )

        self._submitting = True
        self._record(BookingEventType.SUBMISSION, date=request.date, time=request.time)
        log.info("Submitting booking: contractor=%s date=%s time=%s email=%s",
                 self.contractor_id, request.date, request.time,
                 mask_email(request.customer_email))
        try:
            confirmation = await self._backend.submit_booking(request)
        except SubmissionError as exc:
            self._last_error = exc
            self._record(BookingEventType.SUBMISSION_FAILED,
                         message=exc.message, status_code=exc.status_code)
            log.info("Booking submission failed: %s", exc.message)
            return StepResult(self._step, exc)
        finally:
            self._submitting = False

        self._submission_result = confirmation
        self._advance(BookingStep.CONFIRM)
        self._record(BookingEventType.CONFIRMED,
                     confirmation_code=confirmation.confirmation_code)
        return StepResult(self._step)

    # ── Serialization ─────────────────────────────────────────

    def to_dict(self, detail: bool = False) -> dict[str, Any]:
        """Serialize session state for the API.

        With detail=False: what a widget needs to render the current step.
        With detail=True: adds cached months and the event log.
        """
        d: dict[str, Any] = {
            "session_id": self._session_id,
            "contractor_id": self.contractor_id,
            "started_at": self._started_at,
            "step": self._step.value,
            "is_done": self.is_done,
            "is_submitting": self._submitting,
            "company_name": self._contractor.company_name if self._contractor else None,
            "services": [s.to_wire() for s in self._contractor.service_types]
            if self._contractor else [],
            "selected_service": self._selected_service.to_wire() if self._selected_service else None,
            "selected_date": self._selected_date,
            "selected_time": self._selected_time.to_wire() if self._selected_time else None,
            "customer_form": self._customer_form.to_wire(),
            "require_phone": self.require_phone,
            "require_address": self.require_address,
            "calendar": {
                "month": self._viewed_month,
                "selectable_dates": self.selectable_dates(),
                "can_go_prev": self.can_go_prev_month,
                "can_go_next": self.can_go_next_month,
            },
            "last_error": self.last_error,
            "submission_result": self._submission_result.to_wire()
            if self._submission_result else None,
        }
        if self._submission_result:
            d["confirmation_text"] = format_confirmation(self._submission_result)
        if detail:
            d["cached_months"] = self._cache.months
            d["event_counts"] = self._events.counts()
            d["event_log"] = self._events.to_list()
        return d
