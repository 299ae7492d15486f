"""Booking event log — what happened during one visitor's session.

Every BookingSession owns a SessionEventLog.  The session records a
BookingEvent for each step change, rejected selection, failed validation,
failed fetch, submission and confirmation.  Admins read the log through
``GET /admin/sessions/{id}/events``; it lives and dies with its session.
"""

from __future__ import annotations

import logging
import time
from collections import Counter, deque
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from booking_widget.steps import BookingStep

log = logging.getLogger("booking_widget.events")


class BookingEventType(str, Enum):
    TRANSITION = "transition"
    SELECTION_REJECTED = "selection_rejected"
    VALIDATION_FAILED = "validation_failed"
    FETCH_ERROR = "fetch_error"
    SUBMISSION = "submission"
    SUBMISSION_FAILED = "submission_failed"
    CONFIRMED = "confirmed"


class BookingEvent(BaseModel):
    type: BookingEventType
    step: BookingStep                      # step when the event happened
    session_id: str = ""
    timestamp: float = Field(default_factory=time.time)
    data: dict[str, Any] = {}


class SessionEventLog:
    """Bounded, append-only event history for one session.

    Oldest events fall off once ``max_events`` is reached; ``dropped``
    counts how many.
    """

    def __init__(self, max_events: int = 200) -> None:
        self._events: deque[BookingEvent] = deque(maxlen=max_events)
        self.dropped = 0

    def record(
        self,
        event_type: BookingEventType,
        step: BookingStep,
        session_id: str = "",
        **data: Any,
    ) -> BookingEvent:
        event = BookingEvent(type=event_type, step=step, session_id=session_id, data=data)
        if len(self._events) == self._events.maxlen:
            self.dropped += 1
        self._events.append(event)
        log.debug("[%s] %s at %s %s", session_id or "-", event_type.value, step.value, data)
        return event

    def events(self, event_type: Optional[BookingEventType] = None) -> list[BookingEvent]:
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if e.type == event_type]

    def last(self, event_type: Optional[BookingEventType] = None) -> BookingEvent | None:
        matching = self.events(event_type)
        return matching[-1] if matching else None

    def counts(self) -> dict[str, int]:
        return dict(Counter(e.type.value for e in self._events))

    def to_list(self) -> list[dict[str, Any]]:
        return [e.model_dump(mode="json") for e in self._events]

    def __len__(self) -> int:
        return len(self._events)
