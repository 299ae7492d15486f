"""Five-step booking wizard: SERVICE -> DATE -> TIME -> DETAILS -> CONFIRM.

CONFIRM is terminal; backward navigation only moves among the first four.
"""

from __future__ import annotations

from enum import Enum


class BookingStep(str, Enum):
    SERVICE = "service"
    DATE = "date"
    TIME = "time"
    DETAILS = "details"
    CONFIRM = "confirm"


STEP_ORDER: list[BookingStep] = [
    BookingStep.SERVICE,
    BookingStep.DATE,
    BookingStep.TIME,
    BookingStep.DETAILS,
    BookingStep.CONFIRM,
]

# Steps the visitor can move back through
NAVIGABLE_STEPS: list[BookingStep] = STEP_ORDER[:-1]

FIRST_STEP = BookingStep.SERVICE


def previous_step(step: BookingStep) -> BookingStep | None:
    """Step before ``step``, or None at SERVICE or CONFIRM."""
    if step not in NAVIGABLE_STEPS:
        return None
    idx = NAVIGABLE_STEPS.index(step)
    return NAVIGABLE_STEPS[idx - 1] if idx > 0 else None

