"""Pydantic models for booking requests and confirmations."""

from __future__ import annotations

from typing import Optional

from .base import WireModel
from .availability import TimeSlot
from .contractor import ServiceType


def _blank_to_none(value: str) -> str | None:
    value = value.strip()
    return value or None


class CustomerForm(WireModel):
    """Details the visitor types on the DETAILS step.

    Every field is a plain string; "not provided" is the empty string.
    """

    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    description: str = ""
    referral_source: str = ""


class BookingRequest(WireModel):
    """POST body sent to the submission gateway."""

    contractor_id: str
    service_type: str
    date: str                              # YYYY-MM-DD
    time: str                              # slot start
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    service_address: Optional[str] = None
    description: Optional[str] = None
    referral_source: Optional[str] = None

    @classmethod
    def build(
        cls,
        contractor_id: str,
        service: ServiceType,
        date: str,
        slot: TimeSlot,
        form: CustomerForm,
    ) -> BookingRequest:
        """Assemble the request from a completed session's selections."""
        return cls(
            contractor_id=contractor_id,
            service_type=service.id,
            date=date,
            time=slot.start,
            customer_name=form.name.strip(),
            customer_email=form.email.strip(),
            customer_phone=_blank_to_none(form.phone),
            service_address=_blank_to_none(form.address),
            description=_blank_to_none(form.description),
            referral_source=_blank_to_none(form.referral_source),
        )


class BookingConfirmation(WireModel):
    """Result returned by the gateway after a successful booking."""

    confirmation_code: str
    service_type: str
    scheduled_date: str
    scheduled_time: str
    customer_email: str
    company_name: str
    id: Optional[str] = None
    customer_name: Optional[str] = None
