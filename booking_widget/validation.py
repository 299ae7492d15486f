"""Customer form validation — gatekeeps DETAILS -> CONFIRM.

Pure and synchronous.  Returns field-level messages so a UI can show
inline guidance next to each input.
"""

from __future__ import annotations

import re

from booking_widget.exceptions import ValidationErrors
from booking_widget.models.booking import CustomerForm

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MESSAGES = {
    "name": "Please enter your name.",
    "email_missing": "Please enter your email address.",
    "email_invalid": "Please enter a valid email address.",
    "phone": "Phone number is required.",
    "address": "Service address is required.",
}


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_customer_form(
    form: CustomerForm,
    require_phone: bool = False,
    require_address: bool = False,
) -> ValidationErrors | None:
    """Check the form against the contractor's requirements.

    Returns None when valid, otherwise a ValidationErrors mapping of
    field name -> message.
    """
    errors: dict[str, str] = {}

    if not form.name.strip():
        errors["name"] = MESSAGES["name"]

    if not form.email.strip():
        errors["email"] = MESSAGES["email_missing"]
    elif not is_valid_email(form.email):
        errors["email"] = MESSAGES["email_invalid"]

    if require_phone and not form.phone.strip():
        errors["phone"] = MESSAGES["phone"]

    if require_address and not form.address.strip():
        errors["address"] = MESSAGES["address"]

    return ValidationErrors(errors) if errors else None
