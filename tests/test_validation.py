"""Tests for customer form validation."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from booking_widget.models import CustomerForm
from booking_widget.validation import MESSAGES, is_valid_email, validate_customer_form


class TestEmail:
    @pytest.mark.parametrize("email", [
        "jane@example.com",
        "j.doe+tag@mail.example.co.uk",
        " jane@example.com ",
    ])
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", [
        "not-an-email",
        "jane@example",
        "jane doe@example.com",
        "@example.com",
        "jane@@example.com",
        "",
    ])
    def test_invalid(self, email):
        assert not is_valid_email(email)


class TestValidateCustomerForm:
    def test_minimal_valid_form(self):
        form = CustomerForm(name="Jane Doe", email="jane@example.com")
        assert validate_customer_form(form) is None

    def test_blank_form_reports_each_field(self):
        errors = validate_customer_form(CustomerForm(), require_phone=True, require_address=True)
        assert set(errors) == {"name", "email", "phone", "address"}
        assert errors["email"] == MESSAGES["email_missing"]

    def test_whitespace_name_is_missing(self):
        errors = validate_customer_form(CustomerForm(name="   ", email="jane@example.com"))
        assert set(errors) == {"name"}

    def test_malformed_email(self):
        errors = validate_customer_form(CustomerForm(name="Jane Doe", email="not-an-email"))
        assert set(errors) == {"email"}
        assert errors["email"] == MESSAGES["email_invalid"]

    def test_phone_only_when_required(self):
        form = CustomerForm(name="Jane Doe", email="jane@example.com")
        assert validate_customer_form(form, require_phone=False) is None
        assert "phone" in validate_customer_form(form, require_phone=True)

    def test_address_only_when_required(self):
        form = CustomerForm(name="Jane Doe", email="jane@example.com", phone="5551234567")
        assert validate_customer_form(form, require_phone=True) is None
        assert set(validate_customer_form(form, require_address=True)) == {"address"}

    def test_optional_fields_never_required(self):
        form = CustomerForm(name="Jane Doe", email="jane@example.com",
                            description="", referral_source="")
        assert validate_customer_form(form, require_phone=False, require_address=False) is None

    def test_errors_serialize_per_field(self):
        errors = validate_customer_form(CustomerForm(name="Jane"))
        d = errors.to_dict()
        assert d["kind"] == "validation_errors"
        assert d["fields"] == {"email": MESSAGES["email_missing"]}
