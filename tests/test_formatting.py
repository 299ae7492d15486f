"""Tests for date, time and confirmation formatting helpers."""

import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from booking_widget.formatting import (
    format_confirmation,
    format_date_long,
    format_day_label,
    format_time_display,
    month_bounds,
    month_key,
    parse_month,
    shift_month,
    slot_clock,
)
from booking_widget.models import BookingConfirmation
from booking_widget.steps import STEP_ORDER, BookingStep, previous_step


class TestTimes:
    @pytest.mark.parametrize("value, expected", [
        ("00:00", "12:00 AM"),
        ("09:00", "9:00 AM"),
        ("12:00", "12:00 PM"),
        ("13:30", "1:30 PM"),
        ("2025-03-10T16:45", "4:45 PM"),
    ])
    def test_format_time_display(self, value, expected):
        assert format_time_display(value) == expected

    def test_slot_clock(self):
        assert slot_clock("2025-03-10T09:00") == "09:00"
        assert slot_clock("2025-03-10T09:00:00") == "09:00"
        assert slot_clock("14:00") == "14:00"


class TestDates:
    def test_day_label(self):
        assert format_day_label("2025-03-10") == "Mon, Mar 10"
        assert format_day_label(date(2025, 3, 1)) == "Sat, Mar 1"

    def test_date_long(self):
        assert format_date_long("2025-03-10") == "Monday, March 10, 2025"

    def test_month_key(self):
        assert month_key(date(2025, 3, 10)) == "2025-03"
        assert month_key("2025-12-31") == "2025-12"

    def test_month_bounds(self):
        assert month_bounds("2025-04") == (date(2025, 4, 1), date(2025, 4, 30))
        assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))

    def test_shift_month_across_years(self):
        assert shift_month("2025-12", 1) == "2026-01"
        assert shift_month("2025-01", -1) == "2024-12"
        assert shift_month("2025-03", 0) == "2025-03"

    def test_parse_month(self):
        assert parse_month("2025-03") == (2025, 3)
        assert parse_month("1999-12") == (1999, 12)

    @pytest.mark.parametrize("bad", [
        "2025-13", "2025-00", "0000-05", "2025-3", "25-03", "March", "", "2025-03-01", "2025-03\n",
    ])
    def test_parse_month_rejects(self, bad):
        with pytest.raises(ValueError):
            parse_month(bad)

    def test_month_helpers_reject_bad_keys(self):
        with pytest.raises(ValueError):
            month_bounds("2025-13")
        with pytest.raises(ValueError):
            shift_month("not-a-month", 1)


class TestConfirmationText:
    def test_summary_lines(self):
        text = format_confirmation(BookingConfirmation(
            confirmation_code="ABC123",
            service_type="Drain Cleaning",
            scheduled_date="2025-03-10",
            scheduled_time="9:00 AM",
            customer_email="jane@example.com",
            company_name="Acme Plumbing",
        ))
        lines = text.splitlines()
        assert lines[0] == "Booking confirmed!"
        assert "Confirmation code: ABC123" in text
        assert "Drain Cleaning with Acme Plumbing" in text
        assert "Monday, March 10, 2025 at 9:00 AM" in text
        assert "jane@example.com" in text

    def test_unparseable_date_shown_verbatim(self):
        text = format_confirmation(BookingConfirmation(
            confirmation_code="ABC123", service_type="x", scheduled_date="soon",
            scheduled_time="9:00 AM", customer_email="a@b.co", company_name="Acme",
        ))
        assert "When: soon at 9:00 AM" in text


class TestSteps:
    def test_previous_step(self):
        assert previous_step(BookingStep.SERVICE) is None
        assert previous_step(BookingStep.DETAILS) == BookingStep.TIME
        assert previous_step(BookingStep.CONFIRM) is None

    def test_order(self):
        assert STEP_ORDER[0] == BookingStep.SERVICE
        assert STEP_ORDER[-1] == BookingStep.CONFIRM
        assert len(STEP_ORDER) == 5
