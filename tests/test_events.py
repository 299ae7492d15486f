"""Tests for the booking event log.

These tests verify that:
1. SessionEventLog records typed events in order
2. The log is bounded and counts what it drops
3. A BookingSession records into its own log under its session id
4. Registering a session with a SessionRegistry tags later events
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from booking_widget.clients.local import ContractorRecord, InMemoryBookingBackend
from booking_widget.events import BookingEvent, BookingEventType, SessionEventLog
from booking_widget.models import ServiceType
from booking_widget.registry import SessionRegistry
from booking_widget.session import BookingSession
from booking_widget.steps import BookingStep


# ── SessionEventLog unit tests ──────────────────────────────────────


class TestSessionEventLog:
    def test_record_returns_event(self):
        log = SessionEventLog()
        event = log.record(BookingEventType.TRANSITION, BookingStep.DATE, "s1",
                           **{"from": "service", "to": "date"})

        assert isinstance(event, BookingEvent)
        assert event.session_id == "s1"
        assert event.step == BookingStep.DATE
        assert event.data == {"from": "service", "to": "date"}
        assert event.timestamp > 0
        assert len(log) == 1

    def test_filter_by_type(self):
        log = SessionEventLog()
        log.record(BookingEventType.TRANSITION, BookingStep.DATE)
        log.record(BookingEventType.SELECTION_REJECTED, BookingStep.DATE, message="No slots")
        log.record(BookingEventType.TRANSITION, BookingStep.TIME)

        assert [e.step for e in log.events(BookingEventType.TRANSITION)] == [
            BookingStep.DATE, BookingStep.TIME,
        ]
        assert log.last(BookingEventType.SELECTION_REJECTED).data["message"] == "No slots"
        assert log.last(BookingEventType.CONFIRMED) is None
        assert log.counts() == {"transition": 2, "selection_rejected": 1}

    def test_bounded_drops_oldest(self):
        log = SessionEventLog(max_events=2)
        for i in range(3):
            log.record(BookingEventType.TRANSITION, BookingStep.DATE, n=i)

        assert [e.data["n"] for e in log.events()] == [1, 2]
        assert log.dropped == 1

    def test_events_is_a_copy(self):
        log = SessionEventLog()
        log.record(BookingEventType.TRANSITION, BookingStep.DATE)
        log.events().clear()
        assert len(log) == 1

    def test_to_list_is_json_ready(self):
        log = SessionEventLog()
        log.record(BookingEventType.CONFIRMED, BookingStep.CONFIRM, "s9",
                   confirmation_code="ABC123")

        (entry,) = log.to_list()
        assert entry["type"] == "confirmed"
        assert entry["step"] == "confirm"
        assert entry["session_id"] == "s9"
        assert entry["data"] == {"confirmation_code": "ABC123"}


# ── Session → event log wiring ──────────────────────────────────────


class TestSessionWiring:
    @pytest.mark.asyncio
    async def test_events_carry_registry_id(self):
        backend = InMemoryBookingBackend([ContractorRecord(
            id="c1", service_types=[ServiceType(id="svc1", name="Drain Cleaning")],
        )])
        session = BookingSession("c1", backend=backend)
        session_id = SessionRegistry().add(session)

        await session.load_contractor()
        session.go_back()

        events = session.events.events()
        assert {e.type for e in events} == {BookingEventType.TRANSITION}
        assert {e.session_id for e in events} == {session_id}
        assert [e.data for e in events] == [
            {"from": "service", "to": "date"},
            {"from": "date", "to": "service"},
        ]

    @pytest.mark.asyncio
    async def test_fetch_failures_traced(self):
        backend = InMemoryBookingBackend()
        session = BookingSession("c1", backend=backend)

        await session.load_contractor()
        event = session.events.last()
        assert event.type == BookingEventType.FETCH_ERROR
        assert event.data["what"] == "contractor"

    def test_each_session_has_its_own_log(self):
        backend = InMemoryBookingBackend()
        first = BookingSession("c1", backend=backend)
        second = BookingSession("c1", backend=backend)
        first.select_service("svc1")
        assert len(first.events) == 1
        assert len(second.events) == 0
