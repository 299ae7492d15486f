"""Active booking sessions, keyed by an opaque session ID.

Sessions are dropped when the visitor abandons them (DELETE), when they sit
idle past ``SESSION_IDLE_TTL_SECONDS``, or shortly after confirmation
(``CONFIRMED_SESSION_TTL_SECONDS``).  The app's lifespan runs ``sweep()`` on
an interval; lookups through ``get()`` count as activity.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import Callable, Optional

from booking_widget.config import settings
from booking_widget.session import BookingSession

log = logging.getLogger("booking_widget.registry")


class SessionRegistry:
    def __init__(
        self,
        idle_ttl_seconds: Optional[float] = None,
        confirmed_ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._idle_ttl = idle_ttl_seconds
        self._confirmed_ttl = confirmed_ttl_seconds
        self._clock = clock
        self._sessions: dict[str, BookingSession] = {}
        self._last_seen: dict[str, float] = {}

    @property
    def idle_ttl_seconds(self) -> float:
        if self._idle_ttl is not None:
            return self._idle_ttl
        return settings.session_idle_ttl_seconds

    @property
    def confirmed_ttl_seconds(self) -> float:
        if self._confirmed_ttl is not None:
            return self._confirmed_ttl
        return settings.confirmed_session_ttl_seconds

    def add(self, session: BookingSession) -> str:
        """Register a session and return its unique ID."""
        session_id = secrets.token_urlsafe(18)
        now = self._clock()
        session.bind(session_id, now)
        self._sessions[session_id] = session
        self._last_seen[session_id] = now
        log.info("Session registered: %s (%d active)", session_id, len(self._sessions))
        return session_id

    def get(self, session_id: str, touch: bool = True) -> BookingSession | None:
        session = self._sessions.get(session_id)
        if session is not None and touch:
            self._last_seen[session_id] = self._clock()
        return session

    def remove(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            log.info("Session unregistered: %s", session_id)
        return removed

    def _expired(self, session_id: str, session: BookingSession, now: float) -> bool:
        # Never drop a session while its booking is with the gateway
        if session.is_submitting:
            return False
        idle = now - self._last_seen[session_id]
        if session.is_done and idle > self.confirmed_ttl_seconds:
            return True
        return idle > self.idle_ttl_seconds

    def sweep(self) -> list[str]:
        """Drop expired sessions; returns the IDs removed."""
        now = self._clock()
        expired = [
            session_id for session_id, session in self._sessions.items()
            if self._expired(session_id, session, now)
        ]
        for session_id in expired:
            self._sessions.pop(session_id, None)
            self._last_seen.pop(session_id, None)
        if expired:
            log.info("Expired %d idle session(s), %d active", len(expired), len(self._sessions))
        return expired

    def sessions(self) -> list[BookingSession]:
        return list(self._sessions.values())

    def clear(self) -> None:
        self._sessions.clear()
        self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


# Shared by the module-level app
registry = SessionRegistry()
