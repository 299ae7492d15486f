"""Per-session availability cache — one oracle fetch per calendar month.

Months are keyed ``YYYY-MM``.  A successful fetch is cached for the life
of the session; a failed fetch is remembered only as an error so the next
visit to that month tries again.  Concurrent requests for the same month
share one in-flight fetch, and each fetch writes only its own month's
entry no matter when it resolves.
"""

from __future__ import annotations

import asyncio
import logging

from booking_widget.clients.base import BookingBackend
from booking_widget.exceptions import FetchError
from booking_widget.formatting import month_bounds
from booking_widget.models import AvailabilityWindow

log = logging.getLogger("booking_widget.availability")


class AvailabilityCache:
    """Caches AvailabilityWindows for one contractor."""

    def __init__(self, backend: BookingBackend, contractor_id: str) -> None:
        self._backend = backend
        self._contractor_id = contractor_id
        self._windows: dict[str, AvailabilityWindow] = {}
        self._errors: dict[str, FetchError] = {}
        self._inflight: dict[str, asyncio.Task[AvailabilityWindow]] = {}
        self.fetch_count = 0

    # ── Lookups ──────────────────────────────────────────────────

    def get(self, month: str) -> AvailabilityWindow | None:
        return self._windows.get(month)

    def error_for(self, month: str) -> FetchError | None:
        return self._errors.get(month)

    def is_cached(self, month: str) -> bool:
        return month in self._windows

    @property
    def months(self) -> list[str]:
        return sorted(self._windows)

    # ── Loading ──────────────────────────────────────────────────

    async def load(self, month: str) -> AvailabilityWindow:
        """Return the month's window, fetching it if not cached.

        Raises FetchError if the fetch fails; nothing is cached then.
        """
        cached = self._windows.get(month)
        if cached is not None:
            return cached

        task = self._inflight.get(month)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch(month))
            self._inflight[month] = task
        # Shielded so a cancelled caller does not cancel a fetch others await
        return await asyncio.shield(task)

    async def _fetch(self, month: str) -> AvailabilityWindow:
        start, end = month_bounds(month)
        self.fetch_count += 1
        log.info("Fetching availability: contractor=%s month=%s",
                 self._contractor_id, month)
        try:
            window = await self._backend.fetch_availability(
                self._contractor_id, start, end,
            )
        except FetchError as exc:
            self._errors[month] = exc
            log.warning("Availability fetch failed for %s: %s", month, exc.message)
            raise
        finally:
            self._inflight.pop(month, None)

        # Tag with the requested month regardless of what the backend echoed
        window.month = month
        self._windows[month] = window
        self._errors.pop(month, None)
        return window
