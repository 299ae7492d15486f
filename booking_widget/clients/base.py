"""Abstract base class for booking backends.

A backend plays two roles for the booking flow: the availability oracle
(which dates and times are open) and the submission gateway (turn a
completed session into a confirmed booking).  The HTTP implementation
talks to the hosted widget API; the in-memory one stands in for it in
development and tests.
"""

from abc import ABC, abstractmethod
from datetime import date

from booking_widget.models import (
    AvailabilityWindow,
    BookingConfirmation,
    BookingRequest,
    ContractorInfo,
)


class BookingBackend(ABC):
    """Abstract booking backend.

    Read operations raise ``FetchError`` on failure; ``submit_booking``
    raises ``SubmissionError``.  Implementations never retry on their own.
    """

    @abstractmethod
    async def fetch_contractor_info(self, contractor_id: str) -> ContractorInfo:
        """Return the contractor's public profile and booking settings."""

    @abstractmethod
    async def fetch_availability(
        self,
        contractor_id: str,
        start: date,
        end: date,
    ) -> AvailabilityWindow:
        """Return the availability window for ``[start, end]`` inclusive.

        Args:
            contractor_id: Contractor whose calendar is queried.
            start: First day of the requested range (a month's first day).
            end: Last day of the requested range (a month's last day).

        Returns:
            AvailabilityWindow keyed by ``YYYY-MM-DD``.
        """

    @abstractmethod
    async def submit_booking(self, request: BookingRequest) -> BookingConfirmation:
        """Create a booking.

        Args:
            request: Fully assembled booking request.

        Returns:
            The gateway's confirmation record, surfaced verbatim.
        """
