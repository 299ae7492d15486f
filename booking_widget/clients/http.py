"""HTTP booking backend — talks to the hosted widget API.

Endpoints (relative to ``API_BASE_URL``):

  GET  /api/widget/contractor-info?contractorId=
  GET  /api/widget/availability?contractorId=&startDate=&endDate=
  POST /api/widget/book
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from booking_widget.config import settings
from booking_widget.exceptions import (
    GENERIC_FETCH_MESSAGE,
    GENERIC_SUBMISSION_MESSAGE,
    FetchError,
    SubmissionError,
)
from booking_widget.formatting import month_key
from booking_widget.models import (
    AvailabilityWindow,
    BookingConfirmation,
    BookingRequest,
    ContractorInfo,
)

from .base import BookingBackend

logger = logging.getLogger(__name__)


def _error_message(data: dict[str, Any], default: str) -> str:
    """The body's ``error`` string, or ``default`` when absent or not text."""
    error = data.get("error")
    if isinstance(error, str) and error.strip():
        return error
    return default


class HttpBookingBackend(BookingBackend):
    """BookingBackend backed by the widget's serverless endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    @staticmethod
    def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
        """Parse a JSON object body, tolerating empty or non-JSON bodies."""
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def _get_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._client.get(self._url(path), params=params)
        except httpx.HTTPError as exc:
            logger.warning("GET %s failed: %s", path, exc)
            raise FetchError(GENERIC_FETCH_MESSAGE) from exc

        data = self._json_or_empty(response)
        if response.is_error:
            message = _error_message(data, GENERIC_FETCH_MESSAGE)
            logger.warning("GET %s returned %d: %s", path, response.status_code, message)
            raise FetchError(message, status_code=response.status_code)
        return data

    # ------------------------------------------------------------------
    # BookingBackend interface
    # ------------------------------------------------------------------

    async def fetch_contractor_info(self, contractor_id: str) -> ContractorInfo:
        data = await self._get_json(
            "/api/widget/contractor-info", {"contractorId": contractor_id},
        )
        try:
            return ContractorInfo.model_validate(data)
        except ValidationError as exc:
            logger.warning("Malformed contractor info for %s: %s", contractor_id, exc)
            raise FetchError("Failed to load booking information") from exc

    async def fetch_availability(
        self,
        contractor_id: str,
        start: date,
        end: date,
    ) -> AvailabilityWindow:
        data = await self._get_json(
            "/api/widget/availability",
            {
                "contractorId": contractor_id,
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
            },
        )
        try:
            return AvailabilityWindow.from_payload(month_key(start), data)
        except ValidationError as exc:
            logger.warning("Malformed availability for %s: %s", contractor_id, exc)
            raise FetchError(GENERIC_FETCH_MESSAGE) from exc

    async def submit_booking(self, request: BookingRequest) -> BookingConfirmation:
        """POST the booking and interpret the gateway's answer.

        Non-success statuses surface the gateway's ``error`` message;
        network failures surface the generic message.  No retry.
        """
        try:
            response = await self._client.post(
                self._url("/api/widget/book"), json=request.to_wire(),
            )
        except httpx.HTTPError as exc:
            logger.warning("Booking submission failed at the network layer: %s", exc)
            raise SubmissionError(GENERIC_SUBMISSION_MESSAGE) from exc

        data = self._json_or_empty(response)
        if response.is_error:
            message = _error_message(data, GENERIC_SUBMISSION_MESSAGE)
            logger.info("Booking rejected (%d): %s", response.status_code, message)
            raise SubmissionError(message, status_code=response.status_code)

        payload = data.get("booking", data)
        try:
            confirmation = BookingConfirmation.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Malformed booking confirmation: %s", exc)
            raise SubmissionError(GENERIC_SUBMISSION_MESSAGE) from exc

        logger.info(
            "Booking %s confirmed for contractor %s",
            confirmation.confirmation_code, request.contractor_id,
        )
        return confirmation


# ── Process-wide default backend ────────────────────────────────────

_default_backend: HttpBookingBackend | None = None


def get_default_backend() -> HttpBookingBackend:
    """Return the shared HTTP backend, creating it on first use.

    Every later call returns the same instance, so the connection pool is
    created exactly once per process.
    """
    global _default_backend
    if _default_backend is None:
        _default_backend = HttpBookingBackend()
        logger.info("HttpBookingBackend created for %s", settings.api_base_url)
    return _default_backend


async def close_default_backend() -> None:
    """Close and forget the shared backend (idempotent)."""
    global _default_backend
    if _default_backend is not None:
        await _default_backend.aclose()
        _default_backend = None
        logger.info("HttpBookingBackend closed")
