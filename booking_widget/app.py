"""FastAPI application — hosts booking sessions for headless widget clients.

Endpoints:

  GET    /health                          Health check
  POST   /sessions                        Start a booking session for a contractor
  GET    /sessions/{id}                   Current session state
  GET    /sessions/{id}/calendar?month=   Navigate the calendar (YYYY-MM)
  POST   /sessions/{id}/service           Choose a service       → DATE
  POST   /sessions/{id}/date              Choose a date          → TIME
  POST   /sessions/{id}/time              Choose a time slot     → DETAILS
  PATCH  /sessions/{id}/form              Edit customer details
  POST   /sessions/{id}/submit            Validate and book      → CONFIRM
  POST   /sessions/{id}/back              Previous step
  DELETE /sessions/{id}/error             Dismiss the error banner
  DELETE /sessions/{id}                   Abandon the session

  GET    /admin/sessions                  All active sessions (admin token)
  GET    /admin/sessions/{id}/events      Event log (admin token)

Step operations answer 200 on success; a rejected operation answers with
the session state plus the error and a 4xx/5xx status.
Sessions idle past SESSION_IDLE_TTL_SECONDS are swept in the background.
"""

from __future__ import annotations

# Load .env into os.environ before settings are read elsewhere
from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
import re
import time
from contextlib import asynccontextmanager
from datetime import date
from typing import Callable, Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-24s %(levelname)-7s %(message)s",
)

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from booking_widget.auth import require_admin_token
from booking_widget.clients.base import BookingBackend
from booking_widget.clients.http import close_default_backend, get_default_backend
from booking_widget.config import settings
from booking_widget.exceptions import (
    BookingError,
    FetchError,
    InvalidTransition,
    SelectionError,
    SubmissionError,
    ValidationErrors,
)
from booking_widget.formatting import parse_month
from booking_widget.models import CustomerForm
from booking_widget.registry import SessionRegistry, registry as default_registry
from booking_widget.session import BookingSession, StepResult

log = logging.getLogger("booking_widget.app")

_START_TIME = time.time()

_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

_STATUS_BY_ERROR: list[tuple[type[BookingError], int]] = [
    (ValidationErrors, 422),
    (SelectionError, 422),
    (InvalidTransition, 409),
    (FetchError, 502),
    (SubmissionError, 502),
]


# ── Request bodies ──────────────────────────────────────────────

class CreateSessionBody(BaseModel):
    contractor_id: str
    month: Optional[str] = None


class ServiceBody(BaseModel):
    service_id: str


class DateBody(BaseModel):
    date: str


class TimeBody(BaseModel):
    start: str


class SubmitBody(BaseModel):
    form: Optional[CustomerForm] = None


# ── Helpers ─────────────────────────────────────────────────────

def _validate_id(value: str, what: str) -> str:
    if not _ID_PATTERN.match(value):
        raise HTTPException(status_code=400, detail=f"Invalid {what}")
    return value


def _validate_month(value: str) -> str:
    try:
        parse_month(value)
    except ValueError:
        raise HTTPException(status_code=422, detail="month must be YYYY-MM")
    return value


def _status_for(error: BookingError) -> int:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_cls):
            return status_code
    return 400


def _session_or_404(registry: SessionRegistry, session_id: str) -> BookingSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _respond(session: BookingSession, result: StepResult) -> JSONResponse:
    body = {"result": result.to_dict(), "session": session.to_dict()}
    return JSONResponse(body, status_code=200 if result.ok else _status_for(result.error))


def create_app(
    backend: BookingBackend | None = None,
    today: Callable[[], date] = date.today,
    registry: SessionRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``backend`` defaults to the shared HTTP backend pointed at
    ``API_BASE_URL``; pass an InMemoryBookingBackend to run standalone.
    ``registry`` defaults to the process-wide SessionRegistry.
    """
    sessions = registry if registry is not None else default_registry

    async def reap_sessions() -> None:
        while True:
            await asyncio.sleep(settings.session_sweep_interval_seconds)
            sessions.sweep()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for warning in settings.validate_startup():
            log.warning(warning)
        reaper = asyncio.create_task(reap_sessions())
        try:
            yield
        finally:
            reaper.cancel()
            if backend is None:
                await close_default_backend()

    app = FastAPI(
        title="Krib Booking Widget",
        description="Booking wizard sessions over the contractor availability API",
        version="0.1.0",
        lifespan=lifespan,
    )

    def _backend() -> BookingBackend:
        return backend or get_default_backend()

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({
            "status": "ok",
            "uptime": uptime,
            "active_sessions": len(sessions),
        })

    # ── Session lifecycle ──────────────────────────────────────

    @app.post("/sessions", status_code=201)
    async def create_session(body: CreateSessionBody) -> JSONResponse:
        """Start a session: load contractor info and the first calendar month."""
        _validate_id(body.contractor_id, "contractor id")
        if body.month:
            _validate_month(body.month)

        session = BookingSession(body.contractor_id, backend=_backend(), today=today)
        loaded = await session.load_contractor()
        if not loaded.ok:
            error = loaded.error
            status_code = getattr(error, "status_code", None)
            raise HTTPException(
                status_code=status_code if status_code in (403, 404) else 502,
                detail=error.message,
            )

        sessions.sweep()
        session_id = sessions.add(session)
        result = await session.show_month(body.month or f"{today():%Y-%m}")

        log.info("Booking session %s started for contractor %s", session_id, body.contractor_id)
        return JSONResponse(
            {"result": result.to_dict(), "session": session.to_dict()},
            status_code=201,
        )

    @app.get("/sessions/{session_id}")
    async def read_session(session_id: str) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        return JSONResponse(session.to_dict())

    @app.delete("/sessions/{session_id}")
    async def delete_session(session_id: str) -> JSONResponse:
        _session_or_404(sessions, session_id)
        sessions.remove(session_id)
        return JSONResponse({"session_id": session_id, "deleted": True})

    # ── Calendar ───────────────────────────────────────────────

    @app.get("/sessions/{session_id}/calendar")
    async def show_calendar(session_id: str, month: str = Query(...)) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        result = await session.show_month(_validate_month(month))
        return _respond(session, result)

    # ── Step controller ────────────────────────────────────────

    @app.post("/sessions/{session_id}/service")
    async def choose_service(session_id: str, body: ServiceBody) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        return _respond(session, session.select_service(body.service_id))

    @app.post("/sessions/{session_id}/date")
    async def choose_date(session_id: str, body: DateBody) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        return _respond(session, session.select_date(body.date))

    @app.post("/sessions/{session_id}/time")
    async def choose_time(session_id: str, body: TimeBody) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        return _respond(session, session.select_time(body.start))

    @app.patch("/sessions/{session_id}/form")
    async def edit_form(session_id: str, body: dict[str, str]) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        # Accept camelCase keys from browser clients
        fields = {_form_field(k): v for k, v in body.items()}
        return _respond(session, session.update_form(**fields))

    @app.post("/sessions/{session_id}/submit")
    async def submit_booking(session_id: str, body: SubmitBody) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        result = await session.submit(body.form)
        return _respond(session, result)

    @app.post("/sessions/{session_id}/back")
    async def go_back(session_id: str) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        return _respond(session, session.go_back())

    @app.delete("/sessions/{session_id}/error")
    async def dismiss_error(session_id: str) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        session.dismiss_error()
        return JSONResponse(session.to_dict())

    # ── Admin ──────────────────────────────────────────────────

    @app.get("/admin/sessions", dependencies=[Depends(require_admin_token)])
    async def list_sessions() -> JSONResponse:
        active = sessions.sessions()
        return JSONResponse({
            "sessions": [s.to_dict() for s in active],
            "count": len(active),
        })

    @app.get("/admin/sessions/{session_id}/events", dependencies=[Depends(require_admin_token)])
    async def session_events(session_id: str) -> JSONResponse:
        session = _session_or_404(sessions, session_id)
        return JSONResponse(session.to_dict(detail=True))

    return app


def _form_field(key: str) -> str:
    """Map a camelCase form key to its snake_case field name."""
    for name, info in CustomerForm.model_fields.items():
        if key == name or key == info.alias:
            return name
    return key


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "booking_widget.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
