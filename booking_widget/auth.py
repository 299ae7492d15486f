"""Admin access for the session inspection endpoints.

``admin_denial()`` decides; ``require_admin_token`` is the FastAPI
dependency that turns a denial into an HTTP error.

  ADMIN_API_KEY set, bearer token matches  → allowed
  ADMIN_API_KEY set, token wrong or absent → 401
  ADMIN_API_KEY empty, DEBUG=true          → allowed (local development)
  ADMIN_API_KEY empty, DEBUG=false         → 403
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from booking_widget.config import settings

log = logging.getLogger("booking_widget.auth")

_bearer_scheme = HTTPBearer(auto_error=False)

KEY_NOT_CONFIGURED = "Admin API key not configured. Set ADMIN_API_KEY in .env."
BAD_TOKEN = "Invalid or missing admin token."


def admin_denial(token: Optional[str], key: str, debug: bool) -> tuple[int, str] | None:
    """Return ``(status, detail)`` when access is refused, None when allowed."""
    if not key:
        return None if debug else (status.HTTP_403_FORBIDDEN, KEY_NOT_CONFIGURED)
    if not token or not secrets.compare_digest(token.encode("utf-8"), key.encode("utf-8")):
        return status.HTTP_401_UNAUTHORIZED, BAD_TOKEN
    return None


async def require_admin_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> None:
    token = credentials.credentials if credentials else None
    denial = admin_denial(token, settings.admin_api_key, settings.debug)
    if denial is None:
        return

    status_code, detail = denial
    if status_code == status.HTTP_401_UNAUTHORIZED:
        log.warning("Rejected admin request with invalid or missing token")
        raise HTTPException(status_code, detail=detail, headers={"WWW-Authenticate": "Bearer"})
    raise HTTPException(status_code, detail=detail)
