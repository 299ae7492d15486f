"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("booking_widget.config")


class Settings(BaseSettings):
    # Remote widget API (availability oracle + submission gateway)
    api_base_url: str = "http://localhost:3000"
    request_timeout_seconds: float = 15.0

    # Fallback when a contractor profile omits its booking settings
    default_max_advance_days: int = 30

    # Session expiry: idle sessions, and confirmed ones after a short grace
    session_idle_ttl_seconds: int = 1800
    confirmed_session_ttl_seconds: int = 300
    session_sweep_interval_seconds: float = 60.0

    # Admin auth
    admin_api_key: str = ""

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if not self.api_base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"API_BASE_URL must be an http(s) URL, got {self.api_base_url!r}."
            )

        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive.")

        if self.session_sweep_interval_seconds <= 0:
            raise ValueError("SESSION_SWEEP_INTERVAL_SECONDS must be positive.")

        if self.session_idle_ttl_seconds < 60:
            warnings.append(
                "SESSION_IDLE_TTL_SECONDS < 60 may expire visitors mid-booking."
            )

        if self.confirmed_session_ttl_seconds > self.session_idle_ttl_seconds:
            warnings.append(
                "CONFIRMED_SESSION_TTL_SECONDS exceeds SESSION_IDLE_TTL_SECONDS; "
                "confirmed sessions expire on the idle timeout instead."
            )

        if self.default_max_advance_days < 1:
            warnings.append(
                "DEFAULT_MAX_ADVANCE_DAYS < 1 leaves no bookable dates "
                "for contractors without their own setting."
            )

        # Admin API key — warn if unset
        if not self.admin_api_key:
            if self.debug:
                warnings.append(
                    "ADMIN_API_KEY not set. Admin APIs are open (DEBUG=true)."
                )
            else:
                warnings.append(
                    "ADMIN_API_KEY not set. Admin APIs are locked in production. "
                    "Set ADMIN_API_KEY in .env to enable admin access."
                )

        return warnings


settings = Settings()
