"""Tests for admin API authentication and input validation."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from booking_widget.app import _validate_id, _validate_month
from booking_widget.auth import BAD_TOKEN, KEY_NOT_CONFIGURED, admin_denial, require_admin_token


# ── Fixture: mock settings for auth tests ──────────────────────────

class FakeSettings:
    def __init__(self, admin_api_key="", debug=False):
        self.admin_api_key = admin_api_key
        self.debug = debug


# ── Tests: Auth logic ──────────────────────────────────────────────

class TestAdminDenial:
    def test_matching_token_allowed(self):
        assert admin_denial("secret", "secret", debug=False) is None

    def test_debug_ignored_when_key_set(self):
        assert admin_denial(None, "secret", debug=True) == (401, BAD_TOKEN)

    @pytest.mark.parametrize("token", [None, "", "wrong", "secret ", "Secret"])
    def test_bad_token(self, token):
        assert admin_denial(token, "secret", debug=False) == (401, BAD_TOKEN)

    def test_no_key_in_debug(self):
        assert admin_denial(None, "", debug=True) is None
        assert admin_denial("anything", "", debug=True) is None

    def test_no_key_in_production(self):
        assert admin_denial("anything", "", debug=False) == (403, KEY_NOT_CONFIGURED)


class TestRequireAdminToken:
    """Test the require_admin_token dependency directly."""

    @pytest.mark.asyncio
    async def test_rejects_no_token_when_key_set(self, monkeypatch):
        monkeypatch.setattr("booking_widget.auth.settings", FakeSettings(admin_api_key="secret"))
        with pytest.raises(HTTPException) as exc_info:
            await require_admin_token(credentials=None)
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    @pytest.mark.asyncio
    async def test_rejects_wrong_token(self, monkeypatch):
        monkeypatch.setattr("booking_widget.auth.settings", FakeSettings(admin_api_key="secret"))
        creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials="wrong")
        with pytest.raises(HTTPException) as exc_info:
            await require_admin_token(credentials=creds)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_allows_correct_token(self, monkeypatch):
        monkeypatch.setattr("booking_widget.auth.settings", FakeSettings(admin_api_key="secret"))
        creds = HTTPAuthorizationCredentials(scheme="Bearer", credentials="secret")
        # Should not raise
        await require_admin_token(credentials=creds)

    @pytest.mark.asyncio
    async def test_allows_no_key_debug_mode(self, monkeypatch):
        monkeypatch.setattr("booking_widget.auth.settings",
                            FakeSettings(admin_api_key="", debug=True))
        await require_admin_token(credentials=None)

    @pytest.mark.asyncio
    async def test_rejects_no_key_production(self, monkeypatch):
        monkeypatch.setattr("booking_widget.auth.settings",
                            FakeSettings(admin_api_key="", debug=False))
        with pytest.raises(HTTPException) as exc_info:
            await require_admin_token(credentials=None)
        assert exc_info.value.status_code == 403


# ── Tests: Input validation ─────────────────────────────────────

class TestInputValidation:
    """_validate_id rejects path traversal and unsafe characters."""

    @pytest.mark.parametrize("value", ["contractor_123", "acme-plumbing", "abc123", "a" * 64])
    def test_valid_ids(self, value):
        assert _validate_id(value, "contractor id") == value

    @pytest.mark.parametrize("value", [
        "../../etc/passwd", "foo/bar", "foo.bar", "", "a" * 65, "foo bar", "foo;rm -rf /",
    ])
    def test_rejects_unsafe_ids(self, value):
        with pytest.raises(HTTPException) as exc_info:
            _validate_id(value, "contractor id")
        assert exc_info.value.status_code == 400

    def test_month_format(self):
        assert _validate_month("2025-03") == "2025-03"
        for bad in ("2025-3", "2025-13", "2025-00", "0000-01", "March", "2025-03-01", "2025-03\n"):
            with pytest.raises(HTTPException) as exc_info:
                _validate_month(bad)
            assert exc_info.value.status_code == 422

