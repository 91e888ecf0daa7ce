"""Tests for the credential-store backed calendar credential provider."""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials

from calbridge.calendar import auth
from calbridge.calendar.errors import (
    NO_CREDENTIALS_MESSAGE,
    NO_REFRESH_TOKEN_MESSAGE,
    MissingTokenError,
    is_token_error,
)

VALID_TOKEN = {
    "token": "access-token",
    "refresh_token": "refresh-token",
    "client_id": "client-id",
    "client_secret": "client-secret",
    "token_uri": "https://oauth2.googleapis.com/token",
    "expiry": "2099-01-01T00:00:00Z",
}

EXPIRED_TOKEN = {**VALID_TOKEN, "expiry": "2000-01-01T00:00:00Z"}


@pytest.fixture(autouse=True)
def _reset_credentials(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLOUD_QUOTA_PROJECT", raising=False)
    auth.reset_credentials()
    yield
    auth.reset_credentials()


def _store(token=None, invalid=False, available=True):
    store = MagicMock()
    store.available = available
    store.is_invalid.return_value = invalid
    store.get.return_value = json.dumps(token) if token is not None else None
    return store


class TestLoadCredentials:
    def test_loads_valid_token_without_refresh(self):
        store = _store(VALID_TOKEN)

        creds = auth.load_credentials(store)

        assert isinstance(creds, Credentials)
        assert creds.token == "access-token"
        store.get.assert_called_once_with("calendar_token")
        store.set.assert_not_called()

    def test_missing_token(self):
        with pytest.raises(MissingTokenError) as exc_info:
            auth.load_credentials(_store(None))
        assert str(exc_info.value) == NO_CREDENTIALS_MESSAGE
        assert is_token_error(exc_info.value)

    def test_store_unavailable(self):
        with pytest.raises(MissingTokenError, match="No access"):
            auth.load_credentials(_store(VALID_TOKEN, available=False))

    def test_invalid_marker_blocks_token(self):
        store = _store(VALID_TOKEN, invalid=True)
        with pytest.raises(MissingTokenError):
            auth.load_credentials(store)
        store.get.assert_not_called()

    def test_token_without_refresh_token(self):
        token = {k: v for k, v in VALID_TOKEN.items() if k != "refresh_token"}
        with pytest.raises(MissingTokenError) as exc_info:
            auth.load_credentials(_store(token))
        assert str(exc_info.value) == NO_REFRESH_TOKEN_MESSAGE

    def test_expired_token_is_refreshed_and_saved(self):
        store = _store({**EXPIRED_TOKEN, "quota_project_id": "proj"})

        def fake_refresh(self, request):
            self.token = "new-access-token"
            self.expiry = None

        with patch.object(Credentials, "refresh", autospec=True, side_effect=fake_refresh):
            creds = auth.load_credentials(store)

        assert creds.token == "new-access-token"
        name, saved_json = store.set.call_args.args
        assert name == "calendar_token"
        saved = json.loads(saved_json)
        assert saved["token"] == "new-access-token"
        assert saved["quota_project_id"] == "proj"
        assert creds.quota_project_id == "proj"

    def test_rejected_refresh_propagates(self):
        store = _store(EXPIRED_TOKEN)
        err = RefreshError("invalid_grant: Bad Request", {"error": "invalid_grant"})

        with patch.object(Credentials, "refresh", side_effect=err):
            with pytest.raises(RefreshError):
                auth.load_credentials(store)

        store.set.assert_not_called()


class TestCreateCalendarApi:
    def test_builds_service_from_cached_credentials(self):
        creds = MagicMock(valid=True)
        with patch.object(auth, "load_credentials", return_value=creds) as load, \
                patch.object(auth, "build") as build:
            asyncio.run(auth.create_calendar_api())
            asyncio.run(auth.create_calendar_api())

        load.assert_called_once()
        assert build.call_count == 2
        build.assert_called_with("calendar", "v3", credentials=creds, cache_discovery=False)


class TestInvalidateToken:
    def test_marks_token_invalid_and_drops_cache(self):
        store = MagicMock(available=True)
        auth._credentials = MagicMock(valid=True)

        auth.invalidate_token(store)

        store.mark_invalid.assert_called_once_with("calendar_token")
        assert auth._credentials is None

    def test_store_unavailable_only_drops_cache(self):
        store = MagicMock(available=False)
        auth.invalidate_token(store)
        store.mark_invalid.assert_not_called()

    def test_invalidator_port(self):
        store = MagicMock(available=True)
        auth.StoredTokenInvalidator(store).invalidate_token()
        store.mark_invalid.assert_called_once()
