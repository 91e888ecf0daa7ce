"""Credential provider for the Google Calendar API.

The OAuth token lives encrypted in the credential store (see
``python -m calbridge.calendar.setup``).  Credentials are cached per process
and refreshed when expired; every operation gets its own API client built on
top of them.
"""

import asyncio
import json
import logging
import os
import threading
from typing import Any, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from calbridge.calendar.errors import (
    NO_CREDENTIALS_MESSAGE,
    NO_REFRESH_TOKEN_MESSAGE,
    MissingTokenError,
)
from calbridge.config.config_loader import config_loader
from calbridge.credentials.store import CredentialStore, get_credential_store

logger = logging.getLogger(__name__)

CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
SCOPES = [CALENDAR_SCOPE]
DEFAULT_TOKEN_CREDENTIAL = "calendar_token"

# Fields creds.to_json() drops but the stored token needs to keep.
_PRESERVED_TOKEN_FIELDS = ("quota_project_id",)

_credentials: Optional[Credentials] = None
_credentials_lock = threading.Lock()


def get_token_credential_name() -> str:
    """Name of the credential-store entry holding the calendar OAuth token."""
    return config_loader.get_calendar_config().get(
        "token_credential", DEFAULT_TOKEN_CREDENTIAL
    )


def _get_quota_project(token_info: dict) -> Optional[str]:
    """Quota project for user credentials: config, env, then the token itself."""
    return (
        config_loader.get_calendar_config().get("quota_project")
        or os.environ.get("GOOGLE_CLOUD_QUOTA_PROJECT")
        or token_info.get("quota_project_id")
    )


def load_credentials(store: Optional[CredentialStore] = None) -> Credentials:
    """Load the stored OAuth token, refreshing and re-saving it when expired.

    Blocking; run it in a worker thread from async code.

    Raises:
        MissingTokenError: If no token is stored, the token has been marked
            invalid, or an expired token has no refresh token.
        google.auth.exceptions.RefreshError: If Google rejects the refresh.
    """
    store = store or get_credential_store()
    name = get_token_credential_name()

    if not store.available:
        raise MissingTokenError(NO_CREDENTIALS_MESSAGE)
    if store.is_invalid(name):
        logger.warning(f"Calendar token '{name}' is marked invalid; re-run setup")
        raise MissingTokenError(NO_CREDENTIALS_MESSAGE)

    token_json = store.get(name)
    if not token_json:
        raise MissingTokenError(NO_CREDENTIALS_MESSAGE)

    token_info = json.loads(token_json)
    if not token_info.get("refresh_token"):
        raise MissingTokenError(NO_REFRESH_TOKEN_MESSAGE)

    creds = Credentials.from_authorized_user_info(token_info, SCOPES)
    if not creds.valid:
        creds.refresh(Request())
        refreshed = json.loads(creds.to_json())
        for key in _PRESERVED_TOKEN_FIELDS:
            if key in token_info and key not in refreshed:
                refreshed[key] = token_info[key]
        store.set(name, json.dumps(refreshed), credential_type="oauth_token")
        logger.info("Calendar: Refreshed OAuth token and wrote it back to the store")

    quota_project = _get_quota_project(token_info)
    if quota_project:
        creds = creds.with_quota_project(quota_project)
    return creds


def _get_credentials() -> Credentials:
    global _credentials
    with _credentials_lock:
        if _credentials is None or not _credentials.valid:
            _credentials = load_credentials()
        return _credentials


def _build_service() -> Any:
    return build("calendar", "v3", credentials=_get_credentials(), cache_discovery=False)


async def create_calendar_api() -> Any:
    """Return an authorized Calendar v3 client.

    Raises:
        MissingTokenError: If no usable token is stored.
        google.auth.exceptions.RefreshError: If the token refresh is rejected.
    """
    return await asyncio.to_thread(_build_service)


def reset_credentials() -> None:
    """Forget the cached credentials."""
    global _credentials
    with _credentials_lock:
        _credentials = None


def invalidate_token(store: Optional[CredentialStore] = None) -> None:
    """Mark the stored calendar token invalid and drop the cached copy.

    Credential acquisition keeps failing with :class:`MissingTokenError`
    until a new token is stored by the setup command.
    """
    reset_credentials()
    store = store or get_credential_store()
    if not store.available:
        logger.warning("Credential store unavailable; calendar token not marked invalid")
        return
    store.mark_invalid(get_token_credential_name())
    logger.info("Calendar token marked invalid")


class StoredTokenInvalidator:
    """Token invalidation port backed by the credential store."""

    def __init__(self, store: Optional[CredentialStore] = None):
        self.store = store

    def invalidate_token(self) -> None:
        invalidate_token(self.store)
