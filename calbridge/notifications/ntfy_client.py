"""
ntfy push channel for calendar operator alerts.

Settings come from ``integrations.ntfy`` first, then NTFY_URL / NTFY_TOPIC /
NTFY_TOKEN environment variables, and the access token finally from the
credential store (``ntfy_token``).  With no topic, or with the integration
disabled, there is no client and alerts are only logged.
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)

INVALID_TOKEN_TITLE = "Google Calendar token is invalid"
INVALID_TOKEN_MESSAGE = (
    "Calendar requests are failing authentication. Re-authorize with "
    "`python -m calbridge.calendar.setup` to restore calendar sync."
)
INVALID_TOKEN_TAGS = "warning,calendar"

_client: Optional["NtfyClient"] = None
_initialized = False
_lock = threading.Lock()


@dataclass(frozen=True)
class NtfySettings:
    url: str
    topic: str
    token: str = ""
    priority: str = "high"


def _store_token() -> str:
    from calbridge.credentials.store import get_credential_store

    store = get_credential_store()
    if not store.available:
        return ""
    try:
        token = store.get("ntfy_token") or ""
    except Exception as e:
        logger.debug(f"ntfy credential store lookup failed: {e}")
        return ""
    if token:
        logger.info("ntfy: Using access token from credential store")
    return token


def load_settings() -> Optional[NtfySettings]:
    """Resolve ntfy settings, or ``None`` when alerts cannot be delivered."""
    from calbridge.config.config_loader import config_loader

    cfg = config_loader.get_ntfy_config()
    if not cfg.get("enabled", True):
        logger.info("ntfy integration is disabled in config")
        return None

    topic = cfg.get("topic") or os.environ.get("NTFY_TOPIC") or ""
    if not topic:
        logger.info(
            "ntfy integration not configured -- set integrations.ntfy.topic "
            "in config or NTFY_TOPIC env var"
        )
        return None

    return NtfySettings(
        url=(cfg.get("url") or os.environ.get("NTFY_URL") or "https://ntfy.sh").rstrip("/"),
        topic=topic,
        token=cfg.get("token") or os.environ.get("NTFY_TOKEN") or _store_token(),
        priority=cfg.get("default_priority") or "high",
    )


class NtfyClient:
    """Posts calendar alerts to one ntfy topic."""

    def __init__(self, settings: NtfySettings):
        self.settings = settings

    @property
    def topic_url(self) -> str:
        return f"{self.settings.url}/{self.settings.topic}"

    def _headers(self, title: str, tags: str) -> Dict[str, str]:
        headers = {
            "Title": title,
            "Priority": self.settings.priority,
            "Tags": tags,
        }
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"
        return headers

    async def send_alert(self, title: str, message: str, tags: str) -> bool:
        """Post one alert.  Returns ``True`` when ntfy accepted it.

        Delivery failures are logged and reported through the return value;
        alerts never raise into the calendar call that triggered them.
        """
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.post(
                    self.topic_url, content=message, headers=self._headers(title, tags)
                )
        except httpx.HTTPError as e:
            logger.error(f"ntfy alert '{title}' failed: {e}")
            return False

        if resp.is_error:
            logger.warning(
                "ntfy alert '%s' rejected with %d: %s",
                title, resp.status_code, resp.text[:200],
            )
            return False

        logger.info(f"ntfy alert sent: {title}")
        return True

    async def send_invalid_token_alert(self) -> bool:
        """Tell operators the Google Calendar token must be re-authorized."""
        return await self.send_alert(
            INVALID_TOKEN_TITLE, INVALID_TOKEN_MESSAGE, INVALID_TOKEN_TAGS
        )


def get_ntfy_client() -> Optional[NtfyClient]:
    """Return the singleton ntfy client, or None if unconfigured.

    Reads config and possibly the credential store; call it off the event loop.
    """
    global _client, _initialized

    with _lock:
        if not _initialized:
            settings = load_settings()
            if settings is not None:
                _client = NtfyClient(settings)
                logger.info(
                    f"ntfy client initialized (topic={settings.topic}, server={settings.url})"
                )
            _initialized = True
        return _client


def reset_ntfy_client() -> None:
    """Clear the singleton so the next call re-initializes with fresh config."""
    global _client, _initialized
    with _lock:
        _client = None
        _initialized = False
