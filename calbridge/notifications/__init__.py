"""
Push notification support via ntfy.sh.

Used to tell operators when the Google Calendar token has been rejected so
they can re-authorize before more calendar writes are lost.
"""

from .alerts import NtfyInvalidTokenNotifier, send_invalid_token_notification
from .ntfy_client import NtfyClient, NtfySettings, get_ntfy_client, reset_ntfy_client

__all__ = [
    "NtfyClient",
    "NtfyInvalidTokenNotifier",
    "NtfySettings",
    "get_ntfy_client",
    "reset_ntfy_client",
    "send_invalid_token_notification",
]
