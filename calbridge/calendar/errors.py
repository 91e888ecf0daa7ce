"""Authentication failure detection for Google Calendar calls.

Every outbound call goes through :meth:`FailureHandler.call`.  When a call
fails with one of the known token errors the stored token is marked invalid
and operators are alerted; the error itself always propagates.

Matching is exact string equality on the extracted message.  If Google
changes the wording of these errors, invalidation silently stops firing.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, TypeVar

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOKEN_ERRORS = frozenset(
    {
        "Invalid Credentials",
        "invalid_grant",
        "No access, refresh token, API key or refresh handler callback is set.",
        "No refresh token is set.",
    }
)

NO_CREDENTIALS_MESSAGE = (
    "No access, refresh token, API key or refresh handler callback is set."
)
NO_REFRESH_TOKEN_MESSAGE = "No refresh token is set."


class MissingTokenError(Exception):
    """Raised by the credential provider when no usable token is stored."""


class TokenInvalidator(Protocol):
    def invalidate_token(self) -> None: ...


class InvalidTokenNotifier(Protocol):
    def send_invalid_token_notification(self) -> None: ...


def error_message(err: BaseException) -> str:
    """Return the message used to classify *err*.

    ``HttpError`` reports the API reason (``"Invalid Credentials"`` on a
    401).  ``RefreshError`` reports the OAuth ``error`` code from the token
    endpoint response (``"invalid_grant"``) when there is one.
    """
    if isinstance(err, HttpError):
        return str(err.reason)
    if isinstance(err, RefreshError) and len(err.args) > 1:
        response = err.args[1]
        if isinstance(response, dict) and response.get("error"):
            return str(response["error"])
    if err.args and isinstance(err.args[0], str):
        return err.args[0]
    return str(err)


def is_token_error(err: BaseException) -> bool:
    return error_message(err) in TOKEN_ERRORS


class FailureHandler:
    """Wraps remote calls and reacts to token failures."""

    def __init__(
        self,
        invalidator: TokenInvalidator,
        notifier: InvalidTokenNotifier,
    ):
        self.invalidator = invalidator
        self.notifier = notifier

    async def handle(self, err: BaseException) -> None:
        """Run the token-failure side effects if *err* is a token error.

        Invalidation writes to the credential store, so it runs in a worker
        thread.  The notifier only schedules its alert and runs on the loop.
        """
        if not is_token_error(err):
            return

        logger.error("Marking token as invalid")
        try:
            await asyncio.to_thread(self.invalidator.invalidate_token)
        except Exception as side_err:
            logger.error(f"Failed to invalidate calendar token: {side_err}")
        try:
            self.notifier.send_invalid_token_notification()
        except Exception as side_err:
            logger.error(f"Failed to send invalid token notification: {side_err}")

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await ``func()`` and return its result, re-raising any failure."""
        try:
            return await func()
        except Exception as err:
            await self.handle(err)
            raise
