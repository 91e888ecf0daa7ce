"""Operator alerts raised by the calendar adapter."""

import asyncio
import logging
from typing import Set

from calbridge.notifications.ntfy_client import get_ntfy_client

logger = logging.getLogger(__name__)

# Strong references so pending alerts are not garbage collected mid-flight.
_pending: Set[asyncio.Task] = set()


async def deliver_invalid_token_alert() -> bool:
    """Resolve the ntfy client off the loop and post the invalid-token alert."""
    client = await asyncio.to_thread(get_ntfy_client)
    if client is None:
        logger.warning("Invalid calendar token; ntfy not configured, no alert sent")
        return False
    return await client.send_invalid_token_alert()


def _finished(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    err = task.exception()
    if err is not None:
        logger.error(f"Invalid token alert failed: {err!r}")


def send_invalid_token_notification() -> None:
    """Alert operators that the calendar token stopped working.

    Fire-and-forget: the alert is scheduled on the running event loop and
    this function returns immediately.  Outside an event loop the alert is
    delivered before returning.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(deliver_invalid_token_alert())
        return

    task = loop.create_task(deliver_invalid_token_alert())
    _pending.add(task)
    task.add_done_callback(_finished)


class NtfyInvalidTokenNotifier:
    """Notification port backed by :func:`send_invalid_token_notification`."""

    def send_invalid_token_notification(self) -> None:
        send_invalid_token_notification()
