"""Google Calendar operations used by the application.

Every remote call, including building the authorized client, goes through
the :class:`FailureHandler` so token failures invalidate the stored token.

Attendee edits and detail updates are get-then-update pairs with no version
check: two callers editing the same event concurrently can lose one edit.
Google's own last-write-wins applies.
"""

import asyncio
import datetime
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from calbridge.calendar.attendees import (
    AttendeeTransform,
    add_to_attendees,
    cancel_attendance,
    remove_from_attendees,
)
from calbridge.calendar.auth import StoredTokenInvalidator, create_calendar_api
from calbridge.calendar.errors import FailureHandler
from calbridge.calendar.models import (
    Attendee,
    AttendeeRef,
    CalendarData,
    CalendarId,
    EventBody,
    EventData,
    EventIds,
)
from calbridge.calendar.request_builder import build_event_body
from calbridge.config.environment import EnvironmentMode
from calbridge.notifications.alerts import NtfyInvalidTokenNotifier
from calbridge.utils.dates import is_future, parse_datetime, utcnow

logger = logging.getLogger(__name__)

CalendarApi = Any
EventUpdater = Callable[[EventBody], EventBody]

SEND_UPDATES = "all"


class CalendarService:
    """Calendar operations against one Google account."""

    def __init__(
        self,
        api_factory: Optional[Callable[[], Awaitable[CalendarApi]]] = None,
        failure_handler: Optional[FailureHandler] = None,
        mode: Optional[EnvironmentMode] = None,
        clock: Callable[[], datetime.datetime] = utcnow,
    ):
        """Initialize CalendarService.

        Args:
            api_factory: Coroutine function returning an authorized Calendar
                v3 client.  Defaults to the credential-store backed provider.
            failure_handler: Token failure handler.  Defaults to one that
                marks the stored token invalid and alerts via ntfy.
            mode: Environment mode.  Resolved from config when omitted.
            clock: Returns the current time for future-start checks.
        """
        self.api_factory = api_factory or create_calendar_api
        self.failure_handler = failure_handler or FailureHandler(
            StoredTokenInvalidator(), NtfyInvalidTokenNotifier()
        )
        self._mode = mode
        self.clock = clock

    @property
    def mode(self) -> EnvironmentMode:
        if self._mode is None:
            self._mode = EnvironmentMode.from_config()
        return self._mode

    async def _api(self) -> CalendarApi:
        return await self.failure_handler.call(self.api_factory)

    async def _execute(self, make_request: Callable[[], Any]) -> Any:
        """Build a request and run its blocking ``execute()`` in a worker thread."""

        async def run() -> Any:
            request = make_request()
            return await asyncio.to_thread(request.execute)

        return await self.failure_handler.call(run)

    def _build_body(
        self, draft: EventData, prior_event: Optional[EventBody] = None
    ) -> EventBody:
        return build_event_body(draft, prior_event, mode=self.mode, now=self.clock())

    async def get_and_update_event(
        self, event_ids: EventIds, updater: EventUpdater
    ) -> EventBody:
        """Fetch an event, apply *updater* and write the result back.

        The update is only sent after the fetch succeeds, and Google notifies
        all attendees of the change.

        Returns:
            The updated event as returned by Google.
        """
        api = await self._api()
        calendar_id = event_ids.calendar_id
        event_id = event_ids.calendar_event_id

        old_event = await self._execute(
            lambda: api.events().get(calendarId=calendar_id, eventId=event_id)
        )
        body = updater(old_event)
        return await self._execute(
            lambda: api.events().update(
                calendarId=calendar_id,
                eventId=event_id,
                sendUpdates=SEND_UPDATES,
                body=body,
            )
        )

    def _starts_in_future(self, event: EventBody) -> bool:
        start = (event.get("start") or {}).get("dateTime")
        if not start:
            return False
        return is_future(parse_datetime(start), self.clock())

    def attendee_updater(self, transform: AttendeeTransform) -> EventUpdater:
        """Updater applying *transform* to the attendees of a future event.

        Events that already started keep their stored attendee list.
        """

        def updater(old_event: EventBody) -> EventBody:
            attendees: Optional[List[AttendeeRef]] = old_event.get("attendees")
            if self._starts_in_future(old_event):
                attendees = transform(attendees)
            return self._build_body(EventData(attendees=attendees), old_event)

        return updater

    async def update_attendees(
        self, event_ids: EventIds, transform: AttendeeTransform
    ) -> EventBody:
        return await self.get_and_update_event(
            event_ids, self.attendee_updater(transform)
        )

    async def create_calendar(self, calendar_data: CalendarData) -> Dict[str, Any]:
        """Create a secondary calendar and return Google's calendar resource."""
        api = await self._api()
        calendar = await self._execute(
            lambda: api.calendars().insert(
                body={
                    "summary": calendar_data.summary,
                    "description": calendar_data.description,
                }
            )
        )
        logger.info(f"Created calendar {calendar.get('id')}")
        return calendar

    async def create_calendar_event(
        self, calendar_id: CalendarId, event_data: EventData
    ) -> Dict[str, Optional[str]]:
        """Insert an event and return ``{"calendar_event_id": <id>}``."""
        api = await self._api()
        event = await self._execute(
            lambda: api.events().insert(
                calendarId=calendar_id.calendar_id,
                sendUpdates=SEND_UPDATES,
                body=self._build_body(event_data),
            )
        )
        logger.info(f"Created event {event.get('id')} in {calendar_id.calendar_id}")
        return {"calendar_event_id": event.get("id")}

    async def update_calendar_event_details(
        self, event_ids: EventIds, event_data: EventData
    ) -> None:
        """Update event details such as time and title.

        Use the attendee operations to change attendees.
        """
        await self.get_and_update_event(
            event_ids, lambda old_event: self._build_body(event_data, old_event)
        )

    async def add_event_attendee(
        self, event_ids: EventIds, attendee: Attendee
    ) -> EventBody:
        return await self.update_attendees(
            event_ids, add_to_attendees(attendee.attendee_email)
        )

    async def remove_event_attendee(
        self, event_ids: EventIds, attendee: Attendee
    ) -> EventBody:
        return await self.update_attendees(
            event_ids, remove_from_attendees(attendee.attendee_email)
        )

    async def cancel_event_attendance(
        self, event_ids: EventIds, attendee: Attendee
    ) -> EventBody:
        """Mark the attendee as having declined the event."""
        return await self.update_attendees(
            event_ids, cancel_attendance(attendee.attendee_email)
        )

    async def delete_calendar_event(self, event_ids: EventIds) -> None:
        api = await self._api()
        await self._execute(
            lambda: api.events().delete(
                calendarId=event_ids.calendar_id,
                eventId=event_ids.calendar_event_id,
                sendUpdates=SEND_UPDATES,
            )
        )
        logger.info(
            f"Deleted event {event_ids.calendar_event_id} from {event_ids.calendar_id}"
        )


_service: Optional[CalendarService] = None


def get_calendar_service() -> CalendarService:
    """Return the process-wide :class:`CalendarService`."""
    global _service
    if _service is None:
        _service = CalendarService()
    return _service


def reset_calendar_service() -> None:
    """Drop the process-wide service so the next call rebuilds it."""
    global _service
    _service = None


async def create_calendar(calendar_data: CalendarData) -> Dict[str, Any]:
    return await get_calendar_service().create_calendar(calendar_data)


async def create_calendar_event(
    calendar_id: CalendarId, event_data: EventData
) -> Dict[str, Optional[str]]:
    return await get_calendar_service().create_calendar_event(calendar_id, event_data)


async def update_calendar_event_details(
    event_ids: EventIds, event_data: EventData
) -> None:
    await get_calendar_service().update_calendar_event_details(event_ids, event_data)


async def add_event_attendee(event_ids: EventIds, attendee: Attendee) -> EventBody:
    return await get_calendar_service().add_event_attendee(event_ids, attendee)


async def remove_event_attendee(event_ids: EventIds, attendee: Attendee) -> EventBody:
    return await get_calendar_service().remove_event_attendee(event_ids, attendee)


async def cancel_event_attendance(
    event_ids: EventIds, attendee: Attendee
) -> EventBody:
    return await get_calendar_service().cancel_event_attendance(event_ids, attendee)


async def delete_calendar_event(event_ids: EventIds) -> None:
    await get_calendar_service().delete_calendar_event(event_ids)
