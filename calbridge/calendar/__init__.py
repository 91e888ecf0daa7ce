"""Google Calendar adapter for calbridge."""

from calbridge.calendar.auth import create_calendar_api, invalidate_token
from calbridge.calendar.errors import TOKEN_ERRORS, FailureHandler, MissingTokenError
from calbridge.calendar.models import (
    Attendee,
    CalendarData,
    CalendarId,
    EventData,
    EventIds,
)
from calbridge.calendar.service import (
    CalendarService,
    add_event_attendee,
    cancel_event_attendance,
    create_calendar,
    create_calendar_event,
    delete_calendar_event,
    get_calendar_service,
    remove_event_attendee,
    update_calendar_event_details,
)

__all__ = [
    "TOKEN_ERRORS",
    "Attendee",
    "CalendarData",
    "CalendarId",
    "CalendarService",
    "EventData",
    "EventIds",
    "FailureHandler",
    "MissingTokenError",
    "add_event_attendee",
    "cancel_event_attendance",
    "create_calendar",
    "create_calendar_api",
    "create_calendar_event",
    "delete_calendar_event",
    "get_calendar_service",
    "invalidate_token",
    "remove_event_attendee",
    "update_calendar_event_details",
]
