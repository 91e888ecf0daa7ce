"""Request models for the Google Calendar adapter."""

import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

# Google Calendar JSON shapes are passed through as plain dicts.
EventBody = Dict[str, Any]
AttendeeRef = Dict[str, Any]


class CalendarData(BaseModel):
    """Fields for a new secondary calendar."""

    summary: str = Field(description="Calendar title")
    description: str = Field(description="Calendar description")


class CalendarId(BaseModel):
    """Handle to a remote calendar."""

    calendar_id: str = Field(description="Google calendar identifier")


class EventIds(BaseModel):
    """Handle to a remote event."""

    calendar_id: str = Field(description="Google calendar identifier")
    calendar_event_id: str = Field(description="Google event identifier")


class Attendee(BaseModel):
    """Attendee addressed by an attendee operation."""

    attendee_email: str = Field(description="Attendee email address")


class EventData(BaseModel):
    """Sparse event patch; fields left as None are not changed."""

    start: Optional[datetime.datetime] = Field(None, description="Event start")
    end: Optional[datetime.datetime] = Field(None, description="Event end")
    summary: Optional[str] = Field(None, description="Event title")
    attendees: Optional[List[AttendeeRef]] = Field(
        None, description="Full replacement attendee list"
    )
    status: Optional[Literal["cancelled"]] = Field(None, description="Event status")
