"""Build Google Calendar event bodies for insert and update calls."""

import datetime
from typing import Optional

from calbridge.calendar.models import EventBody, EventData
from calbridge.config.environment import EnvironmentMode
from calbridge.utils.dates import is_future, to_iso_string


def should_update_attendees(
    draft: EventData, now: Optional[datetime.datetime] = None
) -> bool:
    """Attendees are only written for events that have not started yet.

    Google emails every attendee on write, so past events keep whatever list
    they already have.
    """
    if draft.attendees is None:
        return False
    return draft.start is None or is_future(draft.start, now)


def build_event_body(
    draft: EventData,
    prior_event: Optional[EventBody] = None,
    *,
    mode: EnvironmentMode,
    now: Optional[datetime.datetime] = None,
) -> EventBody:
    """Merge *draft* onto *prior_event* and return the body to send.

    Every field of *prior_event* is carried over unless the draft overrides
    it.  Guests can never see or invite other guests.

    Args:
        draft: Fields to change.  Only start, end, summary and attendees are
            written.
        prior_event: Event as last fetched from Google, if any.
        mode: Environment mode.  Outside production and test the attendee
            list is blanked so no real invitations go out.
        now: Reference time for the future check, defaults to the current
            UTC time.
    """
    body: EventBody = dict(prior_event or {})

    if draft.start:
        body["start"] = {"dateTime": to_iso_string(draft.start)}
    if draft.end:
        body["end"] = {"dateTime": to_iso_string(draft.end)}
    if draft.summary:
        body["summary"] = draft.summary

    if should_update_attendees(draft, now):
        body["attendees"] = (
            list(draft.attendees) if mode.is_production or mode.is_test else []
        )

    body["guestsCanSeeOtherGuests"] = False
    body["guestsCanInviteOthers"] = False
    return body
