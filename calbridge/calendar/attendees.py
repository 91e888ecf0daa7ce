"""Attendee list transformations.

Each operator takes an email and returns a function from the current
attendee list (``None`` when the event has none) to the new list.  Input
lists and their entries are never mutated.
"""

from typing import Callable, List, Optional

from calbridge.calendar.models import AttendeeRef

AttendeeTransform = Callable[[Optional[List[AttendeeRef]]], List[AttendeeRef]]


def remove_from_attendees(email: str) -> AttendeeTransform:
    def transform(attendees: Optional[List[AttendeeRef]]) -> List[AttendeeRef]:
        return [a for a in attendees or [] if a.get("email") != email]

    return transform


def add_to_attendees(email: str) -> AttendeeTransform:
    # No deduplication: adding an existing email yields a second entry.
    def transform(attendees: Optional[List[AttendeeRef]]) -> List[AttendeeRef]:
        return list(attendees or []) + [{"email": email}]

    return transform


def cancel_attendance(email: str) -> AttendeeTransform:
    def transform(attendees: Optional[List[AttendeeRef]]) -> List[AttendeeRef]:
        return [
            {**a, "responseStatus": "declined"} if a.get("email") == email else a
            for a in attendees or []
        ]

    return transform
