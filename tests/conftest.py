"""
Configuration for pytest.

Fixtures for building CalendarService instances around a fake Calendar API.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from calbridge.calendar.errors import FailureHandler
from calbridge.calendar.service import CalendarService
from calbridge.config.environment import EnvironmentMode
from tests.helpers import NOW


@pytest.fixture
def calendar_api():
    """A MagicMock standing in for a googleapiclient Calendar v3 resource."""
    return MagicMock()


@pytest.fixture
def failure_handler():
    return FailureHandler(invalidator=MagicMock(), notifier=MagicMock())


@pytest.fixture
def make_service(calendar_api, failure_handler):
    """Factory for CalendarService instances wired to the fake API."""

    def _make(mode: str = "test") -> CalendarService:
        return CalendarService(
            api_factory=AsyncMock(return_value=calendar_api),
            failure_handler=failure_handler,
            mode=EnvironmentMode(mode),
            clock=lambda: NOW,
        )

    return _make
