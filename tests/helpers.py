"""Shared constants and builders for the calbridge tests."""

import datetime
import json

import httplib2
from googleapiclient.errors import HttpError

NOW = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=datetime.timezone.utc)
FUTURE = NOW + datetime.timedelta(days=1)
PAST = NOW - datetime.timedelta(days=1)


def make_http_error(status: int, message: str) -> HttpError:
    """Build an HttpError shaped like a Calendar API JSON error response."""
    resp = httplib2.Response({"status": status})
    content = json.dumps(
        {"error": {"code": status, "message": message, "errors": [{"message": message}]}}
    ).encode("utf-8")
    return HttpError(resp, content)
