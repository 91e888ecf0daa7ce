"""
Logging setup for calbridge entry points.

Call ``setup_logging()`` once from each entry point (the token setup CLI,
or the host application).  Library modules only do::

    import logging
    logger = logging.getLogger(__name__)

Records are written to stdout as one JSON object per line, tagged with the
deployment environment so development runs (which never send attendees to
Google) are easy to tell apart from production ones.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

# Chatty third-party loggers capped at WARNING.
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "google_auth_httplib2", "httpx")


class _JSONFormatter(logging.Formatter):
    def __init__(self, environment: str):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "env": self.environment,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(*, level: Optional[str] = None, environment: Optional[str] = None) -> None:
    """Configure the root logger with a JSON formatter on *stdout*.

    Args:
        level: Log level name.  Falls back to ``LOG_LEVEL``, then
            ``logging.level`` from the config file, then ``INFO``.
        environment: Name stamped on every record.  Defaults to the
            configured environment.
    """
    from calbridge.config.config_loader import config_loader

    if level is None:
        level = os.getenv("LOG_LEVEL") or config_loader.get_logging_config().get("level")
    resolved_level = (level or "INFO").upper()
    formatter = _JSONFormatter(environment or config_loader.get_environment())

    root = logging.getLogger()
    json_handlers = [h for h in root.handlers if isinstance(h.formatter, _JSONFormatter)]
    if json_handlers:
        for handler in json_handlers:
            handler.setFormatter(formatter)
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        root.handlers.clear()
        root.addHandler(handler)
    root.setLevel(resolved_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
