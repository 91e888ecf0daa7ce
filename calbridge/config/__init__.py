"""
Configuration management for calbridge.
"""

import logging
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()

from calbridge.config.config_loader import ConfigError, ConfigLoader, config_loader
from calbridge.config.environment import EnvironmentMode

logger = logging.getLogger(__name__)


def get_calendar_config() -> Dict[str, Any]:
    """
    Get the Google Calendar configuration.

    Returns:
        Dictionary containing the calendar configuration
    """
    return config_loader.get_calendar_config()


def get_environment_mode() -> EnvironmentMode:
    """Return the environment mode of the running process."""
    return EnvironmentMode.from_config(config_loader)


__all__ = [
    "ConfigError",
    "ConfigLoader",
    "EnvironmentMode",
    "config_loader",
    "get_calendar_config",
    "get_environment_mode",
]
