"""Deployment environment mode consulted by the event request builder."""

from dataclasses import dataclass
from typing import Optional

PRODUCTION = "production"
TEST = "test"
DEVELOPMENT = "development"


@dataclass(frozen=True)
class EnvironmentMode:
    """Which deployment environment the process runs in.

    Only production and test runs are allowed to hand real attendee lists to
    Google, since Google emails every attendee on write. Unset or unknown
    names behave like development.
    """

    name: str = DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.name == PRODUCTION

    @property
    def is_test(self) -> bool:
        return self.name == TEST

    @classmethod
    def from_config(cls, loader: Optional[object] = None) -> "EnvironmentMode":
        """Resolve the mode from ``CALBRIDGE_ENV`` or the config file."""
        if loader is None:
            from calbridge.config.config_loader import config_loader as loader
        return cls(name=loader.get_environment())
