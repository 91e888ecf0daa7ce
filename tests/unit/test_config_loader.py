"""
Unit tests for ConfigLoader and the environment mode it resolves.
"""

from unittest.mock import MagicMock

import pytest

from calbridge.calendar.models import EventData
from calbridge.calendar.request_builder import build_event_body
from calbridge.config.config_loader import ConfigError, ConfigLoader
from calbridge.config.environment import EnvironmentMode
from tests.helpers import FUTURE, NOW


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep real config files and env vars out of the loader's search path."""
    monkeypatch.delenv("CALBRIDGE_ENV", raising=False)
    monkeypatch.delenv("CALBRIDGE_CONFIG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


def _write(tmp_path, text, name="config.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_defaults_without_config_file():
    loader = ConfigLoader()
    assert loader.get_environment() == "development"
    assert loader.get_calendar_config()["token_credential"] == "calendar_token"
    assert loader.get_ntfy_config()["enabled"] is True


def test_loads_explicit_path_and_merges_defaults(tmp_path):
    path = _write(
        tmp_path,
        "environment: test\n"
        "integrations:\n"
        "  ntfy:\n"
        "    topic: calendar-alerts\n",
        name="custom.yaml",
    )

    loader = ConfigLoader(config_path=path)

    assert loader.config_path == path
    assert loader.get_environment() == "test"
    assert loader.get_ntfy_config() == {"enabled": True, "topic": "calendar-alerts"}
    assert loader.get_calendar_config()["token_credential"] == "calendar_token"


def test_env_var_interpolation(tmp_path, monkeypatch):
    monkeypatch.setenv("NTFY_TEST_TOPIC", "ops")
    _write(
        tmp_path,
        "integrations:\n"
        "  ntfy:\n"
        "    topic: ${NTFY_TEST_TOPIC}\n"
        "    url: $UNSET_NTFY_URL_VAR\n",
    )

    ntfy = ConfigLoader().get_ntfy_config()

    assert ntfy["topic"] == "ops"
    assert ntfy["url"] == "${UNSET_NTFY_URL_VAR}"


def test_calbridge_env_overrides_file_and_selects_variant(tmp_path, monkeypatch):
    _write(tmp_path, "environment: production\n")
    _write(tmp_path, "environment: production\nlogging:\n  level: DEBUG\n", name="config.test.yaml")
    monkeypatch.setenv("CALBRIDGE_ENV", "Test")

    loader = ConfigLoader()

    assert loader.config_path.name == "config.test.yaml"
    assert loader.get_environment() == "test"
    assert loader.get_logging_config()["level"] == "DEBUG"


def test_schema_violation_raises_config_error(tmp_path):
    _write(tmp_path, "environment: staging\n")
    with pytest.raises(ConfigError, match="environment"):
        ConfigLoader()


def test_invalid_yaml_raises_config_error(tmp_path):
    _write(tmp_path, "integrations: [unclosed\n")
    with pytest.raises(ConfigError):
        ConfigLoader()


class TestEnvironmentMode:
    @pytest.mark.parametrize(
        "name, production, test",
        [
            ("production", True, False),
            ("test", False, True),
            ("development", False, False),
        ],
    )
    def test_flags(self, name, production, test):
        mode = EnvironmentMode(name)
        assert mode.is_production is production
        assert mode.is_test is test

    def test_from_config(self):
        loader = MagicMock()
        loader.get_environment.return_value = "development"
        assert EnvironmentMode.from_config(loader) == EnvironmentMode("development")

    def test_default_mode_is_development(self):
        mode = EnvironmentMode()
        assert not mode.is_production
        assert not mode.is_test

    def test_unset_environment_is_neither_production_nor_test(self, tmp_path):
        loader = ConfigLoader(config_path=tmp_path / "missing.yaml")
        mode = EnvironmentMode.from_config(loader)

        assert mode.is_production is False
        assert mode.is_test is False

    def test_unset_environment_keeps_attendees_away_from_google(self, tmp_path):
        loader = ConfigLoader(config_path=tmp_path / "missing.yaml")
        mode = EnvironmentMode.from_config(loader)

        body = build_event_body(
            EventData(start=FUTURE, attendees=[{"email": "guest@example.com"}]),
            mode=mode,
            now=NOW,
        )

        assert body["attendees"] == []

    def test_file_without_environment_key_is_development(self, tmp_path):
        _write(tmp_path, "logging:\n  level: DEBUG\n")
        assert ConfigLoader().get_environment() == "development"
