"""
ConfigLoader for YAML-based configuration with environment variable interpolation.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


class ConfigLoader:
    """
    Loads and manages YAML configuration with environment variable interpolation.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration loader.

        Args:
            config_path: Optional explicit path to config.yaml
        """
        self.env = os.getenv("CALBRIDGE_ENV", "").strip().lower() or None
        self.config_path = self._find_config_path(config_path)
        self.schema_path = Path(__file__).parent / "schema" / "config_schema.json"
        self.config = self._load_config()
        env_label = self.get_environment()
        logger.info(f"ConfigLoader: env={env_label}, config={self.config_path}")

    def _find_config_path(self, config_path: Optional[Union[str, Path]] = None) -> Path:
        """
        Find the configuration file path.

        Looks in the following locations (in order):
        1. Explicit path provided to constructor
        2. Path specified by CALBRIDGE_CONFIG environment variable
        3. Current working directory
        4. User's config directory (~/.config/calbridge/)
        5. Project root directory

        When ``CALBRIDGE_ENV`` is set (e.g. ``test``), each directory is first
        checked for ``config.{env}.yaml`` before falling back to ``config.yaml``.
        """
        if config_path:
            path = Path(config_path)
            if path.exists():
                return path
            logger.warning(f"Specified config path does not exist: {path}")

        env_path = os.getenv("CALBRIDGE_CONFIG")
        if env_path:
            path = Path(env_path)
            if path.exists():
                return path
            logger.warning(
                f"Config path from environment variable does not exist: {path}"
            )

        candidates: List[str] = []
        if self.env:
            candidates.append(f"config.{self.env}.yaml")
        candidates.append("config.yaml")

        search_dirs = [
            Path.cwd(),
            Path.home() / ".config" / "calbridge",
            Path(__file__).parent.parent.parent,
        ]
        for directory in search_dirs:
            for name in candidates:
                candidate = directory / name
                if candidate.exists():
                    return candidate

        project_root = Path(__file__).parent.parent.parent
        logger.warning(
            "No config.yaml found. Using default configuration with environment variables."
        )
        return project_root / "config.yaml"

    def _load_schema(self) -> Dict[str, Any]:
        """Load the JSON schema used to validate config files."""
        if not self.schema_path.exists():
            logger.warning(f"Schema file not found: {self.schema_path}")
            return {}

        with open(self.schema_path, "r") as f:
            return json.load(f)

    def _interpolate_env_vars(self, value: Any) -> Any:
        """
        Recursively interpolate environment variables in configuration values.

        Replaces "${ENV_VAR}" or "$ENV_VAR" with the value of the environment variable.
        Unset variables are left as written.
        """
        if isinstance(value, str):
            pattern = r"\${([^}]+)}|\$([a-zA-Z0-9_]+)"

            def replace_env_var(match):
                env_var = match.group(1) or match.group(2)
                return os.environ.get(env_var, f"${{{env_var}}}")

            return re.sub(pattern, replace_env_var, value)
        elif isinstance(value, list):
            return [self._interpolate_env_vars(item) for item in value]
        elif isinstance(value, dict):
            return {k: self._interpolate_env_vars(v) for k, v in value.items()}
        else:
            return value

    def _validate_config(self, config: Dict[str, Any], schema: Dict[str, Any]) -> None:
        """
        Validate the configuration against the schema.

        Raises:
            ConfigError: If validation fails
        """
        if not schema:
            return

        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.exceptions.ValidationError as e:
            path = " -> ".join([str(p) for p in e.path])
            message = f"Configuration validation error: {e.message}"
            if path:
                message = f"{message} (at {path})"
            raise ConfigError(message) from e

    def _load_config(self) -> Dict[str, Any]:
        """
        Load and validate the configuration file.

        Raises:
            ConfigError: If the configuration file cannot be loaded or is invalid
        """
        if not self.config_path.exists():
            logger.info(
                f"Configuration file not found: {self.config_path}. Using default configuration."
            )
            return self._get_default_config()

        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            error_msg = f"Error parsing {self.config_path.name}: {e}"
            logger.error(error_msg)
            raise ConfigError(error_msg) from e
        except OSError as e:
            error_msg = f"Error loading configuration: {e}"
            logger.error(error_msg)
            raise ConfigError(error_msg) from e

        config = self._interpolate_env_vars(config)
        self._validate_config(config, self._load_schema())
        return self._deep_merge(self._get_default_config(), config)

    def _get_default_config(self) -> Dict[str, Any]:
        """Baseline configuration used when no config file is present."""
        return {
            "environment": "development",
            "integrations": {
                "calendar": {
                    "token_credential": "calendar_token",
                },
                "ntfy": {"enabled": True},
            },
            "logging": {"level": "INFO"},
        }

    def _deep_merge(
        self, base: Dict[str, Any], overlay: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep-merge *overlay* into *base* (overlay wins on leaf conflicts)."""
        merged = dict(base)
        for key, value in overlay.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get_config(self) -> Dict[str, Any]:
        """Get the full configuration."""
        return self.config

    def get_environment(self) -> str:
        """
        Get the deployment environment name.

        ``CALBRIDGE_ENV`` wins over the ``environment`` key of the config file.

        Returns:
            Lower-cased environment name, e.g. ``production``, ``test``, ``development``
        """
        if self.env:
            return self.env
        return str(self.config.get("environment") or "development").strip().lower()

    def get_database_config(self) -> Dict[str, Any]:
        """Get the database configuration section."""
        return self.config.get("database", {})

    def get_integrations_config(self) -> Dict[str, Any]:
        """Get the integrations configuration section."""
        return self.config.get("integrations", {})

    def get_calendar_config(self) -> Dict[str, Any]:
        """
        Get the Google Calendar configuration.

        Returns:
            Dictionary containing the calendar configuration
        """
        return self.get_integrations_config().get("calendar", {})

    def get_ntfy_config(self) -> Dict[str, Any]:
        """Get the ntfy notification configuration."""
        return self.get_integrations_config().get("ntfy", {})

    def get_logging_config(self) -> Dict[str, Any]:
        """
        Get the logging configuration.

        Returns:
            Dictionary containing the logging configuration
        """
        return self.config.get("logging", {})


# Create a singleton instance
config_loader = ConfigLoader()
