"""Configuration loader for the Jira issue client.

Loads ``.env`` files, builds :class:`JiraSettings` from the environment and
applies overrides from an optional YAML file.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .settings import JiraSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "jira-issues" / "config.yml"


def is_test_environment() -> bool:
    """Detect if code is running in a test environment.

    Returns:
        bool: True if running under pytest or JIRA_ISSUES_TEST_MODE is set

    """
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True

    return os.environ.get("JIRA_ISSUES_TEST_MODE", "").lower() in ("true", "1", "yes")


class ConfigLoader:
    """Loads and provides access to the client settings."""

    def __init__(self, config_file_path: Path | None = None) -> None:
        """Initialize the configuration loader.

        Args:
            config_file_path: Path to the YAML configuration file (optional)

        """
        self._load_environment_configuration()

        self.yaml_config: dict[str, Any] = {}
        path = config_file_path or DEFAULT_CONFIG_PATH
        if path.exists():
            self.yaml_config = self._load_yaml_config(path)
        elif config_file_path is not None:
            msg = f"Config file not found: {config_file_path}"
            raise FileNotFoundError(msg)

        # YAML values are passed as init arguments so they take precedence over
        # the environment and are validated together with it.
        self.settings = JiraSettings(**self._yaml_overrides())

    def _load_environment_configuration(self) -> None:
        """Load environment variables from .env files.

        Later files override earlier ones: .env, then .env.local, then
        .env.test in test mode.
        """
        load_dotenv(".env")

        if Path(".env.local").exists():
            load_dotenv(".env.local", override=True)
            logger.debug("Loaded local overrides from .env.local")

        if is_test_environment() and Path(".env.test").exists():
            load_dotenv(".env.test", override=True)
            logger.debug("Loaded test environment from .env.test")

    def _load_yaml_config(self, config_file_path: Path) -> dict[str, Any]:
        """Load configuration from YAML file.

        Args:
            config_file_path: Path to the YAML configuration file

        Returns:
            dict: Configuration settings

        """
        with config_file_path.open("r") as config_file:
            config = yaml.safe_load(config_file) or {}
        if not isinstance(config, dict):
            msg = f"Config file must contain a mapping: {config_file_path}"
            raise ValueError(msg)
        logger.debug("Loaded YAML configuration from %s", config_file_path)
        return config

    def _yaml_overrides(self) -> dict[str, Any]:
        """Collect known settings from the YAML ``jira:`` section."""
        overrides: dict[str, Any] = {}
        jira_section = self.yaml_config.get("jira") or {}
        if not isinstance(jira_section, dict):
            msg = "The 'jira' section of the config file must be a mapping"
            raise ValueError(msg)
        for key, value in jira_section.items():
            if key not in JiraSettings.model_fields:
                logger.warning("Ignoring unknown Jira setting in YAML: %s", key)
                continue
            overrides[key] = value
            logger.debug("Applied Jira setting from YAML: %s", key)
        return overrides


# Global configuration instance
_config_loader: ConfigLoader | None = None


def get_config_loader(config_file_path: Path | None = None) -> ConfigLoader:
    """Get the global configuration loader instance.

    Args:
        config_file_path: Path to the YAML configuration file (optional)

    Returns:
        ConfigLoader: Configuration loader instance

    """
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader(config_file_path)
    return _config_loader


def reset_config_loader() -> None:
    """Drop the cached loader so the next call re-reads the configuration."""
    global _config_loader
    _config_loader = None


def load_settings(config_file_path: Path | None = None) -> JiraSettings:
    """Load settings with environment and YAML precedence applied.

    Args:
        config_file_path: Optional YAML configuration file

    Returns:
        JiraSettings: Validated configuration object

    Raises:
        ValueError: If the configuration is missing or invalid

    """
    try:
        loader = get_config_loader(config_file_path)
    except (ValidationError, FileNotFoundError, yaml.YAMLError) as e:
        logger.error("Failed to load configuration: %s", e)
        raise ValueError(f"Configuration validation failed: {e}") from e
    return loader.settings
