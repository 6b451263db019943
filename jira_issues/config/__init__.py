"""Configuration package for the Jira issue client.

Settings are a pydantic-settings model filled from ``JIRA_*`` environment
variables, ``.env`` files and an optional YAML file.
"""

from .loader import ConfigLoader, get_config_loader, load_settings, reset_config_loader
from .settings import JiraSettings

__all__ = [
    "ConfigLoader",
    "JiraSettings",
    "get_config_loader",
    "load_settings",
    "reset_config_loader",
]
