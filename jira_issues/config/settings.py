"""Settings schema for the Jira issue client.

Values come from ``JIRA_*`` environment variables and may be overridden by
the ``jira:`` section of an optional YAML file (see :mod:`.loader`).
"""

from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = ["DEBUG", "INFO", "NOTICE", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


def _validate_http_url(v: str, label: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError(f"{label} must start with http:// or https://")

    parsed = urlparse(v)
    if not parsed.netloc:
        raise ValueError(f"{label} must have a valid hostname")

    return v.rstrip("/")


class JiraSettings(BaseSettings):
    """Connection and runtime settings for talking to a Jira server."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="JIRA_",
        validate_assignment=True,
    )

    # ========================================================================
    # CONNECTION (JIRA_URL, JIRA_LOGIN, JIRA_API_TOKEN, ...)
    # ========================================================================

    url: str = Field(
        default="https://your-company.atlassian.net", description="Jira server URL",
    )
    login: str = Field(default="", description="Login (email) used for basic auth")
    api_token: str = Field(default="", description="API token or personal access token")
    auth_type: Literal["basic", "bearer"] = Field(
        default="basic", description="basic for Jira Cloud, bearer for PAT on Server/DC",
    )
    agile_url: str | None = Field(
        default=None, description="Agile API base URL, defaults to url",
    )
    timeout: float = Field(default=15.0, gt=0, description="Request timeout in seconds")
    ssl_verify: bool = Field(default=True, description="Verify TLS certificates")

    # ========================================================================
    # LOGGING (JIRA_LOG_LEVEL, JIRA_LOG_FILE, JIRA_DEBUG)
    # ========================================================================

    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Path | None = Field(default=None, description="Optional log file")
    debug: bool = Field(default=False, description="Log request and response bodies")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Jira URL format."""
        return _validate_http_url(v, "Jira URL")

    @field_validator("agile_url")
    @classmethod
    def validate_agile_url(cls, v: str | None) -> str | None:
        """Validate Agile API URL format when one is given."""
        if not v:
            return None
        return _validate_http_url(v, "Jira Agile URL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f'Log level must be one of: {", ".join(VALID_LOG_LEVELS)}')
        return v.upper()

    @model_validator(mode="after")
    def validate_authentication(self) -> "JiraSettings":
        """Ensure basic auth always has a login to go with the token."""
        if self.auth_type == "basic" and self.api_token and not self.login:
            raise ValueError("JIRA_LOGIN is required for basic authentication")
        return self

    @property
    def agile_base_url(self) -> str:
        """Base URL for the Agile API."""
        return self.agile_url or self.url

    def get_jira_config(self) -> dict:
        """Get connection settings as a dictionary with the token masked."""
        return {
            "url": self.url,
            "login": self.login,
            "api_token": "***" if self.api_token else "",
            "auth_type": self.auth_type,
            "agile_url": self.agile_base_url,
            "timeout": self.timeout,
            "ssl_verify": self.ssl_verify,
        }
