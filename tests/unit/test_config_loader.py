#!/usr/bin/env python3
"""Tests for the configuration loader and settings."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from jira_issues.config import (
    ConfigLoader,
    JiraSettings,
    get_config_loader,
    load_settings,
    reset_config_loader,
)
from jira_issues.config.loader import is_test_environment

pytestmark = pytest.mark.unit


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


class TestJiraSettings:
    def test_defaults(self):
        settings = JiraSettings()

        assert settings.url == "https://your-company.atlassian.net"
        assert settings.auth_type == "basic"
        assert settings.timeout == 15.0
        assert settings.ssl_verify is True
        assert settings.log_level == "INFO"
        assert settings.debug is False

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("JIRA_URL", "https://env.example.test/")
        monkeypatch.setenv("JIRA_LOGIN", "env@example.com")
        monkeypatch.setenv("JIRA_API_TOKEN", "env_token")
        monkeypatch.setenv("JIRA_TIMEOUT", "30")
        monkeypatch.setenv("JIRA_SSL_VERIFY", "false")

        settings = JiraSettings()

        assert settings.url == "https://env.example.test"
        assert settings.login == "env@example.com"
        assert settings.timeout == 30.0
        assert settings.ssl_verify is False

    def test_invalid_url(self):
        with pytest.raises(ValidationError, match="must start with http:// or https://"):
            JiraSettings(url="jira.example.test")

    def test_url_without_host(self):
        with pytest.raises(ValidationError, match="valid hostname"):
            JiraSettings(url="https://")

    def test_log_level_is_normalized(self):
        assert JiraSettings(log_level="notice").log_level == "NOTICE"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError, match="Log level must be one of"):
            JiraSettings(log_level="VERBOSE")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            JiraSettings(timeout=0)

    def test_basic_auth_requires_login(self):
        with pytest.raises(ValidationError, match="JIRA_LOGIN is required"):
            JiraSettings(api_token="secret")

    def test_bearer_auth_without_login(self):
        settings = JiraSettings(api_token="secret", auth_type="bearer")

        assert settings.login == ""

    def test_agile_base_url(self):
        assert JiraSettings(url="https://jira.example.test").agile_base_url == "https://jira.example.test"
        settings = JiraSettings(url="https://jira.example.test", agile_url="https://agile.example.test/")
        assert settings.agile_base_url == "https://agile.example.test"

    def test_empty_agile_url_falls_back(self):
        assert JiraSettings(agile_url="").agile_url is None

    def test_jira_config_masks_token(self):
        config = JiraSettings(login="me", api_token="secret").get_jira_config()

        assert config["api_token"] == "***"
        assert config["login"] == "me"

    def test_assignment_is_validated(self):
        settings = JiraSettings()

        with pytest.raises(ValidationError):
            settings.log_level = "LOUD"


class TestConfigLoader:
    def test_environment_only(self, monkeypatch):
        monkeypatch.setenv("JIRA_URL", "https://env.example.test")

        loader = ConfigLoader()

        assert loader.yaml_config == {}
        assert loader.settings.url == "https://env.example.test"

    def test_yaml_overrides_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("JIRA_URL", "https://env.example.test")
        monkeypatch.setenv("JIRA_TIMEOUT", "20")
        config_file = _write(
            tmp_path / "config.yml",
            "jira:\n  url: https://yaml.example.test\n  auth_type: bearer\n  api_token: pat\n",
        )

        loader = ConfigLoader(config_file)

        assert loader.settings.url == "https://yaml.example.test"
        assert loader.settings.auth_type == "bearer"
        assert loader.settings.timeout == 20.0
        assert loader.settings.api_token == "pat"

    def test_unknown_yaml_keys_are_ignored(self, tmp_path, caplog):
        config_file = _write(tmp_path / "config.yml", "jira:\n  server: https://old.example.test\n")

        with caplog.at_level(logging.WARNING):
            loader = ConfigLoader(config_file)

        assert loader.settings.url == "https://your-company.atlassian.net"
        assert "Ignoring unknown Jira setting in YAML: server" in caplog.text

    def test_empty_yaml_file(self, tmp_path):
        loader = ConfigLoader(_write(tmp_path / "config.yml", ""))

        assert loader.yaml_config == {}

    def test_yaml_must_be_a_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="must contain a mapping"):
            ConfigLoader(_write(tmp_path / "config.yml", "- a\n- b\n"))

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader(tmp_path / "missing.yml")

    def test_default_file_is_used_when_present(self, monkeypatch, tmp_path):
        default_file = _write(tmp_path / "default.yml", "jira:\n  timeout: 42\n")
        monkeypatch.setattr("jira_issues.config.loader.DEFAULT_CONFIG_PATH", default_file)

        assert ConfigLoader().settings.timeout == 42.0

    def test_dotenv_files(self, monkeypatch, tmp_path):
        # register the variables with monkeypatch so they are removed afterwards
        for name in ("JIRA_LOGIN", "JIRA_URL"):
            monkeypatch.setenv(name, "placeholder")
            monkeypatch.delenv(name)
        _write(tmp_path / ".env", "JIRA_URL=https://dotenv.example.test\nJIRA_LOGIN=base\n")
        _write(tmp_path / ".env.local", "JIRA_LOGIN=local\n")

        loader = ConfigLoader()

        assert loader.settings.url == "https://dotenv.example.test"
        assert loader.settings.login == "local"

    @pytest.mark.parametrize(
        "content",
        ["jira:\n  - url\n  - timeout\n", "jira: https://jira.example.test\n"],
    )
    def test_jira_section_must_be_a_mapping(self, tmp_path, content):
        config_file = _write(tmp_path / "config.yml", content)

        with pytest.raises(ValueError, match="section of the config file must be a mapping"):
            ConfigLoader(config_file)

    def test_load_settings_rejects_list_jira_section(self, tmp_path):
        with pytest.raises(ValueError, match="must be a mapping"):
            load_settings(_write(tmp_path / "config.yml", "jira: [1, 2]\n"))


class TestModuleHelpers:
    def test_loader_is_cached(self):
        first = get_config_loader()

        assert get_config_loader() is first
        reset_config_loader()
        assert get_config_loader() is not first

    def test_load_settings(self, monkeypatch):
        monkeypatch.setenv("JIRA_LOG_LEVEL", "debug")

        assert load_settings().log_level == "DEBUG"

    def test_load_settings_wraps_validation_errors(self, monkeypatch):
        monkeypatch.setenv("JIRA_URL", "ftp://jira.example.test")

        with pytest.raises(ValueError, match="Configuration validation failed"):
            load_settings()

    def test_load_settings_wraps_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="Configuration validation failed"):
            load_settings(tmp_path / "missing.yml")

    def test_is_test_environment(self):
        assert is_test_environment()
