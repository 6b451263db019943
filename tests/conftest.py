"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from _pytest.config import Config

from jira_issues.config import reset_config_loader


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line("markers", "functional: mark a test as a functional test")
    config.addinivalue_line(
        "markers",
        "integration: mark a test as an integration test against a live Jira",
    )


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean environment flag (true/false)."""
    val = os.environ.get(name, "true" if default else "false").strip().lower()
    return val in {"1", "true", "yes", "on"}


def pytest_collection_modifyitems(config: Config, items: list[pytest.Item]) -> None:
    """Apply default skipping for non-unit tests.

    - Integration/functional tests are skipped by default unless
      JIRA_ISSUES_RUN_INTEGRATION / JIRA_ISSUES_RUN_FUNCTIONAL are set to true.
    - Unmarked tests are skipped by default; mark them appropriately or set
      JIRA_ISSUES_RUN_ALL_TESTS=true.
    """
    run_all = _env_flag("JIRA_ISSUES_RUN_ALL_TESTS", False)
    run_integration = _env_flag("JIRA_ISSUES_RUN_INTEGRATION", False) or run_all
    run_functional = _env_flag("JIRA_ISSUES_RUN_FUNCTIONAL", False) or run_all

    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled by default. Set JIRA_ISSUES_RUN_INTEGRATION=true to enable.",
    )
    skip_functional = pytest.mark.skip(
        reason="Functional tests disabled by default. Set JIRA_ISSUES_RUN_FUNCTIONAL=true to enable.",
    )
    skip_unmarked = pytest.mark.skip(
        reason="Unmarked test skipped by default. Mark with unit/integration/functional "
        "or set JIRA_ISSUES_RUN_ALL_TESTS=true.",
    )

    for item in items:
        kws = item.keywords

        if "integration" in kws and not run_integration:
            item.add_marker(skip_integration)
            continue
        if "functional" in kws and not run_functional:
            item.add_marker(skip_functional)
            continue

        # Default: only run explicitly marked tests unless run_all is set
        if not run_all and not any(m in kws for m in ("unit", "integration", "functional")):
            item.add_marker(skip_unmarked)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None]:
    """Run every test without ambient JIRA_* variables, .env files or cached config.

    The working directory is a fresh temporary directory so ``.env`` files of
    the developer's checkout are not picked up, and the default YAML path
    points at a file that does not exist.
    """
    for key in list(os.environ):
        if key.startswith("JIRA_") and not key.startswith("JIRA_ISSUES_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("JIRA_ISSUES_TEST_MODE", "true")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("jira_issues.config.loader.DEFAULT_CONFIG_PATH", tmp_path / "no-config.yml")
    reset_config_loader()
    yield
    reset_config_loader()
