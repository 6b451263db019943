"""Jira API clients.

Client classes are exposed lazily so that importing the exceptions does not
pull in the HTTP stack.
"""

__all__ = ["JiraClient", "JiraTransport", "RankDispatcher"]


def __getattr__(name: str) -> object:  # pragma: no cover - simple lazy import shim
    if name == "JiraClient":
        from .jira_client import JiraClient as _JiraClient  # noqa: PLC0415

        return _JiraClient
    if name == "JiraTransport":
        from .transport import JiraTransport as _JiraTransport  # noqa: PLC0415

        return _JiraTransport
    if name == "RankDispatcher":
        from .rank import RankDispatcher as _RankDispatcher  # noqa: PLC0415

        return _RankDispatcher
    raise AttributeError(name)
