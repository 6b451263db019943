"""Exceptions raised by the Jira issue clients.

Every error derives from :class:`JiraError` so callers can catch the whole
family in one place. Errors are never retried or recovered locally; they are
raised to the caller unchanged.
"""

from __future__ import annotations

import json
from typing import Any

from requests import Response


class JiraError(Exception):
    """Base exception for all Jira client errors."""


class JiraConnectionError(JiraError):
    """Error when the request could not be sent or no reply arrived in time."""


class JiraCaptchaError(JiraError):
    """Error when Jira requires CAPTCHA resolution."""


class JiraResourceNotFoundError(JiraError):
    """Error when a requested Jira resource is not found."""


class JiraEmptyResponseError(JiraError):
    """Error when the transport returned neither a response nor an error."""

    def __init__(self, message: str = "received empty response from server") -> None:
        super().__init__(message)


class RankValidationError(JiraError, ValueError):
    """Error when a rank instruction is malformed.

    Raised before any request is sent.
    """


class JiraRankPartialFailureError(JiraError):
    """Error when a rank request was only applied to some of the issues (207).

    Attributes:
        status: The raw HTTP status line, e.g. ``207 Multi-Status``
        body: The response body, kept verbatim for diagnostics

    """

    def __init__(self, status: str, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(
            f"rank issues operation resulted in multi-status (some may have failed): {status}",
        )


class JiraUnexpectedResponseError(JiraError):
    """Error when Jira answers with a status code the operation does not expect.

    Attributes:
        status_code: Numeric HTTP status code
        status: HTTP status line, e.g. ``400 Bad Request``
        error_messages: Top-level ``errorMessages`` from the response body
        errors: Per-field ``errors`` from the response body
        empty_body: Whether the response carried no body at all

    """

    def __init__(
        self,
        status_code: int,
        status: str,
        error_messages: list[str] | None = None,
        errors: dict[str, str] | None = None,
        *,
        empty_body: bool = False,
    ) -> None:
        self.status_code = status_code
        self.status = status
        self.error_messages = error_messages or []
        self.errors = errors or {}
        self.empty_body = empty_body
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        lines = list(self.error_messages)
        lines.extend(f"  - {field}: {msg}" for field, msg in sorted(self.errors.items()))
        if lines:
            return "\n".join([self.status, *lines])
        if self.empty_body:
            return f"unexpected response: {self.status} with empty body"
        return f"unexpected response: {self.status}"


def status_line(response: Response) -> str:
    """Return the HTTP status line of a response, e.g. ``404 Not Found``."""
    reason = response.reason or ""
    return f"{response.status_code} {reason}".strip()


def format_unexpected_response(response: Response) -> JiraUnexpectedResponseError:
    """Build an error describing a response the caller did not expect.

    Structured Jira error bodies (``errorMessages`` and ``errors``) are folded
    into the message. Empty bodies and bodies that are not Jira error JSON fall
    back to a generic message carrying only the status line.
    """
    status = status_line(response)
    body = response.content or b""

    if not body.strip():
        return JiraUnexpectedResponseError(response.status_code, status, empty_body=True)

    try:
        data: Any = json.loads(body)
    except ValueError:
        return JiraUnexpectedResponseError(response.status_code, status)

    if not isinstance(data, dict):
        return JiraUnexpectedResponseError(response.status_code, status)

    raw_messages = data.get("errorMessages") or []
    if isinstance(raw_messages, str):
        raw_messages = [raw_messages]
    elif not isinstance(raw_messages, list):
        raw_messages = []
    error_messages = [str(m) for m in raw_messages if m]
    raw_errors = data.get("errors") or {}
    errors = (
        {str(k): str(v) for k, v in raw_errors.items()} if isinstance(raw_errors, dict) else {}
    )
    return JiraUnexpectedResponseError(
        response.status_code,
        status,
        error_messages=error_messages,
        errors=errors,
    )
