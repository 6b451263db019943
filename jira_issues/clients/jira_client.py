"""Jira issue client.

Issue reads and mutations over the REST API (v2 and v3) plus backlog ranking
over the Agile API. Every operation sends exactly one request through
:class:`JiraTransport` and raises a :class:`JiraError` subclass on anything
but the expected status code.
"""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar
from urllib.parse import urlencode

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError
from requests import Response

from jira_issues.clients.exceptions import (
    JiraEmptyResponseError,
    JiraError,
    JiraResourceNotFoundError,
    format_unexpected_response,
)
from jira_issues.clients.rank import RankDispatcher, RankOutcome, build_rank_instruction
from jira_issues.clients.transport import JSON_HEADERS, JiraTransport
from jira_issues.config import JiraSettings, load_settings
from jira_issues.models import Issue, IssueLinkType, JiraField
from jira_issues.utils.markup_converter import to_jira_markup

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204

# Special assignee values understood by the assignee endpoint
ASSIGNEE_NONE = "none"
ASSIGNEE_DEFAULT = "default"
ASSIGNEE_UNASSIGNED_ID = "-1"

SERVICE_DESK_COMMENT_PROPERTY = "sd.public.comment"

ModelT = TypeVar("ModelT", bound=BaseModel)

_link_types_adapter = TypeAdapter(list[IssueLinkType])
_fields_adapter = TypeAdapter(list[JiraField])


def _expect(response: Response | None, expected: int) -> Response:
    """Return the response if it carries the expected status code.

    Raises:
        JiraEmptyResponseError: If there is no response
        JiraUnexpectedResponseError: If the status code differs

    """
    if response is None:
        raise JiraEmptyResponseError()
    if response.status_code != expected:
        raise format_unexpected_response(response)
    return response


def _encode(body: Any) -> bytes:
    return json.dumps(body).encode("utf-8")


def _assignee_value(assignee: str) -> str | None:
    if assignee == ASSIGNEE_NONE:
        return ASSIGNEE_UNASSIGNED_ID
    if assignee == ASSIGNEE_DEFAULT:
        return None
    return assignee


class JiraClient:
    """Client for Jira issue operations.

    Args:
        settings: Connection settings; loaded from the environment and config
            file when omitted
        transport: Pre-built transport; created from ``settings`` when omitted.
            The client then uses the transport's settings.
        session: Session for a newly created transport

    Raises:
        ValueError: If ``transport`` is combined with ``settings`` or ``session``

    """

    def __init__(
        self,
        settings: JiraSettings | None = None,
        transport: JiraTransport | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if transport is not None and (settings is not None or session is not None):
            msg = "Pass either a transport or settings/session, not both"
            raise ValueError(msg)
        if transport is not None:
            self.settings = transport.settings
            self.transport = transport
        else:
            self.settings = settings or load_settings()
            self.transport = JiraTransport(self.settings, session=session)
        self.rank_dispatcher = RankDispatcher(self.transport)
        logger.debug("Jira client ready for %s", self.settings.url)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> JiraClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _parse(self, response: Response, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            msg = f"Invalid {model.__name__} payload in response: {e}"
            raise JiraError(msg) from e

    def _parse_list(self, response: Response, adapter: TypeAdapter[list[Any]]) -> list[Any]:
        try:
            return adapter.validate_json(response.content)
        except ValidationError as e:
            msg = f"Invalid list payload in response: {e}"
            raise JiraError(msg) from e

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    def get_issue(self, key: str, num_comments: int | None = None) -> Issue:
        """Fetch an issue from the v3 API.

        The description and comment bodies are ADF documents.

        Args:
            key: Issue key, e.g. ``PROJ-1``
            num_comments: Keep only this many of the newest comments

        Returns:
            The parsed issue

        Raises:
            JiraEmptyResponseError: If no response was received
            JiraUnexpectedResponseError: If Jira does not answer with 200

        """
        response = _expect(self.transport.get(f"/issue/{key}", JSON_HEADERS), HTTP_OK)
        issue = self._parse(response, Issue)
        if num_comments is not None:
            issue.keep_latest_comments(num_comments)
        return issue

    def get_issue_v2(self, key: str) -> Issue:
        """Fetch an issue from the v2 API, where descriptions are wiki markup."""
        response = _expect(self.transport.get_v2(f"/issue/{key}", JSON_HEADERS), HTTP_OK)
        return self._parse(response, Issue)

    def get_issue_raw(self, key: str) -> str:
        """Return the unparsed v3 JSON of an issue."""
        return _expect(self.transport.get(f"/issue/{key}", JSON_HEADERS), HTTP_OK).text

    def get_issue_v2_raw(self, key: str) -> str:
        """Return the unparsed v2 JSON of an issue."""
        return _expect(self.transport.get_v2(f"/issue/{key}", JSON_HEADERS), HTTP_OK).text

    def assign_issue(self, key: str, assignee: str) -> None:
        """Assign an issue by account id (cloud, v3).

        ``"none"`` unassigns the issue and ``"default"`` hands it to the
        project's default assignee.

        Raises:
            JiraEmptyResponseError: If no response was received
            JiraUnexpectedResponseError: If Jira does not answer with 204

        """
        body = _encode({"accountId": _assignee_value(assignee)})
        _expect(self.transport.put(f"/issue/{key}/assignee", body, JSON_HEADERS), HTTP_NO_CONTENT)
        logger.info("Assigned %s to %s", key, assignee)

    def assign_issue_v2(self, key: str, assignee: str) -> None:
        """Assign an issue by user name (server and data center, v2)."""
        body = _encode({"name": _assignee_value(assignee)})
        _expect(self.transport.put_v2(f"/issue/{key}/assignee", body, JSON_HEADERS), HTTP_NO_CONTENT)
        logger.info("Assigned %s to %s", key, assignee)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def get_issue_link_types(self) -> list[IssueLinkType]:
        """Return the link types configured on the instance."""
        response = _expect(self.transport.get_v2("/issueLinkType", JSON_HEADERS), HTTP_OK)
        try:
            data = response.json()
        except ValueError as e:
            msg = f"Invalid link type payload in response: {e}"
            raise JiraError(msg) from e
        if not isinstance(data, dict):
            msg = "Invalid link type payload in response: expected an object"
            raise JiraError(msg)
        try:
            return _link_types_adapter.validate_python(data.get("issueLinkTypes") or [])
        except ValidationError as e:
            msg = f"Invalid link type payload in response: {e}"
            raise JiraError(msg) from e

    def link_issue(self, inward_key: str, outward_key: str, link_type: str) -> None:
        """Link two issues with the named link type.

        Raises:
            JiraEmptyResponseError: If no response was received
            JiraUnexpectedResponseError: If Jira does not answer with 201

        """
        body = _encode(
            {
                "inwardIssue": {"key": inward_key},
                "outwardIssue": {"key": outward_key},
                "type": {"name": link_type},
            }
        )
        _expect(self.transport.post_v2("/issueLink", body, JSON_HEADERS), HTTP_CREATED)
        logger.info("Linked %s and %s as '%s'", inward_key, outward_key, link_type)

    def unlink_issue(self, link_id: str) -> None:
        """Delete an issue link by id."""
        _expect(self.transport.delete_v2(f"/issueLink/{link_id}", JSON_HEADERS), HTTP_NO_CONTENT)
        logger.info("Removed issue link %s", link_id)

    def get_link_id(self, inward_key: str, outward_key: str) -> str:
        """Find the id of the link between two issues.

        Args:
            inward_key: Issue the link is read from
            outward_key: Issue on the other end of the link

        Returns:
            The link id

        Raises:
            JiraResourceNotFoundError: If the issues are not linked

        """
        issue = self.get_issue_v2(inward_key)
        for link in issue.fields.issue_links:
            if link.inward_issue is not None and link.inward_issue.key == outward_key:
                return link.id
            if link.outward_issue is not None and link.outward_issue.key == outward_key:
                return link.id

        msg = "no link found between provided issues"
        raise JiraResourceNotFoundError(msg)

    def remote_link_issue(self, issue_id: str, title: str, url: str) -> None:
        """Attach a web link to an issue."""
        body = _encode({"object": {"url": url, "title": title}})
        _expect(self.transport.post_v2(f"/issue/{issue_id}/remotelink", body, JSON_HEADERS), HTTP_CREATED)
        logger.info("Added remote link '%s' to %s", title, issue_id)

    # ------------------------------------------------------------------
    # Comments, worklogs and watchers
    # ------------------------------------------------------------------

    def add_issue_comment(self, key: str, comment: str, internal: bool = False) -> None:
        """Add a Markdown comment to an issue.

        The comment is converted to wiki markup. ``internal`` marks it as
        hidden from customers on service desk projects.

        Raises:
            JiraEmptyResponseError: If no response was received
            JiraUnexpectedResponseError: If Jira does not answer with 201

        """
        body = _encode(
            {
                "body": to_jira_markup(comment),
                "properties": [
                    {"key": SERVICE_DESK_COMMENT_PROPERTY, "value": {"internal": internal}},
                ],
            }
        )
        _expect(self.transport.post_v2(f"/issue/{key}/comment", body, JSON_HEADERS), HTTP_CREATED)
        logger.info("Added comment to %s", key)

    def add_issue_worklog(
        self,
        key: str,
        started: str,
        time_spent: str,
        comment: str,
        new_estimate: str = "",
    ) -> None:
        """Log work on an issue.

        Args:
            key: Issue key
            started: Start timestamp in Jira's format; omitted when empty
            time_spent: Duration such as ``1h 30m``
            comment: Markdown comment
            new_estimate: Replace the remaining estimate with this duration

        Raises:
            JiraEmptyResponseError: If no response was received
            JiraUnexpectedResponseError: If Jira does not answer with 201

        """
        path = f"/issue/{key}/worklog"
        if new_estimate:
            path += "?" + urlencode({"adjustEstimate": "new", "newEstimate": new_estimate})

        payload: dict[str, str] = {}
        if started:
            payload["started"] = started
        payload["timeSpent"] = time_spent
        payload["comment"] = to_jira_markup(comment)

        _expect(self.transport.post_v2(path, _encode(payload), JSON_HEADERS), HTTP_CREATED)
        logger.info("Logged %s on %s", time_spent, key)

    def watch_issue(self, key: str, watcher: str) -> None:
        """Add a watcher by account id (v3)."""
        _expect(self.transport.post(f"/issue/{key}/watchers", _encode(watcher), JSON_HEADERS), HTTP_NO_CONTENT)
        logger.info("Added %s as watcher of %s", watcher, key)

    def watch_issue_v2(self, key: str, watcher: str) -> None:
        """Add a watcher by user name (v2)."""
        _expect(self.transport.post_v2(f"/issue/{key}/watchers", _encode(watcher), JSON_HEADERS), HTTP_NO_CONTENT)
        logger.info("Added %s as watcher of %s", watcher, key)

    # ------------------------------------------------------------------
    # Fields and ranking
    # ------------------------------------------------------------------

    def get_fields(self) -> list[JiraField]:
        """Return every system and custom field of the instance."""
        response = _expect(self.transport.get_v2("/field", JSON_HEADERS), HTTP_OK)
        return self._parse_list(response, _fields_adapter)

    def rank_issues(
        self,
        issues: list[str] | str,
        before: str | None = None,
        after: str | None = None,
        *,
        first: bool = False,
    ) -> RankOutcome:
        """Rank issues before or after a reference issue, or first.

        Sends a single request and never retries it.

        Returns:
            The successful outcome

        Raises:
            RankValidationError: If the instruction is malformed
            JiraConnectionError: If the request could not be sent
            JiraRankPartialFailureError: If only some issues were ranked
            JiraEmptyResponseError: If no response was received
            JiraUnexpectedResponseError: For any other status code

        """
        payload = build_rank_instruction(issues, before, after, first=first).to_payload()
        outcome = self.rank_dispatcher.dispatch(payload)
        outcome.raise_for_outcome()
        return outcome
