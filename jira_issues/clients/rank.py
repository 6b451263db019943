"""Rank requests for the Jira Agile API.

Ranking moves one or more issues in a backlog relative to a reference issue
with a single ``PUT /rest/agile/1.0/issue/rank`` call. The ordering itself is
computed by Jira; this module only validates the instruction, builds the wire
payload and interprets the answer:

* ``204 No Content``: every issue was ranked.
* ``207 Multi-Status``: some issues were ranked and some were not.
* anything else: nothing can be assumed about the ranking.

Rank mutations are never retried here. Re-sending an instruction that already
partially succeeded can move the ranked issues a second time, so a partial or
full failure is always handed back to the caller to decide on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from jira_issues.clients.exceptions import (
    JiraCaptchaError,
    JiraEmptyResponseError,
    JiraError,
    JiraRankPartialFailureError,
    RankValidationError,
    format_unexpected_response,
    status_line,
)
from jira_issues.clients.transport import JSON_HEADERS, JiraTransport

logger = logging.getLogger(__name__)

RANK_PATH = "/issue/rank"

HTTP_NO_CONTENT = 204
HTTP_MULTI_STATUS = 207


# ============================================================================
# Reference anchors
# ============================================================================


@dataclass(frozen=True, slots=True)
class RankAfter:
    """Place the target issues directly after ``issue``."""

    issue: str


@dataclass(frozen=True, slots=True)
class RankBefore:
    """Place the target issues directly before ``issue``."""

    issue: str


@dataclass(frozen=True, slots=True)
class RankFirst:
    """Place the target issues at the top of the backlog."""


type RankAnchor = RankAfter | RankBefore | RankFirst


class IssueRankPayload(BaseModel):
    """Request body of the rank endpoint.

    At most one of ``rankBeforeIssue`` / ``rankAfterIssue`` is set; unset keys
    are left out of the JSON instead of being sent as empty strings.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    issues: list[str]
    rank_before_issue: str | None = Field(default=None, alias="rankBeforeIssue")
    rank_after_issue: str | None = Field(default=None, alias="rankAfterIssue")

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


@dataclass(frozen=True, slots=True)
class RankInstruction:
    """Validated target issues plus exactly one reference anchor."""

    issues: tuple[str, ...]
    anchor: RankAnchor

    def to_payload(self) -> IssueRankPayload:
        match self.anchor:
            case RankAfter(issue=ref):
                return IssueRankPayload(issues=list(self.issues), rank_after_issue=ref)
            case RankBefore(issue=ref):
                return IssueRankPayload(issues=list(self.issues), rank_before_issue=ref)
            case RankFirst():
                return IssueRankPayload(issues=list(self.issues))


def _normalize_keys(target_issues: Iterable[str]) -> tuple[str, ...]:
    keys: list[str] = []
    for raw in target_issues:
        if not isinstance(raw, str):
            raise RankValidationError(f"Target issue keys must be strings, got {type(raw).__name__}: {raw!r}")
        key = raw.strip()
        if not key:
            raise RankValidationError("One of the target issue keys is empty.")
        if key in keys:
            logger.debug("Ignoring duplicate target issue %s", key)
            continue
        keys.append(key)
    return tuple(keys)


def _normalize_reference(value: str | None, flag: str) -> str | None:
    # an empty string means the flag was not given
    if not value:
        return None
    ref = value.strip()
    if not ref:
        raise RankValidationError(f"Reference issue key for {flag} cannot be empty.")
    return ref


def build_rank_instruction(
    target_issues: Iterable[str],
    before: str | None = None,
    after: str | None = None,
    *,
    first: bool = False,
) -> RankInstruction:
    """Turn raw rank flags into a :class:`RankInstruction`.

    Args:
        target_issues: Issue keys to move, in the order they should end up
        before: Reference issue to rank the targets before
        after: Reference issue to rank the targets after
        first: Rank the targets at the top of the backlog

    Returns:
        The validated instruction

    Raises:
        RankValidationError: If no issues are given, or not exactly one of
            before/after/first is set

    """
    if isinstance(target_issues, str):
        target_issues = [target_issues]
    issues = _normalize_keys(target_issues)
    if not issues:
        raise RankValidationError("no issues provided to rank")

    before_ref = _normalize_reference(before, "--before")
    after_ref = _normalize_reference(after, "--after")

    if first and (before_ref or after_ref):
        raise RankValidationError("rank first cannot be combined with rankBeforeIssue or rankAfterIssue")
    if before_ref and after_ref:
        raise RankValidationError("rankBeforeIssue and rankAfterIssue cannot both be specified")

    if first:
        anchor: RankAnchor = RankFirst()
    elif before_ref:
        anchor = RankBefore(before_ref)
    elif after_ref:
        anchor = RankAfter(after_ref)
    else:
        raise RankValidationError("either rankBeforeIssue or rankAfterIssue must be specified")

    return RankInstruction(issues=issues, anchor=anchor)


def build(
    target_issues: Iterable[str],
    before: str | None = None,
    after: str | None = None,
    *,
    first: bool = False,
) -> IssueRankPayload:
    """Validate rank flags and return the wire payload for them."""
    return build_rank_instruction(target_issues, before, after, first=first).to_payload()


# ============================================================================
# Outcome and dispatch
# ============================================================================


class RankStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class RankOutcome:
    """Result of a single rank request.

    ``error`` is set for partial and full failures and is the exception
    :meth:`raise_for_outcome` raises.
    """

    status: RankStatus
    error: JiraError | None = None

    @classmethod
    def success(cls) -> RankOutcome:
        return cls(RankStatus.SUCCESS)

    @classmethod
    def partial_failure(cls, raw_status: str, body: str = "") -> RankOutcome:
        return cls(RankStatus.PARTIAL_FAILURE, JiraRankPartialFailureError(raw_status, body))

    @classmethod
    def failure(cls, error: JiraError) -> RankOutcome:
        return cls(RankStatus.FAILURE, error)

    @property
    def ok(self) -> bool:
        return self.status is RankStatus.SUCCESS

    @property
    def message(self) -> str:
        if self.error is None:
            return "Issue(s) ranked successfully."
        return str(self.error)

    def raise_for_outcome(self) -> None:
        """Raise the carried error unless the rank succeeded."""
        if self.error is not None:
            raise self.error


class RankDispatcher:
    """Sends rank payloads and maps the status code to a :class:`RankOutcome`.

    Each call sends exactly one request. Nothing is retried, whatever the
    outcome.
    """

    def __init__(self, transport: JiraTransport) -> None:
        self.transport = transport

    def dispatch(self, payload: IssueRankPayload) -> RankOutcome:
        """Send a rank payload.

        Args:
            payload: Payload built by :func:`build`

        Returns:
            Success for 204, PartialFailure for 207, Failure otherwise,
            including a CAPTCHA challenge from the server

        Raises:
            JiraConnectionError: If the request could not be sent

        """
        logger.debug("Ranking %s", payload.to_wire())
        try:
            response = self.transport.put_v1(RANK_PATH, payload.to_json(), JSON_HEADERS)
        except JiraCaptchaError as e:
            return RankOutcome.failure(e)
        if response is None:
            return RankOutcome.failure(JiraEmptyResponseError())

        if response.status_code == HTTP_NO_CONTENT:
            logger.info("Ranked %s issue(s)", len(payload.issues))
            return RankOutcome.success()

        if response.status_code == HTTP_MULTI_STATUS:
            # TODO: parse the per-issue entries of 207 bodies once their shape is documented
            status = status_line(response)
            logger.warning("Rank request only partially applied: %s", status)
            return RankOutcome.partial_failure(status, response.text)

        return RankOutcome.failure(format_unexpected_response(response))
