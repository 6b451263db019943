"""Models package for Jira payloads used by the clients."""

from jira_issues.models.issue import (
    Comment,
    Issue,
    IssueFields,
    IssueLink,
    IssueLinkType,
    IssueType,
    JiraField,
)

__all__ = [
    "Comment",
    "Issue",
    "IssueFields",
    "IssueLink",
    "IssueLinkType",
    "IssueType",
    "JiraField",
]
