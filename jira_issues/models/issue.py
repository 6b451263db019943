"""Issue models parsed from Jira REST responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _JiraModel(BaseModel):
    """Base for Jira payload models: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NamedValue(_JiraModel):
    """A nested object where only the name matters (status, priority...)."""

    name: str = ""


class IssueType(_JiraModel):
    """Represents a Jira issue type."""

    id: str = ""
    name: str = ""
    subtask: bool = False


class UserRef(_JiraModel):
    """A user as embedded in issue fields."""

    name: str = Field(default="", alias="displayName")
    account_id: str | None = Field(default=None, alias="accountId")
    email: str | None = Field(default=None, alias="emailAddress")


class Watches(_JiraModel):
    is_watching: bool = Field(default=False, alias="isWatching")
    watch_count: int = Field(default=0, alias="watchCount")


class LinkTypeRef(_JiraModel):
    name: str = ""
    inward: str = ""
    outward: str = ""


class IssueLink(_JiraModel):
    """A link between the owning issue and another issue."""

    id: str = ""
    link_type: LinkTypeRef = Field(default_factory=LinkTypeRef, alias="type")
    inward_issue: Issue | None = Field(default=None, alias="inwardIssue")
    outward_issue: Issue | None = Field(default=None, alias="outwardIssue")


class Comment(_JiraModel):
    id: str = ""
    author: UserRef = Field(default_factory=UserRef)
    # ADF document in v3, wiki markup string in v2
    body: dict[str, Any] | str | None = None
    created: str = ""


class CommentPage(_JiraModel):
    comments: list[Comment] = Field(default_factory=list)
    total: int = 0


class IssueFields(_JiraModel):
    """The subset of issue fields the client reads."""

    summary: str = ""
    # ADF document in v3, wiki markup string in v2
    description: dict[str, Any] | str | None = None
    labels: list[str] = Field(default_factory=list)
    issue_type: IssueType = Field(default_factory=IssueType, alias="issuetype")
    priority: NamedValue | None = None
    reporter: UserRef | None = None
    assignee: UserRef | None = None
    watches: Watches = Field(default_factory=Watches)
    status: NamedValue = Field(default_factory=NamedValue)
    created: str = ""
    updated: str = ""
    comment: CommentPage = Field(default_factory=CommentPage)
    issue_links: list[IssueLink] = Field(default_factory=list, alias="issuelinks")


class Issue(_JiraModel):
    """A Jira issue."""

    id: str = ""
    key: str = ""
    fields: IssueFields = Field(default_factory=IssueFields)

    def keep_latest_comments(self, limit: int) -> None:
        """Drop all but the newest ``limit`` comments."""
        comments = self.fields.comment.comments
        if limit < len(comments):
            self.fields.comment.comments = comments[len(comments) - max(limit, 0):]


class IssueLinkType(_JiraModel):
    """A link type configured on the Jira instance."""

    id: str = ""
    name: str = ""
    inward: str = ""
    outward: str = ""


class FieldSchema(_JiraModel):
    datatype: str = Field(default="", alias="type")
    items: str | None = None
    custom_id: int | None = Field(default=None, alias="customId")


class JiraField(_JiraModel):
    """A field configured on the Jira instance."""

    id: str = ""
    name: str = ""
    custom: bool = False
    field_schema: FieldSchema = Field(default_factory=FieldSchema, alias="schema")


IssueLink.model_rebuild()
IssueFields.model_rebuild()
Issue.model_rebuild()
