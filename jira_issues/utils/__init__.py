"""Utility helpers for Jira issue content."""

from jira_issues.utils.markup_converter import JiraMarkupConverter, to_jira_markup

__all__ = ["JiraMarkupConverter", "to_jira_markup"]
