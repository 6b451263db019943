"""Command-line entry point for the Jira issue client.

Each subcommand maps to one :class:`JiraClient` operation. Failures are
reported on stderr and end the process with exit status 1.
"""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from jira_issues.clients.exceptions import JiraError
from jira_issues.clients.jira_client import JiraClient
from jira_issues.config import load_settings
from jira_issues.display import configure_logging, exit_with_failure, print_output, print_success
from jira_issues.models import Issue


def _split_keys(value: str) -> list[str]:
    # blank entries are kept so the rank builder can reject them
    return [key.strip() for key in value.split(",")]


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="jira-issues",
        description="View and update Jira issues, and rank them in the backlog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to a YAML configuration file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "NOTICE", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )
    parser.add_argument("--debug", action="store_true", help="Log request and response bodies")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    view_parser = subparsers.add_parser("view", help="Show an issue")
    view_parser.add_argument("key", help="Issue key, e.g. PROJ-1")
    view_parser.add_argument("--raw", action="store_true", help="Print the raw JSON response")
    view_parser.add_argument("--comments", type=int, metavar="N", help="Keep only the N newest comments")
    view_parser.add_argument("--v2", action="store_true", help="Use the v2 REST API")

    assign_parser = subparsers.add_parser("assign", help="Assign an issue")
    assign_parser.add_argument("key", help="Issue key")
    assign_parser.add_argument(
        "assignee",
        help="Account id (v3) or user name (v2); 'none' unassigns, 'default' uses the project default",
    )
    assign_parser.add_argument("--v2", action="store_true", help="Use the v2 REST API")

    link_parser = subparsers.add_parser("link", help="Link two issues")
    link_parser.add_argument("inward", help="Inward issue key")
    link_parser.add_argument("outward", help="Outward issue key")
    link_parser.add_argument("link_type", metavar="type", help="Link type name, e.g. Blocks")

    unlink_parser = subparsers.add_parser("unlink", help="Remove the link between two issues")
    unlink_parser.add_argument("inward", help="Inward issue key")
    unlink_parser.add_argument("outward", help="Outward issue key")

    comment_parser = subparsers.add_parser("comment", help="Add a Markdown comment to an issue")
    comment_parser.add_argument("key", help="Issue key")
    comment_parser.add_argument("body", help="Comment text in Markdown")
    comment_parser.add_argument("--internal", action="store_true", help="Hide the comment from customers")

    worklog_parser = subparsers.add_parser("worklog", help="Log work on an issue")
    worklog_parser.add_argument("key", help="Issue key")
    worklog_parser.add_argument("time_spent", help="Time spent, e.g. '1h 30m'")
    worklog_parser.add_argument("--started", default="", help="Start time, e.g. 2024-01-31T09:00:00.000+0000")
    worklog_parser.add_argument("--comment", default="", help="Worklog comment in Markdown")
    worklog_parser.add_argument("--new-estimate", default="", help="New remaining estimate")

    watch_parser = subparsers.add_parser("watch", help="Add a watcher to an issue")
    watch_parser.add_argument("key", help="Issue key")
    watch_parser.add_argument("watcher", help="Account id (v3) or user name (v2)")
    watch_parser.add_argument("--v2", action="store_true", help="Use the v2 REST API")

    rank_parser = subparsers.add_parser("rank", help="Rank issues in the backlog")
    rank_parser.add_argument("keys", type=_split_keys, help="Comma-separated issue keys to rank")
    position = rank_parser.add_mutually_exclusive_group(required=True)
    position.add_argument("--before", help="Rank the issues before this issue")
    position.add_argument("--after", help="Rank the issues after this issue")
    position.add_argument("--first", action="store_true", help="Rank the issues first")

    return parser


def format_issue(issue: Issue) -> str:
    """Render the headline fields of an issue as plain text."""
    fields = issue.fields
    lines = [
        f"{issue.key}: {fields.summary}",
        f"Type: {fields.issue_type.name or '-'}",
        f"Status: {fields.status.name or '-'}",
        f"Priority: {fields.priority.name if fields.priority else '-'}",
        f"Assignee: {fields.assignee.name if fields.assignee else 'Unassigned'}",
        f"Reporter: {fields.reporter.name if fields.reporter else '-'}",
    ]
    if fields.labels:
        lines.append(f"Labels: {', '.join(fields.labels)}")
    if isinstance(fields.description, str) and fields.description:
        lines.extend(["", fields.description])
    for comment in fields.comment.comments:
        body = comment.body if isinstance(comment.body, str) else ""
        lines.extend(["", f"{comment.author.name} ({comment.created}):", body])
    return "\n".join(lines).rstrip()


def run_command(client: JiraClient, args: argparse.Namespace) -> None:
    """Execute the parsed subcommand against the client."""
    match args.command:
        case "view":
            if args.raw:
                raw = client.get_issue_v2_raw(args.key) if args.v2 else client.get_issue_raw(args.key)
                print_output(raw)
                return
            issue = client.get_issue_v2(args.key) if args.v2 else client.get_issue(args.key, args.comments)
            if args.v2 and args.comments is not None:
                issue.keep_latest_comments(args.comments)
            print_output(format_issue(issue))
        case "assign":
            if args.v2:
                client.assign_issue_v2(args.key, args.assignee)
            else:
                client.assign_issue(args.key, args.assignee)
            print_success(f"Issue {args.key} assigned.")
        case "link":
            client.link_issue(args.inward, args.outward, args.link_type)
            print_success(f"Issues {args.inward} and {args.outward} linked.")
        case "unlink":
            link_id = client.get_link_id(args.inward, args.outward)
            client.unlink_issue(link_id)
            print_success(f"Issues {args.inward} and {args.outward} unlinked.")
        case "comment":
            client.add_issue_comment(args.key, args.body, args.internal)
            print_success(f"Comment added to {args.key}.")
        case "worklog":
            client.add_issue_worklog(args.key, args.started, args.time_spent, args.comment, args.new_estimate)
            print_success(f"Worklog added to {args.key}.")
        case "watch":
            if args.v2:
                client.watch_issue_v2(args.key, args.watcher)
            else:
                client.watch_issue(args.key, args.watcher)
            print_success(f"{args.watcher} now watches {args.key}.")
        case "rank":
            outcome = client.rank_issues(args.keys, args.before, args.after, first=args.first)
            print_success(outcome.message)


def main(argv: Sequence[str] | None = None) -> None:
    """Parse arguments and execute the appropriate command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        configure_logging("INFO")
        exit_with_failure(str(e))
        return

    if args.debug:
        settings.debug = True
    log_level = args.log_level or ("DEBUG" if settings.debug else settings.log_level)
    logger = configure_logging(log_level, settings.log_file)
    if settings.debug:
        logger.notice("Request and response bodies are logged")
    logger.debug("Jira connection: %s", settings.get_jira_config())

    try:
        with JiraClient(settings) as client:
            run_command(client, args)
    except (JiraError, ValueError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        exit_with_failure(str(e))
        return
    logger.success("Command %s finished", args.command)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(1)
