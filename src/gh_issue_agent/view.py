"""Plain-text rendering of a remote issue and its comments, and of a new issue before creation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from .formatting import format_relative_time, indent_text

if TYPE_CHECKING:
    import datetime as dt
    from collections.abc import Sequence

    from .models import CommentSnapshot, IssueSnapshot
    from .new_issue import NewIssue

_SEPARATOR: Final[str] = "─" * 54
_STATE_NAMES: Final[dict[str, str]] = {"OPEN": "Open", "CLOSED": "Closed"}


def format_state(state: str) -> str:
    return _STATE_NAMES.get(state, state)


def render_issue(
    issue: IssueSnapshot,
    comments: Sequence[CommentSnapshot],
    now: dt.datetime | None = None,
) -> str:
    """Render an issue the way `gh issue view` does, newest comment last."""
    count = len(comments)
    lines: list[str] = [
        f"{issue.title} #{issue.number}",
        "",
        f"{format_state(issue.state)} • {issue.author} opened {format_relative_time(issue.created_at, now)}"
        f" • {count} comment{'' if count == 1 else 's'}",
    ]
    if issue.labels:
        lines.append(f"Labels: {', '.join(issue.labels)}")
    if issue.assignees:
        lines.append(f"Assignees: {', '.join(issue.assignees)}")
    if issue.milestone:
        lines.append(f"Milestone: {issue.milestone}")

    lines.append("")
    lines.append(indent_text(issue.body, "  ") if issue.body else "  No description provided.")

    for comment in sorted(comments, key=lambda c: c.created_at):
        lines += [
            "",
            _SEPARATOR,
            "",
            f"{comment.author_login} • {format_relative_time(comment.created_at, now)}",
            "",
            indent_text(comment.body, "  "),
        ]

    return "\n".join(lines) + "\n"


def render_new_issue_preview(issue: NewIssue) -> str:
    """Render an issue that is about to be created."""
    lines: list[str] = ["=== New Issue ===", "", f"Title: {issue.title}", ""]
    if issue.labels:
        lines.append(f"Labels: {', '.join(issue.labels)}")
    if issue.assignees:
        lines.append(f"Assignees: {', '.join(issue.assignees)}")
    if issue.labels or issue.assignees:
        lines.append("")
    lines += ["Body:", "---", issue.body or "(empty)", "---"]
    return "\n".join(lines) + "\n"
