"""ChangeSet: all differences between the local copy and the remote issue.

A ChangeSet is computed once per push or diff, rendered for review, and
(for push) replayed through a RemoteClient in a fixed order:

1. Issue body
2. Title
3. Label removals, then label additions
4. Comment changes in detection order (create / update / delete)

Each call completes before the next one starts. The first failure propagates
and nothing already applied is rolled back; re-running push re-detects only
what is still different.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .detect import (
    BodyChange,
    CommentChange,
    DeletedComment,
    LabelChange,
    NewComment,
    TitleChange,
    UpdatedComment,
    detect_body_change,
    detect_comment_changes,
    detect_label_change,
    detect_title_change,
)
from .formatting import format_diff

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import CommentSnapshot, IssueMetadata, IssueSnapshot, LocalComment
    from .protocols import RemoteClient
    from .storage import IssueStorage

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class LocalState:
    """Local side of a comparison."""

    metadata: IssueMetadata
    body: str
    comments: Sequence[LocalComment]


@dataclass
class RemoteState:
    """Remote side of a comparison."""

    issue: IssueSnapshot
    comments: Sequence[CommentSnapshot]


@dataclass
class DetectOptions:
    """Policy flags for change detection."""

    current_user: str
    edit_others: bool = False
    allow_delete: bool = False


@dataclass
class ChangeSet:
    body: BodyChange | None = None
    title: TitleChange | None = None
    labels: LabelChange | None = None
    comments: list[CommentChange] = field(default_factory=list)

    @classmethod
    def detect(cls, local: LocalState, remote: RemoteState, options: DetectOptions) -> ChangeSet:
        """Compare local and remote state.

        Raises:
            CommentPermissionError: If a comment change is not allowed by the options
        """
        return cls(
            body=detect_body_change(local.body, remote.issue),
            title=detect_title_change(local.metadata, remote.issue),
            labels=detect_label_change(local.metadata, remote.issue),
            comments=detect_comment_changes(
                local.comments,
                remote.comments,
                options.current_user,
                edit_others=options.edit_others,
                allow_delete=options.allow_delete,
            ),
        )

    def has_changes(self) -> bool:
        return self.body is not None or self.title is not None or self.labels is not None or bool(self.comments)

    def render(self) -> str:
        """Render the changes for human review."""
        lines: list[str] = []

        if self.body is not None:
            lines += ["", "=== Issue Body ==="]
            lines += format_diff(self.body.remote, self.body.local)

        if self.title is not None:
            lines += ["", "=== Title ===", f"- {self.title.remote}", f"+ {self.title.local}"]

        if self.labels is not None:
            lines += [
                "",
                "=== Labels ===",
                f"- [{', '.join(self.labels.remote_sorted)}]",
                f"+ [{', '.join(self.labels.local_sorted)}]",
            ]

        for change in self.comments:
            lines.append("")
            if isinstance(change, NewComment):
                lines.append(f"=== New Comment: {change.filename} ===")
                lines += [f"+ {line}" for line in change.body.splitlines()]
            elif isinstance(change, UpdatedComment):
                if change.author != change.current_user:
                    lines.append(f"=== Comment: {change.filename} (author: {change.author}) ===")
                else:
                    lines.append(f"=== Comment: {change.filename} ===")
                lines += format_diff(change.remote_body, change.local_body)
            else:
                lines.append(f"=== Delete Comment: database_id={change.database_id} (author: {change.author}) ===")
                lines += [f"- {line}" for line in change.body.splitlines()]

        return "\n".join(lines)

    def display(self) -> None:
        if self.has_changes():
            print(self.render())

    def apply(
        self,
        client: RemoteClient,
        owner: str,
        repo: str,
        issue_number: int,
        storage: IssueStorage,
    ) -> None:
        """Push every change to the remote, in order, stopping at the first error."""
        if self.body is not None:
            print("\nUpdating issue body...")
            client.update_issue_body(owner, repo, issue_number, self.body.local)

        if self.title is not None:
            print("\nUpdating title...")
            client.update_issue_title(owner, repo, issue_number, self.title.local)

        if self.labels is not None:
            print("\nUpdating labels...")
            for label in self.labels.to_remove:
                client.remove_label(owner, repo, issue_number, label)
            if self.labels.to_add:
                client.add_labels(owner, repo, issue_number, self.labels.to_add)

        for change in self.comments:
            if isinstance(change, NewComment):
                print("\nCreating comment...")
                client.create_comment(owner, repo, issue_number, change.body)
                storage.delete_comment_file(change.filename)
                logger.debug(f"Removed draft {change.filename} after creating it remotely")
            elif isinstance(change, UpdatedComment):
                print("\nUpdating comment...")
                client.update_comment(owner, repo, change.database_id, change.local_body)
            elif isinstance(change, DeletedComment):
                print("\nDeleting comment...")
                client.delete_comment(owner, repo, change.database_id)

        logger.info(f"Applied changes to {owner}/{repo}#{issue_number}")
