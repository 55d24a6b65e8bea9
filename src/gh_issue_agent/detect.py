"""Change detection between the local cache and a remote snapshot.

All functions here are pure: they read their arguments and either return the
detected change or raise a domain error. Nothing touches the disk or network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import CommentPermissionError, ConflictError
from .models import UNKNOWN_AUTHOR
from .storage import database_id_from_filename

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import CommentSnapshot, IssueMetadata, IssueSnapshot, LocalComment

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BodyChange:
    local: str
    remote: str


@dataclass(frozen=True)
class TitleChange:
    local: str
    remote: str


@dataclass(frozen=True)
class LabelChange:
    """Label difference. All lists are sorted."""

    to_add: list[str]
    to_remove: list[str]
    local_sorted: list[str]
    remote_sorted: list[str]


@dataclass(frozen=True)
class NewComment:
    """A draft comment file to be created remotely."""

    filename: str
    body: str


@dataclass(frozen=True)
class UpdatedComment:
    """A synced comment whose local body differs from the remote one."""

    filename: str
    local_body: str
    remote_body: str
    database_id: int
    author: str
    current_user: str


@dataclass(frozen=True)
class DeletedComment:
    """A remote comment whose local file was removed."""

    database_id: int
    body: str
    author: str


CommentChange = NewComment | UpdatedComment | DeletedComment


def detect_body_change(local_body: str, remote_issue: IssueSnapshot) -> BodyChange | None:
    """Return a change iff the bodies differ, ignoring trailing line terminators on either side."""
    local = local_body.rstrip("\r\n")
    remote = remote_issue.body or ""
    if local == remote.rstrip("\r\n"):
        return None
    return BodyChange(local=local, remote=remote)


def detect_title_change(local_metadata: IssueMetadata, remote_issue: IssueSnapshot) -> TitleChange | None:
    if local_metadata.title == remote_issue.title:
        return None
    return TitleChange(local=local_metadata.title, remote=remote_issue.title)


def detect_label_change(local_metadata: IssueMetadata, remote_issue: IssueSnapshot) -> LabelChange | None:
    """Compare label sets. Ordering and duplicates are ignored."""
    local_labels = set(local_metadata.labels)
    remote_labels = set(remote_issue.labels)
    if local_labels == remote_labels:
        return None

    return LabelChange(
        to_add=sorted(local_labels - remote_labels),
        to_remove=sorted(remote_labels - local_labels),
        local_sorted=sorted(local_labels),
        remote_sorted=sorted(remote_labels),
    )


def _local_database_id(comment: LocalComment) -> int | None:
    """Numeric id of a synced comment file, from its header or else its filename."""
    if comment.metadata.database_id is not None:
        return comment.metadata.database_id
    return database_id_from_filename(comment.filename)


def detect_comment_changes(
    local_comments: Sequence[LocalComment],
    remote_comments: Sequence[CommentSnapshot],
    current_user: str,
    *,
    edit_others: bool,
    allow_delete: bool,
) -> list[CommentChange]:
    """Classify local comment files against the remote comments.

    - ``new_*`` files are always `NewComment`, whatever their headers say.
    - A synced file whose header databaseId matches a remote comment with a
      different body (ignoring surrounding whitespace) is `UpdatedComment`.
    - A remote comment with no synced local file is `DeletedComment`.

    Raises:
        CommentPermissionError: If an update or deletion is not allowed by the policy flags
    """
    remote_by_id: dict[int, CommentSnapshot] = {c.database_id: c for c in remote_comments}
    local_ids: set[int] = set()
    changes: list[CommentChange] = []

    for local_comment in local_comments:
        if local_comment.is_new:
            changes.append(NewComment(filename=local_comment.filename, body=local_comment.body))
            continue

        fallback_id = _local_database_id(local_comment)
        if fallback_id is not None:
            local_ids.add(fallback_id)

        database_id = local_comment.metadata.database_id
        if database_id is None:
            logger.debug(f"Skipping {local_comment.filename}: no databaseId header")
            continue
        remote_comment = remote_by_id.get(database_id)
        if remote_comment is None:
            logger.debug(f"Skipping {local_comment.filename}: comment {database_id} not found remotely")
            continue

        # GitHub may return bodies with surrounding newlines the file format drops
        if local_comment.body.strip() == remote_comment.body.strip():
            continue

        author = local_comment.metadata.author or UNKNOWN_AUTHOR
        check_can_edit_comment(author, current_user, edit_others=edit_others, filename=local_comment.filename)
        changes.append(
            UpdatedComment(
                filename=local_comment.filename,
                local_body=local_comment.body,
                remote_body=remote_comment.body,
                database_id=database_id,
                author=author,
                current_user=current_user,
            )
        )

    for remote_comment in remote_comments:
        if remote_comment.database_id in local_ids:
            continue
        author = remote_comment.author_login
        check_can_delete_comment(
            author, current_user, allow_delete=allow_delete, database_id=remote_comment.database_id
        )
        changes.append(DeletedComment(database_id=remote_comment.database_id, body=remote_comment.body, author=author))

    return changes


def check_can_edit_comment(comment_author: str, current_user: str, *, edit_others: bool, filename: str) -> None:
    """Raise unless the comment is the user's own or editing others is allowed."""
    if comment_author == current_user or edit_others:
        return
    msg = f"Cannot edit other user's comment: {filename} (author: {comment_author}). Use --edit-others to allow."
    raise CommentPermissionError(msg)


def check_can_delete_comment(comment_author: str, current_user: str, *, allow_delete: bool, database_id: int) -> None:
    """Raise unless deletions are allowed. Own comments need the flag too."""
    if allow_delete:
        return
    if comment_author == current_user:
        msg = f"Cannot delete comment (database_id: {database_id}). Use --allow-delete to allow."
    else:
        msg = (
            f"Cannot delete other user's comment (database_id: {database_id}, author: {comment_author}). "
            "Use --allow-delete to allow."
        )
    raise CommentPermissionError(msg)


def check_remote_unchanged(local_updated_at: str, remote_updated_at: str, *, force: bool) -> None:
    """Fail if the remote issue changed since the local copy was written.

    Raises:
        ConflictError: If the timestamps differ and force is not set
    """
    if local_updated_at == remote_updated_at or force:
        return
    msg = (
        "Remote issue has changed since last pull.\n"
        f"  Local:  {local_updated_at}\n"
        f"  Remote: {remote_updated_at}\n"
        "Use --force to overwrite, or 'pull --force' to update the local copy."
    )
    raise ConflictError(msg)
