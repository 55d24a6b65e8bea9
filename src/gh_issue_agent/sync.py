"""
Pull, push, diff and refresh: the sync operations between the local cache and GitHub.

Push runs FetchRemote -> LoadLocal -> ConflictCheck -> Detect -> Display ->
(stop on dry-run) -> Apply -> RefreshMetadata. Diff runs the same pipeline up
to Display with all comment policies enabled and never mutates anything.
Pull fetches and writes the cache, refusing to discard local edits unless
forced. Pushing a new-issue directory creates the issue and turns the
directory into the cache of the created issue.

Only one invocation per issue directory may run at a time; nothing here locks
the directory.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .changeset import ChangeSet, DetectOptions, LocalState, RemoteState
from .detect import check_remote_unchanged
from .exceptions import IssueNotCachedError, LocalChangesError, StorageError
from .models import IssueMetadata
from .storage import IssueStorage
from .view import render_new_issue_preview

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from .models import CommentSnapshot, IssueSnapshot, LocalComment
    from .protocols import RemoteClient

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class RemoteIssue:
    issue: IssueSnapshot
    comments: list[CommentSnapshot]


@dataclass
class LocalIssue:
    metadata: IssueMetadata
    body: str
    comments: list[LocalComment]


@dataclass
class IssueContext:
    """Everything a sync operation needs to address one issue."""

    owner: str
    repo: str
    issue_number: int
    storage: IssueStorage
    current_user: str

    @classmethod
    def create(
        cls,
        client: RemoteClient,
        owner: str,
        repo: str,
        issue_number: int,
        cache_dir: Path | None = None,
    ) -> IssueContext:
        """Build a context for the cached issue, asking the remote who the current user is."""
        return cls(
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            storage=IssueStorage.for_issue(owner, repo, issue_number, cache_dir),
            current_user=client.get_current_user(),
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}#{self.issue_number}"

    def fetch_remote(self, client: RemoteClient) -> RemoteIssue:
        issue = client.get_issue(self.owner, self.repo, self.issue_number)
        comments = client.get_comments(self.owner, self.repo, self.issue_number)
        return RemoteIssue(issue=issue, comments=comments)

    def load_local(self) -> LocalIssue:
        """Read the cached issue.

        Raises:
            IssueNotCachedError: If the issue was never pulled
        """
        if not self.storage.exists():
            msg = f"Issue #{self.issue_number} not found locally. Run 'pull {self.issue_number}' first."
            raise IssueNotCachedError(msg)
        return LocalIssue(
            metadata=self.storage.read_metadata(),
            body=self.storage.read_body(),
            comments=self.storage.read_comments(),
        )


@dataclass
class PushOptions:
    dry_run: bool = False
    force: bool = False
    edit_others: bool = False
    allow_delete: bool = False


@dataclass
class PushResult:
    has_changes: bool
    applied: bool
    dry_run: bool

    @property
    def message(self) -> str:
        if self.dry_run:
            if self.has_changes:
                return "[dry-run] Changes detected. Run without --dry-run to apply."
            return "[dry-run] No changes detected."
        if self.applied:
            return "Done! Changes have been pushed to GitHub."
        return "No changes to push."


def save_issue_to_storage(
    storage: IssueStorage,
    issue: IssueSnapshot,
    comments: Sequence[CommentSnapshot],
) -> None:
    """Write body, metadata and comment files for a remote snapshot."""
    storage.save_body(issue.body or "")
    storage.save_metadata(IssueMetadata.from_issue(issue))
    storage.save_comments(comments)


def pull(
    client: RemoteClient,
    owner: str,
    repo: str,
    issue_number: int,
    storage: IssueStorage,
    *,
    force: bool = False,
) -> IssueSnapshot:
    """Fetch the issue and write it to the local cache.

    Raises:
        LocalChangesError: If the cache holds edits that would be overwritten and force is not set
    """
    issue = client.get_issue(owner, repo, issue_number)
    comments = client.get_comments(owner, repo, issue_number)

    if not force and storage.exists():
        local_changes = storage.detect_local_changes(issue, comments)
        if local_changes.has_changes():
            logger.debug(f"Local changes in {storage.dir}: {local_changes}")
            msg = "Local changes would be overwritten. Use 'pull --force' to discard local changes."
            raise LocalChangesError(msg)

    save_issue_to_storage(storage, issue, comments)
    logger.info(f"Saved {owner}/{repo}#{issue_number} with {len(comments)} comments to {storage.dir}")
    return issue


def refresh(
    client: RemoteClient,
    owner: str,
    repo: str,
    issue_number: int,
    storage: IssueStorage,
) -> IssueSnapshot:
    """Overwrite the local cache with the remote state, discarding local edits."""
    return pull(client, owner, repo, issue_number, storage, force=True)


def push(client: RemoteClient, ctx: IssueContext, options: PushOptions) -> PushResult:
    """Push local edits to the remote issue.

    Raises:
        IssueNotCachedError: If the issue was never pulled
        ConflictError: If the remote changed since the last pull and force is not set
        CommentPermissionError: If a comment change is not allowed by the options
        RemoteError: If any remote call fails. Changes applied before the failure stay applied
    """
    remote = ctx.fetch_remote(client)
    local = ctx.load_local()

    check_remote_unchanged(local.metadata.updated_at, remote.issue.updated_at, force=options.force)
    if local.metadata.updated_at != remote.issue.updated_at:
        logger.warning(f"Overwriting remote changes to {ctx.full_name} (--force)")

    changeset = ChangeSet.detect(
        LocalState(metadata=local.metadata, body=local.body, comments=local.comments),
        RemoteState(issue=remote.issue, comments=remote.comments),
        DetectOptions(
            current_user=ctx.current_user,
            edit_others=options.edit_others,
            allow_delete=options.allow_delete,
        ),
    )
    has_changes = changeset.has_changes()
    changeset.display()

    if options.dry_run or not has_changes:
        return PushResult(has_changes=has_changes, applied=False, dry_run=options.dry_run)

    changeset.apply(client, ctx.owner, ctx.repo, ctx.issue_number, ctx.storage)

    # Re-anchor the concurrency token and the synced comment files
    refreshed = ctx.fetch_remote(client)
    ctx.storage.save_metadata(IssueMetadata.from_issue(refreshed.issue))
    ctx.storage.save_comments(refreshed.comments)
    logger.info(f"Pushed changes to {ctx.full_name}, now at {refreshed.issue.updated_at}")

    return PushResult(has_changes=True, applied=True, dry_run=False)


def diff(client: RemoteClient, ctx: IssueContext) -> ChangeSet:
    """Show what a push would do, without permission gating. Never mutates anything."""
    remote = ctx.fetch_remote(client)
    local = ctx.load_local()

    if local.metadata.updated_at != remote.issue.updated_at:
        logger.warning(f"Remote {ctx.full_name} has been updated since last pull")
        print(
            "\nWarning: Remote has been updated since last pull.\n"
            "Consider running 'pull --force' to update local copy.",
            file=sys.stderr,
        )

    changeset = ChangeSet.detect(
        LocalState(metadata=local.metadata, body=local.body, comments=local.comments),
        RemoteState(issue=remote.issue, comments=remote.comments),
        DetectOptions(current_user=ctx.current_user, edit_others=True, allow_delete=True),
    )
    if changeset.has_changes():
        changeset.display()
    else:
        print("\nNo changes detected.")
    return changeset


def push_new_issue(
    client: RemoteClient,
    owner: str,
    repo: str,
    storage: IssueStorage,
    *,
    dry_run: bool = False,
) -> IssueSnapshot | None:
    """Create a remote issue from a new-issue directory.

    On success the directory is renamed to ``<parent>/<number>`` and rewritten
    in the regular cache layout, so the issue can be pushed and pulled like any
    other. Returns None on a dry run.

    Raises:
        StorageFileNotFoundError: If the directory has no issue.md
        NewIssueParseError: If issue.md has invalid frontmatter or no title
        RemoteError: If the issue could not be created
        StorageError: If the issue was created but the local directory could not be moved or rewritten
    """
    new_issue = storage.read_new_issue()
    print(render_new_issue_preview(new_issue), end="")

    if dry_run:
        print("\n[dry-run] Would create issue. Run without --dry-run to create.")
        return None

    print("\nCreating issue on GitHub...")
    created = client.create_issue(owner, repo, new_issue.title, new_issue.body, new_issue.labels, new_issue.assignees)
    number = created.number

    issue_dir = storage.dir.parent / str(number)
    if issue_dir.exists():
        msg = (
            f"Issue #{number} created on GitHub, but directory '{issue_dir}' already exists locally. "
            f"Remove or rename it, then run 'pull {number}' to fetch the issue."
        )
        raise StorageError(msg)
    try:
        storage.dir.rename(issue_dir)
    except OSError as e:
        msg = (
            f"Issue #{number} created on GitHub, but failed to rename local directory: {e}. "
            f"Run 'pull {number}' to fetch it locally."
        )
        raise StorageError(msg) from e

    try:
        save_issue_to_storage(IssueStorage(issue_dir), created, [])
    except StorageError as e:
        msg = (
            f"Issue #{number} created and directory renamed, but failed to save metadata: {e}. "
            f"Run 'pull --force {number}' to refresh local state."
        )
        raise StorageError(msg) from e

    logger.info(f"Created {owner}/{repo}#{number}, cached in {issue_dir}")
    return created
