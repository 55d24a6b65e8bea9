"""Protocol defining the contract between the sync engine and the remote issue tracker.

The engine never talks to the network directly. Pull, Push, Diff and issue
creation are written against `RemoteClient`, which allows:
- A PyGithub-backed implementation for real use (`github_client.GithubRemoteClient`)
- A deterministic in-memory implementation that records calls in tests

Calls are issued one at a time; the engine waits for each to return before
issuing the next, because the apply order (body, title, labels, comments) is
part of its contract.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import CommentSnapshot, IssueSnapshot
    from .new_issue import IssueTemplate


class RemoteClient(Protocol):
    """Capabilities the sync engine needs from the remote service.

    Implementations raise `RemoteError` (or a subclass) on any transport or
    API failure. Errors are never retried by the engine.
    """

    def get_issue(self, owner: str, repo: str, issue_number: int) -> IssueSnapshot:
        """Fetch the current state of an issue."""
        ...

    def get_comments(self, owner: str, repo: str, issue_number: int) -> list[CommentSnapshot]:
        """Fetch all comments of an issue in chronological order.

        If the transport paginates, every page must be fetched before returning.
        """
        ...

    def update_issue_body(self, owner: str, repo: str, issue_number: int, body: str) -> None:
        ...

    def update_issue_title(self, owner: str, repo: str, issue_number: int, title: str) -> None:
        ...

    def add_labels(self, owner: str, repo: str, issue_number: int, labels: Sequence[str]) -> None:
        """Add all given labels in a single call."""
        ...

    def remove_label(self, owner: str, repo: str, issue_number: int, label: str) -> None:
        ...

    def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> None:
        ...

    def update_comment(self, owner: str, repo: str, comment_id: int, body: str) -> None:
        """Replace the body of a comment, addressed by its numeric id."""
        ...

    def delete_comment(self, owner: str, repo: str, comment_id: int) -> None:
        """Delete a comment, addressed by its numeric id."""
        ...

    def get_current_user(self) -> str:
        """Return the login of the authenticated user."""
        ...

    def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: Sequence[str],
        assignees: Sequence[str],
    ) -> IssueSnapshot:
        """Create an issue and return it as created."""
        ...

    def get_issue_templates(self, owner: str, repo: str) -> list[IssueTemplate]:
        """Return the repository's markdown issue templates. No templates is an empty list."""
        ...
