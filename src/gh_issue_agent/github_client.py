"""
GitHub implementation of the RemoteClient protocol using PyGithub.

Every failure of a call, whether an API error (`GithubException`) or a
transport error from the HTTP layer (an `OSError`, which the `requests`
exceptions derive from), is raised as `RemoteError`.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING, Final

from github import GithubException

from . import github_utils as ghu
from .exceptions import RemoteError, RemoteResponseError, TokenError
from .models import UNKNOWN_AUTHOR, CommentSnapshot, IssueSnapshot
from .new_issue import IssueTemplate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from github import Github
    from github.ContentFile import ContentFile
    from github.Issue import Issue as GithubIssue
    from github.IssueComment import IssueComment as GithubIssueComment
    from github.Repository import Repository as GithubRepository

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

ISSUE_TEMPLATE_DIR: Final[str] = ".github/ISSUE_TEMPLATE"


def format_timestamp(value: dt.datetime | None) -> str:
    """Render an API timestamp in RFC 3339 form (``2024-01-15T10:30:45+00:00``).

    Naive datetimes are taken to be UTC.
    """
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.UTC)
    return value.isoformat()


def _remote_error(action: str, error: GithubException | OSError) -> RemoteError:
    if isinstance(error, GithubException):
        return RemoteError(f"{action}: {ghu.format_github_error(error)}", status=error.status)
    return RemoteError(f"{action}: {type(error).__name__}: {error}")


class GithubRemoteClient:
    """RemoteClient backed by the GitHub REST API."""

    def __init__(self, client: Github) -> None:
        self._client: Github = client
        self._repos: dict[str, GithubRepository] = {}

    def _repo(self, owner: str, repo: str) -> GithubRepository:
        full_name = f"{owner}/{repo}"
        if full_name not in self._repos:
            self._repos[full_name] = self._client.get_repo(full_name, lazy=True)
        return self._repos[full_name]

    def _issue(self, owner: str, repo: str, issue_number: int) -> GithubIssue:
        try:
            return self._repo(owner, repo).get_issue(issue_number)
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to get issue {owner}/{repo}#{issue_number}", e) from e

    def get_issue(self, owner: str, repo: str, issue_number: int) -> IssueSnapshot:
        issue = self._issue(owner, repo, issue_number)
        return _issue_snapshot(issue, f"{owner}/{repo}#{issue_number}")

    def get_comments(self, owner: str, repo: str, issue_number: int) -> list[CommentSnapshot]:
        issue = self._issue(owner, repo, issue_number)
        try:
            # Iterating the PaginatedList fetches every page
            comments = [_comment_snapshot(comment) for comment in issue.get_comments()]
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to get comments for {owner}/{repo}#{issue_number}", e) from e
        logger.debug(f"Fetched {len(comments)} comments for {owner}/{repo}#{issue_number}")
        return comments

    def update_issue_body(self, owner: str, repo: str, issue_number: int, body: str) -> None:
        issue = self._issue(owner, repo, issue_number)
        try:
            issue.edit(body=body)
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to update body of #{issue_number}", e) from e

    def update_issue_title(self, owner: str, repo: str, issue_number: int, title: str) -> None:
        issue = self._issue(owner, repo, issue_number)
        try:
            issue.edit(title=title)
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to update title of #{issue_number}", e) from e

    def add_labels(self, owner: str, repo: str, issue_number: int, labels: Sequence[str]) -> None:
        issue = self._issue(owner, repo, issue_number)
        try:
            issue.add_to_labels(*labels)
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to add labels {list(labels)} to #{issue_number}", e) from e

    def remove_label(self, owner: str, repo: str, issue_number: int, label: str) -> None:
        issue = self._issue(owner, repo, issue_number)
        try:
            issue.remove_from_labels(label)
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to remove label '{label}' from #{issue_number}", e) from e

    def create_comment(self, owner: str, repo: str, issue_number: int, body: str) -> None:
        issue = self._issue(owner, repo, issue_number)
        try:
            issue.create_comment(body)
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to create comment on #{issue_number}", e) from e

    def update_comment(self, owner: str, repo: str, comment_id: int, body: str) -> None:
        try:
            self._repo(owner, repo).get_issue_comment(comment_id).edit(body)
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to update comment {comment_id}", e) from e

    def delete_comment(self, owner: str, repo: str, comment_id: int) -> None:
        try:
            self._repo(owner, repo).get_issue_comment(comment_id).delete()
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to delete comment {comment_id}", e) from e

    def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: Sequence[str],
        assignees: Sequence[str],
    ) -> IssueSnapshot:
        try:
            issue = self._repo(owner, repo).create_issue(
                title=title,
                body=body,
                labels=list(labels),
                assignees=list(assignees),
            )
        except (GithubException, OSError) as e:
            raise _remote_error(f"Failed to create issue in {owner}/{repo}", e) from e
        logger.info(f"Created issue {owner}/{repo}#{issue.number}")
        return _issue_snapshot(issue, f"{owner}/{repo}#{issue.number}")

    def get_issue_templates(self, owner: str, repo: str) -> list[IssueTemplate]:
        try:
            contents = self._repo(owner, repo).get_contents(ISSUE_TEMPLATE_DIR)
        except GithubException as e:
            if e.status == 404:
                logger.debug(f"No {ISSUE_TEMPLATE_DIR} directory in {owner}/{repo}")
                return []
            raise _remote_error(f"Failed to list issue templates of {owner}/{repo}", e) from e
        except OSError as e:
            raise _remote_error(f"Failed to list issue templates of {owner}/{repo}", e) from e

        files: list[ContentFile] = contents if isinstance(contents, list) else [contents]
        templates: list[IssueTemplate] = []
        for item in sorted(files, key=lambda f: f.name):
            # Issue forms (.yml) have no markdown body to start from
            if item.type != "file" or not item.name.endswith(".md"):
                continue
            try:
                content = item.decoded_content.decode("utf-8")
            except (GithubException, OSError) as e:
                raise _remote_error(f"Failed to read issue template {item.path}", e) from e
            except UnicodeDecodeError:
                logger.info(f"Skipping issue template {item.path}: not UTF-8")
                continue
            template = IssueTemplate.from_markdown(content, item.name)
            if template is not None:
                templates.append(template)
        return templates

    def get_current_user(self) -> str:
        try:
            return self._client.get_user().login
        except (GithubException, OSError) as e:
            raise _remote_error("Failed to get the authenticated user", e) from e


def _issue_snapshot(issue: GithubIssue, full_name: str) -> IssueSnapshot:
    try:
        return IssueSnapshot(
            number=issue.number,
            title=issue.title,
            body=issue.body,
            state=issue.state.upper(),
            labels=[label.name for label in issue.labels],
            assignees=[assignee.login for assignee in issue.assignees],
            milestone=issue.milestone.title if issue.milestone else None,
            author=issue.user.login if issue.user else UNKNOWN_AUTHOR,
            created_at=format_timestamp(issue.created_at),
            updated_at=format_timestamp(issue.updated_at),
        )
    except (AttributeError, TypeError) as e:
        msg = f"Unexpected issue payload for {full_name}: {e}"
        raise RemoteResponseError(msg) from e


def _comment_snapshot(comment: GithubIssueComment) -> CommentSnapshot:
    try:
        return CommentSnapshot(
            id=comment.node_id,
            database_id=comment.id,
            author=comment.user.login if comment.user else None,
            created_at=format_timestamp(comment.created_at),
            body=comment.body or "",
        )
    except (AttributeError, TypeError) as e:
        msg = f"Unexpected comment payload: {e}"
        raise RemoteResponseError(msg) from e


# Process-wide client. Initialization (token lookup) runs at most once; a
# failure is cached and re-raised on every later call.
_remote_client: GithubRemoteClient | None = None
_remote_client_error: str | None = None


def get_remote_client(token: str | None = None) -> GithubRemoteClient:
    """Return the shared GithubRemoteClient, creating it on first use.

    Raises:
        TokenError: If no token could be obtained, now or on the first attempt
    """
    global _remote_client, _remote_client_error  # noqa: PLW0603

    if _remote_client is not None:
        return _remote_client
    if _remote_client_error is not None:
        raise TokenError(_remote_client_error)

    try:
        _remote_client = GithubRemoteClient(ghu.get_client(ghu.get_token(token)))
    except TokenError as e:
        _remote_client_error = str(e)
        raise
    return _remote_client


def reset_remote_client() -> None:
    """Forget the shared client and any cached initialization error."""
    global _remote_client, _remote_client_error  # noqa: PLW0603
    _remote_client = None
    _remote_client_error = None
