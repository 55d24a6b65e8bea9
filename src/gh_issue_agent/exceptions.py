"""
Custom exception classes for gh-issue-agent.
"""

from __future__ import annotations

from pathlib import Path


class IssueAgentError(Exception):
    """Base exception for all gh-issue-agent errors."""


# Local storage


class StorageError(IssueAgentError):
    """Raised when reading or writing the local issue cache fails."""


class StorageFileNotFoundError(StorageError):
    """Raised when a required cache file (issue.md, metadata.json) is missing."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"File not found: {path}")
        self.path: Path = path


class StorageFileExistsError(StorageError):
    """Raised when a draft file would overwrite an existing file."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"File already exists: {path}")
        self.path: Path = path


class CommentMetadataParseError(StorageError):
    """Raised when a comment file header cannot be parsed."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"Failed to parse comment metadata in {path}: {message}")
        self.path: Path = path
        self.message: str = message


class MetadataParseError(StorageError):
    """Raised when metadata.json is not valid issue metadata."""


class NewIssueParseError(StorageError):
    """Raised when the issue.md of a new issue has invalid frontmatter or no title."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Failed to parse issue.md: {message}")
        self.message: str = message


# Remote API


class RemoteError(IssueAgentError):
    """Raised when a GitHub API call fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status: int | None = status


class RemoteResponseError(RemoteError):
    """Raised when the GitHub API returns an unexpected payload."""


class TokenError(RemoteError):
    """Raised when no GitHub token could be obtained."""


# Domain


class ConflictError(IssueAgentError):
    """Raised when the remote issue changed since the local copy was last synced."""


class CommentPermissionError(IssueAgentError):
    """Raised when a comment change is not permitted by the push policy."""


class IssueNotCachedError(IssueAgentError):
    """Raised when an operation needs a local copy that was never pulled."""


class LocalChangesError(IssueAgentError):
    """Raised when pulling would discard local edits."""


class InvalidRepositoryError(IssueAgentError):
    """Raised when a repository is not in owner/repo form or cannot be determined."""


class InvalidTargetError(IssueAgentError):
    """Raised when a push target is neither an issue number nor a directory."""


class IssueTemplateError(IssueAgentError):
    """Raised when no issue template can be chosen for a new issue."""
