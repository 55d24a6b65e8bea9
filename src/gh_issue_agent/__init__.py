"""
gh-issue-agent

Edit a GitHub issue (title, body, labels, comments) as local files and
reconcile the edits back, guarded by the issue's updated_at timestamp.
"""

from __future__ import annotations

from .changeset import ChangeSet
from .cli import main
from .exceptions import CommentPermissionError, ConflictError, IssueAgentError
from .github_client import GithubRemoteClient, get_remote_client
from .storage import IssueStorage
from .sync import IssueContext, PushOptions, diff, pull, push, push_new_issue, refresh
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "ChangeSet",
    "CommentPermissionError",
    "ConflictError",
    "GithubRemoteClient",
    "IssueAgentError",
    "IssueContext",
    "IssueStorage",
    "PushOptions",
    "diff",
    "get_remote_client",
    "main",
    "pull",
    "push",
    "push_new_issue",
    "refresh",
    "setup_logging",
]
