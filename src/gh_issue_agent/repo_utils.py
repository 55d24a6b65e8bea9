"""Resolve the ``owner/repo`` an issue belongs to."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Final

from .exceptions import InvalidRepositoryError
from .paths import NEW_ISSUE_DIRNAME

logger: logging.Logger = logging.getLogger(__name__)

# git@github.com:owner/repo.git, https://github.com/owner/repo(.git), ssh://git@github.com/owner/repo
_GITHUB_URL_RE: Final[re.Pattern[str]] = re.compile(r"github\.com[:/]([^/]+)/([^/]+?)(?:\.git)?/?$")


def parse_repo(repo: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its parts."""
    owner, sep, name = repo.partition("/")
    if not sep or not owner or not name or "/" in name:
        msg = f"Invalid repository format: {repo}. Expected owner/repo"
        raise InvalidRepositoryError(msg)
    return owner, name


def parse_github_url(url: str) -> tuple[str, str]:
    """Extract owner and repo from a GitHub SSH or HTTPS remote URL."""
    match = _GITHUB_URL_RE.search(url.strip())
    if match is None:
        msg = f"Not a GitHub remote URL: {url}"
        raise InvalidRepositoryError(msg)
    return match.group(1), match.group(2)


def get_repo_from_git(cwd: Path | str | None = None) -> tuple[str, str]:
    """Get owner and repo from the ``origin`` remote of the git checkout at cwd."""
    try:
        result = subprocess.run(  # noqa: S603
            ["git", "remote", "get-url", "origin"],  # noqa: S607
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        msg = "Failed to determine current repository. Use -R to specify."
        raise InvalidRepositoryError(msg) from e

    url = result.stdout.strip()
    logger.debug(f"Origin remote URL: {url}")
    return parse_github_url(url)


def get_repo_from_arg_or_git(repo_arg: str | None, cwd: Path | str | None = None) -> tuple[str, str]:
    """Use ``-R owner/repo`` if given, else the git origin remote."""
    if repo_arg:
        return parse_repo(repo_arg)
    return get_repo_from_git(cwd)


def get_repo_from_new_issue_dir(path: Path, repo_arg: str | None) -> tuple[str, str]:
    """Use ``-R owner/repo`` if given, else ``.../<owner>/<repo>/new`` from the path."""
    if repo_arg:
        return parse_repo(repo_arg)

    repo_dir = path.parent
    if path.name == NEW_ISSUE_DIRNAME and repo_dir.name and repo_dir.parent.name:
        return parse_repo(f"{repo_dir.parent.name}/{repo_dir.name}")

    msg = f"Cannot determine repository from path '{path}'. Use -R owner/repo to specify."
    raise InvalidRepositoryError(msg)
