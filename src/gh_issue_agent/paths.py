"""Location of the local issue cache."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

_APP_DIR_NAME: Final[str] = "gh-issue-agent"
_CACHE_DIR_ENV_VAR: Final[str] = "GH_ISSUE_AGENT_CACHE_DIR"
NEW_ISSUE_DIRNAME: Final[str] = "new"


def get_cache_dir() -> Path:
    """Return the cache root.

    Order: GH_ISSUE_AGENT_CACHE_DIR, $XDG_CACHE_HOME/gh-issue-agent,
    ~/.cache/gh-issue-agent.
    """
    override = os.environ.get(_CACHE_DIR_ENV_VAR)
    if override:
        return Path(override)

    try:
        home: Path | None = Path.home()
    except RuntimeError:
        home = None
    return _get_cache_dir_with_env(os.environ.get("XDG_CACHE_HOME"), home)


def _get_cache_dir_with_env(xdg_cache_home: str | None, home_dir: Path | None) -> Path:
    if xdg_cache_home:
        return Path(xdg_cache_home) / _APP_DIR_NAME
    if home_dir is not None:
        return home_dir / ".cache" / _APP_DIR_NAME
    # No home directory available
    return Path(".cache") / _APP_DIR_NAME


def get_issue_dir(owner: str, repo: str, issue_number: int, cache_dir: Path | None = None) -> Path:
    """Return ``<cache_dir>/<owner>/<repo>/<issue_number>``."""
    root = cache_dir if cache_dir is not None else get_cache_dir()
    return root / owner / repo / str(issue_number)


def get_new_issue_dir(owner: str, repo: str, cache_dir: Path | None = None) -> Path:
    """Return ``<cache_dir>/<owner>/<repo>/new``, where a not yet created issue is drafted."""
    root = cache_dir if cache_dir is not None else get_cache_dir()
    return root / owner / repo / NEW_ISSUE_DIRNAME
