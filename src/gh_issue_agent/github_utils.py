from __future__ import annotations

import logging
import os
import subprocess
from typing import Final

from github import Auth, Github, GithubException

from .exceptions import TokenError

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VARS: Final[tuple[str, ...]] = ("GH_TOKEN", "GITHUB_TOKEN")


def get_token(token: str | None = None) -> str:
    """Get a GitHub token from the argument, env vars GH_TOKEN/GITHUB_TOKEN, or `gh auth token`."""
    if token:
        return token

    for env_var in _TOKEN_ENV_VARS:
        value: str | None = os.environ.get(env_var)
        if value:
            logger.debug(f"Using GitHub token from {env_var}")
            return value

    return _get_gh_cli_token()


def _get_gh_cli_token() -> str:
    """Ask the GitHub CLI for its stored token."""
    try:
        result = subprocess.run(  # noqa: S603
            ["gh", "auth", "token"], capture_output=True, text=True, check=True
        )
    except FileNotFoundError as e:
        msg = "No GitHub token found. Set GH_TOKEN or GITHUB_TOKEN, or install and log in to the gh CLI."
        raise TokenError(msg) from e
    except subprocess.CalledProcessError as e:
        msg = f"Failed to get token from 'gh auth token': {e.stderr.strip() or e.stdout.strip()}"
        raise TokenError(msg) from e

    token = result.stdout.strip()
    if not token:
        msg = "'gh auth token' returned an empty token. Run 'gh auth login' first."
        raise TokenError(msg)
    logger.debug("Using GitHub token from gh CLI")
    return token


def get_client(token: str) -> Github:
    """Get a GitHub client using the token."""
    return Github(auth=Auth.Token(token))


def format_github_error(error: GithubException) -> str:
    """Format a GithubException with the API message, status and field errors."""
    data: object = error.data
    message: object = getattr(error, "message", None)
    if not message and isinstance(data, dict):
        message = data.get("message")  # pyright: ignore[reportUnknownMemberType]
    text = f"GitHub API error: {message or data} (HTTP {error.status})"

    details: list[str] = []
    errors: object = data.get("errors") if isinstance(data, dict) else None  # pyright: ignore[reportUnknownMemberType]
    if isinstance(errors, list):
        for item in errors:  # pyright: ignore[reportUnknownVariableType]
            if not isinstance(item, dict):
                continue
            field = item.get("field")  # pyright: ignore[reportUnknownMemberType,reportUnknownVariableType]
            code = item.get("code")  # pyright: ignore[reportUnknownMemberType,reportUnknownVariableType]
            if field and code:
                details.append(f"{field} is {code}")
            elif field or code:
                details.append(str(field or code))
    if details:
        text += f" [{', '.join(details)}]"
    return text
