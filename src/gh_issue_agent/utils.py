"""
Utility functions for gh-issue-agent.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

from .paths import get_cache_dir

LOG_FILENAME: Final[str] = "gh-issue-agent.log"

_CONSOLE_LEVELS: Final[dict[int, int]] = {0: logging.WARNING, 1: logging.INFO}


def setup_logging(*, verbosity: int = 0, log_file: Path | None = None) -> None:
    """Configure logging: console at WARNING/INFO/DEBUG for 0/1/2+ ``-v``, full DEBUG log in the cache dir."""
    console = logging.StreamHandler()
    console.setLevel(_CONSOLE_LEVELS.get(verbosity, logging.DEBUG))

    path = log_file if log_file is not None else get_cache_dir() / LOG_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[console, file_handler],
    )
    # PyGithub logs every request at DEBUG
    logging.getLogger("github").setLevel(logging.INFO if verbosity < 3 else logging.DEBUG)
