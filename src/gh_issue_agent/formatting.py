"""Text helpers for diffs and issue rendering."""

from __future__ import annotations

import datetime as dt
import difflib

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY


def format_diff(old: str, new: str, *, fromfile: str = "remote", tofile: str = "local") -> list[str]:
    """Return unified diff lines (without line terminators) turning `old` into `new`."""
    return list(
        difflib.unified_diff(
            old.splitlines(),
            new.splitlines(),
            fromfile=fromfile,
            tofile=tofile,
            lineterm="",
        )
    )


def indent_text(text: str, indent: str) -> str:
    """Prefix every line of `text` with `indent`."""
    return "\n".join(f"{indent}{line}" for line in text.splitlines())


def format_relative_time(timestamp: str, now: dt.datetime | None = None) -> str:
    """Format an ISO 8601 timestamp relative to `now` (e.g. "5 minutes ago").

    Returns the original value if it cannot be parsed or lies in the future.
    """
    try:
        parsed = dt.datetime.fromisoformat(timestamp)
    except (ValueError, TypeError):
        return timestamp
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)

    current = now or dt.datetime.now(dt.UTC)
    seconds = int((current - parsed).total_seconds())

    if seconds < 0:
        return timestamp
    if seconds < _MINUTE:
        return "just now"
    if seconds < _HOUR:
        return _ago(seconds // _MINUTE, "minute")
    if seconds < _DAY:
        return _ago(seconds // _HOUR, "hour")
    if seconds < _WEEK:
        return _ago(seconds // _DAY, "day")
    return _ago(seconds // _WEEK, "week")


def _ago(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"
