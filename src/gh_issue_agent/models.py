"""Data models exchanged between the local cache, the remote client and the engine.

Snapshots (`IssueSnapshot`, `CommentSnapshot`) are point-in-time reads of the
remote issue. `IssueMetadata` is the frozen copy of a snapshot persisted in
metadata.json; its `updated_at` is the optimistic-concurrency token.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import MetadataParseError

UNKNOWN_AUTHOR = "unknown"
NEW_COMMENT_PREFIX = "new_"


@dataclass(frozen=True)
class IssueSnapshot:
    """An issue exactly as the remote service currently has it."""

    number: int
    title: str
    body: str | None
    state: str
    labels: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)
    milestone: str | None = None
    author: str = UNKNOWN_AUTHOR
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class CommentSnapshot:
    """A remote comment.

    `id` is the GraphQL node id used for cross-referencing, `database_id` the
    numeric id used by the REST mutation endpoints.
    """

    id: str
    database_id: int
    author: str | None
    created_at: str
    body: str

    @property
    def author_login(self) -> str:
        return self.author or UNKNOWN_AUTHOR


# JSON key -> attribute name. Keys follow the GitHub GraphQL naming.
_METADATA_FIELDS: dict[str, str] = {
    "number": "number",
    "title": "title",
    "state": "state",
    "labels": "labels",
    "assignees": "assignees",
    "milestone": "milestone",
    "author": "author",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


@dataclass
class IssueMetadata:
    """Cached copy of the remote issue as of the last successful pull or push.

    Title and labels are the user-editable fields; the rest is informational.
    """

    number: int
    title: str
    state: str
    labels: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)
    milestone: str | None = None
    author: str = UNKNOWN_AUTHOR
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_issue(cls, issue: IssueSnapshot) -> IssueMetadata:
        return cls(
            number=issue.number,
            title=issue.title,
            state=issue.state,
            labels=list(issue.labels),
            assignees=list(issue.assignees),
            milestone=issue.milestone,
            author=issue.author,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in _METADATA_FIELDS.items()}

    @classmethod
    def from_dict(cls, data: Any) -> IssueMetadata:
        """Build metadata from the decoded metadata.json content.

        Raises:
            MetadataParseError: If the content is not an object or a required key is missing
        """
        if not isinstance(data, dict):
            msg = f"Expected a JSON object, got {type(data).__name__}"
            raise MetadataParseError(msg)

        missing = [key for key in ("number", "title", "state", "updatedAt") if key not in data]
        if missing:
            msg = f"Missing required metadata keys: {', '.join(missing)}"
            raise MetadataParseError(msg)

        values = {attr: data[key] for key, attr in _METADATA_FIELDS.items() if key in data}
        values["labels"] = _string_list(data, "labels")
        values["assignees"] = _string_list(data, "assignees")
        return cls(**values)


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        msg = f"'{key}' must be a list of strings, got {value!r}"
        raise MetadataParseError(msg)
    return list(value)


@dataclass
class CommentFileMetadata:
    """Header values parsed from a comment file. All optional."""

    author: str | None = None
    created_at: str | None = None
    id: str | None = None
    database_id: int | None = None


@dataclass
class LocalComment:
    """A comment read from a file in the comments/ directory."""

    filename: str
    metadata: CommentFileMetadata
    body: str

    @property
    def is_new(self) -> bool:
        """Whether this is an unsynced draft (``new_*.md``)."""
        return self.filename.startswith(NEW_COMMENT_PREFIX)
