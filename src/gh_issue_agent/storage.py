"""
Local storage for a single issue.

Directory structure::

    <cache_dir>/<owner>/<repo>/<issue_number>/
    ├── issue.md                      # body + exactly one trailing newline
    ├── metadata.json                 # pretty-printed IssueMetadata
    └── comments/
        ├── 001_comment_<databaseId>.md
        └── new_<name>.md             # draft, no header block

    <cache_dir>/<owner>/<repo>/new/
    └── issue.md                      # YAML frontmatter + body, see new_issue

Synced comment files start with a header block of ``<!-- key: value -->``
lines, a blank line, then the body verbatim.

Files are read and written without newline translation, so ``\\r\\n`` line
endings coming from GitHub survive a pull/push round trip unchanged.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Final

from .exceptions import (
    CommentMetadataParseError,
    MetadataParseError,
    StorageError,
    StorageFileExistsError,
    StorageFileNotFoundError,
)
from .models import NEW_COMMENT_PREFIX, CommentFileMetadata, IssueMetadata, LocalComment
from .new_issue import NewIssue, render_new_issue
from .paths import get_issue_dir, get_new_issue_dir

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import CommentSnapshot, IssueSnapshot

logger: logging.Logger = logging.getLogger(__name__)

ISSUE_FILENAME: Final[str] = "issue.md"
METADATA_FILENAME: Final[str] = "metadata.json"
COMMENTS_DIRNAME: Final[str] = "comments"
NEW_COMMENT_TEMPLATE: Final[str] = "Comment body\n"

_HEADER_KEYS: Final[frozenset[str]] = frozenset({"author", "createdAt", "id", "databaseId"})
_HEADER_LINE_RE: Final[re.Pattern[str]] = re.compile(r"^<!-- ([A-Za-z][A-Za-z0-9_]*): (.*) -->$")
# A known key followed by a colon, in a line that is not a well-formed header
_MALFORMED_HEADER_RE: Final[re.Pattern[str]] = re.compile(r"^<!--\s*(?:author|createdAt|id|databaseId)\s*:")
_SYNCED_FILENAME_RE: Final[re.Pattern[str]] = re.compile(r"^\d{3}_comment_(\d+)\.md$")


@dataclass
class LocalChanges:
    """Local edits compared to a remote snapshot."""

    body_changed: bool = False
    title_changed: bool = False
    labels_changed: bool = False
    modified_comment_ids: list[str] = field(default_factory=list)
    new_comment_files: list[str] = field(default_factory=list)

    def has_changes(self) -> bool:
        return (
            self.body_changed
            or self.title_changed
            or self.labels_changed
            or bool(self.modified_comment_ids)
            or bool(self.new_comment_files)
        )


def format_comment_file(comment: CommentSnapshot) -> str:
    """Serialize a remote comment into the on-disk comment file format."""
    return (
        f"<!-- author: {comment.author_login} -->\n"
        f"<!-- createdAt: {comment.created_at} -->\n"
        f"<!-- id: {comment.id} -->\n"
        f"<!-- databaseId: {comment.database_id} -->\n"
        "\n"
        f"{comment.body}"
    )


def _drop_final_newline(content: str) -> str:
    if content.endswith("\r\n"):
        return content[:-2]
    return content.removesuffix("\n")


def parse_comment_content(content: str, path: Path) -> tuple[CommentFileMetadata, str]:
    """Split comment file content into header metadata and body.

    A header block is present only if the first line is a ``<!-- key: value -->``
    line for a known key. It ends at the first blank line, and everything after
    that line is the body, verbatim. Unknown keys inside the block are ignored.
    Without a header block the whole file is the body.

    Lines are split on ``\\n`` only and one final line terminator is dropped.

    Raises:
        CommentMetadataParseError: If a line for a known header key is malformed
            or databaseId is not an integer
    """
    metadata = CommentFileMetadata()
    lines = _drop_final_newline(content).split("\n")
    in_header = False
    body_start = len(lines)

    for index, raw_line in enumerate(lines):
        line = raw_line.removesuffix("\r")
        if in_header and not line:
            body_start = index + 1
            break

        match = _HEADER_LINE_RE.match(line)
        if match is None:
            if _MALFORMED_HEADER_RE.match(line):
                msg = f"Malformed header line: {line!r}"
                raise CommentMetadataParseError(path, msg)
            body_start = index
            break

        key, value = match.group(1), match.group(2)
        if not in_header and key not in _HEADER_KEYS:
            body_start = 0
            break
        in_header = True

        if key == "author":
            metadata.author = value
        elif key == "createdAt":
            metadata.created_at = value
        elif key == "id":
            metadata.id = value
        elif key == "databaseId":
            try:
                metadata.database_id = int(value)
            except ValueError as e:
                msg = f"Invalid databaseId: {value}"
                raise CommentMetadataParseError(path, msg) from e
        else:
            logger.debug(f"Ignoring unknown comment header '{key}' in {path}")

    body = "\n".join(lines[body_start:])
    return metadata, body


def database_id_from_filename(filename: str) -> int | None:
    """Numeric comment id encoded in a synced filename (``NNN_comment_<id>.md``)."""
    match = _SYNCED_FILENAME_RE.match(filename)
    return int(match.group(1)) if match else None


def _read_text(path: Path) -> str:
    with path.open(encoding="utf-8", newline="") as f:
        return f.read()


class IssueStorage:
    """Read/write access to the cached copy of one issue."""

    def __init__(self, directory: Path | str) -> None:
        self.dir: Path = Path(directory)

    @classmethod
    def for_issue(cls, owner: str, repo: str, issue_number: int, cache_dir: Path | None = None) -> IssueStorage:
        return cls(get_issue_dir(owner, repo, issue_number, cache_dir))

    @classmethod
    def for_new_issue(cls, owner: str, repo: str, cache_dir: Path | None = None) -> IssueStorage:
        return cls(get_new_issue_dir(owner, repo, cache_dir))

    @property
    def comments_dir(self) -> Path:
        return self.dir / COMMENTS_DIRNAME

    def exists(self) -> bool:
        return self.dir.is_dir()

    # Read operations

    def read_body(self) -> str:
        """Read issue.md, dropping the trailing newline added on save."""
        path = self.dir / ISSUE_FILENAME
        if not path.exists():
            raise StorageFileNotFoundError(path)
        try:
            content = _read_text(path)
        except OSError as e:
            msg = f"Failed to read {path}: {e}"
            raise StorageError(msg) from e
        return content.removesuffix("\n")

    def read_metadata(self) -> IssueMetadata:
        path = self.dir / METADATA_FILENAME
        if not path.exists():
            raise StorageFileNotFoundError(path)
        try:
            data = json.loads(_read_text(path))
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON in {path}: {e}"
            raise MetadataParseError(msg) from e
        except OSError as e:
            msg = f"Failed to read {path}: {e}"
            raise StorageError(msg) from e
        return IssueMetadata.from_dict(data)

    def read_comments(self) -> list[LocalComment]:
        """Read every ``*.md`` file in comments/, sorted by filename."""
        if not self.comments_dir.is_dir():
            return []

        comments: list[LocalComment] = []
        try:
            for path in sorted(self.comments_dir.glob("*.md")):
                if not path.is_file():
                    continue
                metadata, body = parse_comment_content(_read_text(path), path)
                comments.append(LocalComment(filename=path.name, metadata=metadata, body=body))
        except OSError as e:
            msg = f"Failed to read comments from {self.comments_dir}: {e}"
            raise StorageError(msg) from e

        comments.sort(key=lambda c: c.filename)
        return comments

    def read_new_issue(self) -> NewIssue:
        """Read and parse the issue.md of a not yet created issue.

        Raises:
            StorageFileNotFoundError: If issue.md is missing
            NewIssueParseError: If the frontmatter or title is invalid
        """
        path = self.dir / ISSUE_FILENAME
        if not path.exists():
            raise StorageFileNotFoundError(path)
        try:
            content = _read_text(path)
        except OSError as e:
            msg = f"Failed to read {path}: {e}"
            raise StorageError(msg) from e
        return NewIssue.parse(content)

    # Write operations

    def save_body(self, body: str) -> None:
        self._write(self.dir / ISSUE_FILENAME, f"{body}\n")

    def save_metadata(self, metadata: IssueMetadata) -> None:
        self._write(self.dir / METADATA_FILENAME, json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False))

    def save_comments(self, comments: Sequence[CommentSnapshot]) -> None:
        """Write one file per remote comment and drop stale synced files.

        Draft files (``new_*.md``) are never touched.
        """
        filenames: set[str] = set()
        for index, comment in enumerate(comments, start=1):
            filename = f"{index:03d}_comment_{comment.database_id}.md"
            filenames.add(filename)
            self._write(self.comments_dir / filename, format_comment_file(comment))

        self._remove_stale_comment_files(filenames)

    def _remove_stale_comment_files(self, keep: set[str]) -> None:
        if not self.comments_dir.is_dir():
            return
        for path in self.comments_dir.glob("*.md"):
            if path.name.startswith(NEW_COMMENT_PREFIX) or path.name in keep:
                continue
            if database_id_from_filename(path.name) is None:
                continue
            try:
                path.unlink()
            except OSError as e:
                msg = f"Failed to remove stale comment file {path}: {e}"
                raise StorageError(msg) from e
            logger.debug(f"Removed stale comment file {path.name}")

    def init_new_comment(self, name: str | None = None) -> Path:
        """Create a ``new_<name>.md`` draft comment and return its path.

        Without a name, a local timestamp is used (``new_20240101_120000.md``).

        Raises:
            StorageError: If the name could escape the comments directory
            StorageFileExistsError: If the draft already exists
        """
        if name is not None and ("/" in name or "\\" in name or ".." in name):
            msg = "Invalid comment name: must not contain '/', '\\', or '..'"
            raise StorageError(msg)
        suffix = name or dt.datetime.now().strftime("%Y%m%d_%H%M%S")  # noqa: DTZ005
        path = self.comments_dir / f"{NEW_COMMENT_PREFIX}{suffix}.md"
        if path.exists():
            raise StorageFileExistsError(path)
        self._write(path, NEW_COMMENT_TEMPLATE)
        return path

    def init_new_issue(self, content: str | None = None) -> Path:
        """Create issue.md for a new issue and return its path.

        Without content, a frontmatter boilerplate with an empty title is written.

        Raises:
            StorageFileExistsError: If issue.md already exists
        """
        path = self.dir / ISSUE_FILENAME
        if path.exists():
            raise StorageFileExistsError(path)
        self._write(path, content if content is not None else render_new_issue())
        return path

    def delete_comment_file(self, filename: str) -> None:
        path = self.comments_dir / filename
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise StorageFileNotFoundError(path) from e
        except OSError as e:
            msg = f"Failed to remove {path}: {e}"
            raise StorageError(msg) from e

    def _write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8", newline="")
        except OSError as e:
            msg = f"Failed to write {path}: {e}"
            raise StorageError(msg) from e

    # Diff operations

    def detect_local_changes(
        self,
        remote_issue: IssueSnapshot,
        remote_comments: Sequence[CommentSnapshot],
    ) -> LocalChanges:
        """Compare the cached files to a remote snapshot.

        Missing files count as unchanged, so a partially written cache never
        blocks a pull.
        """
        changes = LocalChanges()

        if (self.dir / ISSUE_FILENAME).exists():
            changes.body_changed = self.read_body() != (remote_issue.body or "")

        if (self.dir / METADATA_FILENAME).exists():
            metadata = self.read_metadata()
            changes.title_changed = metadata.title != remote_issue.title
            changes.labels_changed = set(metadata.labels) != set(remote_issue.labels)

        remote_by_id = {c.id: c for c in remote_comments}
        for local_comment in self.read_comments():
            if local_comment.is_new:
                changes.new_comment_files.append(local_comment.filename)
                continue
            comment_id = local_comment.metadata.id
            if comment_id is None:
                continue
            remote_comment = remote_by_id.get(comment_id)
            if remote_comment is not None and local_comment.body.strip() != remote_comment.body.strip():
                changes.modified_comment_ids.append(comment_id)

        return changes
