"""
Drafting a new issue locally: the issue.md frontmatter format and issue templates.

A new issue lives in ``<cache_dir>/<owner>/<repo>/new/issue.md``::

    ---
    title: Fix the parser
    labels:
    - bug
    assignees: []
    ---

    Body text...

Pushing that directory creates the issue and turns the directory into the
regular cache of the created issue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

import yaml

from .exceptions import IssueTemplateError, NewIssueParseError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger: logging.Logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER: Final[str] = "---"
DEFAULT_NEW_ISSUE_BODY: Final[str] = "Body"


def split_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split ``---`` delimited YAML frontmatter from the rest of the content.

    Content without an opening delimiter has no frontmatter.

    Raises:
        NewIssueParseError: If the frontmatter is unclosed, not valid YAML or not a mapping
    """
    lines = content.lstrip().split("\n")
    if lines[0].strip() != FRONTMATTER_DELIMITER:
        return {}, content

    for end, line in enumerate(lines[1:], start=1):
        if line.strip() == FRONTMATTER_DELIMITER:
            break
    else:
        msg = f"Unclosed frontmatter: missing closing '{FRONTMATTER_DELIMITER}'"
        raise NewIssueParseError(msg)

    raw = "\n".join(lines[1:end])
    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        msg = f"Failed to parse frontmatter YAML: {e}"
        raise NewIssueParseError(msg) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"Frontmatter must be a YAML mapping, got {type(data).__name__}"
        raise NewIssueParseError(msg)
    return data, "\n".join(lines[end + 1 :])


def _names(value: Any, key: str) -> list[str]:
    """Normalize a labels/assignees value: a list, or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    msg = f"'{key}' must be a list of strings, got {value!r}"
    raise NewIssueParseError(msg)


def render_new_issue(
    title: str = "",
    labels: Sequence[str] = (),
    assignees: Sequence[str] = (),
    body: str = DEFAULT_NEW_ISSUE_BODY,
) -> str:
    """Render issue.md content for a new issue."""
    frontmatter = yaml.safe_dump(
        {"title": title, "labels": list(labels), "assignees": list(assignees)},
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    body = body.rstrip("\n")
    return f"{FRONTMATTER_DELIMITER}\n{frontmatter}{FRONTMATTER_DELIMITER}\n\n{body}\n"


@dataclass
class NewIssue:
    """An issue parsed from a local issue.md, not yet created remotely."""

    title: str
    body: str
    labels: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, content: str) -> NewIssue:
        """Parse issue.md content. Line endings are normalized to ``\\n``.

        Surrounding blank lines of the body are dropped.

        Raises:
            NewIssueParseError: If the frontmatter is invalid or the title is missing or empty
        """
        frontmatter, rest = split_frontmatter(content.replace("\r\n", "\n"))

        title = frontmatter.get("title")
        if title is None:
            msg = "Missing title: add 'title: ...' to the frontmatter"
            raise NewIssueParseError(msg)
        if not isinstance(title, str):
            msg = f"Title must be text, got {title!r}. Quote it in the frontmatter."
            raise NewIssueParseError(msg)
        if not title.strip():
            msg = "Title cannot be empty"
            raise NewIssueParseError(msg)

        return cls(
            title=title.strip(),
            body=rest.strip("\n"),
            labels=_names(frontmatter.get("labels"), "labels"),
            assignees=_names(frontmatter.get("assignees"), "assignees"),
        )


@dataclass(frozen=True)
class IssueTemplate:
    """A markdown issue template from ``.github/ISSUE_TEMPLATE/``."""

    name: str
    title: str | None = None
    body: str | None = None
    about: str | None = None
    filename: str | None = None
    labels: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)

    @classmethod
    def from_markdown(cls, content: str, filename: str) -> IssueTemplate | None:
        """Build a template from a template file. Returns None if it has no name."""
        try:
            frontmatter, body = split_frontmatter(content.replace("\r\n", "\n"))
            labels = _names(frontmatter.get("labels"), "labels")
            assignees = _names(frontmatter.get("assignees"), "assignees")
        except NewIssueParseError as e:
            logger.info(f"Skipping issue template {filename}: {e}")
            return None

        name = frontmatter.get("name")
        if not isinstance(name, str) or not name.strip():
            logger.info(f"Skipping issue template {filename}: no name")
            return None

        title = frontmatter.get("title")
        about = frontmatter.get("about")
        return cls(
            name=name.strip(),
            title=title if isinstance(title, str) else None,
            body=body.strip("\n") or None,
            about=about if isinstance(about, str) else None,
            filename=filename,
            labels=labels,
            assignees=assignees,
        )

    def to_issue_content(self) -> str:
        return render_new_issue(
            title=self.title or "",
            labels=self.labels,
            assignees=self.assignees,
            body=self.body or DEFAULT_NEW_ISSUE_BODY,
        )


def format_template_list(templates: Sequence[IssueTemplate]) -> str:
    lines = []
    for template in templates:
        if template.about:
            lines.append(f"  - {template.name} - {template.about}")
        else:
            lines.append(f"  - {template.name}")
    return "\n".join(lines)


def select_template(templates: Sequence[IssueTemplate], name: str | None = None) -> IssueTemplate | None:
    """Pick the template for a new issue.

    No templates means the default boilerplate (None). A single template is
    used automatically; with several, a name is required.

    Raises:
        IssueTemplateError: If the named template does not exist, or several
            templates exist and no name was given
    """
    if not templates:
        return None

    if name is not None:
        for template in templates:
            if template.name == name:
                return template
        available = ", ".join(t.name for t in templates)
        msg = f"Template '{name}' not found. Available templates: {available}"
        raise IssueTemplateError(msg)

    if len(templates) == 1:
        return templates[0]

    msg = (
        f"Multiple issue templates found ({len(templates)}):\n"
        f"{format_template_list(templates)}\n"
        "Use --template <NAME> to select a template, or --no-template to use the default boilerplate."
    )
    raise IssueTemplateError(msg)
