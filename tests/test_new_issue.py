"""Tests for the new-issue file format and issue templates."""

from __future__ import annotations

import pytest

from gh_issue_agent.exceptions import IssueTemplateError, NewIssueParseError
from gh_issue_agent.new_issue import (
    IssueTemplate,
    NewIssue,
    format_template_list,
    render_new_issue,
    select_template,
    split_frontmatter,
)

BUG_TEMPLATE = (
    "---\n"
    "name: Bug report\n"
    "about: File a bug\n"
    "title: '[BUG] '\n"
    "labels: bug, triage\n"
    "assignees: ''\n"
    "---\n"
    "\n"
    "**Describe the bug**\n"
)


@pytest.mark.unit
class TestSplitFrontmatter:
    def test_without_frontmatter(self) -> None:
        assert split_frontmatter("Just text\n") == ({}, "Just text\n")

    def test_with_frontmatter(self) -> None:
        assert split_frontmatter("---\ntitle: x\n---\nbody") == ({"title": "x"}, "body")

    def test_empty_frontmatter(self) -> None:
        assert split_frontmatter("---\n---\n\nBody") == ({}, "\nBody")

    def test_unclosed(self) -> None:
        with pytest.raises(NewIssueParseError, match="Unclosed frontmatter"):
            split_frontmatter("---\ntitle: x\n\nBody\n")

    def test_invalid_yaml(self) -> None:
        with pytest.raises(NewIssueParseError, match="Failed to parse frontmatter YAML"):
            split_frontmatter("---\ntitle: [unclosed\n---\n")

    def test_not_a_mapping(self) -> None:
        with pytest.raises(NewIssueParseError, match="must be a YAML mapping, got list"):
            split_frontmatter("---\n- a\n- b\n---\n")


@pytest.mark.unit
class TestNewIssueParse:
    def test_full(self) -> None:
        new_issue = NewIssue.parse(
            "---\ntitle: '  Crash on start '\nlabels:\n- bug\nassignees: [alice]\n---\n\nSteps\n\n"
        )

        assert new_issue == NewIssue(title="Crash on start", body="Steps", labels=["bug"], assignees=["alice"])

    def test_comma_separated_names(self) -> None:
        new_issue = NewIssue.parse("---\ntitle: T\nlabels: bug, ui\n---\n")

        assert new_issue.labels == ["bug", "ui"]
        assert new_issue.assignees == []
        assert new_issue.body == ""

    def test_crlf(self) -> None:
        new_issue = NewIssue.parse("---\r\ntitle: T\r\n---\r\n\r\nLine one\r\nLine two\r\n")

        assert new_issue.title == "T"
        assert new_issue.body == "Line one\nLine two"

    def test_body_keeps_html_comments(self) -> None:
        new_issue = NewIssue.parse("---\ntitle: T\n---\n\n<!-- Note: keep this -->\nText\n")

        assert new_issue.body == "<!-- Note: keep this -->\nText"

    @pytest.mark.parametrize(
        ("content", "error"),
        [
            ("Just text", "Missing title"),
            ("---\nlabels: []\n---\nBody", "Missing title"),
            ("---\ntitle: ''\n---\nBody", "Title cannot be empty"),
            ("---\ntitle: 123\n---\nBody", "Title must be text"),
            ("---\ntitle: T\nlabels: 5\n---\nBody", "'labels' must be a list of strings"),
            ("---\ntitle: T\nassignees: [[a]]\n---\nBody", "'assignees' must be a list of strings"),
        ],
    )
    def test_invalid(self, content: str, error: str) -> None:
        with pytest.raises(NewIssueParseError, match=error):
            NewIssue.parse(content)


@pytest.mark.unit
class TestRenderNewIssue:
    def test_default_boilerplate(self) -> None:
        assert render_new_issue() == "---\ntitle: ''\nlabels: []\nassignees: []\n---\n\nBody\n"

    def test_parses_back(self) -> None:
        content = render_new_issue(title="Crash: on start", labels=["bug"], assignees=["alice"], body="Steps\n")

        assert NewIssue.parse(content) == NewIssue(
            title="Crash: on start", body="Steps", labels=["bug"], assignees=["alice"]
        )


@pytest.mark.unit
class TestIssueTemplate:
    def test_from_markdown(self) -> None:
        template = IssueTemplate.from_markdown(BUG_TEMPLATE, "bug.md")

        assert template == IssueTemplate(
            name="Bug report",
            title="[BUG] ",
            body="**Describe the bug**",
            about="File a bug",
            filename="bug.md",
            labels=["bug", "triage"],
            assignees=[],
        )

    @pytest.mark.parametrize(
        "content",
        ["No frontmatter", "---\nabout: nameless\n---\nBody", "---\nname: [broken\n---\n", "---\nname: x\n"],
    )
    def test_unusable_files_are_skipped(self, content: str) -> None:
        assert IssueTemplate.from_markdown(content, "t.md") is None

    def test_to_issue_content(self) -> None:
        template = IssueTemplate.from_markdown(BUG_TEMPLATE, "bug.md")
        assert template is not None

        new_issue = NewIssue.parse(template.to_issue_content())

        assert new_issue.title == "[BUG]"
        assert new_issue.labels == ["bug", "triage"]
        assert new_issue.body == "**Describe the bug**"

    def test_to_issue_content_without_body(self) -> None:
        content = IssueTemplate(name="Empty").to_issue_content()

        assert content == "---\ntitle: ''\nlabels: []\nassignees: []\n---\n\nBody\n"


@pytest.mark.unit
class TestSelectTemplate:
    BUG = IssueTemplate(name="Bug report", about="File a bug")
    FEATURE = IssueTemplate(name="Feature")

    def test_no_templates(self) -> None:
        assert select_template([]) is None
        assert select_template([], "Bug report") is None

    def test_single_template_is_used(self) -> None:
        assert select_template([self.BUG]) is self.BUG

    def test_by_name(self) -> None:
        assert select_template([self.BUG, self.FEATURE], "Feature") is self.FEATURE

    def test_unknown_name(self) -> None:
        expected = "Template 'Docs' not found. Available templates: Bug report, Feature"
        with pytest.raises(IssueTemplateError, match=expected):
            select_template([self.BUG, self.FEATURE], "Docs")

    def test_several_without_name(self) -> None:
        with pytest.raises(IssueTemplateError, match=r"Multiple issue templates found \(2\)") as exc_info:
            select_template([self.BUG, self.FEATURE])

        assert "--template <NAME>" in str(exc_info.value)

    def test_format_template_list(self) -> None:
        assert format_template_list([self.BUG, self.FEATURE]) == "  - Bug report - File a bug\n  - Feature"
