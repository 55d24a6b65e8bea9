"""
Tests for the command-line interface and logging setup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from fakes import FakeRemoteClient, make_comment, make_issue

from gh_issue_agent.cli import main, parse_arguments, parse_push_target
from gh_issue_agent.exceptions import InvalidTargetError
from gh_issue_agent.new_issue import IssueTemplate
from gh_issue_agent.utils import setup_logging


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> FakeRemoteClient:
    """Run the CLI against FakeRemoteClient with the cache in tmp_path."""
    monkeypatch.setenv("GH_ISSUE_AGENT_CACHE_DIR", str(tmp_path))
    client = FakeRemoteClient(make_issue(body="Original"), comments=[make_comment(1001)])
    monkeypatch.setattr("gh_issue_agent.cli.get_remote_client", lambda: client)
    monkeypatch.setattr("gh_issue_agent.cli.setup_logging", lambda **_: None)
    return client


@pytest.mark.unit
class TestParseArguments:
    def test_push_flags(self) -> None:
        args = parse_arguments(
            ["-vv", "push", "123", "-R", "owner/repo", "--dry-run", "--force", "--edit-others", "--allow-delete"]
        )

        assert args.command == "push"
        assert args.target == "123"
        assert args.repo == "owner/repo"
        assert args.verbose == 2
        assert args.dry_run
        assert args.force
        assert args.edit_others
        assert args.allow_delete

    def test_pull_short_force(self) -> None:
        args = parse_arguments(["pull", "5", "-f"])

        assert args.force
        assert args.repo is None

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_issue_number_must_be_int(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments(["pull", "abc"])

    def test_init_issue_template_flags_are_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments(["init-issue", "--template", "Bug", "--no-template"])

    def test_push_target_number(self) -> None:
        assert parse_push_target("123") == 123

    def test_push_target_directory(self, tmp_path: Path) -> None:
        assert parse_push_target(str(tmp_path)) == tmp_path

    @pytest.mark.parametrize("target", ["abc", "-1", "missing/dir"])
    def test_push_target_invalid(self, target: str) -> None:
        with pytest.raises(InvalidTargetError, match="is neither a valid issue number nor an existing directory"):
            parse_push_target(target)


@pytest.mark.unit
class TestMain:
    def test_pull_then_push(
        self, fake_client: FakeRemoteClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["pull", "123", "-R", "owner/repo"])

        issue_dir = tmp_path / "owner" / "repo" / "123"
        assert (issue_dir / "issue.md").read_text(encoding="utf-8") == "Original\n"
        assert (issue_dir / "comments" / "001_comment_1001.md").exists()
        assert "Done! Issue #123 has been saved to" in capsys.readouterr().err

        (issue_dir / "issue.md").write_text("Modified\n", encoding="utf-8")
        main(["push", "123", "-R", "owner/repo"])

        assert fake_client.calls == [("update_issue_body", "Modified")]
        assert "Done! Changes have been pushed to GitHub." in capsys.readouterr().out

    def test_dry_run(self, fake_client: FakeRemoteClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["pull", "123", "-R", "owner/repo"])
        (tmp_path / "owner" / "repo" / "123" / "issue.md").write_text("Modified\n", encoding="utf-8")

        main(["push", "123", "-R", "owner/repo", "--dry-run"])

        assert fake_client.calls == []
        assert "[dry-run] Changes detected." in capsys.readouterr().out

    def test_diff(self, fake_client: FakeRemoteClient, capsys: pytest.CaptureFixture[str]) -> None:
        main(["pull", "123", "-R", "owner/repo"])
        capsys.readouterr()

        main(["diff", "123", "-R", "owner/repo"])

        assert "No changes detected." in capsys.readouterr().out

    def test_view(self, fake_client: FakeRemoteClient, capsys: pytest.CaptureFixture[str]) -> None:
        main(["view", "123", "-R", "owner/repo"])

        out = capsys.readouterr().out
        assert out.startswith("Test Issue #123\n")
        assert "Comment body" in out

    def test_init_comment(self, fake_client: FakeRemoteClient, tmp_path: Path) -> None:
        main(["pull", "123", "-R", "owner/repo"])

        main(["init-comment", "123", "-R", "owner/repo", "--name", "reply"])

        assert (tmp_path / "owner" / "repo" / "123" / "comments" / "new_reply.md").exists()

    def test_init_comment_requires_pull(
        self, fake_client: FakeRemoteClient, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["init-comment", "123", "-R", "owner/repo"])

        assert exc_info.value.code == 1
        assert "Error: Issue #123 not found locally. Run 'pull 123' first." in capsys.readouterr().err

    def test_conflict_exits_non_zero(
        self, fake_client: FakeRemoteClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["pull", "123", "-R", "owner/repo"])
        (tmp_path / "owner" / "repo" / "123" / "issue.md").write_text("Modified\n", encoding="utf-8")
        fake_client.update_issue_title("owner", "repo", 123, "Changed elsewhere")
        fake_client.calls.clear()

        with pytest.raises(SystemExit) as exc_info:
            main(["push", "123", "-R", "owner/repo"])

        assert exc_info.value.code == 1
        assert "Remote issue has changed since last pull." in capsys.readouterr().err
        assert fake_client.calls == []

    def test_invalid_repo(self, fake_client: FakeRemoteClient, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["pull", "123", "-R", "not-a-repo"])

        assert exc_info.value.code == 1
        assert "Error: Invalid repository format: not-a-repo" in capsys.readouterr().err

    def test_logging_is_configured_from_verbosity(self) -> None:
        with (
            patch("gh_issue_agent.cli.setup_logging") as mock_setup,
            patch("gh_issue_agent.cli.run"),
        ):
            main(["-v", "diff", "1", "-R", "owner/repo"])

        mock_setup.assert_called_once_with(verbosity=1)


@pytest.mark.unit
class TestNewIssueCommands:
    BUG = IssueTemplate(name="Bug report", about="File a bug", title="[BUG] ", body="What happened?", labels=["bug"])
    FEATURE = IssueTemplate(name="Feature")

    def test_init_issue_without_templates(
        self, fake_client: FakeRemoteClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["init-issue", "-R", "owner/repo"])

        path = tmp_path / "owner" / "repo" / "new" / "issue.md"
        assert path.read_text(encoding="utf-8") == "---\ntitle: ''\nlabels: []\nassignees: []\n---\n\nBody\n"
        assert f"Created: {path}" in capsys.readouterr().err

    def test_init_issue_twice_fails(self, fake_client: FakeRemoteClient, capsys: pytest.CaptureFixture[str]) -> None:
        main(["init-issue", "-R", "owner/repo"])

        with pytest.raises(SystemExit) as exc_info:
            main(["init-issue", "-R", "owner/repo"])

        assert exc_info.value.code == 1
        assert "File already exists" in capsys.readouterr().err

    def test_single_template_is_used(
        self, fake_client: FakeRemoteClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        fake_client.templates = [self.BUG]

        main(["init-issue", "-R", "owner/repo"])

        content = (tmp_path / "owner" / "repo" / "new" / "issue.md").read_text(encoding="utf-8")
        assert "title: '[BUG] '\n" in content
        assert content.endswith("\n\nWhat happened?\n")
        assert "Using template: Bug report" in capsys.readouterr().err

    def test_multiple_templates_need_a_name(
        self, fake_client: FakeRemoteClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        fake_client.templates = [self.BUG, self.FEATURE]

        with pytest.raises(SystemExit) as exc_info:
            main(["init-issue", "-R", "owner/repo"])

        assert exc_info.value.code == 1
        assert "Multiple issue templates found (2)" in capsys.readouterr().err
        assert not (tmp_path / "owner" / "repo" / "new").exists()

        main(["init-issue", "-R", "owner/repo", "--template", "Feature"])
        assert (tmp_path / "owner" / "repo" / "new" / "issue.md").exists()

    def test_no_template_skips_templates(self, fake_client: FakeRemoteClient, tmp_path: Path) -> None:
        fake_client.templates = [self.BUG, self.FEATURE]

        main(["init-issue", "-R", "owner/repo", "--no-template"])

        content = (tmp_path / "owner" / "repo" / "new" / "issue.md").read_text(encoding="utf-8")
        assert content.startswith("---\ntitle: ''\n")

    def test_list_templates(self, fake_client: FakeRemoteClient, capsys: pytest.CaptureFixture[str]) -> None:
        fake_client.templates = [self.BUG, self.FEATURE]

        main(["init-issue", "-R", "owner/repo", "--list-templates"])

        err = capsys.readouterr().err
        assert "Available issue templates for owner/repo:\n  - Bug report - File a bug\n  - Feature\n" in err

    def test_template_fetch_failure_falls_back_to_boilerplate(
        self, fake_client: FakeRemoteClient, tmp_path: Path
    ) -> None:
        fake_client.fail_on.add("get_issue_templates")

        main(["init-issue", "-R", "owner/repo"])

        assert (tmp_path / "owner" / "repo" / "new" / "issue.md").exists()

    def test_push_new_issue_directory(
        self, fake_client: FakeRemoteClient, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["init-issue", "-R", "owner/repo"])
        new_dir = tmp_path / "owner" / "repo" / "new"
        (new_dir / "issue.md").write_text("---\ntitle: Crash\n---\n\nSteps\n", encoding="utf-8")
        capsys.readouterr()

        main(["push", str(new_dir)])

        assert fake_client.calls == [("create_issue", "Crash", "Steps", [], [])]
        out = capsys.readouterr().out
        assert "Done! Created issue #124" in out
        assert "https://github.com/owner/repo/issues/124" in out
        assert (tmp_path / "owner" / "repo" / "124" / "metadata.json").exists()
        assert not new_dir.exists()

    def test_push_new_issue_dry_run(self, fake_client: FakeRemoteClient, tmp_path: Path) -> None:
        main(["init-issue", "-R", "owner/repo"])
        new_dir = tmp_path / "owner" / "repo" / "new"
        (new_dir / "issue.md").write_text("---\ntitle: Crash\n---\n\nSteps\n", encoding="utf-8")

        main(["push", str(new_dir), "--dry-run"])

        assert fake_client.calls == []
        assert new_dir.exists()

    def test_push_invalid_target(self, fake_client: FakeRemoteClient, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["push", "not-a-dir", "-R", "owner/repo"])

        assert exc_info.value.code == 1
        assert "Error: Invalid target: 'not-a-dir'" in capsys.readouterr().err


@pytest.mark.unit
class TestSetupLogging:
    """Test setup_logging verbosity levels."""

    def _get_console_handler(self, root_logger: logging.Logger) -> logging.StreamHandler[Any]:
        console_handlers = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ]
        assert console_handlers, "Expected at least one console StreamHandler"
        return console_handlers[0]

    @pytest.mark.parametrize(
        ("verbosity", "level"),
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG)],
    )
    def test_console_level(self, tmp_path: Path, verbosity: int, level: int) -> None:
        root_logger = logging.getLogger()
        original_handlers = root_logger.handlers[:]
        root_logger.handlers.clear()

        try:
            setup_logging(verbosity=verbosity, log_file=tmp_path / "logs" / "agent.log")
            assert self._get_console_handler(root_logger).level == level
        finally:
            for h in root_logger.handlers:
                h.close()
            root_logger.handlers = original_handlers

    def test_file_handler_logs_debug(self, tmp_path: Path) -> None:
        root_logger = logging.getLogger()
        original_handlers = root_logger.handlers[:]
        root_logger.handlers.clear()
        log_file = tmp_path / "logs" / "agent.log"

        try:
            setup_logging(verbosity=0, log_file=log_file)
            file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]
            assert len(file_handlers) == 1
            assert file_handlers[0].level == logging.DEBUG
            assert log_file.parent.is_dir()
        finally:
            for h in root_logger.handlers:
                h.close()
            root_logger.handlers = original_handlers
