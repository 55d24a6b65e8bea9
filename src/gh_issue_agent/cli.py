"""
Command-line interface for gh-issue-agent.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from .exceptions import InvalidTargetError, IssueAgentError, IssueNotCachedError, RemoteError
from .github_client import get_remote_client
from .new_issue import format_template_list, select_template
from .repo_utils import get_repo_from_arg_or_git, get_repo_from_new_issue_dir
from .storage import IssueStorage
from .sync import IssueContext, PushOptions, diff, pull, push, push_new_issue, refresh
from .utils import setup_logging
from .view import render_issue

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .new_issue import IssueTemplate

logger: logging.Logger = logging.getLogger(__name__)


def _add_repo_argument(parser: argparse.ArgumentParser) -> None:
    _ = parser.add_argument("--repo", "-R", help="Repository in owner/repo form (default: git origin remote)")


def _add_issue_arguments(parser: argparse.ArgumentParser) -> None:
    _ = parser.add_argument("issue_number", type=int, help="Issue number")
    _add_repo_argument(parser)


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="gh-issue-agent",
        description="Edit a GitHub issue as local files and push the changes back",
    )
    _ = parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Increase console logging (-v info, -vv debug)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    pull_parser = subparsers.add_parser("pull", help="Fetch an issue into the local cache")
    _add_issue_arguments(pull_parser)
    _ = pull_parser.add_argument("--force", "-f", action="store_true", help="Discard local changes")

    refresh_parser = subparsers.add_parser("refresh", help="Overwrite the local cache with the remote issue")
    _add_issue_arguments(refresh_parser)

    push_parser = subparsers.add_parser("push", help="Push local changes to GitHub, or create a new issue")
    _ = push_parser.add_argument("target", help="Issue number, or path to a new issue directory")
    _add_repo_argument(push_parser)
    _ = push_parser.add_argument("--dry-run", action="store_true", help="Show changes without applying them")
    _ = push_parser.add_argument("--force", action="store_true", help="Push even if the remote changed since pull")
    _ = push_parser.add_argument("--edit-others", action="store_true", help="Allow editing other users' comments")
    _ = push_parser.add_argument("--allow-delete", action="store_true", help="Allow deleting remote comments")

    diff_parser = subparsers.add_parser("diff", help="Show differences between local and remote")
    _add_issue_arguments(diff_parser)

    view_parser = subparsers.add_parser("view", help="Show the remote issue and its comments")
    _add_issue_arguments(view_parser)

    init_comment_parser = subparsers.add_parser("init-comment", help="Create a draft comment file")
    _add_issue_arguments(init_comment_parser)
    _ = init_comment_parser.add_argument("--name", help="Draft name (default: current timestamp)")

    init_issue_parser = subparsers.add_parser("init-issue", help="Create a new issue file to edit and push")
    _add_repo_argument(init_issue_parser)
    template_group = init_issue_parser.add_mutually_exclusive_group()
    _ = template_group.add_argument("--template", help="Use the repository issue template with this name")
    _ = template_group.add_argument(
        "--no-template", action="store_true", help="Use the default boilerplate instead of a template"
    )
    _ = init_issue_parser.add_argument(
        "--list-templates", action="store_true", help="List the repository's issue templates and exit"
    )

    return parser.parse_args(argv)


def parse_push_target(target: str) -> int | Path:
    """An issue number, or an existing directory holding a new issue."""
    if target.isdigit():
        return int(target)
    path = Path(target)
    if path.is_dir():
        return path
    msg = f"Invalid target: '{target}' is neither a valid issue number nor an existing directory"
    raise InvalidTargetError(msg)


def _print_fetch_success(issue_number: int, title: str, directory: Path) -> None:
    print(
        f"\nDone! Issue #{issue_number} has been saved to {directory}/\n"
        f"\nTitle: {title}\n"
        "\nFiles:\n"
        f"  {directory}/issue.md          - Issue body (editable)\n"
        f"  {directory}/metadata.json     - Metadata (editable: title, labels)\n"
        f"  {directory}/comments/         - Comments (only your own comments are editable)",
        file=sys.stderr,
    )


def _fetch_templates(owner: str, repo: str) -> list[IssueTemplate]:
    """Issue templates of the repository. Failures are reported and treated as no templates."""
    try:
        return get_remote_client().get_issue_templates(owner, repo)
    except RemoteError as e:
        logger.warning(f"Failed to fetch issue templates: {e}")
        return []


def _run_init_issue(args: argparse.Namespace) -> None:
    owner, repo = get_repo_from_arg_or_git(args.repo)

    if args.list_templates:
        templates = _fetch_templates(owner, repo)
        if templates:
            print(f"Available issue templates for {owner}/{repo}:", file=sys.stderr)
            print(format_template_list(templates), file=sys.stderr)
        else:
            print(f"No issue templates found for {owner}/{repo}", file=sys.stderr)
        return

    template = None if args.no_template else select_template(_fetch_templates(owner, repo), args.template)
    if template is not None and args.template is None:
        print(f"Using template: {template.name}", file=sys.stderr)

    storage = IssueStorage.for_new_issue(owner, repo)
    path = storage.init_new_issue(template.to_issue_content() if template is not None else None)
    print(f"Created: {path}\n\nEdit the file, then run: gh-issue-agent push {storage.dir}", file=sys.stderr)


def _run_push_new_issue(args: argparse.Namespace, directory: Path) -> None:
    owner, repo = get_repo_from_new_issue_dir(directory, args.repo)
    created = push_new_issue(get_remote_client(), owner, repo, IssueStorage(directory), dry_run=args.dry_run)
    if created is None:
        return
    print(
        f"\nDone! Created issue #{created.number}\n"
        f"\nLocal files moved to: {directory.parent / str(created.number)}/\n"
        f"View on GitHub: https://github.com/{owner}/{repo}/issues/{created.number}"
    )


def run(args: argparse.Namespace) -> None:
    """Execute the parsed command."""
    if args.command == "init-issue":
        _run_init_issue(args)
        return

    if args.command == "push":
        target = parse_push_target(args.target)
        if isinstance(target, Path):
            _run_push_new_issue(args, target)
            return
        issue_number = target
    else:
        issue_number = args.issue_number

    owner, repo = get_repo_from_arg_or_git(args.repo)

    if args.command == "init-comment":
        storage = IssueStorage.for_issue(owner, repo, issue_number)
        if not storage.exists():
            msg = f"Issue #{issue_number} not found locally. Run 'pull {issue_number}' first."
            raise IssueNotCachedError(msg)
        path = storage.init_new_comment(args.name)
        print(f"Created: {path}\n\nEdit the file and run: gh-issue-agent push {issue_number}", file=sys.stderr)
        return

    client = get_remote_client()

    if args.command in ("pull", "refresh"):
        storage = IssueStorage.for_issue(owner, repo, issue_number)
        if args.command == "refresh":
            print(f"Refreshing issue #{issue_number} from {owner}/{repo}...", file=sys.stderr)
            issue = refresh(client, owner, repo, issue_number, storage)
        else:
            action = "Refreshing" if args.force else "Fetching"
            print(f"{action} issue #{issue_number} from {owner}/{repo}...", file=sys.stderr)
            issue = pull(client, owner, repo, issue_number, storage, force=args.force)
        _print_fetch_success(issue_number, issue.title, storage.dir)

    elif args.command == "view":
        issue = client.get_issue(owner, repo, issue_number)
        comments = client.get_comments(owner, repo, issue_number)
        print(render_issue(issue, comments), end="")

    elif args.command == "push":
        ctx = IssueContext.create(client, owner, repo, issue_number)
        options = PushOptions(
            dry_run=args.dry_run,
            force=args.force,
            edit_others=args.edit_others,
            allow_delete=args.allow_delete,
        )
        result = push(client, ctx, options)
        print(f"\n{result.message}")

    elif args.command == "diff":
        ctx = IssueContext.create(client, owner, repo, issue_number)
        _ = diff(client, ctx)


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(verbosity=args.verbose)

    try:
        run(args)
    except IssueAgentError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
