"""lin: command-line client for the Linear issue tracker.

Subcommands:
  login / logout  -> store or remove the API token for a workspace
  issue           -> view, edit, create, search, state
  comments        -> view, add, edit, delete
  projects / teams / users -> list
  workspace       -> list, current, set, unset
  changelog       -> print the bundled release notes

``--workspace NAME`` may be given before or after the subcommand.
"""

from __future__ import annotations

import argparse
from functools import partial
from typing import Any

from .commands import HANDLERS, CliContext
from .config import ConfigError, Settings, load_settings
from .credentials import CredentialStore
from .linear_api import LinearClient
from .logging import configure_logging
from .runtime import execute_command
from .ux import print_error
from .workspace import WorkspaceManager, load_workspace_config

WORKSPACE_HELP = "Workspace to use (overrides marker files and defaults)"
ISSUE_ID_HELP = "Issue identifier (e.g., APP-701)"
ATTACHMENT_HELP = "Path of a file to upload and link"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _common_options() -> argparse.ArgumentParser:
    # SUPPRESS keeps a top-level --workspace from being reset by the leaf parser.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--workspace", default=argparse.SUPPRESS, help=WORKSPACE_HELP)
    common.add_argument(
        "--debug", action="store_true", default=argparse.SUPPRESS, help="Verbose logging"
    )
    return common


def _add_group(sub: Any, name: str, help_text: str) -> Any:
    group = sub.add_parser(name, help=help_text)
    return group.add_subparsers(
        dest="action",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<action>",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands.

    Keep ordering stable for help output readability.
    """
    common = _common_options()
    p = _FormatterArgumentParser(prog="lin", description="Command-line client for Linear")
    p.add_argument("--workspace", default=None, help=WORKSPACE_HELP)
    p.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging on stderr (env: LINEAR_CLI_DEBUG=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pl = sub.add_parser("login", parents=[common], help="Store an API token for a workspace")
    pl.add_argument("api_token", metavar="api-token", help="Linear API token")
    sub.add_parser("logout", parents=[common], help="Remove the stored token for a workspace")

    issue = _add_group(sub, "issue", "Work with issues")
    piv = issue.add_parser("view", parents=[common], help="Show issue details")
    piv.add_argument("issue_id", metavar="issue-id", help=ISSUE_ID_HELP)

    pie = issue.add_parser("edit", parents=[common], help="Update an issue")
    pie.add_argument("issue_id", metavar="issue-id", help=ISSUE_ID_HELP)
    pie.add_argument("--title", "--summary", dest="title", help="New issue title")
    pie.add_argument("--description", help="New issue description")
    pie.add_argument("--project-id", help="Move the issue to this project")
    pie.add_argument("--priority", type=int, help="0=None 1=Urgent 2=High 3=Medium 4=Low")
    pie.add_argument("--assignee-id", help="Assign to this user ID")
    pie.add_argument("--parent-id", help="Parent issue identifier")
    pie.add_argument("--attachment", help=ATTACHMENT_HELP)

    pic = issue.add_parser("create", parents=[common], help="Create an issue")
    pic.add_argument("title", help="Issue title")
    pic.add_argument("--team-id", help="Team to create the issue in (required)")
    pic.add_argument("--description", help="Issue description")
    pic.add_argument("--project-id", help="Project ID")
    pic.add_argument("--priority", type=int, help="0=None 1=Urgent 2=High 3=Medium 4=Low")
    pic.add_argument("--assignee-id", help="Assignee user ID")
    pic.add_argument("--parent-id", help="Parent issue identifier")
    pic.add_argument("--attachment", help=ATTACHMENT_HELP)

    pis = issue.add_parser("search", parents=[common], help="Search or filter issues")
    pis.add_argument("query", nargs="?", help="Free-text search term")
    pis.add_argument("--project-id", help="Only issues in this project")
    pis.add_argument("--team-id", help="Only issues in this team")
    pis.add_argument("--assignee-id", help="Only issues assigned to this user")
    pis.add_argument("--status", help="Only issues in this workflow state (by name)")
    pis.add_argument("--limit", type=int, default=20, help="Maximum results (default 20)")

    pst = issue.add_parser("state", parents=[common], help="Show or change workflow state")
    pst.add_argument("issue_id", metavar="issue-id", help=ISSUE_ID_HELP)
    pst.add_argument("state", nargs="?", help="Target state name (case-insensitive)")
    pst.add_argument("--list", action="store_true", help="List the team's workflow states")

    comments = _add_group(sub, "comments", "Work with issue comments")
    pcv = comments.add_parser("view", parents=[common], help="Show comments on an issue")
    pcv.add_argument("issue_id", metavar="issue-id", help=ISSUE_ID_HELP)
    pcv.add_argument("--show-ids", action="store_true", help="Include comment IDs")

    pca = comments.add_parser("add", parents=[common], help="Comment on an issue")
    pca.add_argument("issue_id", metavar="issue-id", help=ISSUE_ID_HELP)
    pca.add_argument("body", help="Comment text (markdown)")
    pca.add_argument("--attachment", help=ATTACHMENT_HELP)

    pce = comments.add_parser("edit", parents=[common], help="Replace a comment body")
    pce.add_argument("comment_id", metavar="comment-id", help="Comment ID")
    pce.add_argument("body", help="New comment text (markdown)")
    pce.add_argument("--attachment", help=ATTACHMENT_HELP)

    pcd = comments.add_parser("delete", parents=[common], help="Delete a comment")
    pcd.add_argument("comment_id", metavar="comment-id", help="Comment ID")

    projects = _add_group(sub, "projects", "Browse projects")
    ppl = projects.add_parser("list", parents=[common], help="List projects")
    ppl.add_argument("--limit", type=int, default=50, help="Maximum results (default 50)")
    ppl.add_argument("--include-archived", action="store_true", help="Include archived projects")

    teams = _add_group(sub, "teams", "Browse teams")
    ptl = teams.add_parser("list", parents=[common], help="List teams")
    ptl.add_argument("--limit", type=int, default=50, help="Maximum results (default 50)")

    users = _add_group(sub, "users", "Browse users")
    pul = users.add_parser("list", parents=[common], help="List active users")
    pul.add_argument("--limit", type=int, default=50, help="Maximum results (default 50)")

    workspace = _add_group(sub, "workspace", "Manage workspaces")
    workspace.add_parser("list", parents=[common], help="List configured workspaces")
    workspace.add_parser("current", parents=[common], help="Show the workspace in effect here")
    pws = workspace.add_parser("set", parents=[common], help="Select a workspace")
    pws.add_argument("name", help="Workspace name")
    target = pws.add_mutually_exclusive_group()
    target.add_argument(
        "--global", dest="global_", action="store_true", help="Set the global default"
    )
    target.add_argument(
        "--directory-config",
        action="store_true",
        help="Map the current directory in config.json instead of writing a marker file",
    )
    workspace.add_parser(
        "unset", parents=[common], help="Remove the config mapping for the current directory"
    )

    sub.add_parser("changelog", parents=[common], help="Show the release notes")
    return p


def build_context(settings: Settings) -> CliContext:
    config = load_workspace_config(settings.config_file)

    def client_factory(token: str) -> LinearClient:
        return LinearClient(token=token, api_url=settings.api_url, timeout=settings.timeout)

    return CliContext(
        settings=settings,
        manager=WorkspaceManager(config),
        store=CredentialStore(),
        client_factory=client_factory,
    )


def _command_key(args: argparse.Namespace) -> str:
    action = getattr(args, "action", None)
    return f"{args.cmd} {action}" if action else args.cmd


def main(argv: list[str] | None = None, *, context: CliContext | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if context is not None:
        settings = context.settings
    else:
        try:
            settings = load_settings()
        except ConfigError as exc:
            print_error(str(exc))
            return 1
    level = "DEBUG" if args.debug else settings.log_level
    configure_logging(json_logging=settings.log_json, level=level)

    ctx = context or build_context(settings)
    command = _command_key(args)
    handler = HANDLERS.get(command)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    return execute_command(partial(handler, ctx, args), command)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
