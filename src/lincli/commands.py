"""Command handlers for the ``lin`` CLI.

Each handler resolves the workspace, requires a valid token, performs one
request (or a short chain of them) through :class:`LinearClient` and prints
the result. Failures are raised as :class:`LinCliError` subclasses; the
runtime prints them and exits with status 1.
"""

from __future__ import annotations

import argparse
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from importlib import resources
from pathlib import Path
from typing import Any

from .auth import ClientFactory, LinearAuth, ensure_authenticated, login_hint
from .config import Settings
from .credentials import CredentialStore
from .errors import CommandError, NotFoundError
from .linear_api import LinearAPIError, LinearClient
from .ux import (
    pluralize,
    print_error,
    print_header,
    print_info,
    print_success,
    print_table,
    truncate,
)
from .workspace import MARKER_FILENAME, WorkspaceManager

PRIORITY_NAMES = ["None", "Urgent", "High", "Medium", "Low"]
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif"}
STATE_TYPE_ORDER = ["triage", "backlog", "unstarted", "started", "completed", "cancelled"]
ATTACHMENT_SUBTITLE = "Uploaded via lin CLI"
ATTACHMENT_FAILED = "Failed to create attachment in Linear"
CHANGELOG_FILENAME = "CHANGELOG.md"
EDIT_FLAGS = "--title, --description, --project-id, --priority, --assignee-id, --parent-id, or --attachment"


@dataclass
class CliContext:
    """Everything a handler needs, built once per invocation."""

    settings: Settings
    manager: WorkspaceManager
    store: CredentialStore
    client_factory: ClientFactory

    def auth_for(self, workspace: str) -> LinearAuth:
        return LinearAuth(workspace, store=self.store, client_factory=self.client_factory)

    def authenticate(self, flag_workspace: str | None) -> tuple[str, LinearClient]:
        session = ensure_authenticated(self.manager, self.auth_for, flag_workspace)
        return session.workspace, self.client_factory(session.token)


Handler = Callable[[CliContext, argparse.Namespace], int]


# ---- formatting helpers ----------------------------------------------------
def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_timestamp(value: Any) -> str:
    parsed = _parse_timestamp(value)
    if parsed is None:
        return str(value or "")
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M")


def format_date(value: Any) -> str:
    parsed = _parse_timestamp(value)
    if parsed is None:
        return str(value or "")
    return parsed.astimezone().strftime("%Y-%m-%d")


def format_person(person: dict[str, Any] | None, empty: str = "Unassigned") -> str:
    if not person:
        return empty
    email = person.get("email")
    return f"{person.get('name')} ({email})" if email else str(person.get("name"))


def priority_name(value: Any) -> str:
    if isinstance(value, int) and 0 <= value < len(PRIORITY_NAMES):
        return PRIORITY_NAMES[value]
    return "None"


def build_markdown_link(file_name: str, url: str) -> str:
    if Path(file_name).suffix.lower() in IMAGE_EXTENSIONS:
        return f"![{file_name}]({url})"
    return f"[{file_name}]({url})"


def _nodes(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    container = data.get(key) or {}
    nodes = container.get("nodes") if isinstance(container, dict) else None
    return [n for n in nodes or [] if isinstance(n, dict)]


def _mutation_result(data: dict[str, Any], key: str, failure: str) -> dict[str, Any]:
    result = data.get(key)
    if not isinstance(result, dict) or not result.get("success"):
        raise CommandError(failure)
    return result


# ---- issue resolution ------------------------------------------------------
def resolve_issue(client: LinearClient, identifier: str, label: str = "Issue") -> dict[str, Any]:
    """Look up an issue by its ``TEAM-123`` identifier, raising NotFoundError if absent."""
    try:
        data = client.get_issue(identifier)
    except LinearAPIError as exc:
        if exc.is_not_found:
            raise NotFoundError(f"{label} {identifier} not found.") from exc
        raise
    issue = data.get("issue")
    if not isinstance(issue, dict):
        raise NotFoundError(f"{label} {identifier} not found.")
    return issue


def _upload_attachment(client: LinearClient, file_path: str) -> tuple[str, str]:
    print(f"Uploading attachment: {file_path}")
    asset_url = client.upload_file(file_path)
    print_success("File uploaded successfully!")
    return Path(file_path).name, asset_url


def _attach_to_issue(client: LinearClient, issue_id: str, file_name: str, asset_url: str) -> bool:
    print(f"Creating attachment: {file_name}")
    data = client.create_attachment(issue_id, asset_url, file_name, subtitle=ATTACHMENT_SUBTITLE)
    result = data.get("attachmentCreate")
    if isinstance(result, dict) and result.get("success"):
        print_success("Attachment created successfully!")
        return True
    return False


# ---- login / logout --------------------------------------------------------
def cmd_login(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace = ctx.manager.resolve_workspace(args.workspace)
    auth = ctx.auth_for(workspace)
    print(f"Authenticating with Linear for workspace: {workspace}...")
    auth.login(args.api_token)
    print_success(f"Successfully authenticated with Linear for workspace: {workspace}!")
    return 0


def cmd_logout(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace = ctx.manager.resolve_workspace(args.workspace)
    if ctx.auth_for(workspace).logout():
        print_success(f"Removed stored token for workspace: {workspace}")
        return 0
    raise CommandError(f'No stored token for workspace "{workspace}".')


# ---- issues ----------------------------------------------------------------
def cmd_issue_view(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    issue = resolve_issue(client, args.issue_id)

    print_header(f"Issue: {issue['identifier']} [{workspace}]")
    print(f"Title: {issue.get('title')}")
    state = issue.get("state") or {}
    print(f"State: {state.get('name')} ({state.get('type')})")
    print(f"Priority: {priority_name(issue.get('priority'))}")
    print(f"Assignee: {format_person(issue.get('assignee'))}")
    team = issue.get("team")
    if team:
        print(f"Team: {team.get('name')} ({team.get('key')}) - ID: {team.get('id')}")
    project = issue.get("project")
    if project:
        print(f"Project: {project.get('name')} - ID: {project.get('id')}")
    parent = issue.get("parent")
    if parent:
        print(f"Parent: {parent.get('identifier')} - {parent.get('title')}")
    print(f"Created: {format_timestamp(issue.get('createdAt'))}")
    print(f"URL: {issue.get('url')}")
    if issue.get("description"):
        print(f"\nDescription:\n{issue['description']}")
    return 0


def _collect_issue_fields(args: argparse.Namespace) -> dict[str, Any]:
    """Map only the options actually supplied onto GraphQL input keys."""
    fields: dict[str, Any] = {}
    for attr, key in (
        ("title", "title"),
        ("description", "description"),
        ("project_id", "projectId"),
        ("priority", "priority"),
        ("assignee_id", "assigneeId"),
    ):
        value = getattr(args, attr, None)
        if value is not None:
            fields[key] = value
    return fields


def cmd_issue_edit(ctx: CliContext, args: argparse.Namespace) -> int:
    updates = _collect_issue_fields(args)
    if not updates and args.parent_id is None and args.attachment is None:
        raise CommandError(f"No updates provided. Use {EDIT_FLAGS}.")

    workspace, client = ctx.authenticate(args.workspace)
    issue = resolve_issue(client, args.issue_id)

    if args.parent_id is not None:
        updates["parentId"] = resolve_issue(client, args.parent_id, label="Parent issue")["id"]

    if args.attachment is not None:
        file_name, asset_url = _upload_attachment(client, args.attachment)
        if not _attach_to_issue(client, issue["id"], file_name, asset_url):
            raise CommandError(ATTACHMENT_FAILED)

    if not updates:
        print_success("Attachment operation completed!")
        return 0

    print(f"Updating issue {args.issue_id} in workspace {workspace}...")
    result = _mutation_result(
        client.update_issue(issue["id"], updates), "issueUpdate", "Failed to update issue."
    )
    updated = result.get("issue") or {}
    print_success("Issue updated successfully!")
    print(f"Title: {updated.get('title')}")
    if updated.get("description"):
        print(f"Description: {updated['description']}")
    if updated.get("priority") is not None:
        print(f"Priority: {priority_name(updated['priority'])}")
    if updated.get("project"):
        print(f"Project: {updated['project'].get('name')} ({updated['project'].get('id')})")
    if updated.get("parent"):
        print(f"Parent: {updated['parent'].get('identifier')}")
    return 0


def cmd_issue_create(ctx: CliContext, args: argparse.Namespace) -> int:
    if not args.team_id:
        raise CommandError("Team ID is required to create an issue. Use --team-id option.")

    workspace, client = ctx.authenticate(args.workspace)
    issue_input: dict[str, Any] = {"title": args.title, "teamId": args.team_id}
    issue_input.update(_collect_issue_fields(args))
    if args.parent_id is not None:
        issue_input["parentId"] = resolve_issue(client, args.parent_id, label="Parent issue")["id"]

    print(f'Creating issue "{args.title}" in workspace {workspace}...')
    result = _mutation_result(
        client.create_issue(issue_input), "issueCreate", "Failed to create issue."
    )
    issue = result.get("issue") or {}
    print_success("Issue created successfully!")
    print(f"Issue: {issue.get('identifier')}")
    print(f"Title: {issue.get('title')}")
    print(f"URL: {issue.get('url')}")
    if issue.get("description"):
        print(f"Description: {issue['description']}")

    if args.attachment is not None:
        # The issue already exists; attachment problems are reported without failing.
        try:
            file_name, asset_url = _upload_attachment(client, args.attachment)
            if not _attach_to_issue(client, issue["id"], file_name, asset_url):
                print_error(ATTACHMENT_FAILED)
            link = build_markdown_link(file_name, asset_url)
            description = issue.get("description")
            client.update_issue(
                issue["id"], {"description": f"{description}\n\n{link}" if description else link}
            )
        except (CommandError, LinearAPIError) as exc:
            print_error(f"Failed to upload attachment: {exc}")
    return 0


def _issue_filter(args: argparse.Namespace) -> dict[str, Any]:
    issue_filter: dict[str, Any] = {}
    if args.project_id:
        issue_filter["project"] = {"id": {"eq": args.project_id}}
    if args.team_id:
        issue_filter["team"] = {"id": {"eq": args.team_id}}
    if args.assignee_id:
        issue_filter["assignee"] = {"id": {"eq": args.assignee_id}}
    if args.status:
        issue_filter["state"] = {"name": {"eq": args.status}}
    return issue_filter


def cmd_issue_search(ctx: CliContext, args: argparse.Namespace) -> int:
    term = (args.query or "").strip()
    issue_filter = _issue_filter(args)
    if not term and not issue_filter:
        raise CommandError(
            "Provide a search query or at least one filter "
            "(--project-id, --team-id, --assignee-id, --status)."
        )

    workspace, client = ctx.authenticate(args.workspace)
    if term:
        issues = _nodes(
            client.search_issues(term, limit=args.limit, issue_filter=issue_filter or None),
            "searchIssues",
        )
    else:
        issues = _nodes(client.list_issues(limit=args.limit, issue_filter=issue_filter), "issues")

    if not issues:
        print(f'No issues found in workspace "{workspace}".')
        return 0

    print_header(f"Issues [{workspace}]")
    print("")
    rows = [
        [
            str(issue.get("identifier", "")),
            truncate(str(issue.get("title", "")), 50),
            (issue.get("state") or {}).get("name") or "—",
            (issue.get("assignee") or {}).get("name") or "Unassigned",
            priority_name(issue.get("priority")),
            (issue.get("team") or {}).get("key") or "—",
        ]
        for issue in issues
    ]
    print_table(["ID", "Title", "Status", "Assignee", "Priority", "Team"], rows)
    print("")
    print(f"Found {pluralize(len(issues), 'issue')}")
    return 0


def _print_state_groups(states: list[dict[str, Any]], current: str | None) -> None:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for state in states:
        grouped.setdefault(state.get("type") or "other", []).append(state)
    ordered = [t for t in STATE_TYPE_ORDER if t in grouped]
    ordered += [t for t in grouped if t not in STATE_TYPE_ORDER]
    for state_type in ordered:
        label = state_type.capitalize() if state_type in STATE_TYPE_ORDER else state_type
        print(f"  {label}:")
        for state in grouped[state_type]:
            marker = " ← current" if state.get("name") == current else ""
            print(f"    • {state.get('name')}{marker}")


def cmd_issue_state(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    issue = resolve_issue(client, args.issue_id)
    team = issue.get("team") or {}
    data = client.get_workflow_states(team["id"])
    states = sorted(
        ((data.get("team") or {}).get("states") or {}).get("nodes") or [],
        key=lambda s: s.get("position", 0),
    )
    current = (issue.get("state") or {}).get("name")

    if args.list:
        print_header(
            f"Available states for team {team.get('name')} ({team.get('key')}) [{workspace}]:"
        )
        print("")
        _print_state_groups(states, current)
        return 0

    if not args.state:
        raise CommandError("State name is required. Use --list to see available states.")

    wanted = args.state.lower()
    match = next((s for s in states if str(s.get("name", "")).lower() == wanted), None)
    if match is None:
        available = "\n".join(f"    • {s.get('name')}" for s in states)
        raise CommandError(f'State "{args.state}" not found. Available states:\n{available}')

    print(f'Updating {issue["identifier"]} state to "{match["name"]}" in workspace {workspace}...')
    _mutation_result(
        client.update_issue(issue["id"], {"stateId": match["id"]}),
        "issueUpdate",
        "Failed to update issue state.",
    )
    print_success(f"{issue['identifier']} → {match['name']}")
    return 0


# ---- comments --------------------------------------------------------------
def _print_comment(comment: dict[str, Any], stamp: str = "createdAt") -> None:
    print(f"ID: {comment.get('id')}")
    print(f"Author: {format_person(comment.get('user'), empty='Unknown')}")
    label = "Updated" if stamp == "updatedAt" else "Created"
    print(f"{label}: {format_timestamp(comment.get(stamp))}")
    print(f"\n{comment.get('body', '')}")


def cmd_comments_view(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    issue = resolve_issue(client, args.issue_id)
    data = client.get_issue_comments(issue["id"])
    issue_data = data.get("issue") or {}
    comments = _nodes(issue_data, "comments")

    print_header(f"Comments for {issue_data.get('identifier', issue['identifier'])} [{workspace}]:")
    if not comments:
        print("No comments found.")
        return 0

    for index, comment in enumerate(comments, start=1):
        print(f"\n--- Comment {index} ---")
        if args.show_ids:
            print(f"ID: {comment.get('id')}")
        print(f"Author: {format_person(comment.get('user'), empty='Unknown')}")
        print(f"Created: {format_timestamp(comment.get('createdAt'))}")
        if comment.get("updatedAt") != comment.get("createdAt"):
            print(f"Updated: {format_timestamp(comment.get('updatedAt'))}")
        print(f"\n{comment.get('body', '')}")
    return 0


def cmd_comments_add(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    issue = resolve_issue(client, args.issue_id)
    body = args.body

    if args.attachment is not None:
        file_name, asset_url = _upload_attachment(client, args.attachment)
        if not _attach_to_issue(client, issue["id"], file_name, asset_url):
            print_error(ATTACHMENT_FAILED)
        body = f"{body}\n\n{build_markdown_link(file_name, asset_url)}"

    print(f"Adding comment to {issue['identifier']} in workspace {workspace}...")
    result = _mutation_result(
        client.create_comment(issue["id"], body), "commentCreate", "Failed to add comment."
    )
    print_success("Comment added successfully!")
    _print_comment(result.get("comment") or {})
    return 0


def cmd_comments_edit(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    body = args.body

    if args.attachment is not None:
        # No issue ID is known here, so the file is only linked inline.
        file_name, asset_url = _upload_attachment(client, args.attachment)
        body = f"{body}\n\n{build_markdown_link(file_name, asset_url)}"

    print(f"Updating comment {args.comment_id} in workspace {workspace}...")
    result = _mutation_result(
        client.update_comment(args.comment_id, body),
        "commentUpdate",
        "Failed to update comment.",
    )
    print_success("Comment updated successfully!")
    _print_comment(result.get("comment") or {}, stamp="updatedAt")
    return 0


def cmd_comments_delete(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    print(f"Deleting comment {args.comment_id} in workspace {workspace}...")
    _mutation_result(
        client.delete_comment(args.comment_id), "commentDelete", "Failed to delete comment."
    )
    print_success("Comment deleted successfully!")
    return 0


# ---- projects / teams / users ----------------------------------------------
def cmd_projects_list(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    projects = _nodes(
        client.get_projects(limit=args.limit, include_archived=args.include_archived), "projects"
    )
    if not projects:
        print(f'No projects found in workspace "{workspace}"')
        return 0

    print_header(f"Projects [{workspace}]")
    print("")
    rows = [
        [
            str(p.get("name", "")),
            str(p.get("id", "")),
            format_date(p.get("createdAt")),
            format_date(p.get("updatedAt")),
            "Archived" if p.get("archivedAt") else "Active",
        ]
        for p in projects
    ]
    print_table(["Name", "Project ID", "Created", "Updated", "Status"], rows)
    print("")
    print(f"Found {pluralize(len(projects), 'project')}")
    return 0


def cmd_teams_list(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    teams = _nodes(client.get_teams(limit=args.limit), "teams")
    if not teams:
        print(f'No teams found in workspace "{workspace}"')
        return 0

    print_header(f"Teams [{workspace}]")
    print("")
    rows = [[str(t.get("name", "")), str(t.get("key", "")), str(t.get("id", ""))] for t in teams]
    print_table(["Name", "Key", "Team ID"], rows)
    print("")
    print(f"Found {pluralize(len(teams), 'team')}")
    return 0


def cmd_users_list(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace, client = ctx.authenticate(args.workspace)
    users = [u for u in _nodes(client.get_users(limit=args.limit), "users") if u.get("active")]
    if not users:
        print(f'No users found in workspace "{workspace}"')
        return 0

    print_header(f"Users [{workspace}]")
    print("")
    rows = [[str(u.get("name", "")), u.get("email") or "", str(u.get("id", ""))] for u in users]
    print_table(["Name", "Email", "User ID"], rows)
    print("")
    print(f"Found {pluralize(len(users), 'user')}")
    return 0


# ---- changelog -------------------------------------------------------------
def cmd_changelog(ctx: CliContext, args: argparse.Namespace) -> int:
    try:
        changelog = resources.files("lincli").joinpath(CHANGELOG_FILENAME)
        text = changelog.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise CommandError(f"{CHANGELOG_FILENAME} not found.") from exc
    except OSError as exc:
        raise CommandError(f"Error reading changelog: {exc}") from exc
    print(text)
    return 0


# ---- workspaces ------------------------------------------------------------
def cmd_workspace_list(ctx: CliContext, args: argparse.Namespace) -> int:
    workspaces = ctx.manager.list_workspaces()
    if not workspaces:
        print("No workspaces configured.")
        return 0

    print_header("Configured workspaces:")
    for name in workspaces:
        if ctx.store.has(name):
            print(f"  ✓ {name} (authenticated)")
        else:
            print(f"  ✗ {name} (not authenticated)")
    return 0


def cmd_workspace_current(ctx: CliContext, args: argparse.Namespace) -> int:
    workspace = ctx.manager.current_workspace(args.workspace)
    print_header(f"Current workspace: {workspace}")
    if ctx.auth_for(workspace).is_authenticated():
        print_success("Authenticated")
    else:
        print_error("Not authenticated")
        print(f"Run: {login_hint(workspace)}")
    return 0


def cmd_workspace_set(ctx: CliContext, args: argparse.Namespace) -> int:
    if args.global_:
        ctx.manager.set_default_workspace(args.name)
        print_success(f"Set default workspace to: {args.name}")
    elif args.directory_config:
        ctx.manager.set_directory_config(args.name)
        print_success(f"Mapped {ctx.manager.cwd} to workspace: {args.name}")
    else:
        ctx.manager.set_directory_workspace(args.name)
        print_success(f"Set workspace for current directory to: {args.name}")
        print(f"Created {MARKER_FILENAME} file")
    return 0


def cmd_workspace_unset(ctx: CliContext, args: argparse.Namespace) -> int:
    if ctx.manager.remove_directory_config():
        print_success(f"Removed workspace mapping for {ctx.manager.cwd}")
    else:
        print_info(f"No workspace mapping configured for {ctx.manager.cwd}")
    return 0


HANDLERS: dict[str, Handler] = {
    "login": cmd_login,
    "logout": cmd_logout,
    "issue view": cmd_issue_view,
    "issue edit": cmd_issue_edit,
    "issue create": cmd_issue_create,
    "issue search": cmd_issue_search,
    "issue state": cmd_issue_state,
    "comments view": cmd_comments_view,
    "comments add": cmd_comments_add,
    "comments edit": cmd_comments_edit,
    "comments delete": cmd_comments_delete,
    "projects list": cmd_projects_list,
    "teams list": cmd_teams_list,
    "users list": cmd_users_list,
    "workspace list": cmd_workspace_list,
    "workspace current": cmd_workspace_current,
    "workspace set": cmd_workspace_set,
    "workspace unset": cmd_workspace_unset,
    "changelog": cmd_changelog,
}
