from __future__ import annotations

import mimetypes
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from .config import DEFAULT_API_URL, DEFAULT_TIMEOUT
from .errors import CommandError, LinCliError
from .logging import get_logger

USER_AGENT = "lin-cli/1.0.0"
HTTP_ERROR_STATUS = 400
UPLOAD_DEFAULT_HEADERS = {"Cache-Control": "public, max-age=31536000"}

VIEWER_QUERY = """
query Viewer {
  viewer {
    id
    name
    email
  }
}
"""

ISSUE_QUERY = """
query GetIssue($issueId: String!) {
  issue(id: $issueId) {
    id
    identifier
    title
    description
    priority
    state {
      id
      name
      type
    }
    assignee {
      id
      name
      email
    }
    creator {
      name
      email
    }
    team {
      id
      name
      key
    }
    project {
      id
      name
    }
    parent {
      id
      identifier
      title
    }
    createdAt
    updatedAt
    url
  }
}
"""

ISSUE_COMMENTS_QUERY = """
query GetIssueComments($issueId: String!) {
  issue(id: $issueId) {
    id
    identifier
    comments {
      nodes {
        id
        body
        createdAt
        updatedAt
        user {
          name
          email
        }
      }
    }
  }
}
"""

ISSUE_UPDATE_MUTATION = """
mutation UpdateIssue($issueId: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $issueId, input: $input) {
    success
    issue {
      id
      identifier
      title
      description
      priority
      state {
        name
      }
      project {
        id
        name
      }
      parent {
        identifier
      }
    }
  }
}
"""

ISSUE_CREATE_MUTATION = """
mutation CreateIssue($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue {
      id
      identifier
      title
      description
      url
    }
  }
}
"""

_ISSUE_LIST_FIELDS = """
      id
      identifier
      title
      priority
      state {
        name
      }
      assignee {
        name
      }
      team {
        key
      }
"""

ISSUE_SEARCH_QUERY = (
    """
query SearchIssues($term: String!, $first: Int, $filter: IssueFilter) {
  searchIssues(term: $term, first: $first, filter: $filter) {
    nodes {"""
    + _ISSUE_LIST_FIELDS
    + """    }
  }
}
"""
)

ISSUE_LIST_QUERY = (
    """
query ListIssues($first: Int, $filter: IssueFilter) {
  issues(first: $first, filter: $filter) {
    nodes {"""
    + _ISSUE_LIST_FIELDS
    + """    }
  }
}
"""
)

WORKFLOW_STATES_QUERY = """
query GetWorkflowStates($teamId: String!) {
  team(id: $teamId) {
    id
    name
    key
    states {
      nodes {
        id
        name
        type
        position
      }
    }
  }
}
"""

COMMENT_CREATE_MUTATION = """
mutation CreateComment($input: CommentCreateInput!) {
  commentCreate(input: $input) {
    success
    comment {
      id
      body
      createdAt
      user {
        name
        email
      }
    }
  }
}
"""

COMMENT_UPDATE_MUTATION = """
mutation UpdateComment($commentId: String!, $input: CommentUpdateInput!) {
  commentUpdate(id: $commentId, input: $input) {
    success
    comment {
      id
      body
      updatedAt
      user {
        name
        email
      }
    }
  }
}
"""

COMMENT_DELETE_MUTATION = """
mutation DeleteComment($commentId: String!) {
  commentDelete(id: $commentId) {
    success
  }
}
"""

PROJECTS_QUERY = """
query GetProjects($first: Int, $includeArchived: Boolean) {
  projects(first: $first, includeArchived: $includeArchived) {
    nodes {
      id
      name
      description
      createdAt
      updatedAt
      archivedAt
      url
      lead {
        name
        email
      }
      teams {
        nodes {
          name
        }
      }
    }
  }
}
"""

TEAMS_QUERY = """
query GetTeams($first: Int) {
  teams(first: $first) {
    nodes {
      id
      name
      key
      description
    }
  }
}
"""

USERS_QUERY = """
query GetUsers($first: Int) {
  users(first: $first) {
    nodes {
      id
      name
      email
      active
    }
  }
}
"""

FILE_UPLOAD_MUTATION = """
mutation FileUpload($contentType: String!, $filename: String!, $size: Int!) {
  fileUpload(contentType: $contentType, filename: $filename, size: $size) {
    success
    uploadFile {
      uploadUrl
      assetUrl
      headers {
        key
        value
      }
    }
  }
}
"""

ATTACHMENT_CREATE_MUTATION = """
mutation CreateAttachment($input: AttachmentCreateInput!) {
  attachmentCreate(input: $input) {
    success
    attachment {
      id
      title
      url
    }
  }
}
"""


class LinearAPIError(LinCliError):
    """Raised when the Linear API request fails or returns GraphQL errors."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        errors: list[dict[str, Any]] | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.errors = errors or []
        self.response_text = response_text

    @property
    def is_not_found(self) -> bool:
        for err in self.errors:
            message = str(err.get("message", "")).lower()
            extensions = err.get("extensions")
            code = ""
            if isinstance(extensions, dict):
                code = str(extensions.get("code", "")).lower()
            if "not found" in message or code in {"entity_not_found", "not_found"}:
                return True
        return False


def _error_messages(errors: list[Any]) -> str:
    messages = []
    for err in errors:
        if isinstance(err, dict):
            messages.append(str(err.get("message", err)))
        else:
            messages.append(str(err))
    return ", ".join(messages)


@dataclass
class LinearClient:
    """GraphQL client for the Linear API; one method per supported operation."""

    token: str
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    session: requests.Session | None = None
    # PUTs to signed upload URLs go out without the Authorization header.
    upload_session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)
    _upload_session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers["Authorization"] = self.token
        self._session.headers["Content-Type"] = "application/json"
        self._session.headers["User-Agent"] = USER_AGENT
        self._upload_session = self.upload_session or requests.Session()
        self.logger = get_logger()

    # ---- transport ----------------------------------------------------
    def query(self, document: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = {"query": document, "variables": variables or {}}
        start = time.perf_counter()
        try:
            response = self._session.request(
                "POST",
                self.api_url,
                json=payload,
                headers=self._session.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise LinearAPIError(f"Request failed: {exc}") from exc
        self.logger.log_performance(
            "graphql_request",
            (time.perf_counter() - start) * 1000,
            status=response.status_code,
        )

        if response.status_code >= HTTP_ERROR_STATUS:
            self.logger.debug(
                "Linear API error response",
                status=response.status_code,
                body=response.text,
            )
            errors: list[dict[str, Any]] = []
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and isinstance(body.get("errors"), list):
                errors = body["errors"]
            reason = getattr(response, "reason", "") or ""
            raise LinearAPIError(
                f"API Error: {response.status_code}" + (f" - {reason}" if reason else ""),
                status=response.status_code,
                errors=errors,
                response_text=response.text,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise LinearAPIError(
                "API Error: response was not valid JSON",
                status=response.status_code,
                response_text=response.text,
            ) from exc
        if not isinstance(body, dict):
            raise LinearAPIError(
                "API Error: unexpected response shape",
                status=response.status_code,
                response_text=response.text,
            )

        errors_raw = body.get("errors")
        if errors_raw:
            errors_list = errors_raw if isinstance(errors_raw, list) else [errors_raw]
            raise LinearAPIError(
                f"GraphQL Error: {_error_messages(errors_list)}",
                status=response.status_code,
                errors=[e for e in errors_list if isinstance(e, dict)],
            )
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    # ---- identity -----------------------------------------------------
    def viewer(self) -> dict[str, Any]:
        return self.query(VIEWER_QUERY)

    # ---- issues -------------------------------------------------------
    def get_issue(self, identifier: str) -> dict[str, Any]:
        """Fetch an issue by human identifier (``TEAM-123``) or opaque ID."""
        return self.query(ISSUE_QUERY, {"issueId": identifier})

    def get_issue_comments(self, issue_id: str) -> dict[str, Any]:
        return self.query(ISSUE_COMMENTS_QUERY, {"issueId": issue_id})

    def update_issue(self, issue_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return self.query(ISSUE_UPDATE_MUTATION, {"issueId": issue_id, "input": updates})

    def create_issue(self, issue_input: dict[str, Any]) -> dict[str, Any]:
        return self.query(ISSUE_CREATE_MUTATION, {"input": issue_input})

    def search_issues(
        self, term: str, *, limit: int = 20, issue_filter: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        variables: dict[str, Any] = {"term": term, "first": limit}
        if issue_filter:
            variables["filter"] = issue_filter
        return self.query(ISSUE_SEARCH_QUERY, variables)

    def list_issues(
        self, *, limit: int = 20, issue_filter: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        variables: dict[str, Any] = {"first": limit}
        if issue_filter:
            variables["filter"] = issue_filter
        return self.query(ISSUE_LIST_QUERY, variables)

    def get_workflow_states(self, team_id: str) -> dict[str, Any]:
        return self.query(WORKFLOW_STATES_QUERY, {"teamId": team_id})

    # ---- comments -----------------------------------------------------
    def create_comment(self, issue_id: str, body: str) -> dict[str, Any]:
        return self.query(COMMENT_CREATE_MUTATION, {"input": {"issueId": issue_id, "body": body}})

    def update_comment(self, comment_id: str, body: str) -> dict[str, Any]:
        return self.query(
            COMMENT_UPDATE_MUTATION, {"commentId": comment_id, "input": {"body": body}}
        )

    def delete_comment(self, comment_id: str) -> dict[str, Any]:
        return self.query(COMMENT_DELETE_MUTATION, {"commentId": comment_id})

    # ---- directory listings ------------------------------------------
    def get_projects(self, *, limit: int = 50, include_archived: bool = False) -> dict[str, Any]:
        return self.query(PROJECTS_QUERY, {"first": limit, "includeArchived": include_archived})

    def get_teams(self, *, limit: int = 50) -> dict[str, Any]:
        return self.query(TEAMS_QUERY, {"first": limit})

    def get_users(self, *, limit: int = 50) -> dict[str, Any]:
        return self.query(USERS_QUERY, {"first": limit})

    # ---- files & attachments -----------------------------------------
    def request_file_upload(self, filename: str, content_type: str, size: int) -> dict[str, Any]:
        return self.query(
            FILE_UPLOAD_MUTATION,
            {"contentType": content_type, "filename": filename, "size": size},
        )

    def upload_file(self, file_path: str | Path) -> str:
        """Upload a local file and return its asset URL.

        Asks the API for a signed upload URL, PUTs the bytes there with the
        headers the API requires, and hands back the asset URL for an
        attachment record or an inline markdown link.
        """
        path = Path(file_path)
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise CommandError(f"Cannot read file {path}: {exc.strerror or exc}") from exc
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"

        data = self.request_file_upload(path.name, content_type, len(content))
        upload = data.get("fileUpload") or {}
        upload_file = upload.get("uploadFile") if isinstance(upload, dict) else None
        if not upload.get("success") or not isinstance(upload_file, dict):
            raise LinearAPIError("Failed to request upload URL from Linear")

        headers = {"Content-Type": content_type, **UPLOAD_DEFAULT_HEADERS}
        for header in upload_file.get("headers") or []:
            if isinstance(header, dict) and header.get("key"):
                headers[str(header["key"])] = str(header.get("value", ""))

        upload_url = upload_file.get("uploadUrl")
        asset_url = upload_file.get("assetUrl")
        if not upload_url or not asset_url:
            raise LinearAPIError("Upload descriptor is missing uploadUrl or assetUrl")

        try:
            response = self._upload_session.request(
                "PUT", upload_url, data=content, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise LinearAPIError(f"Upload failed: {exc}") from exc
        if response.status_code >= HTTP_ERROR_STATUS:
            raise LinearAPIError(
                f"Upload failed: {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        self.logger.log_operation("file_uploaded", file_name=path.name, size=len(content))
        return str(asset_url)

    def create_attachment(
        self, issue_id: str, url: str, title: str, subtitle: str | None = None
    ) -> dict[str, Any]:
        attachment_input: dict[str, Any] = {"issueId": issue_id, "url": url, "title": title}
        if subtitle:
            attachment_input["subtitle"] = subtitle
        return self.query(ATTACHMENT_CREATE_MUTATION, {"input": attachment_input})


__all__ = ["LinearAPIError", "LinearClient"]
