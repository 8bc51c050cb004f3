"""Per-workspace token lifecycle: login, lookup, logout and remote validation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import requests
from keyring.errors import KeyringError

from .credentials import CredentialStore
from .errors import AuthenticationError
from .linear_api import LinearAPIError, LinearClient
from .logging import get_logger
from .workspace import WorkspaceManager

ClientFactory = Callable[[str], LinearClient]


def login_hint(workspace: str) -> str:
    return f'lin login <api-token> --workspace={workspace}'


class LinearAuth:
    """Binds one workspace name to its stored API token."""

    def __init__(
        self,
        workspace: str = "default",
        store: CredentialStore | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.workspace = workspace
        self.store = store or CredentialStore()
        self.client_factory: ClientFactory = client_factory or (
            lambda token: LinearClient(token=token)
        )
        self.token: str | None = None
        self.logger = get_logger()

    def login(self, token: str) -> None:
        """Validate ``token`` remotely, then persist it for this workspace.

        A rejected token raises :class:`AuthenticationError` and nothing is
        written to the credential store.
        """
        if not self.validate_token(token):
            raise AuthenticationError("Login failed: Invalid API token")
        try:
            self.store.set(self.workspace, token)
        except KeyringError as exc:
            raise AuthenticationError(f"Login failed: {exc}") from exc
        self.token = token
        self.logger.log_operation("login", workspace=self.workspace)

    def get_token(self) -> str | None:
        if self.token:
            return self.token
        self.token = self.store.get(self.workspace)
        return self.token

    def logout(self) -> bool:
        removed = self.store.delete(self.workspace)
        self.token = None
        if removed:
            self.logger.log_operation("logout", workspace=self.workspace)
        return removed

    def validate_token(self, token: str) -> bool:
        """Return True only if a viewer query succeeds and names a user."""
        try:
            data = self.client_factory(token).viewer()
        except (LinearAPIError, requests.RequestException) as exc:
            self.logger.debug("Token validation failed", workspace=self.workspace, error=str(exc))
            return False
        return bool(data.get("viewer"))

    def is_authenticated(self) -> bool:
        token = self.get_token()
        if not token:
            return False
        return self.validate_token(token)


@dataclass
class AuthenticatedSession:
    workspace: str
    token: str


def ensure_authenticated(
    manager: WorkspaceManager,
    auth_factory: Callable[[str], LinearAuth],
    flag_workspace: str | None = None,
) -> AuthenticatedSession:
    """Resolve the workspace and require a stored, currently valid token."""
    workspace = manager.resolve_workspace(flag_workspace)
    auth = auth_factory(workspace)
    token = auth.get_token()
    if not token:
        raise AuthenticationError(
            f'Not authenticated for workspace "{workspace}". '
            f'Please run "{login_hint(workspace)}" first.'
        )
    if not auth.validate_token(token):
        raise AuthenticationError(
            f'Invalid or expired token for workspace "{workspace}". '
            f'Please run "{login_hint(workspace)}" again.'
        )
    return AuthenticatedSession(workspace=workspace, token=token)


__all__ = [
    "AuthenticatedSession",
    "LinearAuth",
    "ensure_authenticated",
    "login_hint",
]
