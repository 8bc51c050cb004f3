"""lin-cli - command-line client for the Linear GraphQL API.

Workspaces let one machine hold tokens for several Linear organisations;
the workspace in effect is chosen by ``--workspace``, a ``.linear-workspace``
marker file, a per-directory mapping or the configured default.

from lincli import LinearClient

client = LinearClient(token="lin_api_...")
print(client.viewer()["viewer"]["name"])
"""

from __future__ import annotations

from .auth import LinearAuth
from .credentials import CredentialStore
from .errors import AuthenticationError, CommandError, LinCliError, NotFoundError
from .linear_api import LinearAPIError, LinearClient
from .workspace import WorkspaceConfig, WorkspaceManager

__version__ = "1.0.0"

__all__ = [
    "AuthenticationError",
    "CommandError",
    "CredentialStore",
    "LinCliError",
    "LinearAPIError",
    "LinearAuth",
    "LinearClient",
    "NotFoundError",
    "WorkspaceConfig",
    "WorkspaceManager",
    "__version__",
]
