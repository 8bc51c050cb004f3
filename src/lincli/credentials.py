"""OS credential store access for per-workspace API tokens.

Tokens live in the platform keyring under a single service name, one entry
per workspace (account ``workspace-<name>``). Reads and deletes never raise:
an unavailable or failing backend, whatever it raises, looks the same as
a missing entry. Writes
propagate backend errors so ``login`` can report them.
"""

from __future__ import annotations

from typing import Any

import keyring
from keyring.errors import PasswordDeleteError

from .logging import get_logger

SERVICE_NAME = "linear-cli"
ACCOUNT_PREFIX = "workspace-"


class CredentialStore:
    """Get/set/delete API tokens keyed by workspace name."""

    def __init__(self, service: str = SERVICE_NAME, backend: Any | None = None) -> None:
        self.service = service
        self._backend = backend if backend is not None else keyring
        self.logger = get_logger()

    @staticmethod
    def account_name(workspace: str) -> str:
        return f"{ACCOUNT_PREFIX}{workspace}"

    def get(self, workspace: str) -> str | None:
        try:
            secret = self._backend.get_password(self.service, self.account_name(workspace))
        except Exception as exc:
            self.logger.debug("Keyring lookup failed", workspace=workspace, error=str(exc))
            return None
        if not isinstance(secret, str) or not secret:
            return None
        return secret

    def set(self, workspace: str, token: str) -> None:
        self._backend.set_password(self.service, self.account_name(workspace), token)
        self.logger.debug("Stored token in keyring", workspace=workspace)

    def delete(self, workspace: str) -> bool:
        try:
            self._backend.delete_password(self.service, self.account_name(workspace))
        except PasswordDeleteError:
            self.logger.debug("No stored token to remove", workspace=workspace)
            return False
        except Exception as exc:
            self.logger.debug("Keyring delete failed", workspace=workspace, error=str(exc))
            return False
        self.logger.debug("Removed token from keyring", workspace=workspace)
        return True

    def has(self, workspace: str) -> bool:
        return self.get(workspace) is not None


__all__ = ["ACCOUNT_PREFIX", "CredentialStore", "SERVICE_NAME"]
