"""Pytest configuration for lin-cli tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`). Every test gets
its own config directory and an in-memory keyring so nothing touches the
developer's real credentials.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
from keyring.errors import PasswordDeleteError

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from lincli.logging import configure_logging  # noqa: E402


class MemoryKeyring:
    """Stand-in for the ``keyring`` module keyed by (service, account)."""

    def __init__(self) -> None:
        self.entries: dict[tuple[str, str], str] = {}
        self.set_calls: list[tuple[str, str, str]] = []

    def get_password(self, service: str, account: str) -> str | None:
        return self.entries.get((service, account))

    def set_password(self, service: str, account: str, password: str) -> None:
        self.set_calls.append((service, account, password))
        self.entries[(service, account)] = password

    def delete_password(self, service: str, account: str) -> None:
        if (service, account) not in self.entries:
            raise PasswordDeleteError("Password not found")
        del self.entries[(service, account)]


class FakeLinearClient:
    """Records every API call and answers from canned data.

    ``responses`` maps a method name to the dict it returns; a value that is
    an exception instance is raised instead and a callable is invoked with
    the call arguments.
    """

    def __init__(self, token: str, valid_tokens: set[str], responses: dict[str, Any]):
        self.token = token
        self._valid_tokens = valid_tokens
        self._responses = responses
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def _answer(self, name: str, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((name, args, kwargs))
        value = self._responses.get(name, {})
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(*args, **kwargs)
        return value

    def viewer(self) -> dict[str, Any]:
        self.calls.append(("viewer", (), {}))
        if self.token in self._valid_tokens:
            return {"viewer": {"id": "u1", "name": "Ada", "email": "ada@example.com"}}
        return {}

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return lambda *args, **kwargs: self._answer(name, *args, **kwargs)


class ClientRecorder:
    """Client factory that hands out :class:`FakeLinearClient` instances."""

    def __init__(self) -> None:
        self.valid_tokens: set[str] = set()
        self.responses: dict[str, Any] = {}
        self.clients: list[FakeLinearClient] = []

    def __call__(self, token: str) -> FakeLinearClient:
        client = FakeLinearClient(token, self.valid_tokens, self.responses)
        self.clients.append(client)
        return client

    @property
    def calls(self) -> list[str]:
        return [name for client in self.clients for name, _, _ in client.calls]

    def calls_named(self, name: str) -> list[tuple[tuple[Any, ...], dict[str, Any]]]:
        return [
            (args, kwargs)
            for client in self.clients
            for called, args, kwargs in client.calls
            if called == name
        ]


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LINEAR_CLI_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("NO_COLOR", "1")
    for name in (
        "LINEAR_CLI_API_URL",
        "LINEAR_CLI_TIMEOUT",
        "LINEAR_CLI_DEBUG",
        "LINEAR_CLI_LOG_LEVEL",
        "LINEAR_CLI_LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    # Rebind the log handler to the current stderr and reset the level.
    configure_logging()


@pytest.fixture
def memory_keyring() -> MemoryKeyring:
    return MemoryKeyring()


@pytest.fixture
def client_recorder() -> ClientRecorder:
    return ClientRecorder()
