from __future__ import annotations

import pytest
from keyring.errors import KeyringError

from lincli.auth import LinearAuth
from lincli.credentials import SERVICE_NAME, CredentialStore


class _BrokenKeyring:
    def get_password(self, service: str, account: str) -> str | None:
        raise KeyringError("backend locked")

    def set_password(self, service: str, account: str, password: str) -> None:
        raise KeyringError("backend locked")

    def delete_password(self, service: str, account: str) -> None:
        raise KeyringError("backend locked")


def test_account_name_prefix() -> None:
    assert CredentialStore.account_name("acme") == "workspace-acme"


def test_set_get_delete_cycle(memory_keyring) -> None:
    store = CredentialStore(backend=memory_keyring)

    assert store.get("acme") is None
    store.set("acme", "lin_api_token")

    assert memory_keyring.entries == {(SERVICE_NAME, "workspace-acme"): "lin_api_token"}
    assert store.get("acme") == "lin_api_token"
    assert store.has("acme") is True
    assert store.delete("acme") is True
    assert store.delete("acme") is False
    assert store.has("acme") is False


def test_last_write_wins(memory_keyring) -> None:
    store = CredentialStore(backend=memory_keyring)
    store.set("acme", "first")
    store.set("acme", "second")

    assert store.get("acme") == "second"


def test_workspaces_are_isolated(memory_keyring) -> None:
    store = CredentialStore(backend=memory_keyring)
    store.set("a", "token-a")

    assert store.get("b") is None


def test_backend_failures_read_as_missing() -> None:
    store = CredentialStore(backend=_BrokenKeyring())

    assert store.get("acme") is None
    assert store.delete("acme") is False


def test_backend_failure_on_write_propagates() -> None:
    store = CredentialStore(backend=_BrokenKeyring())

    with pytest.raises(KeyringError):
        store.set("acme", "tok")


class _ForeignErrorKeyring:
    """Backend that raises its own exception types instead of KeyringError."""

    def get_password(self, service: str, account: str) -> str | None:
        raise RuntimeError("dbus: org.freedesktop.DBus.Error.ServiceUnknown")

    def delete_password(self, service: str, account: str) -> None:
        raise OSError("keychain unavailable")


def test_non_keyring_backend_errors_read_as_missing() -> None:
    store = CredentialStore(backend=_ForeignErrorKeyring())

    assert store.get("acme") is None
    assert store.has("acme") is False
    assert store.delete("acme") is False


def test_auth_treats_backend_crash_as_logged_out(client_recorder) -> None:
    store = CredentialStore(backend=_ForeignErrorKeyring())
    auth = LinearAuth("acme", store=store, client_factory=client_recorder)

    assert auth.get_token() is None
    assert auth.is_authenticated() is False
    assert auth.logout() is False
    assert client_recorder.calls == []
