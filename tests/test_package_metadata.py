from __future__ import annotations

from importlib import import_module
from typing import Any

import pytest


def test_lincli_dunder_all_exports() -> None:
    module = import_module("lincli")
    exported = set(module.__all__)
    expected = {
        "LinearClient",
        "LinearAuth",
        "WorkspaceManager",
        "CredentialStore",
        "LinCliError",
        "__version__",
    }
    assert expected <= exported
    assert module.__version__ == "1.0.0"


def test_module_main_run_invokes_cli(monkeypatch: pytest.MonkeyPatch) -> None:
    module = import_module("lincli.__main__")
    called: dict[str, Any] = {}

    def fake_main(argv: Any) -> int:
        called["argv"] = argv
        return 123

    monkeypatch.setattr(module, "main", fake_main)

    result = module.run()
    assert called["argv"] is None
    assert result == 123
