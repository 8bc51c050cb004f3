from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from lincli import workspace
from lincli.workspace import (
    MARKER_FILENAME,
    WorkspaceConfig,
    WorkspaceManager,
    load_workspace_config,
    save_workspace_config,
)


def _manager(tmp_path: Path, cwd: Path, **config: Any) -> WorkspaceManager:
    cfg = WorkspaceConfig(path=tmp_path / "config" / "config.json", **config)
    return WorkspaceManager(cfg, cwd=cwd)


def test_flag_wins_over_every_other_source(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    (project / MARKER_FILENAME).write_text("marker-ws")
    mgr = _manager(
        tmp_path,
        project,
        default_workspace="fallback",
        directory_workspaces={str(project): "mapped"},
    )

    assert mgr.resolve_workspace("flag-ws") == "flag-ws"


def test_marker_in_grandparent_is_found_and_trimmed(tmp_path: Path) -> None:
    root = tmp_path / "repo"
    nested = root / "a" / "b"
    nested.mkdir(parents=True)
    (root / MARKER_FILENAME).write_text("  client-a\n")
    mgr = _manager(tmp_path, nested, default_workspace="fallback")

    assert mgr.resolve_workspace() == "client-a"
    assert mgr.resolve_workspace(None) == "client-a"


def test_marker_beats_directory_mapping(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    (project / MARKER_FILENAME).write_text("from-marker")
    mgr = _manager(tmp_path, project, directory_workspaces={str(project): "from-config"})

    assert mgr.resolve_workspace() == "from-marker"


def test_directory_mapping_then_default_then_literal(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()

    mapped = _manager(
        tmp_path,
        project,
        default_workspace="global",
        directory_workspaces={str(project): "mapped"},
    )
    assert mapped.resolve_workspace() == "mapped"

    default_only = _manager(tmp_path, project, default_workspace="global")
    assert default_only.resolve_workspace() == "global"

    bare = _manager(tmp_path, project)
    assert bare.resolve_workspace() == "default"


def test_directory_mapping_is_exact_match_only(tmp_path: Path) -> None:
    parent = tmp_path / "parent"
    child = parent / "child"
    child.mkdir(parents=True)
    mgr = _manager(tmp_path, child, directory_workspaces={str(parent): "mapped"})

    assert mgr.resolve_workspace() == "default"


def test_blank_marker_stops_search(tmp_path: Path) -> None:
    outer = tmp_path / "outer"
    inner = outer / "inner"
    inner.mkdir(parents=True)
    (outer / MARKER_FILENAME).write_text("outer-ws")
    (inner / MARKER_FILENAME).write_text("   \n")
    mgr = _manager(tmp_path, inner, default_workspace="fallback")

    assert mgr.find_marker() is None
    assert mgr.resolve_workspace() == "fallback"


def test_set_directory_workspace_writes_marker(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    mgr = _manager(tmp_path, project)

    marker = mgr.set_directory_workspace("acme")

    assert marker == project / MARKER_FILENAME
    assert marker.read_text() == "acme"
    assert mgr.resolve_workspace() == "acme"


def test_set_default_and_directory_config_persist(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    mgr = _manager(tmp_path, project)

    mgr.set_default_workspace("main")
    mgr.set_directory_config("side")

    stored = json.loads(mgr.config.path.read_text())
    assert stored == {
        "defaultWorkspace": "main",
        "directoryWorkspaces": {str(project): "side"},
    }
    reloaded = load_workspace_config(mgr.config.path)
    assert reloaded.default_workspace == "main"
    assert reloaded.directory_workspaces == {str(project): "side"}


def test_remove_directory_config(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    mgr = _manager(tmp_path, project, directory_workspaces={str(project): "side"})

    assert mgr.remove_directory_config() is True
    assert mgr.remove_directory_config() is False
    assert mgr.resolve_workspace() == "default"


def test_list_workspaces_is_sorted_and_deduplicated(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    (project / MARKER_FILENAME).write_text("zeta")
    mgr = _manager(
        tmp_path,
        project,
        default_workspace="alpha",
        directory_workspaces={"/x": "zeta", "/y": "beta", "/z": "alpha"},
    )

    assert mgr.list_workspaces() == ["alpha", "beta", "zeta"]


def test_list_workspaces_empty(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()

    assert _manager(tmp_path, project).list_workspaces() == []


def test_missing_config_loads_empty(tmp_path: Path) -> None:
    cfg = load_workspace_config(tmp_path / "nope" / "config.json")

    assert cfg.default_workspace is None
    assert cfg.directory_workspaces == {}


def test_corrupt_config_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")

    cfg = load_workspace_config(path)

    assert cfg.default_workspace is None
    assert cfg.directory_workspaces == {}


def test_non_object_config_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2, 3]")

    assert load_workspace_config(path).directory_workspaces == {}


def test_save_creates_parent_directory(tmp_path: Path) -> None:
    cfg = WorkspaceConfig(path=tmp_path / "deep" / "dir" / "config.json", default_workspace="w")

    save_workspace_config(cfg)

    assert json.loads(cfg.path.read_text())["defaultWorkspace"] == "w"


def test_stale_directory_entries_survive_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"defaultWorkspace": None, "directoryWorkspaces": {"/gone/away": "old"}})
    )

    cfg = load_workspace_config(path)
    save_workspace_config(cfg)

    assert json.loads(path.read_text())["directoryWorkspaces"] == {"/gone/away": "old"}


def test_marker_search_stops_at_depth_limit(tmp_path: Path, monkeypatch) -> None:
    root = tmp_path / "repo"
    deep = root / "a" / "b" / "c"
    deep.mkdir(parents=True)
    (root / MARKER_FILENAME).write_text("too-far")
    mgr = _manager(tmp_path, deep)

    monkeypatch.setattr(workspace, "MAX_MARKER_DEPTH", 2)
    assert mgr.find_marker() is None
    assert mgr.resolve_workspace() == "default"

    monkeypatch.setattr(workspace, "MAX_MARKER_DEPTH", 4)
    assert mgr.find_marker() == "too-far"
