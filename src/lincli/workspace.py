"""Workspace resolution and the local workspace configuration file.

A workspace is a local name that partitions stored API tokens. Which one
applies to an invocation is decided by :meth:`WorkspaceManager.resolve_workspace`
using a fixed precedence chain:

1. the ``--workspace`` flag, verbatim;
2. the nearest ``.linear-workspace`` marker file, searching from the
   working directory up to the filesystem root;
3. the ``directoryWorkspaces`` entry for the working directory;
4. ``defaultWorkspace``, or the literal ``"default"``.

None of the steps check credentials; that is left to :mod:`lincli.auth`.

The configuration record is loaded once per process with
:func:`load_workspace_config` and handed to the manager explicitly. Every
mutation is written back immediately. Directory entries are keyed by the
absolute working directory path as given by the OS, so they go stale when a
directory is renamed or reached through a different mount point.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .logging import get_logger

MARKER_FILENAME = ".linear-workspace"
FALLBACK_WORKSPACE = "default"
# Upper bound on ancestor directories visited while looking for a marker.
MAX_MARKER_DEPTH = 256


@dataclass
class WorkspaceConfig:
    path: Path
    default_workspace: str | None = None
    directory_workspaces: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "defaultWorkspace": self.default_workspace,
            "directoryWorkspaces": dict(self.directory_workspaces),
        }


def load_workspace_config(path: Path) -> WorkspaceConfig:
    """Read the config file; anything missing or malformed yields a fresh config."""
    logger = get_logger()
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return WorkspaceConfig(path=path)
    except (OSError, ValueError) as exc:
        logger.debug("Ignoring unreadable workspace config", path=str(path), error=str(exc))
        return WorkspaceConfig(path=path)
    if not isinstance(raw, dict):
        return WorkspaceConfig(path=path)

    default = raw.get("defaultWorkspace")
    directories: dict[str, str] = {}
    directories_raw = raw.get("directoryWorkspaces")
    if isinstance(directories_raw, dict):
        for directory, name in directories_raw.items():
            if isinstance(name, str) and name:
                directories[str(directory)] = name
    return WorkspaceConfig(
        path=path,
        default_workspace=default if isinstance(default, str) and default else None,
        directory_workspaces=directories,
    )


def save_workspace_config(config: WorkspaceConfig) -> None:
    config.path.parent.mkdir(parents=True, exist_ok=True)
    config.path.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")


def _read_marker(directory: Path) -> str | None:
    """Return the trimmed marker content, ``""`` for a blank marker, ``None`` if absent."""
    try:
        return (directory / MARKER_FILENAME).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None


class WorkspaceManager:
    """Resolves and persists workspace selections for one process."""

    def __init__(self, config: WorkspaceConfig, cwd: Path | None = None) -> None:
        self.config = config
        self._cwd = cwd
        self.logger = get_logger()

    @property
    def cwd(self) -> Path:
        return self._cwd if self._cwd is not None else Path.cwd()

    # ---- resolution ---------------------------------------------------
    def resolve_workspace(self, flag_value: str | None = None) -> str:
        if flag_value:
            return flag_value

        marker = self.find_marker()
        if marker:
            return marker

        mapped = self.config.directory_workspaces.get(str(self.cwd))
        if mapped:
            return mapped

        return self.config.default_workspace or FALLBACK_WORKSPACE

    def current_workspace(self, flag_value: str | None = None) -> str:
        return self.resolve_workspace(flag_value)

    def find_marker(self, start: Path | None = None) -> str | None:
        """Walk from ``start`` towards the root and return the first marker's content.

        A blank marker still ends the search.
        """
        current = start if start is not None else self.cwd
        for _ in range(MAX_MARKER_DEPTH):
            content = _read_marker(current)
            if content is not None:
                return content or None
            parent = current.parent
            if parent == current:
                return None
            current = parent
        self.logger.warning(
            "Marker search stopped at depth limit", start=str(start or self.cwd)
        )
        return None

    # ---- mutation -----------------------------------------------------
    def set_default_workspace(self, name: str) -> None:
        self.config.default_workspace = name
        save_workspace_config(self.config)
        self.logger.log_operation("workspace_default_set", workspace=name)

    def set_directory_workspace(self, name: str, directory: Path | None = None) -> Path:
        marker = (directory if directory is not None else self.cwd) / MARKER_FILENAME
        marker.write_text(name, encoding="utf-8")
        self.logger.log_operation("workspace_marker_written", workspace=name, path=str(marker))
        return marker

    def set_directory_config(self, name: str, directory: Path | None = None) -> None:
        key = str(directory if directory is not None else self.cwd)
        self.config.directory_workspaces[key] = name
        save_workspace_config(self.config)
        self.logger.log_operation("workspace_directory_set", workspace=name, directory=key)

    def remove_directory_config(self, directory: Path | None = None) -> bool:
        key = str(directory if directory is not None else self.cwd)
        removed = self.config.directory_workspaces.pop(key, None) is not None
        save_workspace_config(self.config)
        return removed

    # ---- listing ------------------------------------------------------
    def list_workspaces(self) -> list[str]:
        """Known workspace names; advisory, credentials are not consulted."""
        names: set[str] = set()
        if self.config.default_workspace:
            names.add(self.config.default_workspace)
        names.update(self.config.directory_workspaces.values())
        marker = self.find_marker()
        if marker:
            names.add(marker)
        return sorted(names)


__all__ = [
    "FALLBACK_WORKSPACE",
    "MARKER_FILENAME",
    "MAX_MARKER_DEPTH",
    "WorkspaceConfig",
    "WorkspaceManager",
    "load_workspace_config",
    "save_workspace_config",
]
