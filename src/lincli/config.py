from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .errors import LinCliError

DEFAULT_API_URL = "https://api.linear.app/graphql"
DEFAULT_CONFIG_DIR = Path.home() / ".linear-cli"
CONFIG_FILENAME = "config.json"
DEFAULT_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"


class ConfigError(LinCliError):
    """Invalid value in a LINEAR_CLI_* environment variable."""


@dataclass
class Settings:
    config_dir: Path
    api_url: str
    timeout: float
    # Logging configuration
    log_level: str
    log_json: bool

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    config_dir_raw = env.get("LINEAR_CLI_CONFIG_DIR")
    config_dir = (
        Path(config_dir_raw).expanduser() if config_dir_raw else DEFAULT_CONFIG_DIR
    )
    level = env.get("LINEAR_CLI_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    if _env_flag(env, "LINEAR_CLI_DEBUG"):
        level = "DEBUG"
    return Settings(
        config_dir=config_dir,
        api_url=env.get("LINEAR_CLI_API_URL") or DEFAULT_API_URL,
        timeout=_env_float(env, "LINEAR_CLI_TIMEOUT", DEFAULT_TIMEOUT),
        log_level=level,
        log_json=_env_flag(env, "LINEAR_CLI_LOG_JSON"),
    )


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_API_URL",
    "Settings",
    "load_settings",
]
