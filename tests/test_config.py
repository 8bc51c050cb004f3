from __future__ import annotations

from pathlib import Path

import pytest

from lincli.config import DEFAULT_API_URL, ConfigError, load_settings
from lincli.errors import LinCliError
from lincli.runtime import execute_command


def test_defaults_from_empty_environment():
    settings = load_settings({})

    assert settings.config_dir == Path.home() / ".linear-cli"
    assert settings.config_file == Path.home() / ".linear-cli" / "config.json"
    assert settings.api_url == DEFAULT_API_URL
    assert settings.timeout == 30.0
    assert settings.log_level == "WARNING"
    assert settings.log_json is False


def test_environment_overrides(tmp_path):
    settings = load_settings(
        {
            "LINEAR_CLI_CONFIG_DIR": str(tmp_path),
            "LINEAR_CLI_API_URL": "https://linear.test/graphql",
            "LINEAR_CLI_TIMEOUT": "5",
            "LINEAR_CLI_LOG_LEVEL": "info",
            "LINEAR_CLI_LOG_JSON": "1",
        }
    )

    assert settings.config_file == tmp_path / "config.json"
    assert settings.api_url == "https://linear.test/graphql"
    assert settings.timeout == 5.0
    assert settings.log_level == "INFO"
    assert settings.log_json is True


def test_debug_flag_forces_debug_level():
    settings = load_settings({"LINEAR_CLI_LOG_LEVEL": "ERROR", "LINEAR_CLI_DEBUG": "true"})

    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("raw", ["soon", "0", "-3"])
def test_invalid_timeout_rejected(raw):
    with pytest.raises(ConfigError, match="LINEAR_CLI_TIMEOUT"):
        load_settings({"LINEAR_CLI_TIMEOUT": raw})


def test_config_error_is_reported_like_other_cli_errors(capsys):
    def handler():
        return load_settings({"LINEAR_CLI_TIMEOUT": "-1"})

    assert issubclass(ConfigError, LinCliError)
    assert execute_command(handler, "workspace list") == 1
    assert "LINEAR_CLI_TIMEOUT must be positive" in capsys.readouterr().err
