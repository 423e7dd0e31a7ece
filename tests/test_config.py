"""
Tests for configuration management.

This test module validates:
- AppConfig defaults and field validation
- YAML loading
- Environment variable parsing
- Command-line argument parsing
- Layered precedence: defaults < YAML < env < CLI
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest
import yaml
from pydantic import ValidationError

from mcp_serverkit.config import (
    AppConfig,
    HttpConfig,
    LoggingConfig,
    ServerConfig,
    _deep_merge,
    _load_env_config,
    _load_yaml_config,
    _parse_cli_args,
    _parse_env_value,
    load_config,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Path for a temporary YAML config file."""
    return tmp_path / "config.yml"


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory so no default config file is found."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


# =============================================================================
# Tests for Models
# =============================================================================


class TestConfigModels:
    """Tests for the configuration models."""

    def test_app_config_defaults(self) -> None:
        """Test default values for every section."""
        config = AppConfig()

        assert config.server.name == "mcp-server"
        assert config.server.version == "0.1.0"
        assert config.server.transport == "stdio"
        assert config.server.app is None
        assert config.http.listen == "127.0.0.1:8000"
        assert config.http.path == "/mcp"
        assert config.http.request_timeout_seconds == 5.0
        assert config.logging.level == "info"
        assert config.logging.json_format is True
        assert config.logging.stream == "stderr"

    def test_transport_validation(self) -> None:
        """Test transport normalization and rejection."""
        assert ServerConfig(transport="HTTP").transport == "http"
        with pytest.raises(ValidationError):
            ServerConfig(transport="websocket")

    def test_app_validation(self) -> None:
        """Test the module:attribute form."""
        assert ServerConfig(app="pkg.mod:server").app == "pkg.mod:server"
        with pytest.raises(ValidationError):
            ServerConfig(app="pkg.mod")

    def test_version_from_number(self) -> None:
        """Test that a numeric version is kept as text."""
        assert ServerConfig(version=1.5).version == "1.5"

    def test_listen_host_and_port(self) -> None:
        """Test the derived host and port."""
        http = HttpConfig(listen="0.0.0.0:9000")

        assert http.host == "0.0.0.0"
        assert http.port == 9000

    @pytest.mark.parametrize("listen", ["localhost", ":8000", "host:http", "h:70000"])
    def test_listen_validation(self, listen: str) -> None:
        """Test rejection of malformed listen addresses."""
        with pytest.raises(ValidationError):
            HttpConfig(listen=listen)

    def test_path_validation(self) -> None:
        """Test that the path must be absolute."""
        with pytest.raises(ValidationError):
            HttpConfig(path="mcp")

    def test_timeout_must_be_positive(self) -> None:
        """Test the timeout bound."""
        with pytest.raises(ValidationError):
            HttpConfig(request_timeout_seconds=0)

    def test_log_level_validation(self) -> None:
        """Test log level normalization."""
        assert LoggingConfig(level="DEBUG").level == "debug"
        assert LoggingConfig(level="warn").level == "warning"
        with pytest.raises(ValidationError):
            LoggingConfig(level="verbose")

    def test_stream_validation(self) -> None:
        """Test log stream validation."""
        assert LoggingConfig(stream="STDOUT").stream == "stdout"
        with pytest.raises(ValidationError):
            LoggingConfig(stream="file")


# =============================================================================
# Tests for YAML Loading
# =============================================================================


class TestYAMLLoading:
    """Tests for YAML configuration loading."""

    def test_load_yaml_config_success(self, temp_config_file: Path) -> None:
        """Test loading a YAML file."""
        temp_config_file.write_text("server:\n  name: notes\n")

        assert _load_yaml_config(temp_config_file) == {"server": {"name": "notes"}}

    def test_load_yaml_config_file_not_found(self, tmp_path: Path) -> None:
        """Test that a missing file raises."""
        with pytest.raises(FileNotFoundError):
            _load_yaml_config(tmp_path / "missing.yml")

    def test_load_yaml_config_empty_file(self, temp_config_file: Path) -> None:
        """Test that an empty file is an empty config."""
        temp_config_file.write_text("")

        assert _load_yaml_config(temp_config_file) == {}

    def test_default_path_is_used(self, isolated_cwd: Path) -> None:
        """Test that ./mcp-serverkit.yml is picked up when present."""
        (isolated_cwd / "mcp-serverkit.yml").write_text("server:\n  name: from-default\n")

        config = load_config(cli_args=[], env_prefix="MCP_SERVERKIT_TEST_")

        assert config.server.name == "from-default"


# =============================================================================
# Tests for Environment Variables
# =============================================================================


class TestEnvironmentVariables:
    """Tests for environment variable parsing."""

    def test_parse_env_value(self) -> None:
        """Test value type parsing."""
        assert _parse_env_value("true") is True
        assert _parse_env_value("off") is False
        assert _parse_env_value("42") == 42
        assert _parse_env_value("2.5") == 2.5
        assert _parse_env_value("127.0.0.1:8000") == "127.0.0.1:8000"
        assert _parse_env_value("a,b") == "a,b"

    def test_load_env_config_nested(self) -> None:
        """Test nesting with double underscores."""
        env_vars = {
            "MCP_SERVERKIT_HTTP__LISTEN": "0.0.0.0:9000",
            "MCP_SERVERKIT_LOGGING__JSON_FORMAT": "false",
        }

        with mock.patch.dict(os.environ, env_vars, clear=False):
            config_dict = _load_env_config()

        assert config_dict["http"]["listen"] == "0.0.0.0:9000"
        assert config_dict["logging"]["json_format"] is False

    def test_load_config_with_env_vars(self, temp_config_file: Path) -> None:
        """Test that environment variables override YAML."""
        with open(temp_config_file, "w") as f:
            yaml.dump({"http": {"listen": "127.0.0.1:8000", "path": "/rpc"}}, f)

        env_vars = {"MCP_SERVERKIT_HTTP__LISTEN": "0.0.0.0:9000"}

        with mock.patch.dict(os.environ, env_vars, clear=False):
            config = load_config(config_path=temp_config_file, cli_args=[])

        assert config.http.path == "/rpc"  # From YAML
        assert config.http.listen == "0.0.0.0:9000"  # From env var

    def test_string_fields_keep_env_text(self, isolated_cwd: Path) -> None:
        """Test that numeric-looking values for string fields are not converted."""
        env_vars = {
            "MCP_SERVERKIT_SERVER__VERSION": "1.10",
            "MCP_SERVERKIT_SERVER__NAME": "007",
            "MCP_SERVERKIT_HTTP__REQUEST_TIMEOUT_SECONDS": "2.5",
        }

        with mock.patch.dict(os.environ, env_vars, clear=False):
            config_dict = _load_env_config()
            config = load_config(cli_args=[])

        assert config_dict["server"]["version"] == "1.10"
        assert config_dict["http"]["request_timeout_seconds"] == 2.5
        assert config.server.version == "1.10"
        assert config.server.name == "007"
        assert config.http.request_timeout_seconds == 2.5


# =============================================================================
# Tests for CLI Argument Parsing
# =============================================================================


class TestCLIArgumentParsing:
    """Tests for command-line argument parsing."""

    def test_parse_cli_args_empty(self) -> None:
        """Test that no arguments give no overrides."""
        assert _parse_cli_args([]) == {}

    def test_parse_cli_args_all(self) -> None:
        """Test every supported option."""
        result = _parse_cli_args(
            [
                "--config",
                "/tmp/c.yml",
                "--log-level",
                "warning",
                "--transport",
                "http",
                "--listen",
                "0.0.0.0:8080",
                "--app",
                "demo:server",
            ]
        )

        assert result == {
            "_config_path": "/tmp/c.yml",
            "logging": {"level": "warning"},
            "server": {"transport": "http", "app": "demo:server"},
            "http": {"listen": "0.0.0.0:8080"},
        }

    def test_debug_sets_level(self) -> None:
        """Test that --debug selects debug logging."""
        assert _parse_cli_args(["--debug"]) == {"logging": {"level": "debug"}}

    def test_invalid_transport(self) -> None:
        """Test that argparse rejects unknown transports."""
        with pytest.raises(SystemExit):
            _parse_cli_args(["--transport", "pigeon"])


# =============================================================================
# Tests for Precedence
# =============================================================================


class TestPrecedence:
    """Tests for layered precedence."""

    def test_full_precedence_chain(self, temp_config_file: Path) -> None:
        """Test defaults < YAML < env < CLI."""
        with open(temp_config_file, "w") as f:
            yaml.dump(
                {
                    "server": {"name": "yaml", "transport": "http"},
                    "logging": {"level": "error"},
                    "http": {"listen": "127.0.0.1:7000"},
                },
                f,
            )

        env_vars = {"MCP_SERVERKIT_LOGGING__LEVEL": "info"}

        with mock.patch.dict(os.environ, env_vars, clear=False):
            config = load_config(
                cli_args=["-c", str(temp_config_file), "--log-level", "debug"]
            )

        assert config.server.name == "yaml"
        assert config.server.transport == "http"
        assert config.http.listen == "127.0.0.1:7000"
        assert config.logging.level == "debug"
        assert config.http.path == "/mcp"  # Default

    def test_invalid_merged_config(self, temp_config_file: Path) -> None:
        """Test that invalid values fail validation."""
        temp_config_file.write_text("http:\n  request_timeout_seconds: -1\n")

        with pytest.raises(ValidationError):
            load_config(config_path=temp_config_file, cli_args=[])


class TestDeepMerge:
    """Tests for _deep_merge."""

    def test_nested(self) -> None:
        """Test nested dictionaries merge key by key."""
        base = {"server": {"name": "a", "version": "1"}}
        override = {"server": {"name": "b"}}

        assert _deep_merge(base, override) == {"server": {"name": "b", "version": "1"}}

    def test_does_not_modify_original(self) -> None:
        """Test that inputs are left unchanged."""
        base = {"a": {"b": 1}}
        _deep_merge(base, {"a": {"b": 2}})

        assert base == {"a": {"b": 1}}
