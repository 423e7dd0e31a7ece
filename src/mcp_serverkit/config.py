"""
Configuration management for the MCP server runtime.

This module implements the AppConfig Pydantic model and layered configuration
loading for the ``mcp-serverkit`` entry point.

Configuration is loaded from multiple sources with layered precedence:
1. Built-in defaults (Pydantic model defaults)
2. YAML config file (./mcp-serverkit.yml or --config path)
3. Environment variables (MCP_SERVERKIT_* prefix, __ for nesting)
4. Command-line arguments (highest precedence)
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Any, get_args

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONFIG_PATH = Path("mcp-serverkit.yml")
DEFAULT_ENV_PREFIX = "MCP_SERVERKIT_"

# =============================================================================
# Server Configuration
# =============================================================================


class ServerConfig(BaseModel):
    """Server identity and transport selection.

    Attributes:
        name: Server name reported by ``initialize``.
        version: Server version reported by ``initialize``.
        transport: "stdio" or "http".
        app: Import path ("module:attribute") of the MCPServer to run.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = Field(default="mcp-server", description="Server name")
    version: str = Field(default="0.1.0", description="Server version")
    transport: str = Field(
        default="stdio",
        description="Transport: stdio or http",
    )
    app: str | None = Field(
        default=None,
        description="MCPServer instance or factory, as 'module:attribute'",
    )

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: str) -> str:
        """Validate and normalize the transport name."""
        v_lower = v.lower()
        if v_lower not in {"stdio", "http"}:
            raise ValueError(f"Invalid transport: {v}. Must be one of: http, stdio")
        return v_lower

    @field_validator("app")
    @classmethod
    def validate_app(cls, v: str | None) -> str | None:
        """Require the 'module:attribute' form."""
        if v is None:
            return v
        module, sep, attr = v.partition(":")
        if not sep or not module or not attr:
            raise ValueError(f"Invalid app: {v}. Expected 'module:attribute'")
        return v


# =============================================================================
# HTTP Configuration
# =============================================================================


class HttpConfig(BaseModel):
    """HTTP transport settings.

    Attributes:
        listen: Listen address and port (e.g., "127.0.0.1:8000").
        path: URL path accepting JSON-RPC POSTs.
        request_timeout_seconds: Upper bound on one dispatch.
    """

    listen: str = Field(
        default="127.0.0.1:8000",
        description="Listen address and port (e.g., '127.0.0.1:8000' or '0.0.0.0:8000')",
    )
    path: str = Field(default="/mcp", description="JSON-RPC endpoint path")
    request_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds before a request is answered with a timeout error",
    )

    @field_validator("listen")
    @classmethod
    def validate_listen(cls, v: str) -> str:
        """Validate the host:port form."""
        host, sep, port = v.rpartition(":")
        if not sep or not host or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"Invalid listen address: {v}. Expected 'host:port'")
        return v

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Invalid path: {v}. Must start with '/'")
        return v

    @property
    def host(self) -> str:
        return self.listen.rpartition(":")[0]

    @property
    def port(self) -> int:
        return int(self.listen.rpartition(":")[2])


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level.
        json_format: Emit one JSON object per record.
        stream: "stderr" or "stdout".
    """

    level: str = Field(
        default="info",
        description="Log level: debug, info, warn, error",
    )
    json_format: bool = Field(
        default=True,
        description="Whether to format log records as JSON",
    )
    stream: str = Field(
        default="stderr",
        description="Log stream: stderr or stdout",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"debug", "info", "warn", "warning", "error", "critical"}
        v_lower = v.lower()
        if v_lower not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        # Normalize 'warn' to 'warning'
        if v_lower == "warn":
            return "warning"
        return v_lower

    @field_validator("stream")
    @classmethod
    def validate_stream(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"stderr", "stdout"}:
            raise ValueError(f"Invalid log stream: {v}. Must be stderr or stdout")
        return v_lower


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """
    Main application configuration model.

    It is built from multiple layers following the precedence rules:
    1. Built-in defaults (defined in this model)
    2. YAML config file
    3. Environment variables (MCP_SERVERKIT_* prefix)
    4. Command-line arguments

    Attributes:
        server: Server identity and transport.
        http: HTTP transport settings.
        logging: Logging configuration.
    """

    server: ServerConfig = Field(
        default_factory=ServerConfig,
        description="Server settings",
    )
    http: HttpConfig = Field(
        default_factory=HttpConfig,
        description="HTTP transport settings",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: The base dictionary.
        override: The dictionary with values to override.

    Returns:
        A new dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        yaml.YAMLError: If the YAML is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _parse_env_value(value: str) -> Any:
    """
    Parse an environment variable value to a bool, int, float or string.
    """
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def _expects_string(path: list[str]) -> bool:
    """
    Return True if the AppConfig field at ``path`` is typed as a string.

    Such values are kept verbatim, so "1.10" stays "1.10" rather than 1.1.
    """
    model: type[BaseModel] = AppConfig
    for part in path[:-1]:
        field = model.model_fields.get(part)
        if field is None:
            return False
        annotation = field.annotation
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            return False
        model = annotation

    field = model.model_fields.get(path[-1])
    if field is None:
        return False
    return field.annotation is str or str in get_args(field.annotation)


def _load_env_config(prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """
    Load configuration from environment variables.

    Environment variables are parsed with the following rules:
    - Prefix: MCP_SERVERKIT_ (configurable)
    - Nested keys: Double underscore (__) separator
    - Example: MCP_SERVERKIT_HTTP__LISTEN=0.0.0.0:8000

    Args:
        prefix: Environment variable prefix.

    Returns:
        Dictionary with configuration values.
    """
    result: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix) :].lower().split("__")

        current = result
        for part in parts[:-1]:
            current = current.setdefault(part, {})

        if _expects_string(parts):
            current[parts[-1]] = value
        else:
            current[parts[-1]] = _parse_env_value(value)

    return result


def _parse_cli_args(args: list[str] | None = None) -> dict[str, Any]:
    """
    Parse command-line arguments.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Dictionary with parsed arguments, shaped like AppConfig.
    """
    parser = argparse.ArgumentParser(
        prog="mcp-serverkit",
        description="Run an MCP server over stdio or HTTP",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        help="Override log level",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "http"],
        help="Transport to serve on",
    )
    parser.add_argument(
        "--listen",
        type=str,
        help="HTTP listen address (host:port)",
    )
    parser.add_argument(
        "--app",
        type=str,
        help="MCPServer instance or factory, as 'module:attribute'",
    )

    parsed = parser.parse_args(args)

    result: dict[str, Any] = {}

    if parsed.config:
        result["_config_path"] = parsed.config

    if parsed.log_level:
        result.setdefault("logging", {})["level"] = parsed.log_level

    if parsed.debug:
        result.setdefault("logging", {})["level"] = "debug"

    if parsed.transport:
        result.setdefault("server", {})["transport"] = parsed.transport

    if parsed.app:
        result.setdefault("server", {})["app"] = parsed.app

    if parsed.listen:
        result.setdefault("http", {})["listen"] = parsed.listen

    return result


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_args: list[str] | None = None,
) -> AppConfig:
    """
    Load configuration from all sources with layered precedence.

    Configuration is loaded from multiple sources in order:
    1. Built-in defaults (from AppConfig model)
    2. YAML config file (if specified or the default exists)
    3. Environment variables (MCP_SERVERKIT_* prefix)
    4. Command-line arguments

    Later sources override earlier ones.

    Args:
        config_path: Path to YAML configuration file. If None, uses the CLI
            --config argument or ./mcp-serverkit.yml when present.
        env_prefix: Prefix for environment variables.
        cli_args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Fully configured AppConfig instance.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        ValidationError: If configuration is invalid.

    Example:
        >>> config = load_config(cli_args=["--transport", "http"])
        >>> config.http.port
        8000
    """
    config_dict: dict[str, Any] = {}

    # Parse CLI args first to get config path
    cli_config = _parse_cli_args(cli_args)
    cli_config_path = cli_config.pop("_config_path", None)

    if config_path is None:
        if cli_config_path is not None:
            config_path = Path(cli_config_path)
        elif DEFAULT_CONFIG_PATH.exists():
            config_path = DEFAULT_CONFIG_PATH
    elif isinstance(config_path, str):
        config_path = Path(config_path)

    if config_path is not None:
        config_dict = _deep_merge(config_dict, _load_yaml_config(config_path))

    config_dict = _deep_merge(config_dict, _load_env_config(env_prefix))
    config_dict = _deep_merge(config_dict, cli_config)

    return AppConfig(**config_dict)
