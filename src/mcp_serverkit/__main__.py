"""
Command-line entry point: ``python -m mcp_serverkit`` or ``mcp-serverkit``.

Loads the layered configuration, sets up logging, imports the MCPServer named
by ``server.app`` and serves it over the configured transport.

Example:
    $ mcp-serverkit --app examples.calculator:server --transport http
"""

from __future__ import annotations

import asyncio
import importlib
import sys

import yaml
from pydantic import ValidationError

from mcp_serverkit.config import AppConfig, load_config
from mcp_serverkit.dispatcher import ServerInfo
from mcp_serverkit.http_transport import run_http
from mcp_serverkit.logging import get_logger, setup_logging
from mcp_serverkit.server import MCPServer

logger = get_logger(__name__)

EXIT_USAGE = 2


def load_app(target: str) -> MCPServer:
    """
    Import an MCPServer from a ``"module:attribute"`` path.

    The attribute may be an MCPServer instance or a zero-argument callable
    returning one.

    Raises:
        ImportError: If the module cannot be imported.
        ValueError: If the attribute is missing or is not an MCPServer.
    """
    module_name, _, attr = target.partition(":")
    module = importlib.import_module(module_name)
    try:
        obj = getattr(module, attr)
    except AttributeError as e:
        raise ValueError(f"Module '{module_name}' has no attribute '{attr}'") from e

    if not isinstance(obj, MCPServer) and callable(obj):
        obj = obj()
    if not isinstance(obj, MCPServer):
        raise ValueError(
            f"'{target}' is not an MCPServer (got {type(obj).__name__})"
        )
    return obj


def _apply_identity(server: MCPServer, config: AppConfig) -> None:
    # Only explicitly configured values replace what the app declared
    fields = config.server.model_fields_set
    if "name" in fields:
        server.name = config.server.name
    if "version" in fields:
        server.version = config.server.version
    server.dispatcher.server_info = ServerInfo(server.name, server.version)


def main(argv: list[str] | None = None) -> int:
    """
    Run the MCP server described by configuration.

    Args:
        argv: Command-line arguments. If None, uses sys.argv.

    Returns:
        Process exit code.
    """
    try:
        config = load_config(cli_args=argv)
    except (FileNotFoundError, ValidationError, yaml.YAMLError) as e:
        setup_logging()
        logger.error("Invalid configuration", extra={"error": str(e)})
        return EXIT_USAGE

    setup_logging(config.logging)

    if config.server.app is None:
        logger.error("No server app configured; pass --app module:attribute")
        return EXIT_USAGE

    try:
        server = load_app(config.server.app)
    except (ImportError, ValueError) as e:
        logger.error(
            "Could not load server app",
            extra={"app": config.server.app, "error": str(e)},
        )
        return EXIT_USAGE

    _apply_identity(server, config)

    try:
        if config.server.transport == "http":
            asyncio.run(run_http(server, config.http))
        else:
            asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
