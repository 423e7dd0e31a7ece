"""
MCP Server Kit - a Model Context Protocol server runtime.

This package validates JSON-RPC 2.0 messages, routes MCP methods to registered
tools, resources and prompts, validates tool arguments against JSON Schema,
and serves the result over stdio or HTTP.
"""

from mcp_serverkit.protocol import PROTOCOL_VERSION
from mcp_serverkit.server import MCPServer, create_server

__version__ = "0.1.0"

__all__ = ["MCPServer", "PROTOCOL_VERSION", "__version__", "create_server"]
