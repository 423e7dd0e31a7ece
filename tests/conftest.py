"""
Pytest configuration for the MCP server runtime tests.
"""

from __future__ import annotations

import io
from typing import Any

import pytest

from mcp_serverkit.server import MCPServer

# Configure pytest-asyncio mode
pytest_plugins = ["pytest_asyncio"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (deselect with '-m \"not integration\"')",
    )


# =============================================================================
# Shared Fixtures
# =============================================================================


def add_handler(args: dict[str, Any]) -> Any:
    """Add two numbers."""
    return args["a"] + args["b"]


@pytest.fixture
def server() -> MCPServer:
    """An MCPServer with no capabilities and in-memory stdio streams."""
    return MCPServer(
        "test-server", "1.2.3", stdin=io.StringIO(""), stdout=io.StringIO()
    )


@pytest.fixture
def calculator(server: MCPServer) -> MCPServer:
    """A server with an "add" tool, a profile resource and a greeting prompt."""
    server.register_tool("add", "Add two numbers", {"a": "number", "b": "number"}, add_handler)
    server.register_resource(
        "user://{user_id}/profile",
        "User profile",
        lambda params: {"id": params["user_id"], "name": f"user-{params['user_id']}"},
        mime_type="application/json",
    )
    server.register_prompt(
        "greet",
        lambda args: f"Say hello to {args['name']}",
        description="Greeting",
        arguments=[{"name": "name", "required": True}],
    )
    return server
