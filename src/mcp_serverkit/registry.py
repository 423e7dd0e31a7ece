"""
Capability registry for the MCP server runtime.

This module provides CapabilityRegistry, which keeps three independent
mappings: tools by name, resources by URI template, and prompts by name.
Registering under an existing key replaces the previous entry.
"""

from __future__ import annotations

from mcp_serverkit.capabilities import Prompt, Resource, Tool
from mcp_serverkit.logging import get_logger

logger = get_logger(__name__)


class CapabilityRegistry:
    """
    Registry of tools, resources and prompts.

    A registry is owned by one server; the dispatcher only reads from it.
    Listing methods return snapshots in registration order.

    Example:
        >>> registry = CapabilityRegistry()
        >>> registry.register_tool(Tool.create("add", "Adds", {"a": "number"}, add))
        >>> registry.get_tool("add").name
        'add'
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, Tool] = {}
        self._resources: dict[str, Resource] = {}
        self._prompts: dict[str, Prompt] = {}

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_tool(self, tool: Tool) -> None:
        """Register a tool, replacing any tool with the same name."""
        if tool.name in self._tools:
            logger.info("Replacing tool", extra={"tool": tool.name})
        self._tools[tool.name] = tool

    def register_resource(self, resource: Resource) -> None:
        """Register a resource, replacing any resource with the same URI template."""
        if resource.uri in self._resources:
            logger.info("Replacing resource", extra={"uri": resource.uri})
        self._resources[resource.uri] = resource

    def register_prompt(self, prompt: Prompt) -> None:
        """Register a prompt, replacing any prompt with the same name."""
        if prompt.name in self._prompts:
            logger.info("Replacing prompt", extra={"prompt": prompt.name})
        self._prompts[prompt.name] = prompt

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_prompt(self, name: str) -> Prompt | None:
        return self._prompts.get(name)

    def get_resource(self, uri: str) -> Resource | None:
        """Get a resource by its registered URI or template string."""
        return self._resources.get(uri)

    def find_resource(self, uri: str) -> tuple[Resource, dict[str, str]] | None:
        """
        Find the resource serving a concrete URI.

        A resource registered under exactly ``uri`` wins; otherwise templates
        are tried in registration order and the first match is returned.

        Args:
            uri: Concrete resource URI from a ``resources/read`` call.

        Returns:
            Tuple of the resource and the extracted URI parameters, or None.
        """
        exact = self._resources.get(uri)
        if exact is not None and exact.template.is_static:
            return exact, {}
        for resource in self._resources.values():
            params = resource.template.match(uri)
            if params is not None:
                return resource, params
        return None

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def has_resource(self, uri: str) -> bool:
        return uri in self._resources

    def has_prompt(self, name: str) -> bool:
        return name in self._prompts

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def list_resources(self) -> list[Resource]:
        return list(self._resources.values())

    def list_prompts(self) -> list[Prompt]:
        return list(self._prompts.values())

    def __len__(self) -> int:
        """Return the total number of registered capabilities."""
        return len(self._tools) + len(self._resources) + len(self._prompts)
