"""
Tests for the capability registry.

This test module validates:
- Registration and lookup of tools, resources and prompts
- Last-write-wins replacement
- Resource resolution by exact URI and by template
- Listing order and counts
"""

from __future__ import annotations

import logging

import pytest

from mcp_serverkit.capabilities import Prompt, Resource, Tool
from mcp_serverkit.registry import CapabilityRegistry


def make_tool(name: str, description: str = "A tool") -> Tool:
    return Tool.create(name, description, None, lambda _args: name)


@pytest.fixture
def registry() -> CapabilityRegistry:
    return CapabilityRegistry()


class TestRegistration:
    """Tests for registering capabilities."""

    def test_empty(self, registry: CapabilityRegistry) -> None:
        """Test a fresh registry."""
        assert len(registry) == 0
        assert registry.list_tools() == []
        assert registry.get_tool("add") is None

    def test_register_tool(self, registry: CapabilityRegistry) -> None:
        """Test tool registration and lookup."""
        tool = make_tool("add")
        registry.register_tool(tool)

        assert registry.get_tool("add") is tool
        assert registry.has_tool("add")
        assert not registry.has_tool("sub")

    def test_replacement(
        self,
        registry: CapabilityRegistry,
        caplog: pytest.LogCaptureFixture,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that re-registering a name replaces the entry."""
        registry.register_tool(make_tool("add", "first"))
        monkeypatch.setattr(logging.getLogger("mcp_serverkit"), "propagate", True)
        with caplog.at_level(logging.INFO, logger="mcp_serverkit"):
            registry.register_tool(make_tool("add", "second"))

        assert registry.get_tool("add").description == "second"
        assert len(registry.list_tools()) == 1
        assert "Replacing tool" in caplog.text

    def test_register_prompt(self, registry: CapabilityRegistry) -> None:
        """Test prompt registration."""
        prompt = Prompt.create("greet", lambda args: "hi")
        registry.register_prompt(prompt)

        assert registry.get_prompt("greet") is prompt
        assert registry.has_prompt("greet")

    def test_len_counts_everything(self, registry: CapabilityRegistry) -> None:
        """Test the total count."""
        registry.register_tool(make_tool("a"))
        registry.register_resource(Resource("config://app", "Config", lambda p: ""))
        registry.register_prompt(Prompt.create("p", lambda args: ""))

        assert len(registry) == 3


class TestFindResource:
    """Tests for resource resolution."""

    def test_template_match(self, registry: CapabilityRegistry) -> None:
        """Test resolution through a template."""
        resource = Resource("user://{user_id}/profile", "Profile", lambda p: p)
        registry.register_resource(resource)

        assert registry.find_resource("user://42/profile") == (
            resource,
            {"user_id": "42"},
        )
        assert registry.get_resource("user://{user_id}/profile") is resource
        assert registry.has_resource("user://{user_id}/profile")

    def test_no_match(self, registry: CapabilityRegistry) -> None:
        """Test that an unmatched URI gives None."""
        registry.register_resource(
            Resource("user://{user_id}/profile", "Profile", lambda p: p)
        )

        assert registry.find_resource("order://99") is None

    def test_exact_uri_wins(self, registry: CapabilityRegistry) -> None:
        """Test that a static URI beats an earlier matching template."""
        template = Resource("user://{user_id}", "Any user", lambda p: p)
        static = Resource("user://me", "Current user", lambda p: p)
        registry.register_resource(template)
        registry.register_resource(static)

        assert registry.find_resource("user://me") == (static, {})
        assert registry.find_resource("user://7") == (template, {"user_id": "7"})

    def test_first_template_in_registration_order(
        self, registry: CapabilityRegistry
    ) -> None:
        """Test that overlapping templates resolve to the earliest."""
        first = Resource("doc://{a}", "First", lambda p: p)
        second = Resource("doc://{b}", "Second", lambda p: p)
        registry.register_resource(first)
        registry.register_resource(second)

        found = registry.find_resource("doc://x")

        assert found is not None
        assert found[0] is first


class TestListing:
    """Tests for listing snapshots."""

    def test_insertion_order(self, registry: CapabilityRegistry) -> None:
        """Test that lists follow registration order."""
        for name in ("c", "a", "b"):
            registry.register_tool(make_tool(name))

        assert [tool.name for tool in registry.list_tools()] == ["c", "a", "b"]

    def test_snapshot(self, registry: CapabilityRegistry) -> None:
        """Test that returned lists are detached from the registry."""
        registry.register_tool(make_tool("a"))
        tools = registry.list_tools()
        tools.clear()

        assert len(registry.list_tools()) == 1
