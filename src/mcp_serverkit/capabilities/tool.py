"""
Tool capability.

Tools are functions the client can call with an argument object. Arguments are
validated against the tool's input schema before the handler runs, and the
handler's return value is shaped into an MCP tool result.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from mcp_serverkit.capabilities.base import Handler, invoke_handler, to_plain, to_text
from mcp_serverkit.errors import InvalidArgumentsError
from mcp_serverkit.schema import is_object_schema, to_json_schema, validate


@dataclass
class Tool:
    """
    A registered tool.

    Attributes:
        name: Unique tool name (registry key).
        description: Human-readable description.
        input_schema: Object schema for the call arguments.
        handler: Callable receiving the validated argument mapping.
        enforce_constraints: Enforce schema constraints, not just types.
    """

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: Handler = field(repr=False)
    enforce_constraints: bool = False

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        input_schema: Mapping[Any, Any] | None,
        handler: Handler,
        *,
        enforce_constraints: bool = False,
    ) -> Tool:
        """
        Build a tool from either schema form.

        A long-form object schema (``{"type": "object", ...}``) is used as-is
        and only its ``required`` names are required. Any other mapping is a
        short-form ``name -> type`` map in which every field is required.

        Example:
            >>> tool = Tool.create("add", "Adds", {"a": "number", "b": "number"}, add)
            >>> tool.input_schema["required"]
            ['a', 'b']
        """
        if not callable(handler):
            raise TypeError(f"Handler for tool '{name}' must be callable")
        if input_schema is None:
            schema: dict[str, Any] = {"type": "object", "properties": {}}
        elif is_object_schema(input_schema):
            schema = dict(input_schema)
        else:
            schema = to_json_schema(input_schema)
        return cls(
            name=name,
            description=description,
            input_schema=schema,
            handler=handler,
            enforce_constraints=enforce_constraints,
        )

    def to_list_format(self) -> dict[str, Any]:
        """Render the tool for a ``tools/list`` result."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
        }


def format_tool_result(result: Any) -> dict[str, Any]:
    """
    Shape a handler return value into an MCP tool result.

    - str: a single text content item
    - mapping with "content": returned unchanged
    - other mapping or list: JSON text content plus ``structuredContent``
    - anything else: text content
    """
    result = to_plain(result)
    if isinstance(result, str):
        return {"content": [{"type": "text", "text": result}]}
    if isinstance(result, Mapping):
        if "content" in result:
            return dict(result)
        return {
            "content": [{"type": "text", "text": json.dumps(result, default=str)}],
            "structuredContent": dict(result),
        }
    if isinstance(result, list):
        return {
            "content": [{"type": "text", "text": json.dumps(result, default=str)}],
            "structuredContent": result,
        }
    return {"content": [{"type": "text", "text": to_text(result)}]}


async def execute_tool(tool: Tool, arguments: Any) -> dict[str, Any]:
    """
    Validate ``arguments`` and run the tool's handler.

    Raises:
        InvalidArgumentsError: ``arguments`` is not an object.
        SchemaValidationError: The arguments do not satisfy the input schema.
        CapabilityError: The handler failed (HandlerError) or raised one itself.
    """
    if not isinstance(arguments, Mapping):
        raise InvalidArgumentsError(
            "Tool arguments must be an object",
            details={"tool": tool.name, "actual": type(arguments).__name__},
        )
    validate(arguments, tool.input_schema, enforce_constraints=tool.enforce_constraints)
    outcome = await invoke_handler(tool.handler, dict(arguments))
    return format_tool_result(outcome.unwrap())
