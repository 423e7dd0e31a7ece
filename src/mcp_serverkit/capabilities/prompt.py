"""
Prompt capability.

Prompts are reusable templates producing messages for the model. Required
arguments are checked before the handler is called.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from mcp_serverkit.capabilities.base import Handler, invoke_handler, to_plain, to_text
from mcp_serverkit.errors import InvalidArgumentsError, MissingRequiredArgumentsError
from mcp_serverkit.schema import has_key

DEFAULT_PROMPT_DESCRIPTION = "Generated prompt"


@dataclass(frozen=True)
class PromptArgument:
    """A declared prompt argument."""

    name: str
    description: str | None = None
    required: bool = False

    @classmethod
    def coerce(cls, value: PromptArgument | Mapping[str, Any]) -> PromptArgument:
        """Accept either a PromptArgument or a ``{name, description?, required?}`` dict."""
        if isinstance(value, PromptArgument):
            return value
        return cls(
            name=value["name"],
            description=value.get("description"),
            required=bool(value.get("required", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"name": self.name, "required": self.required}
        if self.description is not None:
            entry["description"] = self.description
        return entry


@dataclass
class Prompt:
    """
    A registered prompt.

    Attributes:
        name: Unique prompt name (registry key).
        handler: Callable receiving the argument mapping.
        description: Optional description.
        arguments: Declared arguments, in order.
    """

    name: str
    handler: Handler = field(repr=False)
    description: str | None = None
    arguments: list[PromptArgument] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not callable(self.handler):
            raise TypeError(f"Handler for prompt '{self.name}' must be callable")
        self.arguments = [PromptArgument.coerce(arg) for arg in self.arguments]

    @classmethod
    def create(
        cls,
        name: str,
        handler: Handler,
        description: str | None = None,
        arguments: Iterable[PromptArgument | Mapping[str, Any]] | None = None,
    ) -> Prompt:
        return cls(
            name=name,
            handler=handler,
            description=description,
            arguments=list(arguments or []),
        )

    @property
    def required_arguments(self) -> list[str]:
        return [arg.name for arg in self.arguments if arg.required]

    def to_list_format(self) -> dict[str, Any]:
        """Render the prompt for a ``prompts/list`` result."""
        entry: dict[str, Any] = {
            "name": self.name,
            "arguments": [arg.to_dict() for arg in self.arguments],
        }
        if self.description is not None:
            entry["description"] = self.description
        return entry


def _text_messages(text: str, description: str | None) -> dict[str, Any]:
    return {
        "description": description or DEFAULT_PROMPT_DESCRIPTION,
        "messages": [
            {"role": "user", "content": {"type": "text", "text": text}},
        ],
    }


def format_prompt_result(result: Any, description: str | None) -> dict[str, Any]:
    """
    Shape a handler return value into an MCP prompt result.

    - str: a single user text message
    - list: an already-formed message list
    - mapping with "messages": returned unchanged
    - other mapping: a single user message with the JSON text
    - anything else: a single user text message
    """
    result = to_plain(result)
    if isinstance(result, str):
        return _text_messages(result, description)
    if isinstance(result, list):
        return {
            "description": description or DEFAULT_PROMPT_DESCRIPTION,
            "messages": result,
        }
    if isinstance(result, Mapping):
        if "messages" in result:
            return dict(result)
        return _text_messages(json.dumps(result, default=str), None)
    return _text_messages(to_text(result), description)


async def render_prompt(prompt: Prompt, arguments: Any) -> dict[str, Any]:
    """
    Check required arguments and run the prompt's handler.

    Raises:
        InvalidArgumentsError: ``arguments`` is not an object.
        MissingRequiredArgumentsError: A required argument is absent.
        CapabilityError: The handler failed (HandlerError) or raised one itself.
    """
    if not isinstance(arguments, Mapping):
        raise InvalidArgumentsError(
            "Prompt arguments must be an object",
            details={"prompt": prompt.name, "actual": type(arguments).__name__},
        )
    missing = [
        name for name in prompt.required_arguments if not has_key(arguments, name)
    ]
    if missing:
        raise MissingRequiredArgumentsError(missing)
    outcome = await invoke_handler(prompt.handler, dict(arguments))
    return format_prompt_result(outcome.unwrap(), prompt.description)
