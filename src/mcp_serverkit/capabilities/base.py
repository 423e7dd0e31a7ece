"""
Handler invocation shared by tools, resources and prompts.

User handlers are plain callables or coroutine functions receiving a single
mapping (tool arguments, resource URI parameters or prompt arguments).
``invoke_handler`` is the call boundary: whatever the handler does, the caller
gets a ``HandlerOutcome`` back instead of an exception.
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel

from mcp_serverkit.errors import CapabilityError, HandlerError

# A handler receives a mapping and returns a value, or an awaitable of one
Handler = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class HandlerOutcome:
    """
    Result of a guarded handler call.

    Exactly one of ``value`` and ``error`` is meaningful: ``error`` is None on
    success.
    """

    value: Any = None
    error: CapabilityError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value, raising the captured error on failure."""
        if self.error is not None:
            raise self.error
        return self.value


async def invoke_handler(handler: Handler, payload: dict[str, Any]) -> HandlerOutcome:
    """
    Call ``handler`` with ``payload`` and capture its result or failure.

    CapabilityErrors raised by the handler are kept as-is; any other exception
    becomes a HandlerError. Awaitable results are awaited.
    """
    try:
        result = handler(payload)
        if inspect.isawaitable(result):
            result = await result
    except CapabilityError as e:
        return HandlerOutcome(error=e)
    except Exception as e:
        return HandlerOutcome(error=HandlerError.from_exception(e))
    return HandlerOutcome(value=result)


def to_plain(value: Any) -> Any:
    """Convert pydantic models to plain JSON-compatible data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, tuple):
        return list(value)
    return value


def to_text(value: Any) -> str:
    """Render a handler result as text for a text content item."""
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (dict, list, int, float, bool)):
        return json.dumps(value, default=str)
    return str(value)
