"""
Resource capability.

Resources are addressed by URI. A resource registered under a template such as
``user://{user_id}/profile`` serves every URI matching it; the handler receives
the extracted parameters.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from mcp_serverkit.capabilities.base import Handler, invoke_handler, to_plain, to_text
from mcp_serverkit.uri_template import UriTemplate, match_uri

DEFAULT_MIME_TYPE = "text/plain"


@dataclass
class Resource:
    """
    A registered resource.

    Attributes:
        uri: URI or URI template (registry key).
        name: Human-readable name.
        handler: Callable receiving the URI parameter mapping.
        description: Optional description.
        mime_type: MIME type reported for the content.
        template: The compiled ``uri`` template.
    """

    uri: str
    name: str
    handler: Handler = field(repr=False)
    description: str | None = None
    mime_type: str = DEFAULT_MIME_TYPE
    template: UriTemplate = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not callable(self.handler):
            raise TypeError(f"Handler for resource '{self.uri}' must be callable")
        self.template = UriTemplate(self.uri)

    def to_list_format(self) -> dict[str, Any]:
        """Render the resource for a ``resources/list`` result."""
        entry: dict[str, Any] = {
            "uri": self.uri,
            "name": self.name,
            "mimeType": self.mime_type,
        }
        if self.description is not None:
            entry["description"] = self.description
        return entry


def format_resource_contents(uri: str, content: Any, mime_type: str) -> dict[str, Any]:
    """
    Shape a handler return value into an MCP resource read result.

    - str: a text entry for ``uri``
    - bytes: a base64 ``blob`` entry
    - mapping with "contents": returned unchanged
    - other mapping or list: serialized to JSON text
    - anything else: text
    """
    content = to_plain(content)
    if isinstance(content, Mapping) and "contents" in content:
        return dict(content)
    entry: dict[str, Any] = {"uri": uri, "mimeType": mime_type}
    if isinstance(content, (bytes, bytearray)):
        entry["blob"] = base64.b64encode(bytes(content)).decode("ascii")
    elif isinstance(content, (Mapping, list)):
        entry["text"] = json.dumps(content, default=str)
    else:
        entry["text"] = to_text(content)
    return {"contents": [entry]}


async def read_resource(resource: Resource, uri: str) -> dict[str, Any]:
    """
    Match ``uri`` against the resource template and run the handler.

    Raises:
        UriNotMatchedError: The URI does not match the template.
        CapabilityError: The handler failed (HandlerError) or raised one itself.
    """
    params = match_uri(resource.template, uri)
    outcome = await invoke_handler(resource.handler, params)
    return format_resource_contents(uri, outcome.unwrap(), resource.mime_type)
