"""
Method routing for the MCP server runtime.

The Dispatcher takes a validated message, routes it through the fixed method
table to the registry and the capability executors, and returns the response
to send back (or None when nothing is to be sent).

Every outcome is converted here: CapabilityErrors are mapped to JSON-RPC
errors, and any other exception becomes an internal error. Nothing raised
while routing escapes ``dispatch``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from mcp_serverkit.capabilities import execute_tool, read_resource, render_prompt
from mcp_serverkit.errors import CapabilityError, NotFoundError
from mcp_serverkit.protocol import (
    NOTIFICATION_PREFIX,
    PROTOCOL_VERSION,
    JSONRPCError,
    JSONRPCErrorResponse,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    Message,
    Method,
    capability_error_to_jsonrpc_error,
    create_internal_error,
    create_invalid_params_error,
    create_method_not_found_error,
    format_error_response,
    format_success_response,
)
from mcp_serverkit.registry import CapabilityRegistry

NotificationErrorHook = Callable[[str, JSONRPCError], None]
Response = JSONRPCResponse | JSONRPCErrorResponse


@dataclass(frozen=True)
class ServerInfo:
    """Name and version reported by ``initialize``."""

    name: str = "mcp-server"
    version: str = "0.1.0"


class Dispatcher:
    """
    Routes messages to capabilities and shapes the responses.

    The dispatcher keeps no state between messages; it reads the registry on
    every dispatch and never mutates it.

    Attributes:
        registry: Registry consulted for tools, resources and prompts.
        server_info: Name and version reported by ``initialize``.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        server_info: ServerInfo | None = None,
        on_notification_error: NotificationErrorHook | None = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            registry: Registry to route against.
            server_info: Name and version reported by ``initialize``.
            on_notification_error: Called with the method and error when a
                notification fails, since no response can carry the failure.
        """
        self.registry = registry
        self.server_info = server_info or ServerInfo()
        self._on_notification_error = on_notification_error
        self._routes: dict[
            Method, Callable[[Any], Awaitable[dict[str, Any]]]
        ] = {
            Method.INITIALIZE: self._initialize,
            Method.TOOLS_LIST: self._list_tools,
            Method.TOOLS_CALL: self._call_tool,
            Method.RESOURCES_LIST: self._list_resources,
            Method.RESOURCES_READ: self._read_resource,
            Method.PROMPTS_LIST: self._list_prompts,
            Method.PROMPTS_GET: self._get_prompt,
        }

    async def dispatch(self, message: Message) -> Response | None:
        """
        Process one validated message.

        Returns:
            The response for a request, or None for notifications and for
            inbound responses.
        """
        if isinstance(message, JSONRPCNotification):
            await self._notify(message)
            return None
        if isinstance(message, JSONRPCRequest):
            return await self._handle_request(message)
        # Responses from the peer need no answer
        return None

    async def _handle_request(self, request: JSONRPCRequest) -> Response | None:
        if request.method.startswith(NOTIFICATION_PREFIX):
            # notifications/* are never answered, even when an id was sent
            return None
        try:
            result = await self._route(request.method, request.route, request.params)
        except JSONRPCError as e:
            return format_error_response(request.id, e)
        except Exception as e:
            return format_error_response(
                request.id,
                create_internal_error(
                    f"Internal error: {type(e).__name__}: {e}",
                    details={"exception_type": type(e).__name__},
                ),
            )
        return format_success_response(request.id, result)

    async def _notify(self, notification: JSONRPCNotification) -> None:
        if notification.method.startswith(NOTIFICATION_PREFIX):
            return
        try:
            await self._route(
                notification.method, notification.route, notification.params
            )
        except JSONRPCError as e:
            self._report_notification_error(notification.method, e)
        except Exception as e:
            self._report_notification_error(
                notification.method, create_internal_error(str(e))
            )

    def _report_notification_error(self, method: str, error: JSONRPCError) -> None:
        if self._on_notification_error is not None:
            self._on_notification_error(method, error)

    async def _route(
        self, method: str, route: Method | None, params: Any
    ) -> dict[str, Any]:
        handler = self._routes.get(route) if route is not None else None
        if handler is None:
            raise create_method_not_found_error(method)
        return await handler(params)

    # -------------------------------------------------------------------------
    # Method handlers
    # -------------------------------------------------------------------------

    async def _initialize(self, _params: Any) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}, "resources": {}, "prompts": {}},
            "serverInfo": {
                "name": self.server_info.name,
                "version": self.server_info.version,
            },
        }

    async def _list_tools(self, _params: Any) -> dict[str, Any]:
        return {
            "tools": [tool.to_list_format() for tool in self.registry.list_tools()]
        }

    async def _list_resources(self, _params: Any) -> dict[str, Any]:
        return {
            "resources": [
                resource.to_list_format()
                for resource in self.registry.list_resources()
            ]
        }

    async def _list_prompts(self, _params: Any) -> dict[str, Any]:
        return {
            "prompts": [
                prompt.to_list_format() for prompt in self.registry.list_prompts()
            ]
        }

    async def _call_tool(self, params: Any) -> dict[str, Any]:
        name = _require_string(params, "name")
        arguments = _optional_arguments(params)
        tool = self.registry.get_tool(name)
        if tool is None:
            raise capability_error_to_jsonrpc_error(
                NotFoundError(f"Tool not found: {name}", details={"name": name})
            )
        try:
            return await execute_tool(tool, arguments)
        except CapabilityError as e:
            raise capability_error_to_jsonrpc_error(e, "Tool execution failed") from e

    async def _read_resource(self, params: Any) -> dict[str, Any]:
        uri = _require_string(params, "uri")
        found = self.registry.find_resource(uri)
        if found is None:
            raise capability_error_to_jsonrpc_error(
                CapabilityError(
                    kind="uri_not_matched",
                    message=f"Resource not found: {uri}",
                    details={"uri": uri},
                )
            )
        resource, _params = found
        try:
            return await read_resource(resource, uri)
        except CapabilityError as e:
            raise capability_error_to_jsonrpc_error(e, "Resource read failed") from e

    async def _get_prompt(self, params: Any) -> dict[str, Any]:
        name = _require_string(params, "name")
        arguments = _optional_arguments(params)
        prompt = self.registry.get_prompt(name)
        if prompt is None:
            raise capability_error_to_jsonrpc_error(
                NotFoundError(f"Prompt not found: {name}", details={"name": name})
            )
        try:
            return await render_prompt(prompt, arguments)
        except CapabilityError as e:
            raise capability_error_to_jsonrpc_error(
                e, "Prompt execution failed"
            ) from e


def _require_string(params: Any, key: str) -> str:
    if not isinstance(params, Mapping):
        raise create_invalid_params_error(
            "params must be an object", details={"expected": "object"}
        )
    value = params.get(key)
    if not isinstance(value, str):
        raise create_invalid_params_error(
            f"'{key}' is required and must be a string", details={"param": key}
        )
    return value


def _optional_arguments(params: Mapping[str, Any]) -> Mapping[str, Any]:
    arguments = params.get("arguments")
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise create_invalid_params_error(
            "'arguments' must be an object", details={"param": "arguments"}
        )
    return arguments
