"""
MCP Server implementation.

This module implements the MCPServer class, which owns the capability
registry, offers the registration API, and runs the dispatcher over stdio
(one JSON-RPC message per line on stdin, responses on stdout).

Example:
    >>> server = MCPServer("calculator", "1.0.0")
    >>> @server.tool(input_schema={"a": "number", "b": "number"})
    ... def add(args):
    ...     "Add two numbers"
    ...     return args["a"] + args["b"]
    >>> asyncio.run(server.run())
"""

from __future__ import annotations

import asyncio
import inspect
import sys
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TextIO

from mcp_serverkit.capabilities import Handler, Prompt, PromptArgument, Resource, Tool
from mcp_serverkit.dispatcher import Dispatcher, Response, ServerInfo
from mcp_serverkit.logging import get_logger
from mcp_serverkit.protocol import (
    JSONRPCError,
    Message,
    create_internal_error,
    format_error_response,
    parse_message,
    validate_message,
)
from mcp_serverkit.registry import CapabilityRegistry

logger = get_logger(__name__)


async def process_request(request_json: str, dispatcher: Dispatcher) -> str | None:
    """
    Process a single JSON-RPC message and return the serialized response.

    This function handles the complete message lifecycle:
    1. Parse and validate the JSON-RPC envelope
    2. Dispatch through the method table
    3. Serialize the response (success or error)

    Args:
        request_json: Raw JSON text containing one message.
        dispatcher: Dispatcher to route the message with.

    Returns:
        JSON string containing the response, or None when nothing is sent back.
    """
    try:
        message = parse_message(request_json)
    except JSONRPCError as e:
        return format_error_response(e.request_id, e).to_json()

    response = await dispatcher.dispatch(message)
    return response.to_json() if response is not None else None


def _describe(func: Callable[..., Any]) -> str | None:
    doc = inspect.getdoc(func)
    if not doc:
        return None
    return doc.strip().splitlines()[0]


class MCPServer:
    """
    MCP Server that communicates via JSON-RPC 2.0.

    The server owns a CapabilityRegistry and a Dispatcher. Messages are
    dispatched one at a time; registration may happen before or between
    dispatches.

    Example:
        >>> server = MCPServer("notes")
        >>> server.register_resource("note://{id}", "Note", read_note)
        >>> await server.run()

    Attributes:
        name: Server name reported by ``initialize``.
        version: Server version reported by ``initialize``.
        registry: CapabilityRegistry holding tools, resources and prompts.
        dispatcher: Dispatcher routing messages against the registry.
        running: Whether the stdio loop is currently running.
    """

    def __init__(
        self,
        name: str = "mcp-server",
        version: str = "0.1.0",
        *,
        registry: CapabilityRegistry | None = None,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        """
        Initialize the MCP Server.

        Args:
            name: Server name.
            version: Server version.
            registry: Optional CapabilityRegistry. A new one is created if not
                provided.
            stdin: Optional stdin stream. Uses sys.stdin if not provided.
            stdout: Optional stdout stream. Uses sys.stdout if not provided.
        """
        self.name = name
        self.version = version
        self.registry = registry if registry is not None else CapabilityRegistry()
        self.dispatcher = Dispatcher(
            self.registry,
            ServerInfo(name=name, version=version),
            on_notification_error=self._log_notification_error,
        )
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self._lock = asyncio.Lock()
        self.running = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_tool(
        self,
        name: str,
        description: str,
        input_schema: Mapping[Any, Any] | None,
        handler: Handler,
        *,
        enforce_constraints: bool = False,
    ) -> Tool:
        """
        Register a tool.

        Args:
            name: Tool name used in ``tools/call``.
            description: Human-readable description.
            input_schema: Short-form ``name -> type`` map or a long-form object
                schema.
            handler: Callable (sync or async) taking the arguments dict.
            enforce_constraints: Also enforce min/max/pattern constraints.

        Returns:
            The registered Tool.
        """
        tool = Tool.create(
            name,
            description,
            input_schema,
            handler,
            enforce_constraints=enforce_constraints,
        )
        self.registry.register_tool(tool)
        logger.debug("Registered tool", extra={"tool": name})
        return tool

    def register_resource(
        self,
        uri: str,
        name: str,
        handler: Handler,
        description: str | None = None,
        mime_type: str = "text/plain",
    ) -> Resource:
        """
        Register a resource under a URI or URI template.

        Args:
            uri: Static URI or template such as ``"file://{path}"``.
            name: Display name.
            handler: Callable (sync or async) taking the extracted params dict.
            description: Optional description.
            mime_type: MIME type reported with the contents.

        Returns:
            The registered Resource.

        Raises:
            ValueError: If the template repeats a parameter name.
        """
        resource = Resource(
            uri=uri,
            name=name,
            handler=handler,
            description=description,
            mime_type=mime_type,
        )
        self.registry.register_resource(resource)
        logger.debug("Registered resource", extra={"uri": uri})
        return resource

    def register_prompt(
        self,
        name: str,
        handler: Handler,
        description: str | None = None,
        arguments: Iterable[PromptArgument | Mapping[str, Any]] | None = None,
    ) -> Prompt:
        """
        Register a prompt template.

        Args:
            name: Prompt name used in ``prompts/get``.
            handler: Callable (sync or async) taking the arguments dict.
            description: Optional description.
            arguments: Declared arguments, as PromptArgument or dicts with
                name, description and required.

        Returns:
            The registered Prompt.
        """
        prompt = Prompt.create(name, handler, description, arguments)
        self.registry.register_prompt(prompt)
        logger.debug("Registered prompt", extra={"prompt": name})
        return prompt

    def tool(
        self,
        name: str | None = None,
        description: str | None = None,
        input_schema: Mapping[Any, Any] | None = None,
        *,
        enforce_constraints: bool = False,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator registering a function as a tool.

        The tool name defaults to the function name and the description to the
        first line of its docstring.

        Example:
            >>> @server.tool(input_schema={"text": "string"})
            ... async def echo(args):
            ...     "Echo the input"
            ...     return args["text"]
        """

        def decorator(func: Handler) -> Handler:
            self.register_tool(
                name or func.__name__,
                description or _describe(func) or "",
                input_schema,
                func,
                enforce_constraints=enforce_constraints,
            )
            return func

        return decorator

    def resource(
        self,
        uri: str,
        name: str | None = None,
        description: str | None = None,
        mime_type: str = "text/plain",
    ) -> Callable[[Handler], Handler]:
        """Decorator registering a function as a resource handler for ``uri``."""

        def decorator(func: Handler) -> Handler:
            self.register_resource(
                uri,
                name or func.__name__,
                func,
                description=description or _describe(func),
                mime_type=mime_type,
            )
            return func

        return decorator

    def prompt(
        self,
        name: str | None = None,
        description: str | None = None,
        arguments: Iterable[PromptArgument | Mapping[str, Any]] | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator registering a function as a prompt template."""

        def decorator(func: Handler) -> Handler:
            self.register_prompt(
                name or func.__name__,
                func,
                description=description or _describe(func),
                arguments=arguments,
            )
            return func

        return decorator

    # -------------------------------------------------------------------------
    # Message handling
    # -------------------------------------------------------------------------

    async def handle_message(self, message: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Handle an already-decoded JSON-RPC message.

        Args:
            message: Decoded JSON object.

        Returns:
            The response as a dict, or None when nothing is sent back.
        """
        try:
            validated = validate_message(message)
        except JSONRPCError as e:
            return format_error_response(e.request_id, e).to_dict()

        response = await self.dispatch(validated)
        return response.to_dict() if response is not None else None

    async def handle_request(self, request_json: str) -> str | None:
        """
        Handle a single JSON-RPC message in text form.

        Args:
            request_json: Raw JSON text containing the message.

        Returns:
            JSON string containing the response, or None when nothing is sent back.
        """
        async with self._lock:
            return await process_request(request_json, self.dispatcher)

    async def dispatch(self, message: Message) -> Response | None:
        """Dispatch a validated message, one at a time across all transports."""
        async with self._lock:
            return await self.dispatcher.dispatch(message)

    def _log_notification_error(self, method: str, error: JSONRPCError) -> None:
        logger.warning(
            "Error processing notification",
            extra={"method": method, "code": error.code, "error": error.message},
        )

    # -------------------------------------------------------------------------
    # stdio transport
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """
        Run the server, reading from stdin and writing to stdout.

        The server runs until stdin is closed or stop() is called.
        Each non-blank line from stdin is treated as one JSON-RPC message.
        """
        self.running = True
        logger.info(
            "MCP Server starting",
            extra={
                "server": self.name,
                "transport": "stdio",
                "capabilities_count": len(self.registry),
            },
        )

        try:
            while self.running:
                line = await asyncio.to_thread(self._stdin.readline)
                if not line:
                    # EOF reached
                    break

                request_json = line.strip()
                if not request_json:
                    continue

                try:
                    response = await self.handle_request(request_json)
                except Exception as e:
                    logger.exception(
                        "Error in server loop",
                        extra={"error": str(e)},
                    )
                    error_response = format_error_response(
                        None, create_internal_error(str(e))
                    )
                    self._write_response(error_response.to_json())
                    continue

                if response:
                    self._write_response(response)

        finally:
            self.running = False
            logger.info("MCP Server stopped", extra={"server": self.name})

    def stop(self) -> None:
        """Stop the server after the message currently being read."""
        self.running = False

    def _write_response(self, response_json: str) -> None:
        """Write a response line to stdout."""
        self._stdout.write(response_json + "\n")
        self._stdout.flush()


def create_server(
    name: str = "mcp-server",
    version: str = "0.1.0",
    registry: CapabilityRegistry | None = None,
) -> MCPServer:
    """
    Create an MCP Server instance.

    Args:
        name: Server name.
        version: Server version.
        registry: Optional pre-populated registry.

    Returns:
        MCPServer instance.
    """
    return MCPServer(name, version, registry=registry)
