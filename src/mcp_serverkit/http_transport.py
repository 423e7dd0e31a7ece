"""
HTTP transport for the MCP server runtime.

One JSON-RPC message per POST body, served by FastAPI and uvicorn:
- Malformed JSON is answered with HTTP 400 and a parse error
- Notifications are accepted with HTTP 202 and an empty body
- Everything else is answered with HTTP 200 and the response object

Each dispatch is bounded by a timeout. A dispatch that overruns is answered
with an internal error but keeps running to completion in the background.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response

from mcp_serverkit.logging import get_logger
from mcp_serverkit.protocol import (
    PARSE_ERROR,
    JSONRPCError,
    JSONRPCErrorResponse,
    JSONRPCNotification,
    JSONRPCResponse,
    create_internal_error,
    format_error_response,
    parse_message,
)

if TYPE_CHECKING:
    from mcp_serverkit.config import HttpConfig
    from mcp_serverkit.server import MCPServer

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


def _json_response(
    response: JSONRPCResponse | JSONRPCErrorResponse, status_code: int = 200
) -> Response:
    # Encoded like stdio: non-JSON values in handler results become strings
    return Response(
        content=response.to_json(),
        status_code=status_code,
        media_type="application/json",
    )


def create_http_app(
    server: MCPServer,
    *,
    path: str = "/mcp",
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> FastAPI:
    """
    Build a FastAPI application serving ``server`` at ``path``.

    Args:
        server: The MCPServer to dispatch to.
        path: Endpoint path accepting JSON-RPC POSTs.
        timeout_seconds: Seconds to wait for a dispatch before answering
            with "Internal error: timeout".

    Returns:
        FastAPI application.

    Example:
        >>> app = create_http_app(server, timeout_seconds=2.0)
        >>> uvicorn.run(app, port=8000)
    """
    app = FastAPI(title=server.name, version=server.version)
    # Dispatches that outlived their request
    pending: set[asyncio.Task[Any]] = set()

    @app.post(path)
    async def handle_rpc(request: Request) -> Response:
        body = await request.body()
        try:
            message = parse_message(body)
        except JSONRPCError as e:
            status_code = 400 if e.code == PARSE_ERROR else 200
            return _json_response(
                format_error_response(e.request_id, e), status_code=status_code
            )

        task = asyncio.ensure_future(server.dispatch(message))
        pending.add(task)
        task.add_done_callback(pending.discard)

        try:
            response = await asyncio.wait_for(asyncio.shield(task), timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Request timed out",
                extra={
                    "method": getattr(message, "method", None),
                    "timeout_seconds": timeout_seconds,
                },
            )
            if isinstance(message, JSONRPCNotification):
                return Response(status_code=202)
            error = create_internal_error("Internal error: timeout")
            return _json_response(format_error_response(message.id, error))

        if response is None:
            return Response(status_code=202)
        return _json_response(response)

    app.state.mcp_server = server
    app.state.pending_dispatches = pending
    return app


async def run_http(server: MCPServer, config: HttpConfig) -> None:
    """
    Serve ``server`` over HTTP with uvicorn until interrupted.

    Args:
        server: The MCPServer to serve.
        config: HTTP settings (listen address, path and timeout).
    """
    app = create_http_app(
        server,
        path=config.path,
        timeout_seconds=config.request_timeout_seconds,
    )
    logger.info(
        "MCP Server starting",
        extra={
            "server": server.name,
            "transport": "http",
            "listen": config.listen,
            "path": config.path,
            "capabilities_count": len(server.registry),
        },
    )
    uvicorn_config = uvicorn.Config(
        app=app,
        host=config.host,
        port=config.port,
        log_level="warning",
        log_config=None,
    )
    try:
        await uvicorn.Server(uvicorn_config).serve()
    finally:
        logger.info("MCP Server stopped", extra={"server": server.name})
