"""
JSON-RPC 2.0 protocol handling for the MCP server runtime.

This module implements structural validation of JSON-RPC 2.0 envelopes and the
formatting of responses, following the MCP protocol (version 2024-11-05).

Features:
- Typed message forms: request, notification, response, error response
- Envelope validation with distinguishable rejection reasons
- The fixed MCP method table, resolved once per message
- CapabilityError to JSON-RPC error code mapping

Error Code Mapping:
- -32700: Parse error (malformed JSON)
- -32600: Invalid Request (not a JSON-RPC 2.0 envelope)
- -32601: Method not found (unknown method, capability or resource URI)
- -32602: Invalid params (bad call parameters, schema or argument failures)
- -32603: Internal error (handler failures, unexpected errors)
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from mcp_serverkit.errors import CapabilityError

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

# =============================================================================
# JSON-RPC Error Codes
# =============================================================================

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

ERROR_CODES: dict[str, int] = {
    "parse_error": PARSE_ERROR,
    "invalid_request": INVALID_REQUEST,
    "method_not_found": METHOD_NOT_FOUND,
    "invalid_params": INVALID_PARAMS,
    "internal_error": INTERNAL_ERROR,
}

# CapabilityError.kind -> JSON-RPC code
ERROR_KIND_MAP: dict[str, int] = {
    "invalid_arguments": INVALID_PARAMS,
    "type_mismatch": INVALID_PARAMS,
    "missing_required_fields": INVALID_PARAMS,
    "missing_required_arguments": INVALID_PARAMS,
    "constraint_violation": INVALID_PARAMS,
    "not_found": METHOD_NOT_FOUND,
    "uri_not_matched": METHOD_NOT_FOUND,
    "handler_failed": INTERNAL_ERROR,
    "internal": INTERNAL_ERROR,
}


def error_code(name: str) -> int:
    """
    Return the JSON-RPC code for a standard error name.

    Args:
        name: One of parse_error, invalid_request, method_not_found,
            invalid_params, internal_error.

    Raises:
        KeyError: If the name is not a standard error name.
    """
    return ERROR_CODES[name]


# =============================================================================
# Method Table
# =============================================================================


class Method(str, Enum):
    """Methods routed by the dispatcher."""

    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"

    @classmethod
    def from_wire(cls, method: str) -> Method | None:
        """Resolve a wire method name, returning None for unknown names."""
        try:
            return cls(method)
        except ValueError:
            return None


NOTIFICATION_PREFIX = "notifications/"


# =============================================================================
# Data Classes
# =============================================================================


class JSONRPCError(Exception):
    """
    Represents a JSON-RPC 2.0 error object.

    This class is both an Exception (so it can be raised) and a data container
    for JSON-RPC error information.

    Attributes:
        code: Integer error code (per JSON-RPC 2.0 spec).
        message: Human-readable error message.
        data: Optional structured error data.
        request_id: Id of the offending message when it could be read, so the
            error response can echo it.
    """

    def __init__(
        self,
        code: int,
        message: str,
        data: dict[str, Any] | None = None,
        request_id: str | int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data
        self.request_id = request_id

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for JSON serialization.

        Returns:
            Dictionary with code, message, and optionally data.
        """
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            result["data"] = self.data
        return result

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"JSONRPCError(code={self.code}, "
            f"message={self.message!r}, "
            f"data={self.data!r})"
        )


class MessageValidationError(JSONRPCError):
    """
    Raised when a decoded value is not a valid JSON-RPC 2.0 message.

    Attributes:
        reason: One of "invalid_message", "invalid_jsonrpc_version",
            "invalid_message_type".
    """

    def __init__(
        self, reason: str, message: str, request_id: str | int | None = None
    ) -> None:
        super().__init__(
            code=INVALID_REQUEST,
            message=f"Invalid message: {message}",
            data={"reason": reason},
            request_id=request_id,
        )
        self.reason = reason


@dataclass
class JSONRPCRequest:
    """
    A JSON-RPC 2.0 request expecting a response.

    Attributes:
        id: Request identifier (string or number).
        method: The method to invoke.
        params: Parameters for the method (object, array, or None).
        route: The routed Method, or None when the method is not in the table.
    """

    id: str | int
    method: str
    params: Any = None
    route: Method | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.route = Method.from_wire(self.method)

    @property
    def is_notification(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "id": self.id,
            "method": self.method,
        }
        if self.params is not None:
            data["params"] = self.params
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass
class JSONRPCNotification:
    """
    A JSON-RPC 2.0 request without an id; no response is produced for it.

    Attributes:
        method: The method to invoke.
        params: Parameters for the method (object, array, or None).
        route: The routed Method, or None when the method is not in the table.
    """

    method: str
    params: Any = None
    route: Method | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.route = Method.from_wire(self.method)

    @property
    def id(self) -> None:
        return None

    @property
    def is_notification(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "jsonrpc": JSONRPC_VERSION,
            "method": self.method,
        }
        if self.params is not None:
            data["params"] = self.params
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass
class JSONRPCResponse:
    """
    A JSON-RPC 2.0 success response.

    Attributes:
        id: Request identifier (matches request).
        result: Success result.
    """

    id: str | int | None
    result: Any

    @property
    def is_error(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the response to a dictionary for JSON serialization.

        Returns:
            Dictionary with jsonrpc, id, and result.
        """
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": self.id,
            "result": self.result,
        }

    def to_json(self) -> str:
        """Serialize the response to a compact JSON string."""
        return json.dumps(self.to_dict(), separators=(",", ":"), default=str)


@dataclass
class JSONRPCErrorResponse:
    """
    A JSON-RPC 2.0 error response.

    Attributes:
        id: Request identifier (null when it could not be determined).
        error: Error object describing the failure.
    """

    id: str | int | None
    error: JSONRPCError

    @property
    def is_error(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the response to a dictionary for JSON serialization.

        Returns:
            Dictionary with jsonrpc, id, and error.
        """
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": self.id,
            "error": self.error.to_dict(),
        }

    def to_json(self) -> str:
        """Serialize the response to a compact JSON string."""
        return json.dumps(self.to_dict(), separators=(",", ":"), default=str)


Message = Union[
    JSONRPCRequest, JSONRPCNotification, JSONRPCResponse, JSONRPCErrorResponse
]


# =============================================================================
# Message Validation
# =============================================================================


def validate_message(raw: Any) -> Message:
    """
    Validate a decoded value as a JSON-RPC 2.0 message.

    Only the envelope is checked; ``method`` and ``params`` are not interpreted
    beyond their JSON types.

    Args:
        raw: A decoded JSON value.

    Returns:
        The typed message.

    Raises:
        MessageValidationError: If the value is not a mapping, does not carry
            ``jsonrpc: "2.0"``, or is neither a request nor a response.
        JSONRPCError: If ``params`` is present but neither an object nor an array.

    Example:
        >>> msg = validate_message({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        >>> msg.route
        <Method.TOOLS_LIST: 'tools/list'>
    """
    if not isinstance(raw, Mapping):
        raise MessageValidationError(
            "invalid_message", "message must be a JSON object"
        )

    request_id = raw.get("id")
    detected_id = _readable_id(request_id)

    jsonrpc = raw.get("jsonrpc")
    if jsonrpc != JSONRPC_VERSION:
        raise MessageValidationError(
            "invalid_jsonrpc_version",
            f"jsonrpc must be '{JSONRPC_VERSION}', got {jsonrpc!r}",
            request_id=detected_id,
        )

    method = raw.get("method")

    if isinstance(method, str):
        params = raw.get("params")
        if params is not None and not isinstance(params, (Mapping, list)):
            raise JSONRPCError(
                code=INVALID_PARAMS,
                message="Invalid params: 'params' must be an object or array",
                request_id=detected_id,
            )
        if request_id is None:
            return JSONRPCNotification(method=method, params=params)
        return JSONRPCRequest(id=request_id, method=method, params=params)

    if "result" in raw:
        return JSONRPCResponse(id=request_id, result=raw["result"])

    if "error" in raw:
        error = raw["error"]
        if isinstance(error, Mapping):
            rpc_error = JSONRPCError(
                code=error.get("code", INTERNAL_ERROR),
                message=str(error.get("message", "")),
                data=error.get("data"),
            )
        else:
            rpc_error = JSONRPCError(code=INTERNAL_ERROR, message=str(error))
        return JSONRPCErrorResponse(id=request_id, error=rpc_error)

    raise MessageValidationError(
        "invalid_message_type",
        "message must contain a string 'method', a 'result' or an 'error'",
        request_id=detected_id,
    )


def _readable_id(value: Any) -> str | int | None:
    # Only string and integer ids are echoed back on envelope errors
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    return value


def parse_message(text: str | bytes) -> Message:
    """
    Decode a JSON string and validate it as a JSON-RPC 2.0 message.

    Args:
        text: Raw JSON text.

    Returns:
        The typed message.

    Raises:
        JSONRPCError: With code -32700 when the text is not valid JSON, or any
            error raised by ``validate_message``.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise JSONRPCError(
            code=PARSE_ERROR,
            message=f"Parse error: Invalid JSON - {getattr(e, 'msg', e)}",
        ) from e
    return validate_message(data)


# =============================================================================
# Response Formatting
# =============================================================================


def format_success_response(
    request_id: str | int | None,
    result: Any,
) -> JSONRPCResponse:
    """
    Format a successful JSON-RPC 2.0 response.

    Example:
        >>> format_success_response(1, {"tools": []}).to_json()
        '{"jsonrpc":"2.0","id":1,"result":{"tools":[]}}'
    """
    return JSONRPCResponse(id=request_id, result=result)


def format_error_response(
    request_id: str | int | None,
    error: JSONRPCError,
) -> JSONRPCErrorResponse:
    """
    Format a JSON-RPC 2.0 error response.

    Example:
        >>> error = JSONRPCError(code=-32600, message="Invalid Request")
        >>> format_error_response("req-1", error).to_json()
        '{"jsonrpc":"2.0","id":"req-1","error":{"code":-32600,"message":"Invalid Request"}}'
    """
    return JSONRPCErrorResponse(id=request_id, error=error)


# =============================================================================
# CapabilityError to JSON-RPC Error Mapping
# =============================================================================


def capability_error_to_jsonrpc_error(
    error: CapabilityError, prefix: str | None = None
) -> JSONRPCError:
    """
    Convert a CapabilityError to a JSONRPCError.

    Args:
        error: The CapabilityError to convert.
        prefix: Optional text prepended to the message (e.g. the call site).

    Returns:
        JSONRPCError with the mapped code and ``data = {kind, message, details}``.

    Example:
        >>> from mcp_serverkit.errors import MissingRequiredFieldsError
        >>> capability_error_to_jsonrpc_error(MissingRequiredFieldsError(["b"])).code
        -32602
    """
    code = ERROR_KIND_MAP.get(error.kind, INTERNAL_ERROR)
    message = f"{prefix}: {error.message}" if prefix else error.message
    return JSONRPCError(code=code, message=message, data=error.to_dict())


def create_method_not_found_error(method: str) -> JSONRPCError:
    """
    Create a "Method not found" error for a method outside the method table.

    Args:
        method: The method name that was not found.

    Returns:
        JSONRPCError with code -32601.
    """
    return JSONRPCError(
        code=METHOD_NOT_FOUND,
        message=f"Unknown method: {method}",
        data={
            "kind": "not_found",
            "message": f"Method '{method}' is not supported",
            "details": {"method": method},
        },
    )


def create_invalid_params_error(
    message: str, details: dict[str, Any] | None = None
) -> JSONRPCError:
    """
    Create an "Invalid params" error for malformed call parameters.

    Returns:
        JSONRPCError with code -32602.
    """
    return JSONRPCError(
        code=INVALID_PARAMS,
        message=f"Invalid params: {message}",
        data={
            "kind": "invalid_params",
            "message": message,
            "details": details or {},
        },
    )


def create_internal_error(
    message: str, details: dict[str, Any] | None = None
) -> JSONRPCError:
    """
    Create an internal error for unexpected exceptions.

    Args:
        message: Error message describing what went wrong.
        details: Optional additional details.

    Returns:
        JSONRPCError with code -32603.
    """
    return JSONRPCError(
        code=INTERNAL_ERROR,
        message=message,
        data={
            "kind": "internal",
            "message": message,
            "details": details or {},
        },
    )
