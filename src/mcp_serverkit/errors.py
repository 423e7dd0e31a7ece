"""
Error types for the MCP server runtime.

This module defines the CapabilityError base class and the subclasses raised while
validating arguments, matching resource URIs and invoking user handlers. Errors
carry a machine-readable ``kind`` and are mapped to JSON-RPC error objects at the
protocol layer (see ``mcp_serverkit.protocol.capability_error_to_jsonrpc_error``).

Error kinds:
- invalid_arguments: call arguments are not an object
- type_mismatch: a value has the wrong primitive kind for its schema
- missing_required_fields: an object lacks required schema fields
- constraint_violation: a value breaks an enforced schema constraint
- missing_required_arguments: a prompt call lacks required arguments
- uri_not_matched: a concrete URI does not match a resource template
- not_found: no capability is registered under the requested key
- handler_failed: a user handler raised
- internal: unexpected failure inside the runtime
"""

from __future__ import annotations

from typing import Any


class CapabilityError(Exception):
    """
    Base exception class for capability errors.

    CapabilityError instances are raised by the executors and caught by the
    dispatcher, which converts them into JSON-RPC error responses.

    Attributes:
        kind: Error kind string (e.g., "type_mismatch", "uri_not_matched").
        message: Human-readable error message.
        details: Structured details the caller can use to correct the request.

    Example:
        >>> raise CapabilityError(
        ...     kind="not_found",
        ...     message="Tool not found: add",
        ...     details={"name": "add"},
        ... )
    """

    def __init__(
        self,
        kind: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize a CapabilityError.

        Args:
            kind: Error kind string identifying the error category.
            message: Human-readable error message.
            details: Optional dictionary with structured error details.
        """
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"{self.__class__.__name__}("
            f"kind={self.kind!r}, "
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for serialization.

        Returns:
            Dictionary with kind, message, and details.
        """
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentsError(CapabilityError):
    """Error raised when call arguments are not an object."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an InvalidArgumentsError."""
        super().__init__(kind="invalid_arguments", message=message, details=details)


class SchemaValidationError(CapabilityError):
    """
    Base class for failures reported by the schema validator.

    Catch this class to handle every validation failure regardless of kind.
    """


class TypeMismatchError(SchemaValidationError):
    """
    Error raised when a value does not have the primitive kind its schema expects.

    Details carry ``expected`` (schema type), ``actual`` (Python type name) and
    ``path`` (location of the value, "$" for the root).
    """

    def __init__(self, expected: str, actual: Any, path: str = "$") -> None:
        """Initialize a TypeMismatchError for ``actual`` at ``path``."""
        actual_type = type(actual).__name__
        super().__init__(
            kind="type_mismatch",
            message=f"Type mismatch at {path}: expected {expected}, got {actual_type}",
            details={"expected": expected, "actual": actual_type, "path": path},
        )


class MissingRequiredFieldsError(SchemaValidationError):
    """Error raised when an object value lacks required schema fields."""

    def __init__(self, missing: list[str], path: str = "$") -> None:
        """Initialize a MissingRequiredFieldsError listing the missing names."""
        super().__init__(
            kind="missing_required_fields",
            message=f"Missing required fields: {', '.join(missing)}",
            details={"missing": list(missing), "path": path},
        )


class ConstraintViolationError(SchemaValidationError):
    """Error raised when an enforced schema constraint is not satisfied."""

    def __init__(
        self, constraint: str, limit: Any, actual: Any, path: str = "$"
    ) -> None:
        """Initialize a ConstraintViolationError."""
        super().__init__(
            kind="constraint_violation",
            message=f"Constraint {constraint}={limit!r} violated at {path}",
            details={
                "constraint": constraint,
                "limit": limit,
                "actual": actual,
                "path": path,
            },
        )


class MissingRequiredArgumentsError(CapabilityError):
    """Error raised when a prompt is rendered without its required arguments."""

    def __init__(self, missing: list[str]) -> None:
        """Initialize a MissingRequiredArgumentsError listing the missing names."""
        super().__init__(
            kind="missing_required_arguments",
            message=f"Missing required arguments: {', '.join(missing)}",
            details={"missing": list(missing)},
        )


class UriNotMatchedError(CapabilityError):
    """Error raised when a concrete URI does not match a resource template."""

    def __init__(self, template: str, uri: str) -> None:
        """Initialize a UriNotMatchedError."""
        super().__init__(
            kind="uri_not_matched",
            message=f"URI '{uri}' does not match template '{template}'",
            details={"template": template, "uri": uri},
        )


class NotFoundError(CapabilityError):
    """
    Error raised when no capability is registered under the requested key.

    This error maps to "Method not found" at the protocol layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a NotFoundError."""
        super().__init__(kind="not_found", message=message, details=details)


class HandlerError(CapabilityError):
    """
    Error produced when a user handler raises.

    The original exception's message becomes the error message and its class
    name is kept in ``details["exception_type"]``.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a HandlerError."""
        super().__init__(kind="handler_failed", message=message, details=details)

    @classmethod
    def from_exception(cls, exc: BaseException) -> HandlerError:
        """
        Build a HandlerError describing ``exc``.

        Args:
            exc: The exception raised by the handler.

        Returns:
            HandlerError carrying the exception's message and type name.
        """
        return cls(
            message=str(exc) or type(exc).__name__,
            details={"exception_type": type(exc).__name__},
        )


class InternalError(CapabilityError):
    """Error raised for unexpected failures inside the runtime."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an InternalError."""
        super().__init__(kind="internal", message=message, details=details)
