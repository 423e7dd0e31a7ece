"""
Schema definition and validation for tool arguments.

Schemas are plain dictionaries in JSON Schema form so that they can be embedded
verbatim in ``tools/list`` output. Builders produce them from keyword options,
``to_json_schema`` converts a short-form ``name -> type`` mapping, and
``validate`` checks a value against a schema.

Validation checks primitive kinds, required object fields and declared
properties. Constraint keywords (minLength, maximum, pattern, ...) are metadata
unless the caller asks for them to be enforced.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from mcp_serverkit.errors import (
    ConstraintViolationError,
    MissingRequiredFieldsError,
    TypeMismatchError,
)

SCHEMA_TYPES = ("string", "integer", "number", "boolean", "object", "array")

# Short-form type tags accepted by to_json_schema
_TYPE_TAGS: dict[Any, str] = {
    "string": "string",
    "integer": "integer",
    "number": "number",
    "float": "number",
    "boolean": "boolean",
    "object": "object",
    "array": "array",
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
}

# Builder option -> JSON Schema keyword
_CONSTRAINT_KEYS = {
    "description": "description",
    "min_length": "minLength",
    "max_length": "maxLength",
    "pattern": "pattern",
    "minimum": "minimum",
    "maximum": "maximum",
    "properties": "properties",
    "required_fields": "required",
    "items": "items",
    "min_items": "minItems",
    "max_items": "maxItems",
}

_MISSING = object()


# =============================================================================
# Builders
# =============================================================================


def _build(schema_type: str, options: dict[str, Any]) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": schema_type}
    for key, value in options.items():
        keyword = _CONSTRAINT_KEYS.get(key)
        if keyword is not None and value is not None:
            schema[keyword] = value
    return schema


def string(
    *,
    description: str | None = None,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
) -> dict[str, Any]:
    """
    Define a string schema.

    Example:
        >>> string(min_length=1, max_length=100)
        {'type': 'string', 'minLength': 1, 'maxLength': 100}
    """
    return _build(
        "string",
        {
            "description": description,
            "min_length": min_length,
            "max_length": max_length,
            "pattern": pattern,
        },
    )


def integer(
    *,
    description: str | None = None,
    minimum: int | None = None,
    maximum: int | None = None,
) -> dict[str, Any]:
    """Define an integer schema."""
    return _build(
        "integer",
        {"description": description, "minimum": minimum, "maximum": maximum},
    )


def number(
    *,
    description: str | None = None,
    minimum: float | None = None,
    maximum: float | None = None,
) -> dict[str, Any]:
    """Define a number schema (integers and floats)."""
    return _build(
        "number",
        {"description": description, "minimum": minimum, "maximum": maximum},
    )


def boolean(*, description: str | None = None) -> dict[str, Any]:
    """Define a boolean schema."""
    return _build("boolean", {"description": description})


def object_(
    *,
    description: str | None = None,
    properties: Mapping[str, dict[str, Any]] | None = None,
    required_fields: list[str] | None = None,
) -> dict[str, Any]:
    """
    Define an object schema (trailing underscore avoids the builtin name).

    Only the names in ``required_fields`` are required; declared properties
    are optional unless listed there.

    Example:
        >>> object_(properties={"name": string()}, required_fields=["name"])
        {'type': 'object', 'properties': {'name': {'type': 'string'}}, 'required': ['name']}
    """
    return _build(
        "object",
        {
            "description": description,
            "properties": dict(properties) if properties is not None else None,
            "required_fields": list(required_fields)
            if required_fields is not None
            else None,
        },
    )


def array(
    *,
    description: str | None = None,
    items: dict[str, Any] | None = None,
    min_items: int | None = None,
    max_items: int | None = None,
) -> dict[str, Any]:
    """Define an array schema."""
    return _build(
        "array",
        {
            "description": description,
            "items": items,
            "min_items": min_items,
            "max_items": max_items,
        },
    )


def to_json_schema(type_map: Mapping[Any, Any]) -> dict[str, Any]:
    """
    Convert a short-form ``name -> type`` mapping into an object schema.

    Every listed field is required. Type tags may be strings ("string",
    "integer", "number", "float", "boolean", "object", "array"), the matching
    Python types, or full schema dictionaries which are used as-is. Unknown
    tags fall back to string.

    Example:
        >>> to_json_schema({"a": "number", "b": float})
        {'type': 'object', 'properties': {'a': {'type': 'number'}, 'b': {'type': 'number'}}, 'required': ['a', 'b']}
    """
    properties: dict[str, Any] = {}
    for key, tag in type_map.items():
        properties[_key_name(key)] = _tag_to_schema(tag)
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
    }


def is_object_schema(schema: Mapping[str, Any]) -> bool:
    """
    Return True if ``schema`` is a long-form object schema.

    Any mapping whose ``type`` key is ``"object"`` is long form, so a short-form
    map cannot declare a field named ``type`` with the ``"object"`` tag. Use the
    long form for such a field.
    """
    return schema.get("type") == "object"


def _tag_to_schema(tag: Any) -> dict[str, Any]:
    if isinstance(tag, Mapping):
        return dict(tag)
    try:
        return {"type": _TYPE_TAGS[tag]}
    except (KeyError, TypeError):
        return {"type": "string"}


# =============================================================================
# Key Resolution
# =============================================================================


def _key_name(key: Any) -> str:
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)


def resolve_key(mapping: Mapping[Any, Any], name: str) -> Any:
    """
    Find the key in ``mapping`` that stands for ``name``.

    Plain string keys are matched directly; symbolic keys (Enum members) match
    through their value.

    Returns:
        The matching key, or a private sentinel when absent (see ``has_key``).
    """
    if name in mapping:
        return name
    for key in mapping:
        if _key_name(key) == name:
            return key
    return _MISSING


def has_key(mapping: Mapping[Any, Any], name: str) -> bool:
    """Return True if ``mapping`` holds ``name`` under any equivalent key."""
    return resolve_key(mapping, name) is not _MISSING


def get_value(mapping: Mapping[Any, Any], name: str, default: Any = None) -> Any:
    """Return the value stored for ``name`` under any equivalent key."""
    key = resolve_key(mapping, name)
    if key is _MISSING:
        return default
    return mapping[key]


# =============================================================================
# Validation
# =============================================================================


def _is_kind(value: Any, schema_type: str) -> bool:
    if schema_type == "string":
        return isinstance(value, str)
    if schema_type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if schema_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if schema_type == "boolean":
        return isinstance(value, bool)
    if schema_type == "array":
        return isinstance(value, (list, tuple))
    if schema_type == "object":
        return isinstance(value, Mapping)
    # Untyped or unknown schema types accept anything
    return True


def validate(
    value: Any,
    schema: Mapping[str, Any],
    *,
    enforce_constraints: bool = False,
) -> Any:
    """
    Validate ``value`` against ``schema``.

    The value is returned unchanged (the same object) when valid and is never
    mutated.

    Args:
        value: The value to check.
        schema: A schema dictionary.
        enforce_constraints: Also enforce length, range, pattern, item-count
            and item-schema constraints.

    Returns:
        ``value``.

    Raises:
        TypeMismatchError: The value has the wrong primitive kind.
        MissingRequiredFieldsError: An object lacks required fields.
        ConstraintViolationError: An enforced constraint is violated.
    """
    _validate(value, schema, "$", enforce_constraints)
    return value


def _validate(
    value: Any, schema: Mapping[str, Any], path: str, enforce: bool
) -> None:
    schema_type = schema.get("type")
    if schema_type is not None and not _is_kind(value, schema_type):
        raise TypeMismatchError(expected=schema_type, actual=value, path=path)

    if schema_type == "object":
        _validate_object(value, schema, path, enforce)
    elif enforce:
        _check_constraints(value, schema, path)


def _validate_object(
    value: Mapping[Any, Any], schema: Mapping[str, Any], path: str, enforce: bool
) -> None:
    required = schema.get("required") or []
    missing = [name for name in required if not has_key(value, name)]
    if missing:
        raise MissingRequiredFieldsError(missing, path=path)

    properties = schema.get("properties") or {}
    for name, sub_schema in properties.items():
        sub_value = get_value(value, name)
        # null values count as not provided
        if sub_value is None:
            continue
        _validate(sub_value, sub_schema, f"{path}.{name}", enforce)


def _check_constraints(value: Any, schema: Mapping[str, Any], path: str) -> None:
    if isinstance(value, str):
        _check_bounds(schema, "minLength", "maxLength", len(value), path)
        pattern = schema.get("pattern")
        if pattern is not None and re.search(pattern, value) is None:
            raise ConstraintViolationError("pattern", pattern, value, path)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        _check_bounds(schema, "minimum", "maximum", value, path)
    elif isinstance(value, (list, tuple)):
        _check_bounds(schema, "minItems", "maxItems", len(value), path)
        items = schema.get("items")
        if items:
            for index, item in enumerate(value):
                _validate(item, items, f"{path}[{index}]", True)


def _check_bounds(
    schema: Mapping[str, Any], lower: str, upper: str, actual: Any, path: str
) -> None:
    if lower in schema and actual < schema[lower]:
        raise ConstraintViolationError(lower, schema[lower], actual, path)
    if upper in schema and actual > schema[upper]:
        raise ConstraintViolationError(upper, schema[upper], actual, path)
