"""Schema converter: validation-schema object graph -> JSON-Schema fragment.

Conversion never raises. Unsupported kinds degrade to ``{"type": "object"}``
and unexpected failures are logged as warnings before degrading the same way.
"""

import logging
from typing import Any

from pydantic_core import to_jsonable_python

from route_scribe.discovery.base import Parameter

from .describe import describe
from .nodes import is_node

logger = logging.getLogger(__name__)

_STRING_FORMATS = {"email": "email", "url": "uri"}


def convert(schema: Any) -> dict:
    """Convert a schema (node, pydantic model or annotation) to a fragment."""
    if schema is None:
        return _fallback()
    try:
        node = schema if is_node(schema) else describe(schema)
        return _convert(node)
    except Exception as e:
        logger.warning("Failed to convert schema %r: %s", schema, e)
        return _fallback()


def to_parameters(schema: Any, location: str = "query") -> list[Parameter]:
    """Flatten an object schema into one parameter per property."""
    fragment = schema if isinstance(schema, dict) else convert(schema)
    required = set(fragment.get("required", []))
    return [
        Parameter(name=name, location=location, required=name in required, fragment=prop)
        for name, prop in fragment.get("properties", {}).items()
    ]


def _fallback() -> dict:
    return {"type": "object"}


def _convert(node) -> dict:
    handler = _CONVERTERS.get(node.kind)
    if handler is None:
        logger.debug("No converter for schema kind %r, using generic object", node.kind)
        return _fallback()
    return handler(node)


def _convert_string(node) -> dict:
    fragment: dict = {"type": "string"}
    for check in node.checks:
        if check.kind in _STRING_FORMATS:
            fragment["format"] = _STRING_FORMATS[check.kind]
        elif check.kind == "min":
            fragment["minLength"] = check.value
        elif check.kind == "max":
            fragment["maxLength"] = check.value
        elif check.kind == "regex":
            fragment["pattern"] = check.value
    return fragment


def _convert_number(node) -> dict:
    fragment: dict = {"type": "number"}
    for check in node.checks:
        if check.kind == "int":
            fragment["type"] = "integer"
        elif check.kind == "min":
            fragment["minimum"] = check.value
        elif check.kind == "max":
            fragment["maximum"] = check.value
    return fragment


def _convert_boolean(node) -> dict:
    return {"type": "boolean"}


def _convert_object(node) -> dict:
    properties = {}
    required = []
    for name, field in node.fields.items():
        properties[name] = _convert(field)
        if field.kind not in ("optional", "default"):
            required.append(name)

    fragment: dict = {"type": "object", "properties": properties}
    if required:
        fragment["required"] = required
    return fragment


def _convert_array(node) -> dict:
    return {"type": "array", "items": _convert(node.items)}


def _convert_optional(node) -> dict:
    return _convert(node.inner)


def _convert_default(node) -> dict:
    fragment = _convert(node.inner)
    fragment["default"] = to_jsonable_python(node.value)
    return fragment


def _convert_enum(node) -> dict:
    values = [to_jsonable_python(v) for v in node.values]
    types = {_json_type(v) for v in values}
    return {"type": types.pop() if len(types) == 1 else "string", "enum": values}


def _convert_union(node) -> dict:
    return {"oneOf": [_convert(option) for option in node.options]}


def _convert_literal(node) -> dict:
    value = to_jsonable_python(node.value)
    return {"type": _json_type(value), "enum": [value]}


def _json_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if value is None:
        return "null"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


_CONVERTERS = {
    "string": _convert_string,
    "number": _convert_number,
    "boolean": _convert_boolean,
    "object": _convert_object,
    "array": _convert_array,
    "optional": _convert_optional,
    "default": _convert_default,
    "enum": _convert_enum,
    "union": _convert_union,
    "literal": _convert_literal,
}
