"""Lower pydantic models and type annotations into schema nodes."""

import collections.abc
import enum
import re
import types
import typing
from collections.abc import Iterable, Iterator
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

import annotated_types
from pydantic import AnyUrl, BaseModel
from pydantic.fields import FieldInfo
from pydantic.networks import EmailStr, NameEmail, UrlConstraints
from pydantic_core import PydanticUndefined

from .nodes import (
    ArrayNode,
    BooleanNode,
    DefaultNode,
    EnumNode,
    LiteralNode,
    NumberCheck,
    NumberNode,
    ObjectNode,
    OptionalNode,
    StringCheck,
    StringNode,
    UnionNode,
    UnknownNode,
    is_node,
)

_ARRAY_ORIGINS = (list, tuple, set, frozenset, collections.abc.Sequence, collections.abc.Set)
_NONE_TYPE = type(None)


def describe(schema: Any, metadata: Iterable[Any] = ()):
    """Return the schema node for a model class, annotation or node."""
    if is_node(schema):
        return schema
    if schema is None:
        return UnknownNode(name="None")

    origin = typing.get_origin(schema)
    if origin is Annotated:
        base, *extra = typing.get_args(schema)
        return describe(base, [*metadata, *extra])

    metadata = list(_flatten(metadata))

    if origin in (Union, types.UnionType):
        return _describe_union(typing.get_args(schema), metadata)
    if origin is Literal:
        values = typing.get_args(schema)
        if len(values) == 1:
            return LiteralNode(value=values[0])
        return UnionNode(options=tuple(LiteralNode(value=v) for v in values))
    if origin in _ARRAY_ORIGINS or schema in _ARRAY_ORIGINS:
        args = [a for a in typing.get_args(schema) if a is not Ellipsis]
        items = describe(args[0]) if args else UnknownNode(name="Any")
        return ArrayNode(items=items)

    if not isinstance(schema, type):
        if any(isinstance(m, UrlConstraints) for m in metadata):
            return StringNode(checks=(StringCheck(kind="url"), *_string_checks(metadata)))
        return UnknownNode(name=repr(schema))

    if issubclass(schema, BaseModel):
        return describe_model(schema)
    if issubclass(schema, enum.Enum):
        return EnumNode(values=tuple(member.value for member in schema))
    if issubclass(schema, bool):
        return BooleanNode()
    if issubclass(schema, (EmailStr, NameEmail)):
        return StringNode(checks=(StringCheck(kind="email"), *_string_checks(metadata)))
    if issubclass(schema, AnyUrl) or any(isinstance(m, UrlConstraints) for m in metadata):
        return StringNode(checks=(StringCheck(kind="url"), *_string_checks(metadata)))
    if issubclass(schema, str):
        return StringNode(checks=tuple(_string_checks(metadata)))
    if issubclass(schema, int):
        return NumberNode(checks=(NumberCheck(kind="int"), *_number_checks(metadata)))
    if issubclass(schema, (float, Decimal)):
        return NumberNode(checks=tuple(_number_checks(metadata)))

    return UnknownNode(name=schema.__name__)


def describe_model(model: type[BaseModel]) -> ObjectNode:
    fields = {
        info.alias or name: describe_field(info)
        for name, info in model.model_fields.items()
    }
    return ObjectNode(fields=fields)


def describe_field(info: FieldInfo):
    """Describe a model field, wrapping it as optional or defaulted.

    No default means required; a ``None`` default means optional; any other
    default (or default factory) becomes a default wrapper.
    """
    node = describe(info.annotation, info.metadata)
    if info.is_required():
        return node

    try:
        default = info.get_default(call_default_factory=True)
    except (TypeError, ValueError):
        # factories that need the validated data cannot be evaluated here
        default = PydanticUndefined

    if default is None or default is PydanticUndefined:
        return node if node.kind == "optional" else OptionalNode(inner=node)
    return DefaultNode(inner=node, value=default)


def _describe_union(args: tuple, metadata: list) -> Any:
    members = [a for a in args if a is not _NONE_TYPE]
    if len(members) == 1:
        inner = describe(members[0], metadata)
    else:
        inner = UnionNode(options=tuple(describe(a) for a in members))
    if len(members) < len(args):
        return OptionalNode(inner=inner)
    return inner


def _flatten(metadata: Iterable[Any]) -> Iterator[Any]:
    for item in metadata:
        if isinstance(item, FieldInfo):
            yield from _flatten(item.metadata)
        elif isinstance(item, annotated_types.GroupedMetadata):
            yield from _flatten(item)
        else:
            yield item


def _string_checks(metadata: Iterable[Any]) -> Iterator[StringCheck]:
    for item in metadata:
        if isinstance(item, annotated_types.MinLen):
            yield StringCheck(kind="min", value=item.min_length)
        elif isinstance(item, annotated_types.MaxLen):
            yield StringCheck(kind="max", value=item.max_length)
        elif getattr(item, "pattern", None) is not None:
            pattern = item.pattern
            if isinstance(pattern, re.Pattern):
                pattern = pattern.pattern
            yield StringCheck(kind="regex", value=pattern)


def _number_checks(metadata: Iterable[Any]) -> Iterator[NumberCheck]:
    for item in metadata:
        if isinstance(item, annotated_types.Ge):
            yield NumberCheck(kind="min", value=item.ge)
        elif isinstance(item, annotated_types.Gt):
            yield NumberCheck(kind="min", value=item.gt)
        elif isinstance(item, annotated_types.Le):
            yield NumberCheck(kind="max", value=item.le)
        elif isinstance(item, annotated_types.Lt):
            yield NumberCheck(kind="max", value=item.lt)
