"""Schema nodes: one variant per supported validation-schema kind.

``describe()`` lowers pydantic models and type annotations into these
nodes; ``convert()`` dispatches on ``kind``. Anything that does not fit a
known kind becomes an ``UnknownNode``.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class StringCheck(_Node):
    kind: Literal["email", "url", "min", "max", "regex"]
    value: Any = None


class NumberCheck(_Node):
    kind: Literal["int", "min", "max"]
    value: Any = None


class StringNode(_Node):
    kind: Literal["string"] = "string"
    checks: tuple[StringCheck, ...] = ()


class NumberNode(_Node):
    kind: Literal["number"] = "number"
    checks: tuple[NumberCheck, ...] = ()


class BooleanNode(_Node):
    kind: Literal["boolean"] = "boolean"


class ObjectNode(_Node):
    kind: Literal["object"] = "object"
    fields: dict[str, "SchemaNode"] = {}


class ArrayNode(_Node):
    kind: Literal["array"] = "array"
    items: "SchemaNode"


class OptionalNode(_Node):
    kind: Literal["optional"] = "optional"
    inner: "SchemaNode"


class DefaultNode(_Node):
    kind: Literal["default"] = "default"
    inner: "SchemaNode"
    value: Any = None


class EnumNode(_Node):
    kind: Literal["enum"] = "enum"
    values: tuple[Any, ...]


class UnionNode(_Node):
    kind: Literal["union"] = "union"
    options: tuple["SchemaNode", ...]


class LiteralNode(_Node):
    kind: Literal["literal"] = "literal"
    value: Any = None


class UnknownNode(_Node):
    kind: Literal["unknown"] = "unknown"
    name: str = ""


SchemaNode = Annotated[
    Union[
        StringNode,
        NumberNode,
        BooleanNode,
        ObjectNode,
        ArrayNode,
        OptionalNode,
        DefaultNode,
        EnumNode,
        UnionNode,
        LiteralNode,
        UnknownNode,
    ],
    Field(discriminator="kind"),
]

NODE_TYPES = (
    StringNode,
    NumberNode,
    BooleanNode,
    ObjectNode,
    ArrayNode,
    OptionalNode,
    DefaultNode,
    EnumNode,
    UnionNode,
    LiteralNode,
    UnknownNode,
)

for _model in (ObjectNode, ArrayNode, OptionalNode, DefaultNode, UnionNode):
    _model.model_rebuild()


def is_node(value: Any) -> bool:
    return isinstance(value, NODE_TYPES)
