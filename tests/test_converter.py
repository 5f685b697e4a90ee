import enum
from typing import Annotated, Literal, Optional
from unittest.mock import patch

from pydantic import AnyUrl, BaseModel, EmailStr, Field

from route_scribe.schema.converter import convert, to_parameters
from route_scribe.schema.nodes import (
    ArrayNode,
    DefaultNode,
    EnumNode,
    NumberCheck,
    NumberNode,
    ObjectNode,
    OptionalNode,
    StringCheck,
    StringNode,
    UnionNode,
    UnknownNode,
)


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


class Priority(enum.IntEnum):
    LOW = 1
    HIGH = 2


class Person(BaseModel):
    name: str
    age: Optional[Annotated[int, Field(ge=0)]] = None


class Address(BaseModel):
    street: str
    city: str = "Berlin"


class Customer(BaseModel):
    email: EmailStr
    website: AnyUrl | None = None
    addresses: list[Address] = []
    tags: list[str] = Field(default_factory=list)


class TestConvertNodes:
    def test_none_is_generic_object(self):
        assert convert(None) == {"type": "object"}

    def test_string_checks_compose_in_any_order(self):
        checks = [
            StringCheck(kind="email"),
            StringCheck(kind="min", value=1),
            StringCheck(kind="max", value=100),
        ]
        expected = {"type": "string", "format": "email", "minLength": 1, "maxLength": 100}
        assert convert(StringNode(checks=tuple(checks))) == expected
        assert convert(StringNode(checks=tuple(reversed(checks)))) == expected

    def test_url_and_regex(self):
        node = StringNode(checks=(StringCheck(kind="url"), StringCheck(kind="regex", value="^h")))
        assert convert(node) == {"type": "string", "format": "uri", "pattern": "^h"}

    def test_integer_with_bounds(self):
        node = NumberNode(checks=(NumberCheck(kind="int"), NumberCheck(kind="min", value=0)))
        assert convert(node) == {"type": "integer", "minimum": 0}

    def test_object_required_excludes_optional_and_default(self):
        node = ObjectNode(fields={
            "name": StringNode(),
            "age": OptionalNode(inner=NumberNode()),
            "role": DefaultNode(inner=StringNode(), value="user"),
        })
        assert convert(node) == {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "age": {"type": "number"},
                "role": {"type": "string", "default": "user"},
            },
            "required": ["name"],
        }

    def test_object_without_required_fields_omits_key(self):
        node = ObjectNode(fields={"note": OptionalNode(inner=StringNode())})
        assert "required" not in convert(node)

    def test_array(self):
        assert convert(ArrayNode(items=StringNode())) == {"type": "array", "items": {"type": "string"}}

    def test_union_preserves_order(self):
        node = UnionNode(options=(StringNode(), NumberNode()))
        assert convert(node) == {"oneOf": [{"type": "string"}, {"type": "number"}]}

    def test_enum_of_strings(self):
        assert convert(EnumNode(values=("a", "b"))) == {"type": "string", "enum": ["a", "b"]}

    def test_unknown_kind_falls_back(self):
        assert convert(UnknownNode(name="Request")) == {"type": "object"}

    def test_each_call_returns_a_fresh_dict(self):
        node = StringNode()
        first = convert(node)
        first["type"] = "changed"
        assert convert(node) == {"type": "string"}


class TestConvertModels:
    def test_optional_int_with_minimum(self):
        assert convert(Person) == {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "age": {"type": "integer", "minimum": 0},
            },
            "required": ["name"],
        }

    def test_nested_models_and_formats(self):
        schema = convert(Customer)
        assert schema["required"] == ["email"]
        assert schema["properties"]["email"] == {"type": "string", "format": "email"}
        assert schema["properties"]["website"] == {"type": "string", "format": "uri"}
        addresses = schema["properties"]["addresses"]
        assert addresses["default"] == []
        assert addresses["items"]["properties"]["city"] == {"type": "string", "default": "Berlin"}
        assert addresses["items"]["required"] == ["street"]
        assert schema["properties"]["tags"] == {"type": "array", "items": {"type": "string"}, "default": []}

    def test_string_constraints_from_field(self):
        class Login(BaseModel):
            username: str = Field(min_length=3, max_length=20, pattern=r"^\w+$")

        assert convert(Login)["properties"]["username"] == {
            "type": "string",
            "minLength": 3,
            "maxLength": 20,
            "pattern": r"^\w+$",
        }

    def test_enum_types(self):
        assert convert(Color) == {"type": "string", "enum": ["red", "green"]}
        assert convert(Priority) == {"type": "integer", "enum": [1, 2]}

    def test_literals(self):
        assert convert(Literal["a"]) == {"type": "string", "enum": ["a"]}
        assert convert(Literal[1]) == {"type": "integer", "enum": [1]}
        assert convert(Literal["a", "b"]) == {
            "oneOf": [{"type": "string", "enum": ["a"]}, {"type": "string", "enum": ["b"]}]
        }

    def test_union_annotation(self):
        assert convert(int | str) == {"oneOf": [{"type": "integer"}, {"type": "string"}]}

    def test_alias_is_used_as_property_name(self):
        class Item(BaseModel):
            item_id: int = Field(alias="itemId")

        assert convert(Item) == {
            "type": "object",
            "properties": {"itemId": {"type": "integer"}},
            "required": ["itemId"],
        }

    def test_unsupported_annotation_falls_back(self):
        assert convert(bytes) == {"type": "object"}

    def test_conversion_error_is_logged_and_falls_back(self, caplog):
        with patch("route_scribe.schema.converter.describe", side_effect=RuntimeError("boom")):
            assert convert(Person) == {"type": "object"}
        assert "Failed to convert schema" in caplog.text


class TestToParameters:
    def test_model_becomes_query_parameters(self):
        params = to_parameters(Person)
        assert [(p.name, p.location, p.required) for p in params] == [
            ("name", "query", True),
            ("age", "query", False),
        ]
        assert params[1].fragment == {"type": "integer", "minimum": 0}

    def test_fragment_dict_is_accepted(self):
        fragment = {"type": "object", "properties": {"q": {"type": "string"}}}
        params = to_parameters(fragment, location="path")
        assert params[0].location == "path"
        assert params[0].required is False
