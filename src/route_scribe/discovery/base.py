"""Unified data models for discovered routes.

All discovery sources (static scan, interception, manual registration,
seeding from an existing document) convert what they find into these
standard models before handing them to the registry.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .paths import normalize_path, path_placeholders

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")
BODY_METHODS = ("post", "put", "patch")

SOURCES = ("scan", "runtime", "manual")


class Parameter(BaseModel):
    """A single path or query parameter."""

    name: str
    location: str  # path / query
    required: bool
    fragment: dict = Field(default_factory=lambda: {"type": "string"})

    def as_openapi(self) -> dict:
        return {
            "name": self.name,
            "in": self.location,
            "required": self.required,
            "schema": self.fragment,
        }


class Route(BaseModel):
    """A single (method, path) endpoint with its documentation metadata."""

    method: str  # get / post / put / delete / patch / head / options
    path: str  # /users/{id}
    parameters: list[Parameter] = []
    request_body: dict | None = None
    responses: dict = {}  # {status_code: {description, content}}
    tags: list[str] = []
    summary: str | None = None
    description: str | None = None
    deprecated: bool = False

    # Provenance, kept out of every dump
    source: str = Field(default="manual", exclude=True)
    inferred: set[str] = Field(default_factory=set, exclude=True)

    @field_validator("method")
    @classmethod
    def _check_method(cls, value: str) -> str:
        value = value.lower()
        if value not in HTTP_METHODS:
            raise ValueError(f"unsupported HTTP method: {value!r}")
        return value

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        return normalize_path(value)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(t for t in value if t))

    @field_validator("source")
    @classmethod
    def _check_source(cls, value: str) -> str:
        if value not in SOURCES:
            raise ValueError(f"unknown route source: {value!r}")
        return value

    @property
    def key(self) -> tuple[str, str]:
        return self.method, self.path


class RouteDoc(BaseModel):
    """Documentation metadata a handler or middleware carries for discovery.

    Schema-valued fields hold anything the schema converter understands
    (pydantic models, annotations, schema nodes) or a ready fragment dict.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tags: list[str] = []
    summary: str | None = None
    description: str | None = None
    deprecated: bool = False
    request_body: Any = None
    query: Any = None
    responses: dict = {}

    def merged(self, other: "RouteDoc") -> "RouteDoc":
        """Overlay ``other`` on this doc; unset values in ``other`` keep ours."""
        fields = type(self).model_fields
        data = {name: getattr(self, name) for name in fields}
        for name in fields:
            value = getattr(other, name)
            if value not in (None, [], {}, False):
                data[name] = value
        return RouteDoc(**data)


class DiscoveredRoute(BaseModel):
    """A verb call found textually in a source file."""

    method: str
    path: str  # verbatim, as written in the source
    line: int  # 1-based


class RouterDescriptor(BaseModel):
    """Static-scan result for one source file."""

    source: str
    name: str
    routes: list[DiscoveredRoute]
    export_style: str  # default / named
    prefix: str = ""
    tags: list[str] = []


def path_parameters(path: str) -> list[Parameter]:
    """Build required path parameters for every placeholder in ``path``."""
    return [
        Parameter(name=name, location="path", required=True, fragment=schema)
        for name, schema in path_placeholders(path)
    ]
