"""Render an OpenAPI 3.0 document from registered routes."""

import copy
import json
from collections.abc import Iterable
from pathlib import Path

import yaml

from route_scribe.config import DocsConfig
from route_scribe.discovery.base import BODY_METHODS, Route

OPENAPI_VERSION = "3.0.0"


def _error_response(description: str) -> dict:
    return {
        "description": description,
        "content": {
            "application/json": {
                "schema": {"type": "object", "properties": {"message": {"type": "string"}}},
            },
        },
    }


DEFAULT_RESPONSES = {
    "200": {
        "description": "Successful response",
        "content": {"application/json": {"schema": {"type": "object"}}},
    },
    "400": _error_response("Bad request"),
    "500": _error_response("Internal server error"),
}

_YAML_SUFFIXES = (".yaml", ".yml")


class _Dumper(yaml.SafeDumper):
    """Safe dumper that writes repeated objects out in full instead of as aliases."""

    def ignore_aliases(self, data):
        return True


def render(routes: Iterable[Route], config: DocsConfig | None = None) -> dict:
    """Build the document for ``routes`` (normally a registry snapshot).

    Paths keep the order their first route was registered in. The result
    shares no objects with the routes, so it can be mutated freely.
    """
    config = config or DocsConfig()
    paths: dict[str, dict] = {}
    for route in routes:
        paths.setdefault(route.path, {})[route.method] = _operation(route)

    return {
        "openapi": OPENAPI_VERSION,
        "info": _info(config),
        "paths": copy.deepcopy(paths),
    }


def dump_document(document: dict, fmt: str = "json") -> str:
    """Serialize a rendered document as ``json`` or ``yaml``."""
    if fmt == "yaml":
        return yaml.dump(document, Dumper=_Dumper, sort_keys=False, allow_unicode=True)
    if fmt == "json":
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    raise ValueError(f"unknown output format: {fmt!r}")


def detect_format(file_path: Path) -> str:
    """Pick the output format from a file name: 'yaml' or 'json'."""
    return "yaml" if Path(file_path).suffix.lower() in _YAML_SUFFIXES else "json"


def _operation(route: Route) -> dict:
    operation: dict = {
        "tags": route.tags,
        "summary": route.summary or f"{route.method.upper()} {route.path}",
        "parameters": [p.as_openapi() for p in route.parameters],
        "responses": route.responses or copy.deepcopy(DEFAULT_RESPONSES),
    }
    if route.description:
        operation["description"] = route.description
    if route.method in BODY_METHODS:
        operation["requestBody"] = _request_body(route.request_body)
    if route.deprecated:
        operation["deprecated"] = True
    return operation


def _request_body(fragment: dict | None) -> dict:
    if fragment and "content" in fragment:
        return fragment
    return {"content": {"application/json": {"schema": fragment or {"type": "object"}}}}


def _info(config: DocsConfig) -> dict:
    overrides = config.info
    info = {
        "title": overrides.title or config.title,
        "version": overrides.version or config.version,
        "description": overrides.description or config.description,
    }
    if overrides.contact is not None:
        info["contact"] = overrides.contact.model_dump(exclude_none=True)
    if overrides.license is not None:
        info["license"] = overrides.license.model_dump(exclude_none=True)
    return info
