"""OpenAPI / Swagger document reader.

Seeds the registry from an existing OpenAPI 3.x or Swagger 2.0 document
(JSON or YAML), so hand-written documentation can be combined with
discovered routes. Every operation becomes a manual Route.
"""

import logging
from pathlib import Path

import yaml

from .base import HTTP_METHODS, Parameter, Route

logger = logging.getLogger(__name__)

_PARAMETER_LOCATIONS = ("path", "query")
_SCHEMA_KEYS = ("type", "format", "enum", "items", "minimum", "maximum", "minLength", "maxLength", "pattern", "default")


def load_document(file_path: Path) -> dict:
    """Read a JSON or YAML document; JSON is a subset of YAML."""
    text = Path(file_path).read_text(encoding="utf-8")
    doc = yaml.safe_load(text)
    if not is_openapi_document(doc):
        raise ValueError(f"{file_path} is not an OpenAPI or Swagger document")
    return doc


def is_openapi_document(data) -> bool:
    return isinstance(data, dict) and ("openapi" in data or "swagger" in data)


def parse_openapi(file_path: Path) -> list[Route]:
    """Parse an OpenAPI/Swagger file into a list of Route."""
    doc = load_document(file_path)

    routes = []
    for path, item in (doc.get("paths") or {}).items():
        shared = item.get("parameters", [])
        for method, operation in item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue

            parameters = _parse_parameters([*shared, *operation.get("parameters", [])])
            routes.append(
                Route(
                    method=method,
                    path=path,
                    parameters=parameters,
                    request_body=_parse_request_body(operation),
                    responses=_parse_responses(operation.get("responses", {})),
                    tags=operation.get("tags", []),
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    deprecated=bool(operation.get("deprecated", False)),
                    source="manual",
                )
            )

    logger.debug("Read %d operations from %s", len(routes), file_path)
    return routes


def _parse_parameters(params: list[dict]) -> list[Parameter]:
    # Operation-level parameters override path-level ones of the same name
    result: dict[tuple[str, str], Parameter] = {}
    for p in params:
        if "$ref" in p:
            logger.debug("Skipping parameter reference %s", p["$ref"])
            continue
        location = p.get("in", "query")
        if location not in _PARAMETER_LOCATIONS:
            continue

        # Swagger 2.0 keeps the schema keys on the parameter itself
        schema = p.get("schema") or {k: p[k] for k in _SCHEMA_KEYS if k in p} or {"type": "string"}
        result[(location, p["name"])] = Parameter(
            name=p["name"],
            location=location,
            required=p.get("required", location == "path"),
            fragment=schema,
        )
    return list(result.values())


def _parse_request_body(operation: dict) -> dict | None:
    body = operation.get("requestBody")
    if body:
        return {"content": body.get("content", {})}
    # Swagger 2.0: a single "in: body" parameter
    for p in operation.get("parameters", []):
        if p.get("in") == "body":
            return p.get("schema")
    return None


def _parse_responses(responses: dict) -> dict:
    result = {}
    for status_code, resp in responses.items():
        resp = resp or {}
        entry = {"description": resp.get("description", "")}
        if "content" in resp:
            entry["content"] = resp["content"]
        elif "schema" in resp:
            entry["content"] = {"application/json": {"schema": resp["schema"]}}
        result[str(status_code)] = entry
    return result
