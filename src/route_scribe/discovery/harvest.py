"""Read the routes a framework application or router already holds.

Starlette and FastAPI keep a ``routes`` list (``Mount`` entries nest
further routes); Flask keeps a werkzeug ``url_map``. Anything else yields
nothing.
"""

import enum
import logging
from collections.abc import Iterable, Iterator
from typing import Any, NamedTuple

from route_scribe.schema.converter import convert

from .base import HTTP_METHODS, RouteDoc
from .paths import join_paths

logger = logging.getLogger(__name__)

# Keyword arguments FastAPI accepts on verb decorators (and keeps on APIRoute)
ROUTE_OPTIONS = (
    "tags",
    "summary",
    "description",
    "deprecated",
    "response_model",
    "status_code",
    "responses",
    "response_description",
)

_SKIPPED_FLASK_METHODS = {"head", "options"}


class HarvestedRoute(NamedTuple):
    method: str
    path: str  # raw framework path, mount prefixes applied
    handler: Any
    doc: RouteDoc


def harvest(app: Any, endpoint_prefix: str | None = None) -> list[HarvestedRoute]:
    """Return every documented route ``app`` currently knows about.

    ``endpoint_prefix`` limits Flask rules to one blueprint (``"users."``).
    """
    if hasattr(app, "url_map"):
        found = list(_harvest_flask(app, endpoint_prefix))
    elif isinstance(getattr(app, "routes", None), Iterable):
        found = list(_harvest_starlette(app.routes, ""))
    else:
        found = []
    logger.debug("Harvested %d routes from %s", len(found), type(app).__name__)
    return found


def doc_from_options(options: dict) -> RouteDoc:
    """Build a RouteDoc from FastAPI-style route keyword arguments."""
    responses = {}
    for code, spec in (options.get("responses") or {}).items():
        spec = dict(spec or {})
        responses[str(code)] = response_entry(spec.get("model"), spec.get("description"))

    model = options.get("response_model")
    status_code = options.get("status_code")
    if model is not None or status_code is not None:
        responses[str(status_code or 200)] = response_entry(model, options.get("response_description"))

    return RouteDoc(
        tags=[_tag_name(t) for t in options.get("tags") or []],
        summary=options.get("summary") or None,
        description=options.get("description") or None,
        deprecated=bool(options.get("deprecated")),
        responses=responses,
    )


def response_entry(schema: Any = None, description: str | None = None) -> dict:
    """One OpenAPI response object, with a JSON body when a schema is given."""
    entry: dict = {"description": description or "Successful response"}
    if schema is not None:
        fragment = schema if isinstance(schema, dict) else convert(schema)
        entry["content"] = {"application/json": {"schema": fragment}}
    return entry


def normalize_responses(responses: dict) -> dict:
    """Coerce documented responses into OpenAPI response objects.

    Values may be a description string, a ready response object (anything
    with a ``description`` or ``content`` key) or a schema for the body.
    """
    result = {}
    for code, value in responses.items():
        if isinstance(value, str):
            result[str(code)] = {"description": value}
        elif isinstance(value, dict) and ({"description", "content"} & value.keys()):
            result[str(code)] = {"description": "", **value}
        else:
            result[str(code)] = response_entry(value)
    return result


def _tag_name(tag: Any) -> str:
    if isinstance(tag, enum.Enum):
        return str(tag.value)
    return str(tag)


def _harvest_starlette(routes: Iterable[Any], prefix: str) -> Iterator[HarvestedRoute]:
    for route in routes:
        path = getattr(route, "path", None)
        if not isinstance(path, str):
            continue
        if getattr(route, "include_in_schema", True) is False:
            continue

        methods = getattr(route, "methods", None)
        if methods is None:
            # Mount / Host: recurse into whatever the sub-application exposes
            nested = getattr(route, "routes", None)
            if nested:
                yield from _harvest_starlette(nested, join_paths(prefix, path))
            continue

        verbs = {m.lower() for m in methods}
        if "get" in verbs:
            verbs.discard("head")
        doc = doc_from_options({name: getattr(route, name, None) for name in ROUTE_OPTIONS})
        for verb in HTTP_METHODS:
            if verb in verbs:
                yield HarvestedRoute(verb, join_paths(prefix, path), getattr(route, "endpoint", None), doc)


def _harvest_flask(app: Any, endpoint_prefix: str | None) -> Iterator[HarvestedRoute]:
    for rule in sorted(app.url_map.iter_rules(), key=lambda r: r.rule):
        if rule.endpoint == "static" or rule.endpoint.endswith(".static"):
            continue
        if endpoint_prefix and not rule.endpoint.startswith(endpoint_prefix):
            continue
        verbs = {m.lower() for m in rule.methods or ()} - _SKIPPED_FLASK_METHODS
        handler = app.view_functions.get(rule.endpoint)
        for verb in HTTP_METHODS:
            if verb in verbs:
                yield HarvestedRoute(verb, rule.rule, handler, RouteDoc())
