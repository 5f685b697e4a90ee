"""ASGI middleware that serves the documentation and learns routes from traffic.

Wrap an application with ``ApiDocs.middleware(app)``, or with Starlette and
FastAPI::

    app.add_middleware(CaptureMiddleware, docs=docs)

Requests under the documentation route get the viewer or the document.
Every other request goes to the application; once the response has been
sent, a method and path the registry does not know yet is recorded with the
query parameters and the response that were observed.
"""

import json
import logging
import re
from urllib.parse import parse_qsl

from route_scribe.discovery.base import HTTP_METHODS, Parameter, Route, path_parameters
from route_scribe.discovery.paths import join_paths, normalize_path, tag_for_path
from route_scribe.schema.sample import schema_from_value

logger = logging.getLogger(__name__)

STATUS_DESCRIPTIONS = {
    200: "OK",
    201: "Created",
    204: "No Content",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    500: "Internal Server Error",
}

# Larger JSON bodies are described by content type only
MAX_CAPTURED_BODY = 64 * 1024

_UNMATCHED_STATUSES = (404, 405)


class _ObservedResponse:
    def __init__(self):
        self.status = None
        self.content_type = None
        self._body = bytearray()
        self._truncated = False

    def observe(self, message: dict) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            for key, value in message.get("headers", []):
                if key.lower() == b"content-type":
                    self.content_type = value.decode("latin-1").split(";")[0].strip()
        elif message["type"] == "http.response.body" and self.is_json and not self._truncated:
            self._body.extend(message.get("body", b""))
            if len(self._body) > MAX_CAPTURED_BODY:
                self._truncated = True
                self._body.clear()

    @property
    def is_json(self) -> bool:
        return self.content_type is not None and "json" in self.content_type

    def schema(self) -> dict:
        if self.is_json and self._body and not self._truncated:
            try:
                return schema_from_value(json.loads(self._body))
            except ValueError:
                pass
        return {"type": "object" if self.is_json else "string"}

    def as_openapi(self) -> dict:
        entry = {"description": STATUS_DESCRIPTIONS.get(self.status, "Success")}
        if self.content_type:
            entry["content"] = {self.content_type: {"schema": self.schema()}}
        return entry


class CaptureMiddleware:
    """Documentation endpoint plus route capture around an ASGI application."""

    def __init__(self, app, docs):
        self.app = app
        self.docs = docs
        self.endpoint = docs.endpoint()
        self.docs_route = normalize_path(docs.config.route)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = normalize_path(scope.get("path", "/"))
        if path == self.docs_route or path.startswith(self.docs_route.rstrip("/") + "/"):
            await self.endpoint(scope, receive, send)
            return

        # Routers rewrite root_path in place when they descend into a mount
        outer_root = scope.get("root_path", "")
        response = _ObservedResponse()

        async def observing_send(message):
            response.observe(message)
            await send(message)

        await self.app(scope, receive, observing_send)

        try:
            self.record(scope, outer_root, response)
        except Exception as e:
            logger.warning("Failed to record %s %s: %s", scope.get("method"), scope.get("path"), e)

    def record(self, scope: dict, outer_root: str, response: _ObservedResponse) -> bool:
        """Record the request in ``scope`` unless its route is already known."""
        method = scope.get("method", "").lower()
        if method not in HTTP_METHODS or response.status is None:
            return False
        if response.status in _UNMATCHED_STATUSES and "endpoint" not in scope:
            return False

        path = route_template(scope, outer_root)
        registry = self.docs.registry
        if registry.exists(method, path) or registry.is_excluded(path):
            return False

        route = observed_route(method, path, scope.get("query_string", b""), response)
        if registry.upsert(route):
            logger.info("Recorded %s %s from traffic", method.upper(), route.path)
            return True
        return False


def route_template(scope: dict, outer_root: str = "") -> str:
    """The path template that matched the request, as far as it can be told.

    FastAPI leaves the matched route in the scope. Otherwise the values of
    the matched path parameters are replaced with their placeholders.
    """
    template = getattr(scope.get("route"), "path", None)
    if isinstance(template, str):
        root = scope.get("root_path", "")
        mount = root[len(outer_root):] if root.startswith(outer_root) else ""
        return normalize_path(join_paths(mount, template))

    path = scope.get("path", "/")
    for name, value in (scope.get("path_params") or {}).items():
        placeholder = "/{%s}" % name
        path = re.sub(rf"/{re.escape(str(value))}(?=/|$)", lambda _: placeholder, path, count=1)
    return normalize_path(path)


def observed_route(method: str, path: str, query_string: bytes, response: _ObservedResponse) -> Route:
    parameters = path_parameters(path)
    seen = {p.name for p in parameters}
    for name, value in parse_qsl(query_string.decode("latin-1"), keep_blank_values=True):
        if name in seen:
            continue
        seen.add(name)
        parameters.append(Parameter(
            name=name,
            location="query",
            required=False,
            fragment={"type": "string", "example": value},
        ))

    return Route(
        method=method,
        path=path,
        parameters=parameters,
        responses={str(response.status): response.as_openapi()},
        tags=[tag_for_path(path)],
        summary=f"{method.upper()} {path}",
        source="runtime",
        inferred={"parameters", "request_body", "responses", "tags", "summary"},
    )
