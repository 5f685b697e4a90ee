"""ApiDocs: discovery, registration and serving in one object.

Typical use with FastAPI::

    docs = ApiDocs(DocsConfig(title="Shop API"))
    app = docs.intercept(FastAPI())

    @app.get("/items/{item_id}")
    def read_item(item_id: int): ...

    docs.scan("./src")
    app.mount(docs.config.route, docs.endpoint())
"""

import json
import logging
from pathlib import Path
from typing import Any

from route_scribe.assembler import render
from route_scribe.config import DocsConfig
from route_scribe.discovery.base import Route, RouteDoc, RouterDescriptor
from route_scribe.discovery.document import parse_openapi
from route_scribe.discovery.interceptor import RouteInterceptor, build_route
from route_scribe.discovery.scanner import SourceTree, StaticScanner, routes_from_descriptor
from route_scribe.middleware import CaptureMiddleware
from route_scribe.registry import RouteRegistry
from route_scribe.templates import swagger_ui_html
from route_scribe.watcher import SourceWatcher

logger = logging.getLogger(__name__)


class ApiDocs:
    """Owns one route registry and feeds it from every discovery source."""

    def __init__(self, config: DocsConfig | None = None, tree: SourceTree | None = None):
        self.config = config or DocsConfig()
        self.registry = RouteRegistry(
            exclude_paths=self.config.exclude_paths,
            docs_route=self.config.route,
        )
        self.scanner = StaticScanner(
            tree=tree,
            extensions=self.config.extensions,
            factories=self.config.router_factories,
        )
        self._generation = 0

    def intercept(self, target: Any, prefix: str = "") -> RouteInterceptor:
        """Wrap an application or router so route declarations are recorded.

        Routes the target already holds are recorded immediately.
        """
        interceptor = RouteInterceptor(target, sink=self.registry, prefix=prefix)
        interceptor.harvest_existing()
        return interceptor

    def collect(self, target: Any, prefix: str = "") -> int:
        """Record the routes of a fully built application without wrapping it."""
        return RouteInterceptor(target, sink=self.registry, prefix=prefix).harvest_existing()

    def register_route(self, method: str, path: str, **metadata) -> Route:
        """Document a route by hand.

        ``metadata`` takes the RouteDoc fields; schema values may be pydantic
        models, annotations or ready JSON-Schema dicts.
        """
        route = build_route(method, path, RouteDoc(**metadata), source="manual")
        self.registry.upsert(route)
        return route

    def add_route(self, route: Route) -> bool:
        return self.registry.upsert(route)

    def scan(self, root: str | Path | None = None) -> list[RouterDescriptor]:
        """Statically scan a source tree and merge what it finds.

        Routes an earlier scan found but this one does not are dropped,
        unless another source has also reported them.
        """
        root = Path(root or self.config.source_dir)
        descriptors = self.scanner.scan(root)

        # Readers see either the previous scan or this one, never a mix
        with self.registry.lock:
            self._generation += 1
            count = 0
            for descriptor in descriptors:
                for route in routes_from_descriptor(descriptor):
                    count += self.registry.upsert(route, generation=self._generation)
            removed = self.registry.prune("scan", self._generation)

        logger.info(
            "Scanned %s: %d routers, %d routes, %d removed",
            root, len(descriptors), count, len(removed),
        )
        return descriptors

    def load_document(self, path: str | Path) -> int:
        """Seed the registry from an existing OpenAPI/Swagger document."""
        routes = parse_openapi(Path(path))
        return sum(self.registry.upsert(route) for route in routes)

    def spec(self) -> dict:
        """Render the current OpenAPI document."""
        return render(self.registry.snapshot(), self.config)

    def endpoint(self):
        """ASGI application serving the viewer and the document.

        ``<route>/openapi.json`` returns the document; any other path
        returns the viewer page.
        """
        spec_route = self.config.spec_route

        async def app(scope, receive, send):
            if scope["type"] != "http":
                return
            if scope.get("path", "").rstrip("/").endswith("/openapi.json"):
                body = json.dumps(self.spec()).encode("utf-8")
                content_type = b"application/json"
            else:
                body = swagger_ui_html(spec_route, self.config.title).encode("utf-8")
                content_type = b"text/html; charset=utf-8"

            await send({
                "type": "http.response.start",
                "status": 200,
                "headers": [
                    (b"content-type", content_type),
                    (b"content-length", str(len(body)).encode("ascii")),
                ],
            })
            await send({"type": "http.response.body", "body": body})

        return app

    def middleware(self, app) -> CaptureMiddleware:
        """Wrap an ASGI application: serve the documentation route and
        record routes seen in live traffic that no other source reported.
        """
        return CaptureMiddleware(app, self)

    def watch(self, root: str | Path | None = None, on_update=None) -> SourceWatcher:
        """Rescan ``root`` whenever a source file changes.

        ``on_update`` receives the freshly rendered document after each
        rescan. The returned watcher is already started; call ``stop()``.
        """
        root = Path(root or self.config.source_dir)

        def rescan(changes):
            logger.info("%d files changed, rescanning %s", len(changes), root)
            self.scan(root)
            if on_update is not None:
                on_update(self.spec())

        watcher = SourceWatcher([root], rescan, extensions=self.config.extensions)
        watcher.start()
        return watcher
