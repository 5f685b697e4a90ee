"""Runtime interceptor: record routes at the moment they are declared.

``RouteInterceptor`` is presented in place of a framework application or
router. Every verb and mount call is observed, turned into a ``Route`` and
handed to the sink (normally a ``RouteRegistry``) before the call is
forwarded to the wrapped object unchanged. Attributes the interceptor does
not define are looked up on the wrapped object.

Documentation metadata comes from, lowest precedence first: the handler's
signature, a ``document_route(...)`` decorator on the handler, and explicit
arguments (FastAPI-style keywords or a positional ``RouteDoc``).
"""

import functools
import inspect
import logging
import typing
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic.fields import FieldInfo

from route_scribe.schema.converter import convert, to_parameters
from route_scribe.schema.describe import describe

from .base import HTTP_METHODS, Parameter, Route, RouteDoc, path_parameters
from .harvest import doc_from_options, harvest, normalize_responses
from .paths import join_paths, normalize_path, path_placeholders, tag_for_path

logger = logging.getLogger(__name__)

_SCALAR_KINDS = {"string", "number", "boolean", "enum", "literal"}
_SKIPPED_PARAMETER_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class RouteSink(Protocol):
    """Where observed routes go."""

    def upsert(self, route: Route) -> bool: ...

    def forget(self, route: Route) -> bool: ...


def document_route(**metadata):
    """Attach documentation to a handler.

    Place it below the framework's route decorator so the metadata is in
    place when the route is registered::

        @app.post("/users")
        @document_route(summary="Create a user", request_body=UserIn)
        def create_user(): ...
    """
    doc = RouteDoc(**metadata)

    def decorator(func):
        existing = getattr(func, "__route_doc__", None)
        func.__route_doc__ = existing.merged(doc) if existing is not None else doc
        return func

    return decorator


@dataclass
class _Observation:
    method: str
    path: str  # raw, relative to the interceptor that recorded it
    doc: RouteDoc
    parameters: list[Parameter] = field(default_factory=list)
    request_body: dict | None = None


class RouteInterceptor:
    """Recording proxy around a framework application or router."""

    def __init__(self, target: Any, sink: RouteSink | None = None, prefix: str = ""):
        self._target = target
        self._sink = sink
        self.prefix = prefix or _own_prefix(target)
        self.observed: list[_Observation] = []
        self._parents: list[tuple["RouteInterceptor", str, bool]] = []

    @property
    def target(self) -> Any:
        return self._target

    def __getattr__(self, name: str) -> Any:
        try:
            target = self.__dict__["_target"]
        except KeyError:
            raise AttributeError(name) from None
        return getattr(target, name)

    def __call__(self, *args, **kwargs):
        return self._target(*args, **kwargs)

    def __repr__(self) -> str:
        return f"RouteInterceptor({self._target!r}, prefix={self.prefix!r})"

    # -- verbs -----------------------------------------------------------

    def get(self, path, *handlers, **options):
        return self._register("get", ("get",), path, handlers, options)

    def post(self, path, *handlers, **options):
        return self._register("post", ("post",), path, handlers, options)

    def put(self, path, *handlers, **options):
        return self._register("put", ("put",), path, handlers, options)

    def delete(self, path, *handlers, **options):
        return self._register("delete", ("delete",), path, handlers, options)

    def patch(self, path, *handlers, **options):
        return self._register("patch", ("patch",), path, handlers, options)

    def head(self, path, *handlers, **options):
        return self._register("head", ("head",), path, handlers, options)

    def options(self, path, *handlers, **options):
        return self._register("options", ("options",), path, handlers, options)

    def route(self, path, *handlers, **options):
        """Flask ``route``, or a mount when handed another interceptor."""
        if handlers and isinstance(handlers[0], RouteInterceptor):
            sub, rest = handlers[0], handlers[1:]
            register = getattr(self._target, "route")
            self._mount_sub(sub, path, replace_own=False)
            return self._chain(register(path, sub.target, *rest, **options))
        return self._register("route", _methods(options.get("methods")), path, handlers, options)

    def api_route(self, path, *handlers, **options):
        return self._register("api_route", _methods(options.get("methods")), path, handlers, options)

    def add_api_route(self, path, endpoint, **options):
        return self._register("add_api_route", _methods(options.get("methods")), path, (endpoint,), options)

    def add_url_rule(self, rule, endpoint=None, view_func=None, **options):
        register = getattr(self._target, "add_url_rule")
        funcs = [view_func] if view_func is not None else []
        doc = self._declared_doc((), options)
        self._observe(_methods(options.get("methods")), rule, doc, funcs)
        return self._chain(register(rule, endpoint, view_func, **options))

    # -- mounts ----------------------------------------------------------

    def include_router(self, router, *args, **options):
        register = getattr(self._target, "include_router")
        self._mount_sub(router, options.get("prefix", ""), replace_own=False)
        return self._chain(register(_unwrap(router), *args, **options))

    def register_blueprint(self, blueprint, **options):
        register = getattr(self._target, "register_blueprint")
        url_prefix = options.get("url_prefix")
        # An explicit url_prefix replaces the blueprint's own
        self._mount_sub(blueprint, url_prefix or "", replace_own=url_prefix is not None)
        result = register(_unwrap(blueprint), **options)
        if not isinstance(blueprint, RouteInterceptor):
            # Blueprint rules only exist once registered on the application
            name = options.get("name") or getattr(blueprint, "name", "")
            self._record_harvest(harvest(self._target, endpoint_prefix=f"{name}."), "")
        return self._chain(result)

    def mount(self, path, app=None, *args, **options):
        register = getattr(self._target, "mount")
        if app is not None:
            self._mount_sub(app, path, replace_own=False)
        return self._chain(register(path, _unwrap(app), *args, **options))

    def harvest_existing(self) -> int:
        """Record the routes the target already held before interception."""
        found = [
            r._replace(path=_relative(r.path, self.prefix))
            for r in harvest(self._target)
        ]
        self._record_harvest(found, "")
        return len(found)

    # -- internals -------------------------------------------------------

    def _register(self, name, methods, path, handlers, options):
        register = getattr(self._target, name)
        forward = [h for h in handlers if not isinstance(h, RouteDoc)]
        doc = self._declared_doc(handlers, options)

        if forward:
            self._observe(methods, path, doc, [h for h in forward if callable(h)])
            return self._chain(register(path, *forward, **options))

        result = register(path, **options)
        if callable(result) and result is not self._target:
            return self._wrap_decorator(result, methods, path, doc)
        self._observe(methods, path, doc, [])
        return self._chain(result)

    def _wrap_decorator(self, decorator, methods, path, doc):
        @functools.wraps(decorator)
        def observe_then_decorate(func):
            self._observe(methods, path, doc, [func])
            return decorator(func)

        return observe_then_decorate

    def _chain(self, result):
        return self if result is self._target else result

    def _declared_doc(self, handlers, options) -> RouteDoc:
        doc = doc_from_options(options)
        for handler in handlers:
            if isinstance(handler, RouteDoc):
                doc = doc.merged(handler)
        return doc

    def _observe(self, methods, path, doc, funcs) -> None:
        try:
            for func in funcs:
                handler_doc = getattr(func, "__route_doc__", None)
                if isinstance(handler_doc, RouteDoc):
                    doc = handler_doc.merged(doc)
            unknown = [m for m in methods if m not in HTTP_METHODS]
            if unknown:
                raise ValueError(f"unsupported HTTP method: {unknown[0]!r}")
            parameters, body = _infer_from_handlers(funcs, path)
            for method in methods:
                self._record(_Observation(method, path, doc, parameters, body))
        except Exception as e:
            logger.warning("Failed to record %s %s: %s", "/".join(methods).upper(), path, e)

    def _record(self, observation: _Observation) -> None:
        self.observed.append(observation)
        self._emit(observation, observation.path)

    def _record_harvest(self, found, prefix: str) -> None:
        for method, path, handler, doc in found:
            funcs = [handler] if callable(handler) else []
            self._observe((method,), join_paths(prefix, path), doc, funcs)

    def _emit(self, observation: _Observation, path: str) -> None:
        full = join_paths(self.prefix, path)
        if self._sink is not None:
            self._sink.upsert(_materialize(observation, full))
        for parent, mount_prefix, replace_own in self._parents:
            parent._emit(observation, join_paths(mount_prefix, path if replace_own else full))

    def _mount_sub(self, sub, prefix: str, replace_own: bool) -> None:
        if isinstance(sub, RouteInterceptor):
            try:
                sub._attach_to(self, prefix, replace_own)
            except Exception as e:
                logger.warning("Failed to replay routes mounted at %s: %s", prefix or "/", e)
            return
        self._record_harvest(harvest(sub), prefix)

    def _attach_to(self, parent: "RouteInterceptor", prefix: str, replace_own: bool) -> None:
        # Once mounted, routes are only reported through the parent
        if self._sink is not None:
            for observation in self.observed:
                self._sink.forget(_materialize(observation, join_paths(self.prefix, observation.path)))
            self._sink = None
        self._parents.append((parent, prefix, replace_own))
        for observation in self.observed:
            local = observation.path if replace_own else join_paths(self.prefix, observation.path)
            parent._emit(observation, join_paths(prefix, local))


def _own_prefix(target: Any) -> str:
    for name in ("prefix", "url_prefix"):
        value = getattr(target, name, None)
        if isinstance(value, str):
            return value
    return ""


def _unwrap(obj: Any) -> Any:
    return obj.target if isinstance(obj, RouteInterceptor) else obj


def _relative(path: str, prefix: str) -> str:
    if prefix and path.startswith(prefix):
        return path[len(prefix):] or "/"
    return path


def _methods(methods) -> tuple[str, ...]:
    if not methods:
        return ("get",)
    if isinstance(methods, str):
        methods = [methods]
    return tuple(dict.fromkeys(m.lower() for m in methods))


def _materialize(observation: _Observation, raw_path: str) -> Route:
    return build_route(
        observation.method,
        raw_path,
        observation.doc,
        source="runtime",
        parameters=observation.parameters,
        request_body=observation.request_body,
    )


def build_route(
    method: str,
    raw_path: str,
    doc: RouteDoc,
    *,
    source: str = "manual",
    parameters: list[Parameter] = (),
    request_body: dict | None = None,
) -> Route:
    """Build a Route from documentation metadata.

    ``parameters`` and ``request_body`` are inferred values (read off a
    handler signature); whatever ``doc`` declares takes their place. Tags
    and summary fall back to generated values, and every generated or
    inferred field is recorded in ``Route.inferred``.
    """
    path = normalize_path(raw_path)
    inferred = set()

    merged = {("path", p.name): p for p in path_parameters(raw_path)}
    for parameter in parameters:
        merged[(parameter.location, parameter.name)] = parameter
    if doc.query is not None:
        for parameter in to_parameters(doc.query):
            merged[("query", parameter.name)] = parameter
    else:
        inferred.add("parameters")

    if doc.request_body is not None:
        body = doc.request_body if isinstance(doc.request_body, dict) else convert(doc.request_body)
    else:
        body = request_body
        inferred.add("request_body")

    if not doc.tags:
        inferred.add("tags")
    if not doc.summary:
        inferred.add("summary")

    return Route(
        method=method,
        path=path,
        parameters=list(merged.values()),
        request_body=body,
        responses=normalize_responses(doc.responses),
        tags=doc.tags or [tag_for_path(path)],
        summary=doc.summary or f"{method.upper()} {path}",
        description=doc.description,
        deprecated=doc.deprecated,
        source=source,
        inferred=inferred,
    )


def _infer_from_handlers(funcs, raw_path: str) -> tuple[list[Parameter], dict | None]:
    """Read path, query and body parameters off handler signatures.

    Injected dependencies are skipped, and so are parameters bound to
    headers or cookies.
    """
    placeholders = dict(path_placeholders(raw_path))
    parameters: list[Parameter] = []
    body = None

    for func in funcs:
        for name, annotation, default in _signature(func):
            markers = _markers(annotation, default)
            if any(hasattr(marker, "dependency") for marker in markers):
                continue
            if annotation is None:
                if name in placeholders:
                    parameters.append(
                        Parameter(name=name, location="path", required=True, fragment=placeholders[name])
                    )
                continue

            metadata = [default] if isinstance(default, FieldInfo) else []
            node = describe(annotation, metadata)
            marker = next((m for m in reversed(markers) if isinstance(m, FieldInfo)), None)
            location = _parameter_location(marker)
            if name in placeholders:
                fragment = convert(node) if _is_scalar(node) else placeholders[name]
                parameters.append(Parameter(name=name, location="path", required=True, fragment=fragment))
            elif location not in (None, "query"):
                continue
            elif _unwrap_optional(node).kind == "object":
                body = convert(node)
            elif _is_scalar(node) and location == "query":
                if isinstance(default, FieldInfo):
                    required = default.is_required()
                else:
                    required = default is inspect.Parameter.empty
                if marker is not None and marker.alias:
                    name = marker.alias
                parameters.append(Parameter(name=name, location="query", required=required, fragment=convert(node)))

    return parameters, body


def _signature(func):
    try:
        signature = inspect.signature(func)
        hints = typing.get_type_hints(func, include_extras=True)
    except (AttributeError, TypeError, ValueError, NameError) as e:
        logger.debug("Cannot inspect handler %r: %s", func, e)
        return
    for name, parameter in signature.parameters.items():
        if parameter.kind in _SKIPPED_PARAMETER_KINDS:
            continue
        yield name, hints.get(name), parameter.default


def _markers(annotation: Any, default: Any) -> list:
    """The default value plus any ``Annotated`` metadata, in declaration order."""
    markers = []
    if typing.get_origin(annotation) is typing.Annotated:
        markers.extend(typing.get_args(annotation)[1:])
    markers.append(default)
    return markers


def _parameter_location(marker: FieldInfo | None) -> str | None:
    if marker is None:
        return "query"
    location = getattr(marker, "in_", None)
    if location is not None:
        return getattr(location, "value", location)
    # Body / Form / File markers carry no location
    return "query" if type(marker) is FieldInfo else None


def _unwrap_optional(node):
    while node.kind in ("optional", "default"):
        node = node.inner
    return node


def _is_scalar(node) -> bool:
    node = _unwrap_optional(node)
    if node.kind == "array":
        return _is_scalar(node.items)
    if node.kind == "union":
        return all(_is_scalar(option) for option in node.options)
    return node.kind in _SCALAR_KINDS
