"""Static scanner: find routers and their routes by matching source text.

Matching is deliberately approximate. It does not evaluate expressions,
follow imports or resolve mount prefixes applied in other files, and it
misses decorators whose path argument sits on a later line than the call.
Routes declared that way are recovered by the runtime interceptor.
"""

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Protocol

from .base import (
    HTTP_METHODS,
    DiscoveredRoute,
    Route,
    RouterDescriptor,
    path_parameters,
)
from .paths import join_paths, normalize_path, tag_for_path

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".py",)
DEFAULT_ROUTER_FACTORIES = ("APIRouter", "FastAPI", "Blueprint", "Flask", "Starlette", "Router", "Quart")
DEFAULT_IGNORED_DIRS = frozenset({
    "__pycache__", ".git", ".hg", ".svn", ".tox", ".nox", ".venv", "venv",
    "node_modules", "site-packages", ".mypy_cache", ".pytest_cache",
})

# Names a WSGI/ASGI loader looks up when none is given explicitly
DEFAULT_EXPORT_NAMES = ("app", "application")

_VERBS = "|".join(HTTP_METHODS)
_METHODS_KWARG = re.compile(r"methods\s*=\s*[\[\(\{]([^\]\)\}]*)")
_QUOTED = re.compile(r"""['"]([^'"]*)['"]""")
_PREFIX_KWARG = re.compile(r"""\b(?:url_)?prefix\s*=\s*[fF]?['"]([^'"]*)['"]""")
_TAGS_KWARG = re.compile(r"\btags\s*=\s*[\[\(]([^\]\)]*)")


class SourceTree(Protocol):
    """Read access to a directory tree."""

    def list_files(self, root: Path) -> Iterable[Path]: ...

    def read_text(self, path: Path) -> str: ...


class LocalSourceTree:
    """Local filesystem tree, skipping caches, VCS and virtualenv directories."""

    def __init__(self, ignored_dirs: Iterable[str] = DEFAULT_IGNORED_DIRS):
        self.ignored_dirs = frozenset(ignored_dirs)

    def list_files(self, root: Path) -> Iterator[Path]:
        root = Path(root)
        if not root.exists():
            logger.info("Source path %s does not exist", root)
            return
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            if self.ignored_dirs.intersection(path.relative_to(root).parts[:-1]):
                continue
            yield path

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")


class StaticScanner:
    """Scans a source tree for router declarations and their verb calls."""

    def __init__(
        self,
        tree: SourceTree | None = None,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        factories: Iterable[str] = DEFAULT_ROUTER_FACTORIES,
    ):
        self.tree = tree or LocalSourceTree()
        self.extensions = tuple(extensions)
        factory_names = "|".join(re.escape(f) for f in factories)
        self._declaration = re.compile(
            r"^\s*(?P<name>[A-Za-z_]\w*)\s*(?::\s*[^=]+?)?=\s*"  # name, optional annotation
            r"(?:[A-Za-z_]\w*\s*=\s*)*"                           # chained targets
            r"(?:[A-Za-z_][\w.]*\.)?"                             # module qualifier
            rf"(?P<factory>{factory_names})\s*\((?P<args>.*)$"
        )

    def scan(self, root: str | Path) -> list[RouterDescriptor]:
        """Scan every matching file under ``root``, in path order."""
        routers = []
        for path in map(Path, self.tree.list_files(Path(root))):
            if path.suffix not in self.extensions:
                continue
            descriptor = self.scan_file(path)
            if descriptor is not None:
                routers.append(descriptor)

        logger.debug("Scanned %s: %d routers", root, len(routers))
        return routers

    def scan_file(self, path: Path) -> RouterDescriptor | None:
        """Return the descriptor for one file, or None if it declares no router."""
        try:
            content = self.tree.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading %s: %s", path, e)
            return None

        lines = content.splitlines()
        for line in lines:
            match = self._declaration.match(line)
            if match:
                break
        else:
            return None

        name = match.group("name")
        args = match.group("args")
        prefix = _PREFIX_KWARG.search(args)
        tags = _TAGS_KWARG.search(args)

        return RouterDescriptor(
            source=str(path),
            name=name,
            routes=list(_find_routes(lines, name)),
            export_style="default" if name in DEFAULT_EXPORT_NAMES else "named",
            prefix=prefix.group(1) if prefix else "",
            tags=_QUOTED.findall(tags.group(1)) if tags else [],
        )


def _find_routes(lines: list[str], name: str) -> Iterator[DiscoveredRoute]:
    owner = rf"(?<!\w){re.escape(name)}"
    path_arg = r"\(\s*(?:path\s*=\s*)?"
    verb_call = re.compile(rf"{owner}\.(?P<verb>{_VERBS})\s*{path_arg}[rR]?(?P<q>['\"])(?P<path>[^'\"]*)(?P=q)")
    verb_template = re.compile(
        rf"{owner}\.(?P<verb>{_VERBS})\s*{path_arg}(?:[fF][rR]?|[rR][fF])(?P<q>['\"])(?P<path>[^'\"]*)(?P=q)"
    )
    generic_call = re.compile(
        rf"{owner}\.(?:route|api_route|add_api_route|add_url_rule)\s*{path_arg}"
        rf"(?:[fF][rR]?|[rR][fF]?)?(?P<q>['\"])(?P<path>[^'\"]*)(?P=q)(?P<rest>.*)$"
    )

    for number, line in enumerate(lines, start=1):
        for pattern in (verb_call, verb_template):
            for match in pattern.finditer(line):
                yield DiscoveredRoute(method=match.group("verb"), path=match.group("path"), line=number)
        for match in generic_call.finditer(line):
            for method in _declared_methods(match.group("rest")):
                yield DiscoveredRoute(method=method, path=match.group("path"), line=number)


def _declared_methods(rest: str) -> list[str]:
    match = _METHODS_KWARG.search(rest)
    if not match:
        return ["get"]
    methods = [m.lower() for m in _QUOTED.findall(match.group(1))]
    return [m for m in methods if m in HTTP_METHODS] or ["get"]


def routes_from_descriptor(descriptor: RouterDescriptor) -> list[Route]:
    """Turn a scan result into registry-ready routes, all marked as guesses."""
    routes = []
    for found in descriptor.routes:
        raw = join_paths(descriptor.prefix, found.path)
        path = normalize_path(raw)
        routes.append(Route(
            method=found.method,
            path=path,
            parameters=path_parameters(raw),
            tags=descriptor.tags or [tag_for_path(path)],
            summary=f"{found.method.upper()} {path}",
            description=f"Declared in {descriptor.source}:{found.line}",
            source="scan",
            inferred={"parameters", "tags", "summary", "description"},
        ))
    return routes
