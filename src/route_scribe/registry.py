"""Route registry: the single deduplicated store of discovered routes.

Entries are keyed on ``(method, normalized path)``. A registration for a
key that already exists merges into the stored entry field by field: a new
non-empty value replaces the stored one unless the stored value has a
higher rank. Declared values outrank values inferred at runtime, which
outrank values guessed by the static scanner.
"""

import copy
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field

from route_scribe.discovery.base import Route
from route_scribe.discovery.paths import normalize_path

logger = logging.getLogger(__name__)

MERGED_FIELDS = (
    "parameters",
    "request_body",
    "responses",
    "tags",
    "summary",
    "description",
    "deprecated",
)

DECLARED, INFERRED, GUESSED = 2, 1, 0


@dataclass
class _Entry:
    route: Route
    ranks: dict[str, int] = field(default_factory=dict)
    # source -> generation in which that source last reported the route
    seen: dict[str, int] = field(default_factory=dict)


def _is_empty(value) -> bool:
    return value is None or value is False or value in ("", [], {})


def _rank(route: Route, name: str) -> int:
    if name not in route.inferred:
        return DECLARED
    return GUESSED if route.source == "scan" else INFERRED


def _prefix(path: str) -> str:
    path = path.strip()
    return path if path.startswith("/") else "/" + path


class RouteRegistry:
    """Insertion-ordered store of routes keyed on (method, path).

    Every method is safe to call from several threads.
    """

    def __init__(self, exclude_paths: Iterable[str] = (), docs_route: str | None = None):
        self.excluded_prefixes = tuple(_prefix(p) for p in exclude_paths if p)
        self.docs_route = normalize_path(docs_route) if docs_route else None
        self._entries: dict[tuple[str, str], _Entry] = {}
        self.lock = threading.RLock()

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def is_excluded(self, path: str) -> bool:
        """True under an exclusion prefix or the documentation route.

        Exclusion prefixes match as plain string prefixes (``/internal``
        also covers ``/internals``); the documentation route matches whole
        segments only.
        """
        path = normalize_path(path)
        if any(path.startswith(prefix) for prefix in self.excluded_prefixes):
            return True
        docs = self.docs_route
        return docs is not None and (docs == "/" or path == docs or path.startswith(docs + "/"))

    def exists(self, method: str, path: str) -> bool:
        with self.lock:
            return (method.lower(), normalize_path(path)) in self._entries

    def upsert(self, route: Route, generation: int = 0) -> bool:
        """Insert ``route`` or merge it into the existing entry.

        Returns False when the path is excluded and nothing was stored.
        """
        if self.is_excluded(route.path):
            logger.debug("Skipping excluded route %s %s", route.method, route.path)
            return False

        with self.lock:
            entry = self._entries.get(route.key)
            if entry is None:
                entry = _Entry(
                    route=route.model_copy(deep=True),
                    ranks={name: _rank(route, name) for name in MERGED_FIELDS},
                )
                self._entries[route.key] = entry
                logger.debug("Registered %s %s from %s", route.method, route.path, route.source)
            else:
                self._merge(entry, route)

            entry.seen[route.source] = max(generation, entry.seen.get(route.source, generation))
        return True

    def snapshot(self) -> list[Route]:
        """Copies of every stored route, in first-seen order."""
        with self.lock:
            return [entry.route.model_copy(deep=True) for entry in self._entries.values()]

    def reset(self) -> None:
        with self.lock:
            self._entries.clear()

    def forget(self, route: Route) -> bool:
        """Withdraw one source's sighting of a route.

        The entry is removed once no source has reported it.
        """
        with self.lock:
            entry = self._entries.get(route.key)
            if entry is None or route.source not in entry.seen:
                return False
            del entry.seen[route.source]
            if not entry.seen:
                del self._entries[route.key]
        return True

    def prune(self, source: str, generation: int) -> list[Route]:
        """Forget ``source`` sightings older than ``generation``.

        Entries no source has reported any more are removed and returned.
        """
        removed = []
        with self.lock:
            for key, entry in list(self._entries.items()):
                last = entry.seen.get(source)
                if last is None or last >= generation:
                    continue
                del entry.seen[source]
                if not entry.seen:
                    removed.append(self._entries.pop(key).route)
                    logger.info("Removed stale route %s %s", *key)
        return removed

    def _merge(self, entry: _Entry, route: Route) -> None:
        stored = entry.route
        updates = {}
        for name in MERGED_FIELDS:
            value = getattr(route, name)
            if _is_empty(value):
                continue
            rank = _rank(route, name)
            if rank < entry.ranks.get(name, GUESSED) and not _is_empty(getattr(stored, name)):
                continue
            updates[name] = copy.deepcopy(value)
            entry.ranks[name] = rank
        if updates:
            entry.route = stored.model_copy(update=updates)
