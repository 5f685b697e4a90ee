"""Re-run discovery when source files change."""

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Debounce delay in seconds
DEBOUNCE_DELAY = 0.5


@dataclass
class FileChange:
    """A single file system event."""

    path: Path
    event_type: str  # created, modified, deleted, moved
    timestamp: float = field(default_factory=time.time)


class SourceWatcher:
    """Watches source directories with watchdog and reports debounced batches.

    Bursts of events (an editor saving several files, a ``git checkout``)
    collapse into a single ``on_change`` call once ``debounce_delay``
    seconds pass without a new event. Calls never overlap.
    """

    def __init__(
        self,
        paths: Iterable[Path],
        on_change: Callable[[list[FileChange]], None],
        extensions: Iterable[str] = (".py",),
        debounce_delay: float = DEBOUNCE_DELAY,
    ) -> None:
        self.paths = [Path(p) for p in paths]
        self.on_change = on_change
        self.extensions = tuple(extensions)
        self.debounce_delay = debounce_delay
        self._pending_changes: list[FileChange] = []
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._observer = None

    def start(self) -> None:
        """Start watching for file changes."""
        from watchdog.events import FileSystemEventHandler
        from watchdog.observers import Observer

        watcher = self

        class Handler(FileSystemEventHandler):
            def on_any_event(self, event) -> None:
                if event.is_directory:
                    return
                path = Path(event.src_path)
                if watcher.accepts(path):
                    watcher._add_change(FileChange(path=path, event_type=event.event_type))

        self._observer = Observer()
        handler = Handler()
        for path in self.paths:
            if path.exists():
                self._observer.schedule(handler, str(path), recursive=True)
            else:
                logger.warning("Not watching %s: path does not exist", path)

        self._observer.start()
        logger.info("Watching %s", ", ".join(str(p) for p in self.paths))

    def stop(self) -> None:
        """Stop watching for file changes."""
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None

    def accepts(self, path: Path) -> bool:
        """True for a source file under a watched root, outside caches and dot-directories."""
        if path.suffix not in self.extensions:
            return False
        path = Path(path).resolve()
        for root in self.paths:
            try:
                parts = path.relative_to(root.resolve()).parts[:-1]
            except ValueError:
                continue
            return not any(part == "__pycache__" or part.startswith(".") for part in parts)
        return False

    def _add_change(self, change: FileChange) -> None:
        """Queue a change and restart the debounce timer."""
        with self._lock:
            self._pending_changes.append(change)
            if self._timer:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_delay, self._flush_changes)
            self._timer.daemon = True
            self._timer.start()

    def _flush_changes(self) -> None:
        """Hand the pending batch to ``on_change``, one path per entry."""
        with self._lock:
            changes = self._pending_changes.copy()
            self._pending_changes.clear()
            self._timer = None

        if not changes:
            return

        unique = {}
        for change in changes:
            unique[change.path] = change

        with self._run_lock:
            try:
                self.on_change(list(unique.values()))
            except Exception:
                logger.exception("Change handler failed")
