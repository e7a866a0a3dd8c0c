"""
Quiesce File Watcher.

Filesystem monitoring using watchdog.
Requires Python 3.11+.
"""

import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from quiesce.errors import WatchSetupError
from quiesce.models import ChangeEvent, Operation, RawEvent
from quiesce.utils.logger import LoggerMixin
from quiesce.watcher.normalizer import EventNormalizer
from quiesce.watcher.registry import WatchRegistry

# Opened and closed-without-write events are not changes.
_OPERATIONS = {
    EVENT_TYPE_CREATED: Operation.CREATE,
    EVENT_TYPE_MODIFIED: Operation.WRITE,
    EVENT_TYPE_CLOSED: Operation.WRITE,
    EVENT_TYPE_DELETED: Operation.REMOVE,
}


def _clean(path: bytes | str) -> str:
    # Events under a "." watch arrive as "./name"; discovery yields "name".
    return os.path.normpath(os.fsdecode(path))


def to_raw_events(event: FileSystemEvent) -> list[RawEvent]:
    """Translate a watchdog event into raw notifications."""
    if event.event_type == EVENT_TYPE_MOVED:
        raw = [RawEvent(_clean(event.src_path), Operation.RENAME)]
        # Moves out of the watched tree may carry no destination
        if event.dest_path:
            raw.append(RawEvent(_clean(event.dest_path), Operation.CREATE))
        return raw
    op = _OPERATIONS.get(event.event_type)
    if op is None:
        return []
    return [RawEvent(_clean(event.src_path), op)]


class FileWatcher(FileSystemEventHandler, LoggerMixin):
    """
    Watches a tree and forwards change events.

    Runs on the watchdog observer thread. ``on_change`` receives each
    normalized event; it may block briefly when the consumer is behind.
    """

    def __init__(
        self,
        root_path: Path | str,
        on_change: Callable[[ChangeEvent], Any],
        exclude: re.Pattern[str] | None = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        """
        Initialize the file watcher.

        Args:
            root_path: File or directory to watch
            on_change: Callback for each change event
            exclude: Paths matching this expression are ignored
            observer_factory: Builds the watchdog observer
        """
        super().__init__()
        self._root_path = os.path.normpath(os.fspath(root_path))
        self._on_change = on_change
        self._exclude = exclude
        self._observer_factory = observer_factory

        self._observer: BaseObserver | None = None
        self._registry: WatchRegistry | None = None
        self._normalizer: EventNormalizer | None = None
        self._running = False

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Normalize and forward every change."""
        if self._normalizer is None:
            return
        for raw in to_raw_events(event):
            change = self._normalizer.normalize(raw)
            if change is not None:
                self._on_change(change)

    def start(self) -> None:
        """
        Start watching.

        Raises:
            WatchSetupError: The observer could not be started, or the root
                could not be examined
        """
        if self._running:
            return

        try:
            os.stat(self._root_path)
        except (FileNotFoundError, NotADirectoryError):
            self.log.warning("root_missing", path=self._root_path)
        except OSError as e:
            raise WatchSetupError(f"failed to watch {self._root_path}: {e}") from e

        observer = self._observer_factory()
        try:
            observer.start()
        except (OSError, RuntimeError) as e:
            raise WatchSetupError(f"failed to start the file watcher: {e}") from e

        self._observer = observer
        self._registry = WatchRegistry(observer, self, exclude=self._exclude)
        self._normalizer = EventNormalizer(self._registry, exclude=self._exclude)
        self._registry.register_tree(self._root_path)
        self._running = True

        self.log.info(
            "file_watcher_started",
            path=self._root_path,
            watches=len(self._registry),
            exclude=self._exclude.pattern if self._exclude else None,
        )

    def stop(self) -> None:
        """Stop watching."""
        if not self._running:
            return

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        self._running = False
        self.log.info("file_watcher_stopped")

    @property
    def registry(self) -> WatchRegistry | None:
        """The registry, once started."""
        return self._registry

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def __enter__(self) -> "FileWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
