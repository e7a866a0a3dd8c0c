"""
Quiesce Watch Registry.

Keeps one non-recursive watch per directory so that excluded directories are
never traversed, and so that directories created later can be added with
their whole subtree.
Requires Python 3.11+.
"""

import os
import re
import stat
import threading

from watchdog.events import FileSystemEventHandler
from watchdog.observers.api import BaseObserver, ObservedWatch

from quiesce.utils.logger import LoggerMixin


def _join(directory: str, name: str) -> str:
    """Join like os.path.join, but without a leading "." component."""
    if directory == os.curdir:
        return name
    return os.path.join(directory, name)


class WatchRegistry(LoggerMixin):
    """
    Registers paths with a watchdog observer.

    The set of watched paths only grows: a deleted directory's watch goes
    inert, and registering the same path again replaces it.
    """

    def __init__(
        self,
        observer: BaseObserver,
        handler: FileSystemEventHandler,
        exclude: re.Pattern[str] | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            observer: Observer that owns the watches
            handler: Event handler attached to every watch
            exclude: Paths matching this expression are skipped
        """
        self._observer = observer
        self._handler = handler
        self._exclude = exclude
        self._watches: dict[str, ObservedWatch] = {}
        self._lock = threading.Lock()

    def is_excluded(self, path: str) -> bool:
        """Check whether a path matches the exclusion pattern."""
        return self._exclude is not None and self._exclude.search(path) is not None

    def discover(self, root: str) -> list[str]:
        """
        Find every path under ``root`` that should be watched.

        A plain file yields just itself; a directory yields itself and all of
        its non-excluded subdirectories. A missing root yields nothing.
        """
        try:
            st = os.stat(root)
        except (FileNotFoundError, NotADirectoryError):
            self.log.debug("path_vanished", path=root)
            return []
        except OSError as e:
            self.log.warning("stat_failed", path=root, error=str(e))
            return []

        if not stat.S_ISDIR(st.st_mode):
            return [root]

        found: list[str] = []
        seen = {(st.st_dev, st.st_ino)}
        stack = [root]
        while stack:
            directory = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = list(it)
            except FileNotFoundError:
                self.log.debug("path_vanished", path=directory)
                continue
            except OSError as e:
                self.log.warning("list_failed", path=directory, error=str(e))
                entries = []

            found.append(directory)

            for entry in entries:
                sub = _join(directory, entry.name)
                if self.is_excluded(sub):
                    self.log.debug("excluding", path=sub)
                    continue
                try:
                    if not entry.is_dir():
                        continue
                    sub_stat = entry.stat()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    self.log.warning("stat_failed", path=sub, error=str(e))
                    continue

                # Symlinked directories are followed, but only once
                key = (sub_stat.st_dev, sub_stat.st_ino)
                if key in seen:
                    continue
                seen.add(key)
                stack.append(sub)

        return found

    def register_tree(self, root: str) -> None:
        """Watch ``root`` and, when it is a directory, its whole subtree."""
        for path in self.discover(root):
            self.watch(path)

    def watch(self, path: str) -> None:
        """Watch a single path, replacing any earlier watch on it."""
        self.log.debug("watching", path=path)

        # The observer lock is held while handlers run; never call into the
        # observer with our own lock held.
        with self._lock:
            stale = self._watches.pop(path, None)
        if stale is not None:
            try:
                self._observer.unschedule(stale)
            except KeyError:
                pass

        try:
            watch = self._observer.schedule(self._handler, path, recursive=False)
        except (FileNotFoundError, NotADirectoryError):
            self.log.debug("path_no_longer_exists", path=path)
            return
        except OSError as e:
            self.log.warning("watch_failed", path=path, error=str(e))
            return

        with self._lock:
            self._watches[path] = watch

    @property
    def paths(self) -> list[str]:
        """Currently watched paths."""
        with self._lock:
            return sorted(self._watches)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._watches

    def __len__(self) -> int:
        with self._lock:
            return len(self._watches)
