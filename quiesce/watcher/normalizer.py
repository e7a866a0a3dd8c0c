"""
Quiesce Event Normalizer.

Turns raw filesystem notifications into change events carrying an effective
modification time.
Requires Python 3.11+.
"""

import os
import re
import stat

from quiesce.errors import ResolutionError
from quiesce.models import ChangeEvent, Operation, RawEvent
from quiesce.utils.logger import LoggerMixin
from quiesce.watcher.registry import WatchRegistry


def resolve_mod_time(path: str) -> float:
    """
    Get the modification time of ``path`` or of its nearest existing ancestor.

    Raises:
        ResolutionError: No ancestor up to the filesystem root exists
        OSError: Stat failed for a reason other than the path being gone
    """
    current = path
    while True:
        try:
            return os.stat(current).st_mtime
        except (FileNotFoundError, NotADirectoryError):
            parent = os.path.dirname(current) or "."
            if parent == current:
                raise ResolutionError(path) from None
            current = parent


def _is_dir(path: str) -> bool:
    """Check for a directory; a missing path is not one."""
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except (FileNotFoundError, NotADirectoryError):
        return False


class EventNormalizer(LoggerMixin):
    """
    Filters and resolves raw events one at a time, in arrival order.

    Directories that appear while watching are registered before their
    change event is emitted.
    """

    def __init__(
        self,
        registry: WatchRegistry,
        exclude: re.Pattern[str] | None = None,
    ) -> None:
        self._registry = registry
        self._exclude = exclude

    def normalize(self, raw: RawEvent) -> ChangeEvent | None:
        """
        Normalize one raw event.

        Returns:
            The change event, or None when the event was filtered out or
            could not be resolved
        """
        if self._exclude is not None and self._exclude.search(raw.path):
            self.log.debug("ignoring_excluded_event", path=raw.path, op=raw.op.value)
            return None

        try:
            mod_time = resolve_mod_time(raw.path)
        except (ResolutionError, OSError) as e:
            self.log.warning("event_time_unresolved", path=raw.path, error=str(e))
            return None

        self.log.debug("change", path=raw.path, op=raw.op.value, time=mod_time)

        if raw.op is Operation.CREATE:
            try:
                is_dir = _is_dir(raw.path)
            except OSError as e:
                self.log.warning("dir_check_failed", path=raw.path, error=str(e))
                return None
            if is_dir:
                self._registry.register_tree(raw.path)

        return ChangeEvent(path=raw.path, time=mod_time)
