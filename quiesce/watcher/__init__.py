"""
Quiesce File Watcher Package.

Watch registration, event normalization and debouncing.
Requires Python 3.11+.
"""

from quiesce.watcher.debouncer import DebounceScheduler, PendingRun
from quiesce.watcher.file_watcher import FileWatcher
from quiesce.watcher.normalizer import EventNormalizer, resolve_mod_time
from quiesce.watcher.registry import WatchRegistry

__all__ = [
    "DebounceScheduler",
    "PendingRun",
    "FileWatcher",
    "EventNormalizer",
    "resolve_mod_time",
    "WatchRegistry",
]
