"""
Quiesce Utilities Package.

Configuration and logging shared by every module.
Requires Python 3.11+.
"""

from quiesce.utils.config import Settings, WatchOptions, get_settings
from quiesce.utils.logger import configure_logging, get_logger, LoggerMixin

__all__ = [
    "Settings",
    "WatchOptions",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggerMixin",
]
