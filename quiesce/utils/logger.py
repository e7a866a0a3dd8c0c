"""
Quiesce Structured Logging Module.

Diagnostics always go to stderr; stdout belongs to the watched command.
Requires Python 3.11+.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from quiesce.utils.config import get_settings

# Third-party loggers that chatter at debug level
_QUIET_LOGGERS = ("watchdog",)


def _add_app_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp JSON entries with the program name and version."""
    settings = get_settings()
    event_dict.setdefault("app", settings.app_name)
    event_dict.setdefault("version", settings.app_version)
    return event_dict


def _renderer(fmt: str) -> list[Processor]:
    if fmt == "json":
        return [
            _add_app_context,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def configure_logging(verbose: bool = False) -> None:
    """
    Configure structured logging on stderr.

    ``-v`` forces debug output; otherwise QUIESCE_LOG_LEVEL decides.
    """
    settings = get_settings()
    level_name = "DEBUG" if verbose else settings.logging.level.upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderer(settings.logging.format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(name)s: %(message)s", stream=sys.stderr, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, bound to ``component`` when a name is given."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(component=name)


class LoggerMixin:
    """Gives a class a ``log`` attribute bound to its class name."""

    @property
    def log(self) -> structlog.stdlib.BoundLogger:
        try:
            return self._log
        except AttributeError:
            self._log = get_logger(type(self).__name__)
            return self._log
