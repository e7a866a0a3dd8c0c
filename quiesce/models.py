"""
Quiesce Data Models.

Events flowing from the filesystem watcher, and the messages exchanged with
the coordination loop.
Requires Python 3.11+.
"""

from dataclasses import dataclass
from enum import Enum

from quiesce.errors import ReapError


class Operation(str, Enum):
    """Kinds of raw filesystem notifications."""

    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"


@dataclass(frozen=True)
class RawEvent:
    """A filesystem notification as delivered by the watch backend."""

    path: str
    op: Operation


@dataclass(frozen=True)
class ChangeEvent:
    """Something changed at ``path``; ``time`` is its effective modification time."""

    path: str
    time: float


@dataclass(frozen=True)
class RerunRequest:
    """The user asked for the command to be run again."""


@dataclass(frozen=True)
class KillRequest:
    """The user asked for the running command to be stopped."""


@dataclass(frozen=True)
class DismissRequest:
    """The user closed the display; stop the command and exit."""


@dataclass(frozen=True)
class RunExited:
    """A run was reaped and its output fully written."""

    run_id: int
    returncode: int


@dataclass(frozen=True)
class ReapFailed:
    """Waiting on a run failed unexpectedly."""

    run_id: int
    error: ReapError


Message = (
    ChangeEvent | RerunRequest | KillRequest | DismissRequest | RunExited | ReapFailed
)
