"""
Quiesce Display Contract.

A display shows one run's output at a time and may produce user requests.
Requires Python 3.11+.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol

from quiesce.models import Message


class Sink(Protocol):
    """Binary output target handed to a display writer."""

    def write(self, data: bytes) -> Any: ...

    def flush(self) -> Any: ...


class Display(ABC):
    """Where command output goes."""

    @abstractmethod
    def redisplay(self, write: Callable[[Sink], Any]) -> None:
        """Clear previous output and synchronously call ``write`` with a fresh sink."""

    def start(self, notify: Callable[[Message], Any]) -> None:
        """Begin delivering user requests through ``notify``. Default: none."""

    def close(self) -> None:
        """Release display resources."""
