"""
Quiesce Terminal Display.

Writes straight to a stream, one run after another.
Requires Python 3.11+.
"""

import threading
from collections.abc import Callable
from typing import Any, BinaryIO

from quiesce.display.base import Display, Sink


class WriterDisplay(Display):
    """
    Appends each run's output to a binary stream.

    A plain stream cannot be cleared, so earlier runs stay visible above.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def redisplay(self, write: Callable[[Sink], Any]) -> None:
        with self._lock:
            write(self._stream)
            self._stream.flush()
