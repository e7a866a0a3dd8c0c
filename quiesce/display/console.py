"""
Quiesce Console Display.

Full-screen terminal display using rich: every run starts on a cleared
screen, and single-letter commands typed on stdin control the runs.

Commands (followed by Enter):
    r or empty line   stop the current run and run again
    k                 stop the current run
    q                 stop the current run and exit
Requires Python 3.11+.
"""

import codecs
import sys
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TextIO

from rich.console import Console

from quiesce.display.base import Display, Sink
from quiesce.models import DismissRequest, KillRequest, Message, RerunRequest
from quiesce.utils.logger import LoggerMixin

_COMMANDS: dict[str, Callable[[], Message]] = {
    "": RerunRequest,
    "r": RerunRequest,
    "k": KillRequest,
    "q": DismissRequest,
}


class ConsoleSink:
    """Decodes command output incrementally and prints it verbatim."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def write(self, data: bytes) -> int:
        text = self._decoder.decode(data)
        if text:
            self._console.out(text, end="", highlight=False)
        return len(data)

    def flush(self) -> None:
        self._console.file.flush()

    def close(self) -> None:
        """Emit whatever partial character is left."""
        text = self._decoder.decode(b"", final=True)
        if text:
            self._console.out(text, end="", highlight=False)
        self.flush()


class ConsoleDisplay(Display, LoggerMixin):
    """Clears the screen for each run and reads commands from stdin."""

    def __init__(
        self,
        root: Path | str,
        console: Console | None = None,
        commands: TextIO | None = None,
    ) -> None:
        """
        Initialize the console display.

        Args:
            root: Watched path, shown in the window title
            console: Rich console to draw on
            commands: Line-oriented command input, stdin by default
        """
        self._root = Path(root)
        self._console = console or Console()
        self._commands = commands if commands is not None else sys.stdin
        self._lock = threading.Lock()
        self._reader: threading.Thread | None = None

    @property
    def title(self) -> str:
        """Window title naming the watched tree."""
        return f"{self._root.resolve()}/+watch"

    def redisplay(self, write: Callable[[Sink], Any]) -> None:
        with self._lock:
            self._console.clear()
            sink = ConsoleSink(self._console)
            try:
                write(sink)
            finally:
                sink.close()

    def start(self, notify: Callable[[Message], Any]) -> None:
        self._console.set_window_title(self.title)
        self._reader = threading.Thread(
            target=self._read_commands,
            args=(notify,),
            name="quiesce-console-input",
            daemon=True,
        )
        self._reader.start()

    def _read_commands(self, notify: Callable[[Message], Any]) -> None:
        for line in self._commands:
            command = line.strip().lower()
            factory = _COMMANDS.get(command)
            if factory is None:
                self.log.debug("unknown_console_command", command=command)
                continue
            self.log.debug("console_command", command=command or "r")
            notify(factory())
        self.log.debug("console_input_closed")
