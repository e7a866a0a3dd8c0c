"""
Quiesce Test Doubles.

Fakes for the observer, launcher and display, plus polling helpers.
Requires Python 3.11+.
"""

import io
import os
import threading
import time
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

from quiesce.display.base import Display, Sink
from quiesce.errors import SpawnError
from quiesce.models import Message
from quiesce.process.launcher import ProcessLauncher, RunHandle

class FakeObserver:
    """Records schedule calls; refuses paths that do not exist, like inotify."""

    def __init__(self, refuse: dict[str, OSError] | None = None) -> None:
        self.scheduled: list[str] = []
        self.unscheduled: list[str] = []
        self._refuse = refuse or {}

    def schedule(self, handler: Any, path: str, recursive: bool = False) -> SimpleNamespace:
        assert recursive is False
        if path in self._refuse:
            raise self._refuse[path]
        if not os.path.exists(path):
            raise FileNotFoundError(2, "No such file or directory", path)
        self.scheduled.append(path)
        return SimpleNamespace(path=path)

    def unschedule(self, watch: SimpleNamespace) -> None:
        self.unscheduled.append(watch.path)

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def join(self, timeout: float | None = None) -> None:
        pass

class FakeProcess:
    """Stands in for subprocess.Popen."""

    _next_pid = 4000

    def __init__(self, output: bytes) -> None:
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.stdout = io.BytesIO(output)
        self.returncode: int | None = None

class FakeLauncher(ProcessLauncher):
    """
    Launcher whose runs only end when the test (or a signal) ends them.

    With ``exit_on_term`` the graceful signal ends a run; otherwise only the
    forceful one does.
    """

    supports_groups = True

    def __init__(self, output: bytes = b"", exit_on_term: bool = False, fail: bool = False) -> None:
        self.output = output
        self.exit_on_term = exit_on_term
        self.fail = fail
        self.handles: list[RunHandle] = []
        self.signals: list[tuple[int, str]] = []
        # Runs started while an earlier run was still going
        self.overlaps = 0
        self._exits: dict[int, threading.Event] = {}
        self._codes: dict[int, int] = {}

    def _popen_kwargs(self) -> dict[str, Any]:
        return {}

    def start_in_group(self, command: list[str], run_id: int) -> RunHandle:
        if self.fail:
            raise SpawnError(command, FileNotFoundError(2, "No such file or directory"))
        if any(not self.is_finished(h) for h in self.handles):
            self.overlaps += 1
        process = FakeProcess(self.output)
        handle = RunHandle(run_id=run_id, process=process, pgid=process.pid)  # type: ignore[arg-type]
        self._exits[run_id] = threading.Event()
        self.handles.append(handle)
        return handle

    def terminate(self, handle: RunHandle, graceful: bool) -> None:
        self.signals.append((handle.run_id, "TERM" if graceful else "KILL"))
        if not graceful:
            self.finish(handle, -9)
        elif self.exit_on_term:
            self.finish(handle, -15)

    def finish(self, handle: RunHandle, returncode: int = 0) -> None:
        """End a run with the given status."""
        self._codes.setdefault(handle.run_id, returncode)
        self._exits[handle.run_id].set()

    def wait(self, handle: RunHandle) -> int:
        assert self._exits[handle.run_id].wait(timeout=5), "run never finished"
        handle.returncode = self._codes[handle.run_id]
        handle.process.returncode = handle.returncode
        return handle.returncode

    def finish_all(self) -> None:
        """End every run still going."""
        for handle in self.handles:
            self.finish(handle, 0)

    def is_finished(self, handle: RunHandle) -> bool:
        """Check whether the run was ended."""
        return self._exits[handle.run_id].is_set()

class RecordingDisplay(Display):
    """Keeps every run's output; optionally calls back after each one."""

    def __init__(self, after_redisplay: Callable[["RecordingDisplay"], Any] | None = None) -> None:
        self.outputs: list[bytes] = []
        self.notify: Callable[[Message], Any] | None = None
        self._after = after_redisplay
        self._lock = threading.Lock()
        self.done = threading.Event()

    def redisplay(self, write: Callable[[Sink], Any]) -> None:
        buffer = io.BytesIO()
        write(buffer)
        with self._lock:
            self.outputs.append(buffer.getvalue())
        self.done.set()
        if self._after is not None:
            self._after(self)

    def start(self, notify: Callable[[Message], Any]) -> None:
        self.notify = notify


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll until ``predicate`` holds or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
