"""
Quiesce Process Controller.

Runs the command, streams its output to the display, and stops a run that is
still going when the next one is requested.
Requires Python 3.11+.
"""

import signal
import threading
import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Any

from quiesce.display.base import Display, Sink
from quiesce.errors import ReapError, SpawnError
from quiesce.models import Message, ReapFailed, RunExited
from quiesce.process.launcher import ProcessLauncher, RunHandle
from quiesce.utils.logger import LoggerMixin

# Largest chunk copied from the command's output in one read.
CHUNK_SIZE = 64 * 1024


class ControllerState(str, Enum):
    """Lifecycle states of the controller."""

    IDLE = "idle"
    RUNNING = "running"
    TERMINATING = "terminating"


def exit_status_line(returncode: int) -> str | None:
    """Describe an abnormal exit, or None for success."""
    if returncode > 0:
        return f"exit status {returncode}"
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"signal: {name}"
    return None


class ProcessController(LoggerMixin):
    """
    Owns at most one live run of the command.

    Every method except the supervisor thread body is called from the
    coordination loop. The supervisor reports back only by posting messages
    through ``notify``.
    """

    def __init__(
        self,
        command: list[str],
        display: Display,
        launcher: ProcessLauncher,
        notify: Callable[[Message], Any],
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the controller.

        Args:
            command: Command and its arguments
            display: Where each run's output is shown
            launcher: Starts and signals processes
            notify: Posts messages to the coordination loop
            clock: Wall clock used for completion times
        """
        self._command = command
        self._display = display
        self._launcher = launcher
        self._notify = notify
        self._clock = clock

        self._state = ControllerState.IDLE
        self._handle: RunHandle | None = None
        self._pending = False
        self._next_run_id = 1
        self.last_completed: float | None = None

    @property
    def state(self) -> ControllerState:
        """Current lifecycle state."""
        return self._state

    @property
    def handle(self) -> RunHandle | None:
        """The live run, if any."""
        return self._handle

    @property
    def has_pending(self) -> bool:
        """Check if a run is queued behind the live one."""
        return self._pending

    def request_run(self) -> None:
        """
        Start a run now, or stop the live one and run once it is reaped.

        Raises:
            SpawnError: The command could not be started
        """
        if self._state is ControllerState.IDLE:
            self._start()
            return

        self.log.debug("run_requested_while_active", run_id=self._handle.run_id)
        self._pending = True
        self.terminate()

    def kill(self) -> None:
        """Stop the live run without queueing another."""
        if self._handle is None:
            self.log.debug("kill_ignored_no_run")
            return
        self.terminate()

    def terminate(self) -> None:
        """Interrupt the live run; every later request for it forces a kill."""
        handle = self._handle
        if handle is None:
            return

        graceful = handle.signals_sent == 0
        handle.signals_sent += 1
        self._state = ControllerState.TERMINATING
        self.log.debug(
            "terminating",
            run_id=handle.run_id,
            graceful=graceful,
            requests=handle.signals_sent,
        )
        self._launcher.terminate(handle, graceful=graceful)

    def on_exit(self, message: RunExited) -> None:
        """
        Handle a reaped run and start the queued run, if any.

        Raises:
            SpawnError: The queued run could not be started
        """
        if self._handle is None or message.run_id != self._handle.run_id:
            self.log.debug("stale_exit_ignored", run_id=message.run_id)
            return

        self.last_completed = self._clock()
        self.log.info(
            "run_finished",
            run_id=message.run_id,
            returncode=message.returncode,
            seconds=round(self.last_completed - self._handle.started_at, 3),
        )
        self._handle = None
        self._state = ControllerState.IDLE

        if self._pending:
            self._pending = False
            self._start()

    def shutdown(self) -> None:
        """Kill the live run outright and drop any queued run."""
        self._pending = False
        if self._handle is not None:
            self.log.debug("killing_on_shutdown", run_id=self._handle.run_id)
            self._launcher.terminate(self._handle, graceful=False)

    def _start(self) -> None:
        run_id = self._next_run_id
        self._next_run_id += 1

        try:
            handle = self._launcher.start_in_group(self._command, run_id)
        except SpawnError as e:
            self.log.error("spawn_failed", command=self._command, error=str(e))
            self._display.redisplay(partial(self._write_spawn_failure, e))
            raise

        self._handle = handle
        self._state = ControllerState.RUNNING
        self.log.info("run_started", run_id=run_id, pid=handle.pid)

        thread = threading.Thread(
            target=self._supervise,
            args=(handle,),
            name=f"quiesce-run-{run_id}",
            daemon=True,
        )
        thread.start()

    def _header(self) -> bytes:
        return (" ".join(self._command) + "\n").encode()

    def _write_spawn_failure(self, error: SpawnError, out: Sink) -> None:
        out.write(self._header())
        out.write(f"fatal: {error}\n".encode())
        out.flush()

    def _supervise(self, handle: RunHandle) -> None:
        """Supervisor thread: show the run's output, reap it, report back."""
        try:
            self._display.redisplay(partial(self._stream, handle))
        except ReapError as e:
            self._notify(ReapFailed(handle.run_id, e))
            return
        except Exception as e:
            # The display broke; the run must not outlive it unreported.
            self.log.error("display_failed", run_id=handle.run_id, error=repr(e))
            if handle.returncode is None:
                self._launcher.terminate(handle, graceful=False)
                try:
                    self._launcher.wait(handle)
                except ReapError as reap_error:
                    self._notify(ReapFailed(handle.run_id, reap_error))
                    return

        assert handle.returncode is not None
        self._notify(RunExited(handle.run_id, handle.returncode))

    def _stream(self, handle: RunHandle, out: Sink) -> None:
        out.write(self._header())
        out.flush()

        stdout = handle.stdout
        for chunk in iter(partial(stdout.read1, CHUNK_SIZE), b""):
            out.write(chunk)
            out.flush()

        returncode = self._launcher.wait(handle)
        status = exit_status_line(returncode)
        if status is not None:
            out.write(f"{status}\n".encode())
        out.write(f"{datetime.now().astimezone()}\n".encode())
        out.flush()
