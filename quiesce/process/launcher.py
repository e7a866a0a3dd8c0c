"""
Quiesce Process Launcher.

Starts the command in its own process group where the platform has one, so
that stopping a run also stops everything the command started.
Requires Python 3.11+.
"""

import os
import signal
import subprocess
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import IO, Any

from quiesce.errors import ReapError, SpawnError
from quiesce.utils.logger import LoggerMixin


@dataclass
class RunHandle:
    """One in-flight execution of the command."""

    run_id: int
    process: subprocess.Popen[bytes]
    started_at: float = field(default_factory=time.time)
    pgid: int | None = None
    # Termination requests seen so far; the first is graceful, later ones force.
    signals_sent: int = 0
    returncode: int | None = None

    @property
    def pid(self) -> int:
        """Process ID of the command."""
        return self.process.pid

    @property
    def stdout(self) -> IO[bytes]:
        """Merged stdout and stderr of the command."""
        assert self.process.stdout is not None
        return self.process.stdout


class ProcessLauncher(ABC, LoggerMixin):
    """Platform-specific process group handling."""

    supports_groups: bool = False

    def start_in_group(self, command: list[str], run_id: int) -> RunHandle:
        """
        Start ``command`` with stdout and stderr merged into one pipe.

        Raises:
            SpawnError: The command could not be started
        """
        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                **self._popen_kwargs(),
            )
        except OSError as e:
            raise SpawnError(command, e) from e

        handle = RunHandle(
            run_id=run_id,
            process=process,
            pgid=process.pid if self.supports_groups else None,
        )
        self.log.debug("started", run_id=run_id, pid=process.pid, pgid=handle.pgid)
        return handle

    def wait(self, handle: RunHandle) -> int:
        """
        Block until the command exits and reap it.

        A child that was already reaped elsewhere counts as exited.

        Raises:
            ReapError: Waiting failed for any other reason
        """
        try:
            returncode = handle.process.wait()
        except ChildProcessError:
            returncode = handle.process.returncode or 0
        except OSError as e:
            raise ReapError(handle.pid, e) from e
        finally:
            if handle.process.stdout is not None:
                handle.process.stdout.close()

        handle.returncode = returncode
        return returncode

    @abstractmethod
    def terminate(self, handle: RunHandle, graceful: bool) -> None:
        """Signal the command's process group; a gone process is not an error."""

    @abstractmethod
    def _popen_kwargs(self) -> dict[str, Any]:
        """Extra arguments for subprocess.Popen."""


class PosixLauncher(ProcessLauncher):
    """Puts each run in a new process group and signals the whole group."""

    supports_groups = True

    def _popen_kwargs(self) -> dict[str, Any]:
        return {"process_group": 0}

    def terminate(self, handle: RunHandle, graceful: bool) -> None:
        if handle.process.returncode is not None:
            return

        sig = signal.SIGTERM if graceful else signal.SIGKILL
        self.log.debug("sending_signal", signal=sig.name, pgid=handle.pgid)
        try:
            if handle.pgid is not None:
                os.killpg(handle.pgid, sig)
            else:
                handle.process.send_signal(sig)
        except ProcessLookupError:
            self.log.debug("already_exited", pid=handle.pid)
        except PermissionError as e:
            # macOS reports EPERM for a group whose members are all zombies
            self.log.debug("signal_refused", pid=handle.pid, error=str(e))


class WindowsLauncher(ProcessLauncher):
    """Windows has no signals to a group; use a console break, then kill."""

    supports_groups = True

    def _popen_kwargs(self) -> dict[str, Any]:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}

    def terminate(self, handle: RunHandle, graceful: bool) -> None:
        if handle.process.returncode is not None:
            return

        try:
            if graceful:
                self.log.debug("sending_ctrl_break", pid=handle.pid)
                handle.process.send_signal(signal.CTRL_BREAK_EVENT)
            else:
                self.log.debug("killing", pid=handle.pid)
                handle.process.kill()
        except ProcessLookupError:
            self.log.debug("already_exited", pid=handle.pid)


if sys.platform == "win32":
    Launcher: type[ProcessLauncher] = WindowsLauncher
else:
    Launcher = PosixLauncher


def default_launcher() -> ProcessLauncher:
    """Create the launcher for this platform."""
    return Launcher()
