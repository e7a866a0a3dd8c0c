"""
Quiesce Errors.

Fatal errors stop the watcher; the rest are logged and the pipeline continues.
Requires Python 3.11+.
"""


class QuiesceError(Exception):
    """Base class for all quiesce errors."""


class WatchSetupError(QuiesceError):
    """The filesystem watch subsystem could not be started."""


class ResolutionError(QuiesceError):
    """No existing ancestor was found for a changed path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"failed to find an existing directory for {path}")
        self.path = path


class SpawnError(QuiesceError):
    """The command could not be started."""

    def __init__(self, command: list[str], cause: OSError) -> None:
        super().__init__(str(cause))
        self.command = command
        self.cause = cause


class ReapError(QuiesceError):
    """Waiting on a child process failed for a reason other than it being gone."""

    def __init__(self, pid: int, cause: OSError) -> None:
        super().__init__(f"failed to reap process {pid}: {cause}")
        self.pid = pid
        self.cause = cause
