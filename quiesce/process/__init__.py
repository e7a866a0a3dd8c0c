"""
Quiesce Process Package.

Lifecycle of the watched command.
Requires Python 3.11+.
"""

from quiesce.process.controller import ControllerState, ProcessController
from quiesce.process.launcher import (
    PosixLauncher,
    ProcessLauncher,
    RunHandle,
    WindowsLauncher,
    default_launcher,
)

__all__ = [
    "ControllerState",
    "ProcessController",
    "PosixLauncher",
    "ProcessLauncher",
    "RunHandle",
    "WindowsLauncher",
    "default_launcher",
]
