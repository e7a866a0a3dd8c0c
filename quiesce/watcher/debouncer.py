"""
Quiesce Debouncer.

Coalesces bursts of change events into a single run trigger.
Requires Python 3.11+.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from quiesce.utils.config import REBUILD_DELAY_MS
from quiesce.utils.logger import LoggerMixin


@dataclass
class PendingRun:
    """Latest observed change compared against the latest run."""

    last_change_time: float
    last_run_time: float = 0.0

    @property
    def due(self) -> bool:
        """A run is due when a change happened after the last run started."""
        return self.last_run_time < self.last_change_time


class DebounceScheduler(LoggerMixin):
    """
    Decides when the command should run.

    Holds a single deadline that every change pushes back by the quiescence
    window. The owner waits until ``timeout()`` elapses and then calls
    ``fire()``. Not thread-safe: only the coordination loop touches it.
    """

    def __init__(
        self,
        delay_ms: int = REBUILD_DELAY_MS,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the scheduler.

        The deadline starts out expired so the command runs once at startup.

        Args:
            delay_ms: Quiescence window in milliseconds
            clock: Wall clock, comparable with file modification times
            monotonic: Clock used for the deadline
        """
        self._delay = delay_ms / 1000.0
        self._clock = clock
        self._monotonic = monotonic
        self.pending = PendingRun(last_change_time=clock())
        self._deadline: float | None = monotonic()

    def note_change(self, change_time: float) -> None:
        """Record a change and restart the quiescence window."""
        self.pending.last_change_time = max(self.pending.last_change_time, change_time)
        self._deadline = self._monotonic() + self._delay

    def timeout(self) -> float | None:
        """Seconds until the deadline, or None when nothing is armed."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._monotonic())

    def fire(self) -> bool:
        """
        Handle deadline expiry.

        Returns:
            True if a run should start now
        """
        self._deadline = None
        if not self.pending.due:
            self.log.debug("no_change_since_last_run")
            return False
        self.mark_run()
        return True

    def mark_run(self) -> None:
        """Record that a run is starting."""
        self.pending.last_run_time = self._clock()

    @property
    def armed(self) -> bool:
        """Check if a deadline is pending."""
        return self._deadline is not None
