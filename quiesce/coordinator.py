"""
Quiesce Coordinator.

The single loop that owns the pending-run state and drives the process
controller. Everything else talks to it through its inbox.
Requires Python 3.11+.
"""

import queue

from quiesce.models import (
    ChangeEvent,
    DismissRequest,
    KillRequest,
    Message,
    ReapFailed,
    RerunRequest,
    RunExited,
)
from quiesce.process.controller import ControllerState, ProcessController
from quiesce.utils.logger import LoggerMixin
from quiesce.watcher.debouncer import DebounceScheduler

# Change events are rate-limited by the OS; a small buffer is enough.
INBOX_DEPTH = 64


class Coordinator(LoggerMixin):
    """
    Waits on the inbox and the quiescence deadline at once.

    A timeout on the inbox means the deadline expired.
    """

    def __init__(
        self,
        controller: ProcessController,
        scheduler: DebounceScheduler,
        inbox: queue.Queue[Message] | None = None,
    ) -> None:
        self._controller = controller
        self._scheduler = scheduler
        self._inbox: queue.Queue[Message] = (
            inbox if inbox is not None else queue.Queue(INBOX_DEPTH)
        )
        self._dismissed = False

    @property
    def inbox(self) -> queue.Queue[Message]:
        """Queue every producer posts to."""
        return self._inbox

    def post(self, message: Message) -> None:
        """Deliver a message to the loop."""
        self._inbox.put(message)

    def run(self) -> int:
        """
        Run until the display is dismissed.

        Returns:
            Exit status for the process

        Raises:
            SpawnError: The command could not be started
            ReapError: A run could not be reaped
        """
        while True:
            try:
                message = self._inbox.get(timeout=self._scheduler.timeout())
            except queue.Empty:
                if self._scheduler.fire() and not self._dismissed:
                    self._controller.request_run()
                continue

            self.dispatch(message)

            if self._dismissed and self._controller.state is ControllerState.IDLE:
                self.log.info("dismissed")
                return 0

    def dispatch(self, message: Message) -> None:
        """Apply one message to the loop's state."""
        if isinstance(message, ChangeEvent):
            self._scheduler.note_change(message.time)

        elif isinstance(message, RunExited):
            self._controller.on_exit(message)

        elif isinstance(message, RerunRequest):
            if self._dismissed:
                return
            self._scheduler.mark_run()
            self._controller.request_run()

        elif isinstance(message, KillRequest):
            self._controller.kill()

        elif isinstance(message, DismissRequest):
            # Nothing escalates after a dismissal, so kill outright
            self._dismissed = True
            self._controller.shutdown()

        elif isinstance(message, ReapFailed):
            self.log.error("reap_failed", run_id=message.run_id, error=str(message.error))
            raise message.error

        else:
            self.log.warning("unknown_message", message=repr(message))
