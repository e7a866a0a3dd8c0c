"""
Quiesce Command Line.

Usage:
    quiesce [-p PATH] [-x REGEXP] [-t] [-v] command [args...]

Runs the command once, then again whenever the watched tree has been quiet
for a short while after a change.
Requires Python 3.11+.
"""

import argparse
import queue
import sys
from collections.abc import Callable

from pydantic import ValidationError
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from quiesce.coordinator import INBOX_DEPTH, Coordinator
from quiesce.display import ConsoleDisplay, Display, WriterDisplay
from quiesce.errors import ReapError, SpawnError, WatchSetupError
from quiesce.models import Message
from quiesce.process.controller import ProcessController
from quiesce.process.launcher import ProcessLauncher, default_launcher
from quiesce.utils.config import WatchOptions
from quiesce.utils.logger import configure_logging, get_logger
from quiesce.watcher.debouncer import DebounceScheduler
from quiesce.watcher.file_watcher import FileWatcher

logger = get_logger("quiesce.cli")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="quiesce",
        usage="%(prog)s [flags] command [command args...]",
        description="Run a command whenever files under a directory change.",
        epilog="In the console display, type r (or just Enter) to rerun, "
        "k to stop the current run, q to quit.",
    )
    parser.add_argument("-p", dest="path", default=".", help="The path to watch")
    parser.add_argument(
        "-x",
        dest="exclude",
        default="",
        help="Exclude files and directories matching this regular expression",
    )
    parser.add_argument(
        "-t",
        dest="terminal",
        action="store_true",
        help="Just run in the terminal (instead of the full-screen console)",
    )
    parser.add_argument(
        "-v",
        dest="verbose",
        action="store_true",
        help="Enable verbose debugging output",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run")
    return parser


def parse_options(argv: list[str] | None = None) -> WatchOptions | None:
    """
    Parse and validate the command line.

    Returns:
        The options, or None after printing usage when no command was given

    Raises:
        ValidationError: An option value was rejected
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.print_usage(sys.stderr)
        return None

    return WatchOptions(
        root=args.path,
        exclude=args.exclude,
        terminal=args.terminal,
        verbose=args.verbose,
        command=command,
    )


def run_watch(
    options: WatchOptions,
    display: Display,
    launcher: ProcessLauncher | None = None,
    observer_factory: Callable[[], BaseObserver] = Observer,
) -> int:
    """
    Watch and run until dismissed or interrupted.

    Returns:
        Process exit status
    """
    inbox: queue.Queue[Message] = queue.Queue(INBOX_DEPTH)
    controller = ProcessController(
        command=options.command,
        display=display,
        launcher=launcher or default_launcher(),
        notify=inbox.put,
    )
    coordinator = Coordinator(controller, DebounceScheduler(options.rebuild_delay_ms), inbox)

    watcher = FileWatcher(
        options.root,
        on_change=coordinator.post,
        exclude=options.exclude,
        observer_factory=observer_factory,
    )
    try:
        watcher.start()
    except WatchSetupError as e:
        logger.error("watch_setup_failed", error=str(e))
        return 1

    display.start(coordinator.post)
    try:
        return coordinator.run()
    except (SpawnError, ReapError) as e:
        logger.error("fatal", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130
    finally:
        controller.shutdown()
        watcher.stop()
        display.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        options = parse_options(argv)
    except ValidationError as e:
        configure_logging()
        for error in e.errors():
            logger.error(
                "invalid_option",
                option=".".join(map(str, error["loc"])),
                error=error["msg"],
            )
        return 1
    if options is None:
        return 1

    configure_logging(options.verbose)

    display: Display
    if options.terminal:
        display = WriterDisplay(sys.stdout.buffer)
    else:
        display = ConsoleDisplay(options.root)

    return run_watch(options, display)
