"""
Quiesce Display Package.

Requires Python 3.11+.
"""

from quiesce.display.base import Display, Sink
from quiesce.display.console import ConsoleDisplay, ConsoleSink
from quiesce.display.terminal import WriterDisplay

__all__ = ["Display", "Sink", "ConsoleDisplay", "ConsoleSink", "WriterDisplay"]
