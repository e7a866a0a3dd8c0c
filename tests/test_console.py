"""
Tests for the displays.

Requires Python 3.11+.
"""

import io
from pathlib import Path

from rich.console import Console

from quiesce.display.console import ConsoleDisplay
from quiesce.display.terminal import WriterDisplay
from quiesce.models import DismissRequest, KillRequest, RerunRequest


def make_console() -> tuple[Console, io.StringIO]:
    out = io.StringIO()
    return Console(file=out, force_terminal=False, width=120), out


class TestConsoleDisplay:
    """Test cases for ConsoleDisplay."""

    def test_output_verbatim(self, tmp_path: Path):
        """Output is printed as-is, without markup processing."""
        console, out = make_console()
        display = ConsoleDisplay(tmp_path, console=console, commands=io.StringIO())

        def write(sink):
            sink.write(b"make [bold]x[/bold]\n")
            sink.write("café\n".encode()[:4])
            sink.write("café\n".encode()[4:])

        display.redisplay(write)

        assert out.getvalue() == "make [bold]x[/bold]\ncafé\n"

    def test_commands(self, tmp_path: Path):
        """Typed commands become requests; unknown ones are ignored."""
        console, _ = make_console()
        display = ConsoleDisplay(
            tmp_path, console=console, commands=io.StringIO("r\n\nk\nwhat\nq\n")
        )
        received = []

        display.start(received.append)
        display._reader.join(timeout=5)

        assert received == [RerunRequest(), RerunRequest(), KillRequest(), DismissRequest()]

    def test_title(self, tmp_path: Path):
        console, _ = make_console()
        display = ConsoleDisplay(tmp_path, console=console, commands=io.StringIO())

        assert display.title == f"{tmp_path.resolve()}/+watch"


class TestWriterDisplay:
    """Test cases for WriterDisplay."""

    def test_appends_runs(self):
        stream = io.BytesIO()
        display = WriterDisplay(stream)

        display.redisplay(lambda sink: sink.write(b"first\n"))
        display.redisplay(lambda sink: sink.write(b"second\n"))

        assert stream.getvalue() == b"first\nsecond\n"
