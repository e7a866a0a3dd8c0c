"""
Quiesce Test Configuration.

Pytest fixtures for the observer, launcher and display.
Requires Python 3.11+.
"""

import queue
from pathlib import Path

import pytest

from helpers import FakeLauncher, FakeObserver, RecordingDisplay
from quiesce.models import Message


@pytest.fixture
def fake_observer() -> FakeObserver:
    """Observer that needs no OS watch support."""
    return FakeObserver()


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    """Launcher with runs controlled by the test."""
    return FakeLauncher(output=b"hi\n")


@pytest.fixture
def display() -> RecordingDisplay:
    """Display that records output."""
    return RecordingDisplay()


@pytest.fixture
def messages() -> "queue.Queue[Message]":
    """Stand-in for the coordination loop's inbox."""
    return queue.Queue()


@pytest.fixture
def project_tree(tmp_path: Path) -> Path:
    """Create a small project tree to watch."""
    root = tmp_path / "proj"
    (root / "src" / "pkg").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / ".git" / "objects").mkdir(parents=True)
    (root / "src" / "a.go").write_text("package a\n")
    (root / "src" / "pkg" / "b.go").write_text("package pkg\n")
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "README").write_text("readme\n")
    return root
