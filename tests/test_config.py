"""
Tests for configuration.

Requires Python 3.11+.
"""

import json
import re
from collections.abc import Iterator

import pytest
import structlog
from pydantic import ValidationError

from quiesce.utils.config import REBUILD_DELAY_MS, LoggingSettings, WatchOptions, get_settings
from quiesce.utils.logger import configure_logging, get_logger


class TestWatchOptions:
    """Test cases for WatchOptions."""

    def test_empty_exclude_disabled(self):
        assert WatchOptions(exclude="", command=["make"]).exclude is None

    def test_exclude_compiled(self):
        options = WatchOptions(exclude=r"\.git|node_modules", command=["make"])

        assert isinstance(options.exclude, re.Pattern)
        assert options.exclude.search("./node_modules/x")

    def test_bad_regexp(self):
        with pytest.raises(ValidationError, match="bad regexp"):
            WatchOptions(exclude="[", command=["make"])

    def test_command_required(self):
        with pytest.raises(ValidationError):
            WatchOptions(command=[])

    def test_fixed_delay(self):
        assert WatchOptions(command=["make"]).rebuild_delay_ms == REBUILD_DELAY_MS == 200


class TestLoggingSettings:
    """Test cases for LoggingSettings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("QUIESCE_LOG_FORMAT", raising=False)
        monkeypatch.delenv("QUIESCE_LOG_LEVEL", raising=False)
        settings = LoggingSettings()

        assert settings.format == "console"
        assert settings.level == "INFO"

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QUIESCE_LOG_FORMAT", "JSON")
        monkeypatch.setenv("QUIESCE_LOG_LEVEL", "debug")
        settings = LoggingSettings()

        assert settings.format == "json"
        assert settings.level == "debug"

    def test_unknown_format(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QUIESCE_LOG_FORMAT", "xml")

        with pytest.raises(ValidationError):
            LoggingSettings()


class TestLogging:
    """Test cases for structured log output."""

    @pytest.fixture
    def json_logs(self, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
        monkeypatch.setenv("QUIESCE_LOG_FORMAT", "json")
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()
        structlog.reset_defaults()

    def test_json_entry_on_stderr(self, json_logs, capsys: pytest.CaptureFixture[str]):
        """Entries go to stderr tagged with their component."""
        configure_logging()
        get_logger("WatchRegistry").info("watching", path="src")

        captured = capsys.readouterr()
        entry = json.loads(captured.err.strip().splitlines()[-1])
        assert captured.out == ""
        assert entry["event"] == "watching"
        assert entry["component"] == "WatchRegistry"
        assert entry["app"] == "quiesce"

    def test_verbose_enables_debug(self, json_logs, capsys: pytest.CaptureFixture[str]):
        configure_logging(verbose=True)
        get_logger("Coordinator").debug("dispatch")

        assert '"event": "dispatch"' in capsys.readouterr().err
