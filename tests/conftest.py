"""Shared fixtures for pymirror tests."""

import tempfile
from pathlib import Path

import pytest

from pymirror.log import LogLevel, OperationLogger
from pymirror.output import OutputFormatter


class RecordingLogger(OperationLogger):
    """Operation logger that keeps every event for assertions."""

    def __init__(self, **kwargs):
        kwargs.setdefault("output", OutputFormatter(quiet=True))
        super().__init__(**kwargs)
        self.events: list[tuple[LogLevel, str]] = []

    def emit(self, level, message):
        self.events.append((LogLevel(level), message))
        super().emit(level, message)

    def messages(self, level):
        return [message for event_level, message in self.events if event_level is level]


def _write_file(path: Path, size: int, fill: bytes = b"x") -> Path:
    """Create a file (and its parents) with ``size`` bytes of content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes((fill * size)[:size])
    return path


@pytest.fixture
def write_file():
    """Provide a helper that creates files of a given size."""
    return _write_file


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def source(temp_dir):
    path = temp_dir / "source"
    path.mkdir()
    return path


@pytest.fixture
def replica(temp_dir):
    path = temp_dir / "replica"
    path.mkdir()
    return path


@pytest.fixture
def log():
    """Provide a quiet operation logger that records events."""
    logger = RecordingLogger()
    yield logger
    logger.close()
