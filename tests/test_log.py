"""Tests for operation logging."""

import logging
from unittest.mock import Mock

import pytest

from pymirror.log import VERBOSE, LogLevel, OperationLogger
from pymirror.output import OutputFormatter


@pytest.fixture
def mock_output():
    """Provide an output formatter mock."""
    return Mock(spec=OutputFormatter)


class TestLogLevel:
    """Tests for LogLevel."""

    def test_only_verbose_is_not_persisted(self):
        assert not LogLevel.VERBOSE.persisted
        assert LogLevel.INFO.persisted
        assert LogLevel.WARNING.persisted
        assert LogLevel.ERROR.persisted

    def test_logging_levels(self):
        assert LogLevel.VERBOSE.logging_level == VERBOSE
        assert LogLevel.ERROR.logging_level == logging.ERROR
        assert logging.getLevelName(VERBOSE) == "VERBOSE"


class TestOperationLoggerRouting:
    """Tests for console routing."""

    def test_levels_route_to_output(self, mock_output):
        log = OperationLogger(mock_output)

        log.info("New file: a.txt")
        log.warning("Skipping link to directory b")
        log.error("Failed to copy c.txt")

        mock_output.info.assert_called_once_with("New file: a.txt")
        mock_output.warning.assert_called_once_with("Skipping link to directory b")
        mock_output.error.assert_called_once_with("Failed to copy c.txt")

    def test_verbose_hidden_by_default(self, mock_output):
        log = OperationLogger(mock_output)

        log.verbose("Directory already exists: d")

        mock_output.verbose.assert_not_called()

    def test_verbose_shown_in_verbose_mode(self, mock_output):
        log = OperationLogger(mock_output, verbose=True)

        log.verbose("Directory already exists: d")

        mock_output.verbose.assert_called_once_with("Directory already exists: d")

    def test_debug_implies_verbose(self, mock_output):
        log = OperationLogger(mock_output, debug=True)

        log.verbose("Directory already exists: d")

        mock_output.verbose.assert_called_once()

    def test_emit_accepts_level_names(self, mock_output):
        log = OperationLogger(mock_output)

        log.emit("info", "New directory: d")

        mock_output.info.assert_called_once_with("New directory: d")

    def test_counts_errors_and_warnings(self, mock_output):
        log = OperationLogger(mock_output)

        log.error("one")
        log.error("two")
        log.warning("three")
        log.info("four")

        assert log.error_count == 2
        assert log.warning_count == 1

    def test_events_reach_module_logger(self, mock_output, caplog):
        log = OperationLogger(mock_output)

        with caplog.at_level(logging.DEBUG, logger="pymirror.log"):
            log.info("New file: a.txt")

        assert "[info] New file: a.txt" in caplog.text


class TestOperationLoggerFile:
    """Tests for the persistent log file."""

    def test_persists_info_warning_error(self, mock_output, temp_dir):
        path = temp_dir / "mirror.log"

        with OperationLogger(mock_output, log_file=path, verbose=True) as log:
            log.verbose("Directory already exists: d")
            log.info("New file: a.txt")
            log.warning("Skipping unreadable entry b")
            log.error("Failed to copy c.txt")

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert lines[0].endswith("INFO - New file: a.txt")
        assert lines[1].endswith("WARNING - Skipping unreadable entry b")
        assert lines[2].endswith("ERROR - Failed to copy c.txt")

    def test_debug_persists_verbose(self, mock_output, temp_dir):
        path = temp_dir / "mirror.log"

        with OperationLogger(mock_output, log_file=path, debug=True) as log:
            log.verbose("Directory already exists: d")

        assert "VERBOSE - Directory already exists: d" in path.read_text(
            encoding="utf-8"
        )

    def test_log_file_is_appended(self, mock_output, temp_dir):
        path = temp_dir / "mirror.log"

        for message in ("first run", "second run"):
            with OperationLogger(mock_output, log_file=path) as log:
                log.info(message)

        text = path.read_text(encoding="utf-8")
        assert "first run" in text
        assert "second run" in text

    def test_parent_directories_are_created(self, mock_output, temp_dir):
        path = temp_dir / "logs" / "nested" / "mirror.log"

        with OperationLogger(mock_output, log_file=path) as log:
            log.info("New file: a.txt")

        assert path.exists()

    def test_separate_files_do_not_mix(self, mock_output, temp_dir):
        first = OperationLogger(mock_output, log_file=temp_dir / "a.log")
        second = OperationLogger(mock_output, log_file=temp_dir / "b.log")

        first.info("only in a")
        second.info("only in b")
        first.close()
        second.close()

        assert "only in b" not in (temp_dir / "a.log").read_text(encoding="utf-8")
        assert "only in a" not in (temp_dir / "b.log").read_text(encoding="utf-8")

    def test_close_detaches_handler(self, mock_output, temp_dir):
        path = temp_dir / "mirror.log"
        log = OperationLogger(mock_output, log_file=path)
        log.close()

        log.info("after close")

        assert "after close" not in path.read_text(encoding="utf-8")
        mock_output.info.assert_called_once_with("after close")

    def test_no_logger_is_registered_per_file(self, mock_output, temp_dir):
        path = temp_dir / "mirror.log"

        with OperationLogger(mock_output, log_file=path) as log:
            log.info("New file: a.txt")

        registered = logging.Logger.manager.loggerDict
        assert not any(str(path) in name for name in registered)
