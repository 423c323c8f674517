"""Operation logging for mirror runs.

Every decision and outcome of a run is reported as an event with one of
four severities. Each severity has a fixed routing rule:

* ``INFO``, ``WARNING`` and ``ERROR`` are written to the log file (when one
  is configured) and shown on the console.
* ``VERBOSE`` is shown on the console only in verbose mode, and written
  to the log file only in debug mode.
"""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .output import OutputFormatter

logger = logging.getLogger(__name__)

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_FILE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
JOURNAL_NAME = f"{__name__}.journal"


class LogLevel(str, Enum):
    """Severity of a mirror event."""

    VERBOSE = "verbose"
    """Routine decision, e.g. an item that is already up to date"""

    INFO = "info"
    """Change performed on the replica"""

    WARNING = "warning"
    """Problem encountered, run continues in a degraded way"""

    ERROR = "error"
    """Operation on one item failed"""

    @property
    def persisted(self) -> bool:
        """Whether events of this level always go to the log file."""
        return self is not LogLevel.VERBOSE

    @property
    def logging_level(self) -> int:
        """Matching stdlib logging level."""
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS = {
    LogLevel.VERBOSE: VERBOSE,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class OperationLogger:
    """Receives mirror events and routes them to the console and log file.

    Safe to use from several worker threads; events are serialised by an
    internal lock.

    Examples:
        >>> log = OperationLogger(OutputFormatter(quiet=True))
        >>> log.info("New file: a.txt")
        >>> log.error("Copy failed: b.txt")
        >>> log.error_count
        1
    """

    def __init__(
        self,
        output: Optional[OutputFormatter] = None,
        log_file: Optional[Union[str, Path]] = None,
        verbose: bool = False,
        debug: bool = False,
    ):
        """Initialize operation logger.

        Args:
            output: Output formatter for the operator-facing stream
            log_file: Path of the persistent log, or None for console only
            verbose: Show VERBOSE events on the console
            debug: Also persist VERBOSE events (implies verbose)
        """
        self.output = output or OutputFormatter()
        self.debug = debug
        self.verbose_enabled = verbose or debug
        self.log_file: Optional[Path] = Path(log_file) if log_file else None
        self.error_count = 0
        self.warning_count = 0
        self._lock = threading.Lock()
        self._handler: Optional[logging.Handler] = None

        if self.log_file is not None:
            self._open_log_file(self.log_file)

    def _open_log_file(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT, LOG_FILE_DATE_FORMAT))

        self._handler = handler
        logger.debug("Writing mirror log to %s", path)

    def close(self) -> None:
        """Flush and detach the log file handler."""
        with self._lock:
            if self._handler is not None:
                self._handler.close()
            self._handler = None

    def __enter__(self) -> "OperationLogger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def emit(self, level: Union[LogLevel, str], message: str) -> None:
        """Record one event.

        Args:
            level: Event severity
            message: Human-readable description including the affected path
        """
        level = LogLevel(level)
        with self._lock:
            if level is LogLevel.ERROR:
                self.error_count += 1
            elif level is LogLevel.WARNING:
                self.warning_count += 1

            logger.debug("[%s] %s", level.value, message)

            if self._handler is not None and (level.persisted or self.debug):
                # Records go straight to the file handler; no logger is
                # registered per log file
                record = logger.makeRecord(
                    JOURNAL_NAME,
                    level.logging_level,
                    __file__,
                    0,
                    message,
                    None,
                    None,
                )
                self._handler.handle(record)

            if level is LogLevel.VERBOSE:
                if self.verbose_enabled:
                    self.output.verbose(message)
            elif level is LogLevel.INFO:
                self.output.info(message)
            elif level is LogLevel.WARNING:
                self.output.warning(message)
            else:
                self.output.error(message)

    def verbose(self, message: str) -> None:
        self.emit(LogLevel.VERBOSE, message)

    def info(self, message: str) -> None:
        self.emit(LogLevel.INFO, message)

    def warning(self, message: str) -> None:
        self.emit(LogLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.emit(LogLevel.ERROR, message)
