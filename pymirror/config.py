"""Mirror job configuration."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import MirrorConfigError

logger = logging.getLogger(__name__)

MAX_WORKERS_LIMIT = 32


def normalize_path(path: Union[str, Path]) -> Path:
    """Expand ``~``, make absolute and collapse separators and ``..`` parts."""
    return Path(os.path.normpath(os.path.abspath(os.path.expanduser(str(path)))))


@dataclass(frozen=True)
class MirrorConfig:
    """Read-only settings of one mirror job.

    Built once at startup and handed to every component at construction.
    Root paths are normalised here so that the rest of the code can rely
    on absolute paths with native separators.

    Examples:
        >>> config = MirrorConfig(source="/data/src/", replica="/backup/src")
        >>> config.source
        PosixPath('/data/src')
    """

    source: Path
    """Root of the tree that is mirrored"""

    replica: Path
    """Root of the tree that is made identical to the source"""

    sync_permissions: bool = False
    """Copy ownership, mode bits and ACLs from source to replica"""

    log_file: Optional[Path] = None
    """Persistent log destination (None for console only)"""

    debug: bool = False
    """Persist verbose events too"""

    dry_run: bool = False
    """Report decisions without changing the replica"""

    max_workers: int = 1
    """Number of threads for the file pass (1 = sequential)"""

    alias: Optional[str] = None
    """Optional display name for the job"""

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", normalize_path(self.source))
        object.__setattr__(self, "replica", normalize_path(self.replica))
        if self.log_file is not None:
            object.__setattr__(self, "log_file", normalize_path(self.log_file))
        if not 1 <= int(self.max_workers) <= MAX_WORKERS_LIMIT:
            raise MirrorConfigError(
                f"max_workers must be between 1 and {MAX_WORKERS_LIMIT}, "
                f"got {self.max_workers}"
            )
        object.__setattr__(self, "max_workers", int(self.max_workers))

    @property
    def name(self) -> str:
        """Display name of the job."""
        return self.alias or f"{self.source} -> {self.replica}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MirrorConfig":
        """Create a configuration from a JSON-style dictionary.

        Args:
            data: Dictionary with ``source`` and ``replica`` keys and
                optional ``syncPermissions``, ``logFile``, ``debug``,
                ``dryRun``, ``workers`` and ``alias`` keys

        Returns:
            MirrorConfig instance

        Raises:
            MirrorConfigError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise MirrorConfigError(
                f"Mirror job must be an object, got {type(data).__name__}"
            )

        missing = [key for key in ("source", "replica") if not data.get(key)]
        if missing:
            raise MirrorConfigError(f"Missing required fields: {', '.join(missing)}")

        workers = data.get("workers", 1)
        if not isinstance(workers, int) or isinstance(workers, bool):
            raise MirrorConfigError(f"workers must be an integer, got {workers!r}")

        return cls(
            source=data["source"],
            replica=data["replica"],
            sync_permissions=bool(data.get("syncPermissions", False)),
            log_file=data.get("logFile"),
            debug=bool(data.get("debug", False)),
            dry_run=bool(data.get("dryRun", False)),
            max_workers=workers,
            alias=data.get("alias"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        result: dict[str, Any] = {
            "source": str(self.source),
            "replica": str(self.replica),
            "syncPermissions": self.sync_permissions,
            "debug": self.debug,
            "dryRun": self.dry_run,
            "workers": self.max_workers,
        }
        if self.log_file is not None:
            result["logFile"] = str(self.log_file)
        if self.alias is not None:
            result["alias"] = self.alias
        return result


def load_mirror_jobs_from_json(path: Union[str, Path]) -> list[MirrorConfig]:
    """Load mirror jobs from a JSON file.

    The file holds either a list of job objects or an object with a
    ``jobs`` list.

    Args:
        path: Path of the JSON file

    Returns:
        List of MirrorConfig objects, in file order

    Raises:
        MirrorConfigError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise MirrorConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise MirrorConfigError(f"Invalid JSON in config file {path}: {e}") from e

    if isinstance(data, dict):
        if "jobs" not in data:
            raise MirrorConfigError(f"Config file {path} has no 'jobs' list")
        data = data["jobs"]

    if not isinstance(data, list):
        raise MirrorConfigError(f"Config file {path} must contain a list of jobs")

    jobs = []
    for index, item in enumerate(data):
        try:
            jobs.append(MirrorConfig.from_dict(item))
        except MirrorConfigError as e:
            raise MirrorConfigError(f"Job {index + 1} in {path}: {e}") from e

    logger.debug("Loaded %d mirror job(s) from %s", len(jobs), path)
    return jobs
