"""pymirror - one-way directory mirroring."""

from .config import MirrorConfig, load_mirror_jobs_from_json
from .exceptions import (
    InvalidPathError,
    MirrorConfigError,
    MirrorError,
    PermissionSyncError,
    ReplicaCreationError,
    SetupError,
    SourceNotFoundError,
)
from .log import LogLevel, OperationLogger
from .mirror import MirrorEngine

__version__ = "0.1.0"

__all__ = [
    "MirrorConfig",
    "load_mirror_jobs_from_json",
    "MirrorEngine",
    "LogLevel",
    "OperationLogger",
    "MirrorError",
    "MirrorConfigError",
    "InvalidPathError",
    "SetupError",
    "SourceNotFoundError",
    "ReplicaCreationError",
    "PermissionSyncError",
]
