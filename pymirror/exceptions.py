"""Exceptions raised by pymirror."""


class MirrorError(Exception):
    """Base exception for all mirror errors."""


class MirrorConfigError(MirrorError):
    """Raised when a mirror configuration is invalid or cannot be loaded."""


class InvalidPathError(MirrorError, ValueError):
    """Raised when a path is not located under the expected root."""

    def __init__(self, path, root=None, message: str = ""):
        self.path = path
        self.root = root
        if not message:
            message = f"Path is not under {root}: {path}" if root else str(path)
        super().__init__(message)


class SetupError(MirrorError):
    """Raised for unrecoverable failures before the mirror run starts."""


class SourceNotFoundError(SetupError):
    """Raised when the source root does not exist or is not a directory."""


class ReplicaCreationError(SetupError):
    """Raised when the replica root is missing and cannot be created."""


class PermissionSyncError(MirrorError):
    """Raised when a permission descriptor cannot be read or written."""

    def __init__(self, message: str, path=None):
        self.path = path
        super().__init__(message)
