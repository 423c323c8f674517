"""Filesystem primitives used by the mirror engine."""

import errno
import logging
import os
import shutil
from pathlib import Path

from ..exceptions import PermissionSyncError
from .permissions import (
    ACL_XATTR,
    PermissionDescriptor,
    build_acl_xattr,
    parse_acl_xattr,
)

logger = logging.getLogger(__name__)

# errno values meaning "no ACL attribute here"
_NO_ACL_ERRNOS = {
    code
    for code in (
        getattr(errno, "ENODATA", None),
        getattr(errno, "ENOATTR", None),
        errno.ENOTSUP,
        errno.EOPNOTSUPP,
    )
    if code is not None
}


class FileOperations:
    """Blocking filesystem operations on single paths.

    Every method raises ``OSError`` (or :class:`PermissionSyncError` for
    descriptor handling) on failure; callers decide whether a failure is
    fatal.
    """

    def exists(self, path: Path) -> bool:
        return os.path.lexists(path)

    def is_dir(self, path: Path) -> bool:
        return path.is_dir() and not path.is_symlink()

    def create_directory(self, path: Path) -> None:
        """Create one directory; its parent must already exist.

        Raises:
            FileExistsError: If a symbolic link or a file is in the way
        """
        if path.is_symlink():
            raise FileExistsError(errno.EEXIST, "Symbolic link in the way", str(path))
        path.mkdir(exist_ok=True)

    def create_root(self, path: Path) -> None:
        """Create a root directory including missing parents."""
        path.mkdir(parents=True, exist_ok=True)

    def copy_file(self, source: Path, destination: Path) -> None:
        """Copy file content and mode bits, overwriting the destination.

        A symbolic link at the destination is removed first so the copy
        never writes through it.
        """
        if destination.is_symlink():
            destination.unlink()
        shutil.copy(source, destination)

    def delete_path(self, path: Path) -> None:
        """Delete a file, link, or a directory with all of its contents."""
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

    def read_permissions(self, path: Path) -> PermissionDescriptor:
        """Read owner, group, mode and access ACL of a path.

        Raises:
            PermissionSyncError: If the path cannot be inspected
        """
        try:
            st = os.stat(path)
        except OSError as e:
            raise PermissionSyncError(f"Cannot stat {path}: {e}", path) from e

        acl = frozenset()
        if hasattr(os, "getxattr"):
            try:
                acl = parse_acl_xattr(os.getxattr(path, ACL_XATTR))
            except OSError as e:
                if e.errno not in _NO_ACL_ERRNOS:
                    raise PermissionSyncError(
                        f"Cannot read ACL of {path}: {e}", path
                    ) from e

        return PermissionDescriptor.from_stat(st, acl)

    def write_permissions(self, path: Path, descriptor: PermissionDescriptor) -> None:
        """Replace owner, group, mode and access ACL of a path.

        Symbolic links are refused so that a write never reaches a path
        outside the replica tree.

        Raises:
            PermissionSyncError: If any part of the descriptor cannot be set
        """
        if path.is_symlink():
            raise PermissionSyncError(
                f"Refusing to change permissions through symbolic link {path}", path
            )
        try:
            if hasattr(os, "chown"):
                os.chown(path, descriptor.uid, descriptor.gid)
            # chown may clear setuid/setgid, so the mode goes second
            os.chmod(path, descriptor.mode)
        except OSError as e:
            raise PermissionSyncError(
                f"Cannot set owner/mode of {path}: {e}", path
            ) from e

        if not hasattr(os, "setxattr"):
            return

        try:
            if descriptor.acl:
                os.setxattr(path, ACL_XATTR, build_acl_xattr(descriptor.acl))
            else:
                os.removexattr(path, ACL_XATTR)
        except OSError as e:
            if descriptor.acl or e.errno not in _NO_ACL_ERRNOS:
                raise PermissionSyncError(f"Cannot set ACL of {path}: {e}", path) from e
        logger.debug("Applied permissions %s to %s", descriptor, path)
