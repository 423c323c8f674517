"""Ownership and access-control reconciliation.

A :class:`PermissionDescriptor` captures everything that decides who may
access a path: owner, owning group, mode bits and the POSIX access ACL
stored in the ``system.posix_acl_access`` extended attribute. Two
descriptors are compared as unordered sets of :class:`AccessEntry`
values. When they differ the whole source descriptor is written onto the
replica; entries are never merged.
"""

import logging
import os
import stat
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, NamedTuple, Optional

from ..exceptions import PermissionSyncError
from ..log import OperationLogger

if TYPE_CHECKING:
    from .operations import FileOperations

logger = logging.getLogger(__name__)

ACL_XATTR = "system.posix_acl_access"
ACL_XATTR_VERSION = 2
ACL_UNDEFINED_ID = 0xFFFFFFFF

_ACL_HEADER = struct.Struct("<I")
_ACL_ENTRY = struct.Struct("<HHI")

# Tag values of the kernel's posix_acl_xattr format
ACL_TAGS = {
    0x01: "user_obj",
    0x02: "user",
    0x04: "group_obj",
    0x08: "group",
    0x10: "mask",
    0x20: "other",
}


class AclEntry(NamedTuple):
    """One raw entry of a POSIX access ACL."""

    tag: int
    permissions: int
    qualifier: int = ACL_UNDEFINED_ID


@dataclass(frozen=True)
class AccessEntry:
    """One element of a permission descriptor's comparison set."""

    tag: str
    qualifier: Optional[int]
    permissions: int


def parse_acl_xattr(data: bytes) -> frozenset[AclEntry]:
    """Decode the value of a ``system.posix_acl_access`` attribute.

    Raises:
        PermissionSyncError: If the value is truncated or has an
            unsupported version
    """
    body_size = len(data) - _ACL_HEADER.size
    if body_size < 0 or body_size % _ACL_ENTRY.size:
        raise PermissionSyncError(f"Malformed ACL attribute ({len(data)} bytes)")

    (version,) = _ACL_HEADER.unpack_from(data)
    if version != ACL_XATTR_VERSION:
        raise PermissionSyncError(f"Unsupported ACL attribute version {version}")

    return frozenset(
        AclEntry(*values)
        for values in _ACL_ENTRY.iter_unpack(data[_ACL_HEADER.size :])
    )


def build_acl_xattr(entries: Iterable[AclEntry]) -> bytes:
    """Encode ACL entries, sorted by tag and qualifier as the kernel expects."""
    ordered = sorted(entries, key=lambda entry: (entry.tag, entry.qualifier))
    return _ACL_HEADER.pack(ACL_XATTR_VERSION) + b"".join(
        _ACL_ENTRY.pack(entry.tag, entry.permissions, entry.qualifier)
        for entry in ordered
    )


@dataclass(frozen=True)
class PermissionDescriptor:
    """Ownership and access-control metadata of one path."""

    uid: int
    """Owner user id"""

    gid: int
    """Owning group id"""

    mode: int
    """Permission bits including setuid, setgid and sticky"""

    acl: frozenset[AclEntry] = field(default_factory=frozenset)
    """Extended access ACL entries (empty when the path has none)"""

    @classmethod
    def from_stat(
        cls, st: os.stat_result, acl: Optional[frozenset[AclEntry]] = None
    ) -> "PermissionDescriptor":
        return cls(
            uid=st.st_uid,
            gid=st.st_gid,
            mode=stat.S_IMODE(st.st_mode),
            acl=acl or frozenset(),
        )

    @property
    def entries(self) -> frozenset[AccessEntry]:
        """The descriptor expanded into an unordered set of access entries."""
        items = {
            AccessEntry("owner", self.uid, (self.mode >> 6) & 0o7),
            AccessEntry("owning_group", self.gid, (self.mode >> 3) & 0o7),
            AccessEntry("other", None, self.mode & 0o7),
            AccessEntry("special", None, (self.mode >> 9) & 0o7),
        }
        for entry in self.acl:
            qualifier: Optional[int] = entry.qualifier
            if qualifier == ACL_UNDEFINED_ID:
                qualifier = None
            tag = ACL_TAGS.get(entry.tag, f"tag_{entry.tag:#x}")
            items.add(AccessEntry(f"acl_{tag}", qualifier, entry.permissions))
        return frozenset(items)

    def matches(self, other: "PermissionDescriptor") -> bool:
        return self.entries == other.entries


def has_permission_privilege() -> bool:
    """Whether this process may change ownership of arbitrary paths.

    Only a POSIX process running with effective uid 0 qualifies.
    """
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


class PermissionReconciler:
    """Pushes the source permission descriptor onto the replica path.

    Read and write failures are reported as errors and never raised, so
    one unreadable path does not stop a mirror run.
    """

    def __init__(
        self,
        operations: "FileOperations",
        log: OperationLogger,
        dry_run: bool = False,
    ):
        """Initialize permission reconciler.

        Args:
            operations: Filesystem primitives used to read and write
                descriptors
            log: Logger receiving reconciliation events
            dry_run: Report differences without writing
        """
        self.operations = operations
        self.log = log
        self.dry_run = dry_run

    def reconcile(
        self, source_path: Path, replica_path: Path, relative_path: str = ""
    ) -> bool:
        """Make the replica descriptor equal to the source descriptor.

        Args:
            source_path: Path under the source root
            replica_path: Corresponding path under the replica root
            relative_path: Relative path used in messages

        Returns:
            True if the replica descriptor was (or in dry run would be)
            changed
        """
        label = relative_path or str(replica_path)
        try:
            source_descriptor = self.operations.read_permissions(source_path)
            replica_descriptor = self.operations.read_permissions(replica_path)
        except (OSError, PermissionSyncError) as e:
            self.log.error(f"Failed to read permissions for {label}: {e}")
            return False

        if source_descriptor.matches(replica_descriptor):
            self.log.verbose(f"Permissions already match: {label}")
            return False

        logger.debug(
            "Permission mismatch for %s: %s != %s",
            label,
            source_descriptor,
            replica_descriptor,
        )

        if self.dry_run:
            self.log.info(f"[dry run] Would update permissions: {label}")
            return True

        try:
            self.operations.write_permissions(replica_path, source_descriptor)
        except (OSError, PermissionSyncError) as e:
            self.log.error(f"Failed to update permissions for {label}: {e}")
            return False

        self.log.info(f"Permissions updated: {label}")
        return True
