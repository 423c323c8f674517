"""Change detection for mirrored files."""

import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .scanner import Entry


class SyncAction(str, Enum):
    """Outcome of comparing a source file with its replica counterpart."""

    CREATE = "create"
    """Replica file does not exist"""

    UPDATE = "update"
    """Replica file differs in size, or is a directory or link"""

    UNCHANGED = "unchanged"
    """Replica file exists with the same size"""

    @property
    def requires_copy(self) -> bool:
        return self is not SyncAction.UNCHANGED


@dataclass(frozen=True)
class SyncDecision:
    """Represents a decision about how to mirror one file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    source: Entry
    """Source file entry"""

    replica_path: Path
    """Absolute path of the replica counterpart"""

    relative_path: str
    """Relative path of the file"""


class ChangeDetector:
    """Decides whether a replica file is missing, stale or up to date.

    Only existence and byte length are compared. Two files of equal length
    are treated as identical even when their content differs; there is no
    hashing and no timestamp comparison. A symbolic link in the replica is
    never followed and is always replaced by a copy.
    """

    def decide(
        self, source: Entry, replica_path: Path, relative_path: str = ""
    ) -> SyncDecision:
        """Compare a source file with its replica path.

        Args:
            source: Source file entry (with size)
            replica_path: Corresponding path under the replica root
            relative_path: Relative path used in messages

        Returns:
            SyncDecision for this file
        """
        relative_path = relative_path or replica_path.name
        try:
            replica_stat = os.lstat(replica_path)
        except FileNotFoundError:
            return SyncDecision(
                action=SyncAction.CREATE,
                reason="New file",
                source=source,
                replica_path=replica_path,
                relative_path=relative_path,
            )

        if stat.S_ISDIR(replica_stat.st_mode):
            return SyncDecision(
                action=SyncAction.UPDATE,
                reason="Replica path is a directory",
                source=source,
                replica_path=replica_path,
                relative_path=relative_path,
            )

        if stat.S_ISLNK(replica_stat.st_mode):
            return SyncDecision(
                action=SyncAction.UPDATE,
                reason="Replica path is a symbolic link",
                source=source,
                replica_path=replica_path,
                relative_path=relative_path,
            )

        if replica_stat.st_size != source.size:
            return SyncDecision(
                action=SyncAction.UPDATE,
                reason=(
                    f"Size changed ({replica_stat.st_size} -> {source.size} bytes)"
                ),
                source=source,
                replica_path=replica_path,
                relative_path=relative_path,
            )

        return SyncDecision(
            action=SyncAction.UNCHANGED,
            reason="already exists and is same size",
            source=source,
            replica_path=replica_path,
            relative_path=relative_path,
        )
