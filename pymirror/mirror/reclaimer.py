"""Removal of replica entries that no longer exist in the source."""

import logging
import threading
from pathlib import PurePosixPath
from typing import Optional

from ..exceptions import MirrorError
from ..log import OperationLogger
from .operations import FileOperations
from .paths import PathMapper
from .scanner import Entry, EntryKind, TreeRoot, TreeScanner

logger = logging.getLogger(__name__)


class OrphanReclaimer:
    """Deletes replica entries without a source counterpart.

    Both trees are scanned afresh and compared by relative path and kind.
    Orphans are deleted deepest first, directories recursively, so a stale
    directory never fails with "directory not empty". Entries below an
    orphan directory that was already removed are not deleted twice.
    """

    def __init__(
        self,
        mapper: PathMapper,
        scanner: TreeScanner,
        operations: FileOperations,
        log: OperationLogger,
        dry_run: bool = False,
    ):
        """Initialize orphan reclaimer.

        Args:
            mapper: Path mapper for the source and replica roots
            scanner: Tree scanner used to enumerate both trees
            operations: Filesystem primitives
            log: Logger receiving deletion events
            dry_run: Report orphans without deleting them
        """
        self.mapper = mapper
        self.scanner = scanner
        self.operations = operations
        self.log = log
        self.dry_run = dry_run

    def find_orphans(self) -> list[tuple[str, Entry]]:
        """Scan both trees and return replica-only entries.

        Returns:
            (relative_path, entry) pairs ordered deepest first
        """
        replica_entries = self.scanner.scan(self.mapper.replica_root, TreeRoot.REPLICA)
        if not replica_entries:
            logger.debug("Replica tree is empty, nothing to reclaim")
            return []

        source_entries = self.scanner.scan(self.mapper.source_root, TreeRoot.SOURCE)
        source_items: dict[str, EntryKind] = {
            self.mapper.relative_to_source(entry.path): entry.kind
            for entry in source_entries
        }

        orphans = []
        for entry in replica_entries:
            relative_path = self.mapper.relative_to_replica(entry.path)
            if source_items.get(relative_path) is not entry.kind:
                orphans.append((relative_path, entry))

        # Deepest first; reverse name order keeps the result deterministic
        orphans.sort(
            key=lambda item: (len(PurePosixPath(item[0]).parts), item[0]),
            reverse=True,
        )
        return orphans

    def reclaim(self, cancel_event: Optional[threading.Event] = None) -> int:
        """Delete all orphans from the replica tree.

        Args:
            cancel_event: Checked between deletions; when set, the
                remaining orphans are left in place

        Returns:
            Number of deleted (or in dry run, reported) entries
        """
        orphans = self.find_orphans()
        if not orphans:
            return 0

        logger.debug("Found %d orphan(s) in %s", len(orphans), self.mapper.replica_root)
        removed_dirs = {relative for relative, entry in orphans if entry.is_dir}
        deleted = 0

        for relative_path, entry in orphans:
            if cancel_event is not None and cancel_event.is_set():
                self.log.warning("Cancelled, remaining orphans were not deleted")
                break

            if any(
                str(parent) in removed_dirs
                for parent in PurePosixPath(relative_path).parents
            ):
                # Goes away with its orphan parent directory
                continue

            kind = "directory" if entry.is_dir else "file"
            if self.dry_run:
                self.log.info(f"[dry run] Would delete orphan {kind}: {relative_path}")
                deleted += 1
                continue

            target = self.mapper.from_relative(relative_path, self.mapper.replica_root)
            try:
                self.operations.delete_path(target)
            except (OSError, MirrorError) as e:
                self.log.error(f"Failed to delete {target}: {e}")
                continue

            self.log.info(f"Deleted orphan {kind}: {relative_path}")
            deleted += 1

        return deleted
