"""Core mirror engine for making a replica tree identical to a source tree."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path, PurePosixPath
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..config import MirrorConfig
from ..exceptions import (
    InvalidPathError,
    MirrorError,
    ReplicaCreationError,
    SourceNotFoundError,
)
from ..log import OperationLogger
from ..output import OutputFormatter
from ..utils import format_duration
from .comparator import ChangeDetector, SyncAction, SyncDecision
from .operations import FileOperations
from .paths import PathMapper
from .permissions import PermissionReconciler, has_permission_privilege
from .reclaimer import OrphanReclaimer
from .scanner import Entry, TreeRoot, TreeScanner

logger = logging.getLogger(__name__)

_COPY_STATS = {
    SyncAction.CREATE: "files_created",
    SyncAction.UPDATE: "files_updated",
    SyncAction.UNCHANGED: "files_unchanged",
}


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


class MirrorEngine:
    """Makes the replica tree of a mirror job identical to its source tree.

    A run has three steps over one complete scan of the source tree:

    1. every source directory is created in the replica (parents first),
    2. every source file is copied when its replica counterpart is missing
       or has a different size,
    3. replica entries without a source counterpart are deleted.

    When permission sync is enabled, each directory and file of steps 1
    and 2 also gets the source's owner, mode and ACL. A failure on one
    item is logged as an error and the run continues with the next item.
    """

    def __init__(
        self,
        config: MirrorConfig,
        log: OperationLogger,
        output: Optional[OutputFormatter] = None,
        operations: Optional[FileOperations] = None,
    ):
        """Initialize mirror engine.

        Args:
            config: Read-only job configuration
            log: Logger receiving all mirror events
            output: Output formatter for progress and summary display
                (defaults to the logger's formatter)
            operations: Filesystem primitives
        """
        self.config = config
        self.log = log
        self.output = output or log.output
        self.operations = operations or FileOperations()
        self.mapper = PathMapper(config.source, config.replica)
        self.scanner = TreeScanner(log)
        self.detector = ChangeDetector()
        self.reconciler = PermissionReconciler(
            self.operations, log, dry_run=config.dry_run
        )
        self.reclaimer = OrphanReclaimer(
            self.mapper, self.scanner, self.operations, log, dry_run=config.dry_run
        )
        self._stats_lock = threading.Lock()
        self._replica_missing = False
        self._failed_directories: set[str] = set()

    def run(self, cancel_event: Optional[threading.Event] = None) -> dict:
        """Run the mirror job once.

        Args:
            cancel_event: Checked between items; when set, the remaining
                items are skipped and no orphans are deleted

        Returns:
            Dictionary with run statistics

        Raises:
            SourceNotFoundError: If the source root is missing
            ReplicaCreationError: If the replica root cannot be created
            InvalidPathError: If one root lies inside the other

        Examples:
            >>> engine = MirrorEngine(MirrorConfig("/data", "/backup"), log)
            >>> stats = engine.run()
            >>> print(f"Copied {stats['files_created']} new file(s)")
        """
        start_time = time.time()
        errors_before = self.log.error_count

        if not self.output.quiet:
            self.output.info(
                f"Mirroring: {self.config.source} -> {self.config.replica}"
            )
            if self.config.dry_run:
                self.output.info("Dry run: No changes will be made")

        self.prepare_roots()
        self._failed_directories = set()
        sync_permissions = self._permissions_enabled()
        stats = self._create_empty_stats()

        source_entries = self._scan_source()
        directories = TreeScanner.directories(source_entries)
        files = TreeScanner.files(source_entries)

        cancelled = self._sync_directories(
            directories, stats, sync_permissions, cancel_event
        )
        if not cancelled:
            cancelled = self._sync_files(files, stats, sync_permissions, cancel_event)

        if cancelled:
            self.log.warning("Mirror run cancelled, orphans were not reclaimed")
        elif self._replica_missing:
            logger.debug("Replica root does not exist yet, nothing to reclaim")
        else:
            stats["deleted"] = self.reclaimer.reclaim(cancel_event)

        stats["errors"] = self.log.error_count - errors_before
        stats["cancelled"] = cancelled
        stats["elapsed"] = time.time() - start_time
        logger.debug("Mirror run finished in %.2fs: %s", stats["elapsed"], stats)

        if not self.output.quiet:
            self._display_summary(stats)

        return stats

    def prepare_roots(self) -> None:
        """Validate the source root and create the replica root if missing.

        Raises:
            SourceNotFoundError: If the source root is missing or not a
                directory
            InvalidPathError: If one root lies inside the other
            ReplicaCreationError: If the replica root cannot be created
        """
        source = self.config.source
        replica = self.config.replica

        if not source.exists():
            self.log.error(f"Source directory does not exist: {source}")
            raise SourceNotFoundError(f"Source directory does not exist: {source}")
        if not source.is_dir():
            self.log.error(f"Source path is not a directory: {source}")
            raise SourceNotFoundError(f"Source path is not a directory: {source}")

        if _is_within(replica, source) or _is_within(source, replica):
            message = (
                f"Source and replica must not contain each other: {source}, {replica}"
            )
            self.log.error(message)
            raise InvalidPathError(replica, source, message)

        self._replica_missing = False
        if replica.is_dir():
            return
        if self.operations.exists(replica):
            self.log.error(f"Replica path is not a directory: {replica}")
            raise ReplicaCreationError(f"Replica path is not a directory: {replica}")

        if self.config.dry_run:
            self.log.info(f"[dry run] Would create replica directory: {replica}")
            self._replica_missing = True
            return

        try:
            self.operations.create_root(replica)
        except OSError as e:
            self.log.error(f"Cannot create replica directory {replica}: {e}")
            raise ReplicaCreationError(
                f"Cannot create replica directory {replica}: {e}"
            ) from e
        self.log.info(f"Created replica directory: {replica}")

    def _permissions_enabled(self) -> bool:
        if not self.config.sync_permissions:
            return False
        if not has_permission_privilege():
            self.log.warning(
                "Permission sync requires administrator (root) privileges, "
                "continuing without it"
            )
            return False
        return True

    def _scan_source(self) -> list[Entry]:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.output.console,
            transient=True,
            disable=self.output.quiet or self.output.json_output,
        ) as progress:
            task = progress.add_task("Scanning source directory...", total=None)
            scan_start = time.time()
            entries = self.scanner.scan(self.config.source, TreeRoot.SOURCE)
            progress.update(task, description=f"Found {len(entries)} entries")
        logger.debug(
            "Source scan took %.2fs for %d entries",
            time.time() - scan_start,
            len(entries),
        )
        return entries

    def _create_empty_stats(self) -> dict:
        """Create an empty statistics dictionary.

        Returns:
            Dictionary with zero counts for all stat categories
        """
        return {
            "dirs_created": 0,
            "dirs_existing": 0,
            "files_created": 0,
            "files_updated": 0,
            "files_unchanged": 0,
            "bytes_copied": 0,
            "permissions_updated": 0,
            "deleted": 0,
            "errors": 0,
        }

    def _count(self, stats: dict, key: str, amount: int = 1) -> None:
        with self._stats_lock:
            stats[key] += amount

    def _sync_directories(
        self,
        directories: list[Entry],
        stats: dict,
        sync_permissions: bool,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        """Create missing replica directories in scan order (parents first).

        Returns:
            True if the pass was cancelled
        """
        for index, entry in enumerate(directories):
            if cancel_event is not None and cancel_event.is_set():
                remaining = len(directories) - index
                self.log.warning(f"Cancelled, {remaining} directory(ies) skipped")
                return True
            self._sync_directory(entry, stats, sync_permissions)
        return False

    def _parent_failed(self, relative_path: str) -> bool:
        return any(
            str(parent) in self._failed_directories
            for parent in PurePosixPath(relative_path).parents
        )

    def _sync_directory(
        self, entry: Entry, stats: dict, sync_permissions: bool
    ) -> None:
        relative_path = self.mapper.relative_to_source(entry.path)
        if self._parent_failed(relative_path):
            self._failed_directories.add(relative_path)
            self.log.error(
                f"Skipping directory {relative_path}: parent directory was not created"
            )
            return

        try:
            replica_path = self.mapper.to_replica(entry.path)
            if self.operations.is_dir(replica_path):
                self.log.verbose(f"Directory already exists: {relative_path}")
                self._count(stats, "dirs_existing")
            elif self.config.dry_run:
                self.log.info(f"[dry run] Would create directory: {relative_path}")
                self._count(stats, "dirs_created")
                return
            else:
                if replica_path.is_symlink():
                    # Never write through a link into another tree
                    self.operations.delete_path(replica_path)
                    self.log.info(f"Removed symbolic link: {relative_path}")
                self.operations.create_directory(replica_path)
                self.log.info(f"New directory: {relative_path}")
                self._count(stats, "dirs_created")
        except (OSError, MirrorError) as e:
            self._failed_directories.add(relative_path)
            self.log.error(f"Failed to create directory {relative_path}: {e}")
            return

        if sync_permissions:
            if self.reconciler.reconcile(entry.path, replica_path, relative_path):
                self._count(stats, "permissions_updated")

    def _sync_files(
        self,
        files: list[Entry],
        stats: dict,
        sync_permissions: bool,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        """Copy new and changed files, sequentially or with a worker pool.

        Returns:
            True if the pass was cancelled
        """
        max_workers = self.config.max_workers
        if max_workers > 1 and len(files) > 1:
            return self._sync_files_parallel(
                files, stats, sync_permissions, cancel_event, max_workers
            )

        for index, entry in enumerate(files):
            if cancel_event is not None and cancel_event.is_set():
                self.log.warning(f"Cancelled, {len(files) - index} file(s) skipped")
                return True
            self._sync_file(entry, stats, sync_permissions)
        return False

    def _sync_files_parallel(
        self,
        files: list[Entry],
        stats: dict,
        sync_permissions: bool,
        cancel_event: Optional[threading.Event],
        max_workers: int,
    ) -> bool:
        """Copy files with a bounded thread pool.

        All replica directories exist at this point, so files can be
        processed in any order.

        Returns:
            True if the pass was cancelled
        """
        logger.debug(f"Processing {len(files)} files with {max_workers} workers")
        skipped = 0

        def process(entry: Entry) -> bool:
            if cancel_event is not None and cancel_event.is_set():
                return False
            self._sync_file(entry, stats, sync_permissions)
            return True

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(process, entry): entry for entry in files}
            for future in as_completed(futures):
                try:
                    if not future.result():
                        skipped += 1
                except Exception as e:
                    path = futures[future].path
                    self.log.error(f"Unexpected error processing {path}: {e}")

        if skipped:
            self.log.warning(f"Cancelled, {skipped} file(s) skipped")
            return True
        return False

    def _sync_file(
        self, entry: Entry, stats: dict, sync_permissions: bool
    ) -> Optional[SyncDecision]:
        """Copy one file if needed and reconcile its permissions.

        Returns:
            The decision taken, or None if the file failed
        """
        relative_path = self.mapper.relative_to_source(entry.path)
        if self._parent_failed(relative_path):
            self.log.error(
                f"Skipping {relative_path}: parent directory was not created"
            )
            return None

        try:
            replica_path = self.mapper.to_replica(entry.path)
            decision = self.detector.decide(entry, replica_path, relative_path)
            action = decision.action

            if not action.requires_copy:
                self.log.verbose(
                    f"File already exists and is same size: {relative_path}"
                )
            elif self.config.dry_run:
                verb = "copy new" if action is SyncAction.CREATE else "update"
                self.log.info(f"[dry run] Would {verb} file: {relative_path}")
            else:
                self.operations.copy_file(entry.path, replica_path)
                if action is SyncAction.CREATE:
                    self.log.info(f"New file: {relative_path}")
                else:
                    self.log.info(f"Updated file: {relative_path} ({decision.reason})")
                self._count(stats, "bytes_copied", entry.size or 0)
        except (OSError, MirrorError) as e:
            self.log.error(f"Failed to copy {relative_path}: {e}")
            return None

        self._count(stats, _COPY_STATS[action])

        # In dry run a new file has no replica counterpart to compare against
        skip_permissions = self.config.dry_run and action is SyncAction.CREATE
        if sync_permissions and not skip_permissions:
            if self.reconciler.reconcile(entry.path, replica_path, relative_path):
                self._count(stats, "permissions_updated")

        return decision

    def _display_summary(self, stats: dict) -> None:
        """Display run summary.

        Args:
            stats: Statistics dictionary
        """
        self.output.print("")
        if stats["cancelled"]:
            self.output.warning("Mirror run cancelled")
        elif self.config.dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Mirror complete!")

        total_changes = (
            stats["dirs_created"]
            + stats["files_created"]
            + stats["files_updated"]
            + stats["permissions_updated"]
            + stats["deleted"]
        )

        items = [
            ("Directories created", str(stats["dirs_created"])),
            ("Files created", str(stats["files_created"])),
            ("Files updated", str(stats["files_updated"])),
            ("Files unchanged", str(stats["files_unchanged"])),
            ("Copied", self.output.format_size(stats["bytes_copied"])),
            ("Permissions updated", str(stats["permissions_updated"])),
            ("Orphans deleted", str(stats["deleted"])),
            ("Errors", str(stats["errors"])),
            ("Elapsed", format_duration(stats["elapsed"])),
        ]
        self.output.print_summary(self.config.name, items)

        if total_changes == 0 and stats["errors"] == 0:
            self.output.info("No changes needed - everything is in sync!")
        if stats["errors"] > 0:
            self.output.warning(
                f"{stats['errors']} error(s) occurred, see the log for details"
            )
