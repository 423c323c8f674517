"""Directory scanning for mirror runs."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from ..log import OperationLogger

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    """Kind of filesystem object."""

    DIRECTORY = "directory"
    FILE = "file"


class TreeRoot(str, Enum):
    """Tree an entry was discovered under."""

    SOURCE = "source"
    REPLICA = "replica"


@dataclass(frozen=True)
class Entry:
    """Snapshot of one filesystem object taken during a scan."""

    path: Path
    """Absolute path"""

    kind: EntryKind
    """Directory or file"""

    root: TreeRoot
    """Tree the entry was found in"""

    size: Optional[int] = None
    """Byte length (files only)"""

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE


class TreeScanner:
    """Recursively lists every directory and file under a root.

    Hidden entries are included. The walk is depth-first with children
    sorted by name, so a parent directory always precedes its contents
    and two scans of an unchanged tree produce the same order.

    Directories that cannot be listed are skipped with a warning instead
    of aborting the scan. In the source tree links to files are followed
    and links to directories are skipped; in the replica tree every link
    is reported as a file entry with the size of the link itself.

    Examples:
        >>> scanner = TreeScanner(OperationLogger())
        >>> entries = scanner.scan(Path("/data/photos"))
        >>> [e.path.name for e in scanner.files(entries)]
        ['a.jpg', 'b.jpg']
    """

    def __init__(self, log: OperationLogger):
        """Initialize tree scanner.

        Args:
            log: Logger receiving warnings for skipped entries
        """
        self.log = log

    def scan(self, directory: Path, root: TreeRoot = TreeRoot.SOURCE) -> list[Entry]:
        """Scan a directory tree.

        Args:
            directory: Root of the tree (not included in the result)
            root: Which tree is being scanned

        Returns:
            List of entries below the root
        """
        entries: list[Entry] = []
        self._scan_directory(Path(directory), root, entries)
        logger.debug("Scanned %d entries under %s", len(entries), directory)
        return entries

    def _scan_directory(
        self, directory: Path, root: TreeRoot, entries: list[Entry]
    ) -> None:
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda item: item.name)
        except OSError as e:
            self.log.warning(f"Skipping unreadable directory {directory}: {e}")
            return

        for child in children:
            path = Path(child.path)
            try:
                if root is TreeRoot.REPLICA and child.is_symlink():
                    # Replica links are never followed; they are removed or
                    # replaced like files
                    size = child.stat(follow_symlinks=False).st_size
                    entries.append(
                        Entry(path=path, kind=EntryKind.FILE, root=root, size=size)
                    )
                    continue
                is_dir = child.is_dir(follow_symlinks=False)
                if not is_dir and child.is_symlink() and child.is_dir():
                    self.log.warning(f"Skipping link to directory {path}")
                    continue
                size = None if is_dir else child.stat().st_size
            except OSError as e:
                self.log.warning(f"Skipping unreadable entry {path}: {e}")
                continue

            if is_dir:
                entries.append(Entry(path=path, kind=EntryKind.DIRECTORY, root=root))
                self._scan_directory(path, root, entries)
            else:
                entries.append(
                    Entry(path=path, kind=EntryKind.FILE, root=root, size=size)
                )

    @staticmethod
    def directories(entries: Iterable[Entry]) -> list[Entry]:
        """Directory entries, in scan order."""
        return [entry for entry in entries if entry.is_dir]

    @staticmethod
    def files(entries: Iterable[Entry]) -> list[Entry]:
        """File entries, in scan order."""
        return [entry for entry in entries if entry.is_file]
