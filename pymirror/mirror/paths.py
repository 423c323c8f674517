"""Translation of paths between the source and replica trees."""

from pathlib import Path, PurePath, PurePosixPath
from typing import Union

from ..exceptions import InvalidPathError

PathLike = Union[str, PurePath]


class PathMapper:
    """Maps absolute paths between the source root and the replica root.

    Paths are translated segment by segment: the root prefix is removed
    with ``relative_to`` and the remainder is joined onto the other root.
    A root name that appears again deeper in the path is never touched.

    Examples:
        >>> mapper = PathMapper(Path("/data/a"), Path("/backup/a"))
        >>> mapper.to_replica(Path("/data/a/x/data/a/f.txt"))
        PosixPath('/backup/a/x/data/a/f.txt')
        >>> mapper.relative_to_source(Path("/data/a/x/f.txt"))
        'x/f.txt'
    """

    def __init__(self, source_root: Path, replica_root: Path):
        """Initialize path mapper.

        Args:
            source_root: Normalised absolute source root
            replica_root: Normalised absolute replica root
        """
        self.source_root = Path(source_root)
        self.replica_root = Path(replica_root)

    @staticmethod
    def _strip_root(path: PathLike, root: Path) -> PurePath:
        try:
            return Path(path).relative_to(root)
        except ValueError:
            raise InvalidPathError(path, root) from None

    def to_replica(self, source_path: PathLike) -> Path:
        """Return the replica path corresponding to a source path.

        Raises:
            InvalidPathError: If source_path is not under the source root
        """
        return self.replica_root / self._strip_root(source_path, self.source_root)

    def to_source(self, replica_path: PathLike) -> Path:
        """Return the source path corresponding to a replica path.

        Raises:
            InvalidPathError: If replica_path is not under the replica root
        """
        return self.source_root / self._strip_root(replica_path, self.replica_root)

    def relative_to_source(self, path: PathLike) -> str:
        """Relative path (forward slashes) of a path under the source root."""
        return self._strip_root(path, self.source_root).as_posix()

    def relative_to_replica(self, path: PathLike) -> str:
        """Relative path (forward slashes) of a path under the replica root."""
        return self._strip_root(path, self.replica_root).as_posix()

    @staticmethod
    def from_relative(relative_path: str, root: Path) -> Path:
        """Join a forward-slash relative path onto a root.

        Raises:
            InvalidPathError: If the relative path is absolute or escapes root
        """
        parts = PurePosixPath(relative_path).parts
        if PurePosixPath(relative_path).is_absolute() or ".." in parts:
            raise InvalidPathError(relative_path, root)
        return Path(root).joinpath(*parts)
