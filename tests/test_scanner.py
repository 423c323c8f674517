"""Tests for the TreeScanner class."""

import os
import sys
from pathlib import Path

import pytest

from pymirror.log import LogLevel
from pymirror.mirror.scanner import Entry, EntryKind, TreeRoot, TreeScanner


class TestTreeScanner:
    """Test recursive enumeration of a directory tree."""

    @pytest.fixture
    def scanner(self, log):
        return TreeScanner(log)

    def test_scan_empty_directory(self, scanner, source):
        assert scanner.scan(source) == []

    def test_scan_lists_files_and_directories(self, scanner, source, write_file):
        write_file(source / "a.txt", 3)
        write_file(source / "sub" / "b.txt", 7)

        entries = scanner.scan(source)

        assert entries == [
            Entry(source / "a.txt", EntryKind.FILE, TreeRoot.SOURCE, 3),
            Entry(source / "sub", EntryKind.DIRECTORY, TreeRoot.SOURCE),
            Entry(source / "sub" / "b.txt", EntryKind.FILE, TreeRoot.SOURCE, 7),
        ]

    def test_scan_includes_hidden_entries(self, scanner, source, write_file):
        write_file(source / ".hidden", 1)
        write_file(source / ".config" / "settings", 2)

        names = {entry.path.name for entry in scanner.scan(source)}

        assert names == {".hidden", ".config", "settings"}

    def test_scan_includes_empty_directories(self, scanner, source):
        (source / "empty").mkdir()

        entries = scanner.scan(source)

        assert len(entries) == 1
        assert entries[0].is_dir
        assert entries[0].size is None

    def test_parents_precede_children(self, scanner, source, write_file):
        write_file(source / "a" / "b" / "c" / "d.txt", 1)

        paths = [entry.path for entry in scanner.scan(source)]

        for index, path in enumerate(paths):
            for parent in path.parents:
                if parent in paths:
                    assert paths.index(parent) < index

    def test_scan_order_is_deterministic(self, scanner, source, write_file):
        for name in ["zeta", "alpha", "mid"]:
            write_file(source / name / "f.txt", 1)
            write_file(source / f"{name}.txt", 1)

        first = scanner.scan(source)
        second = scanner.scan(source)

        assert first == second
        assert [e.path.name for e in first][:3] == ["alpha", "f.txt", "alpha.txt"]

    def test_scan_records_root(self, scanner, replica, write_file):
        write_file(replica / "a.txt", 1)

        entries = scanner.scan(replica, TreeRoot.REPLICA)

        assert entries[0].root is TreeRoot.REPLICA

    def test_directories_and_files_helpers(self, scanner, source, write_file):
        write_file(source / "a.txt", 1)
        write_file(source / "d" / "b.txt", 1)
        entries = scanner.scan(source)

        assert [e.path.name for e in TreeScanner.directories(entries)] == ["d"]
        assert [e.path.name for e in TreeScanner.files(entries)] == ["a.txt", "b.txt"]

    def test_missing_root_is_skipped_with_warning(self, scanner, log, temp_dir):
        entries = scanner.scan(temp_dir / "does-not-exist")

        assert entries == []
        assert len(log.messages(LogLevel.WARNING)) == 1
        assert log.error_count == 0

    @pytest.mark.skipif(
        sys.platform == "win32" or os.geteuid() == 0,
        reason="directory permissions are not enforced",
    )
    def test_unreadable_subtree_is_skipped_with_warning(
        self, scanner, log, source, write_file
    ):
        write_file(source / "ok" / "a.txt", 1)
        locked = source / "locked"
        write_file(locked / "secret.txt", 1)
        locked.chmod(0o000)
        try:
            entries = scanner.scan(source)
        finally:
            locked.chmod(0o755)

        paths = {entry.path for entry in entries}
        assert source / "ok" / "a.txt" in paths
        assert locked in paths
        assert locked / "secret.txt" not in paths
        warnings = log.messages(LogLevel.WARNING)
        assert len(warnings) == 1
        assert "locked" in warnings[0]

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_symlink_to_file_is_a_file_entry(self, scanner, source, write_file):
        target = write_file(source / "target.txt", 4)
        (source / "link.txt").symlink_to(target)

        entries = {e.path.name: e for e in scanner.scan(source)}

        assert entries["link.txt"].kind is EntryKind.FILE
        assert entries["link.txt"].size == 4

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_symlink_to_directory_is_skipped(
        self, scanner, log, source, write_file
    ):
        write_file(source / "real" / "a.txt", 1)
        (source / "alias").symlink_to(source / "real", target_is_directory=True)

        names = [e.path.name for e in scanner.scan(source)]

        assert "alias" not in names
        assert names.count("a.txt") == 1
        assert any("alias" in w for w in log.messages(LogLevel.WARNING))

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_broken_symlink_is_skipped_with_warning(self, scanner, log, source):
        (source / "dangling").symlink_to(source / "missing.txt")

        assert scanner.scan(source) == []
        assert len(log.messages(LogLevel.WARNING)) == 1


def test_entry_is_immutable():
    entry = Entry(Path("/a"), EntryKind.FILE, TreeRoot.SOURCE, 1)
    with pytest.raises(AttributeError):
        entry.size = 2  # type: ignore[misc]


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
class TestReplicaLinks:
    """Links in the replica tree are reported without being followed."""

    @pytest.fixture
    def scanner(self, log):
        return TreeScanner(log)

    def test_link_to_directory_is_a_file_entry(
        self, scanner, log, replica, temp_dir, write_file
    ):
        write_file(temp_dir / "outside" / "inner.txt", 3)
        (replica / "linkdir").symlink_to(temp_dir / "outside")

        entries = scanner.scan(replica, TreeRoot.REPLICA)

        assert [(e.path.name, e.kind) for e in entries] == [
            ("linkdir", EntryKind.FILE)
        ]
        assert log.messages(LogLevel.WARNING) == []

    def test_broken_link_is_a_file_entry(self, scanner, log, replica):
        (replica / "dangling").symlink_to(replica / "nowhere")

        entries = scanner.scan(replica, TreeRoot.REPLICA)

        assert len(entries) == 1
        assert entries[0].kind is EntryKind.FILE
        assert entries[0].size == os.lstat(replica / "dangling").st_size
        assert log.messages(LogLevel.WARNING) == []
