"""Tests for the FileOperations class."""

import os
import sys

import pytest

from pymirror.mirror.operations import FileOperations


@pytest.fixture
def operations():
    return FileOperations()


class TestFileOperations:
    """Tests for filesystem primitives."""

    def test_create_directory(self, operations, replica):
        operations.create_directory(replica / "sub")

        assert (replica / "sub").is_dir()

    def test_create_existing_directory_is_a_no_op(self, operations, replica):
        (replica / "sub").mkdir()

        operations.create_directory(replica / "sub")

        assert (replica / "sub").is_dir()

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_create_directory_over_link_raises(self, operations, replica, temp_dir):
        (temp_dir / "outside").mkdir()
        (replica / "sub").symlink_to(temp_dir / "outside", target_is_directory=True)

        with pytest.raises(FileExistsError):
            operations.create_directory(replica / "sub")

        assert (replica / "sub").is_symlink()

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_copy_replaces_link_at_destination(
        self, operations, source, replica, temp_dir, write_file
    ):
        source_file = write_file(source / "a.txt", 3, b"s")
        target = write_file(temp_dir / "outside.txt", 3, b"o")
        (replica / "a.txt").symlink_to(target)

        operations.copy_file(source_file, replica / "a.txt")

        assert not (replica / "a.txt").is_symlink()
        assert (replica / "a.txt").read_bytes() == b"sss"
        assert target.read_bytes() == b"ooo"

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_delete_link_to_directory_keeps_target(
        self, operations, replica, temp_dir, write_file
    ):
        kept = write_file(temp_dir / "outside" / "keep.txt", 1)
        (replica / "linkdir").symlink_to(temp_dir / "outside")

        operations.delete_path(replica / "linkdir")

        assert not os.path.lexists(replica / "linkdir")
        assert kept.exists()

    def test_delete_directory_tree(self, operations, replica, write_file):
        write_file(replica / "old" / "deep" / "a.txt", 1)

        operations.delete_path(replica / "old")

        assert not (replica / "old").exists()
