"""Tests for backup file operations."""

import hashlib

import pytest

from attendance_backup.backup import BackupTier
from attendance_backup.backup.files import (
    backup_file_path,
    compute_checksum,
    commit_staged_file,
    copy_database_file,
    delete_file,
    ensure_backup_dirs,
    file_exists,
    get_file_size,
    stage_database_file,
    staged_path,
    tier_dir,
    verify_checksum,
)
from attendance_backup.exceptions import BackupIOError


class TestPaths:
    def test_tier_dir(self, tmp_path):
        assert tier_dir(tmp_path, BackupTier.WEEKLY) == tmp_path / "weekly"

    def test_backup_file_path(self, tmp_path):
        path = backup_file_path(tmp_path, "daily", "daily-2024-06-01-auth.db")
        assert path == tmp_path / "daily" / "daily-2024-06-01-auth.db"

    def test_ensure_backup_dirs_is_idempotent(self, tmp_path):
        root = tmp_path / "backups"
        ensure_backup_dirs(root)
        ensure_backup_dirs(root)

        for tier in ("daily", "weekly", "monthly", "manual"):
            assert (root / tier).is_dir()


class TestCopy:
    """copy_database_file produces an identical file."""

    def test_copy_is_byte_identical(self, tmp_path):
        source = tmp_path / "src.db"
        source.write_bytes(bytes(range(256)) * 500)
        dest = tmp_path / "dest.db"

        copy_database_file(source, dest)

        assert dest.read_bytes() == source.read_bytes()
        assert not (tmp_path / "dest.db.partial").exists()

    def test_copy_overwrites(self, tmp_path):
        source = tmp_path / "src.db"
        source.write_bytes(b"new")
        dest = tmp_path / "dest.db"
        dest.write_bytes(b"old contents")

        copy_database_file(source, dest)
        assert dest.read_bytes() == b"new"

    def test_missing_source(self, tmp_path):
        with pytest.raises(BackupIOError) as exc_info:
            copy_database_file(tmp_path / "absent.db", tmp_path / "dest.db")

        assert exc_info.value.path == str(tmp_path / "absent.db")
        assert not (tmp_path / "dest.db").exists()

    def test_missing_destination_dir(self, tmp_path):
        source = tmp_path / "src.db"
        source.write_bytes(b"data")

        with pytest.raises(BackupIOError):
            copy_database_file(source, tmp_path / "no-such-dir" / "dest.db")


class TestStaging:
    """stage_database_file writes beside the destination; commit_staged_file swaps it in."""

    def test_stage_leaves_destination_untouched(self, tmp_path):
        source = tmp_path / "src.db"
        source.write_bytes(b"new")
        dest = tmp_path / "dest.db"
        dest.write_bytes(b"old contents")

        staged = stage_database_file(source, dest)

        assert staged == staged_path(dest) == tmp_path / "dest.db.partial"
        assert staged.read_bytes() == b"new"
        assert dest.read_bytes() == b"old contents"

    def test_commit_replaces_destination(self, tmp_path):
        source = tmp_path / "src.db"
        source.write_bytes(b"new")
        dest = tmp_path / "dest.db"
        dest.write_bytes(b"old contents")

        stage_database_file(source, dest)
        commit_staged_file(dest)

        assert dest.read_bytes() == b"new"
        assert not staged_path(dest).exists()

    def test_commit_without_staged_copy(self, tmp_path):
        dest = tmp_path / "dest.db"
        dest.write_bytes(b"old contents")

        with pytest.raises(BackupIOError) as exc_info:
            commit_staged_file(dest)

        assert exc_info.value.path == str(dest)
        assert dest.read_bytes() == b"old contents"

    def test_stage_missing_source(self, tmp_path):
        with pytest.raises(BackupIOError) as exc_info:
            stage_database_file(tmp_path / "absent.db", tmp_path / "dest.db")

        assert exc_info.value.path == str(tmp_path / "absent.db")
        assert not staged_path(tmp_path / "dest.db").exists()


class TestDeleteAndSize:
    def test_delete_existing(self, tmp_path):
        path = tmp_path / "a.db"
        path.write_bytes(b"x")

        assert delete_file(path) is True
        assert not file_exists(path)

    def test_delete_missing_is_not_an_error(self, tmp_path):
        assert delete_file(tmp_path / "absent.db") is False

    def test_get_file_size(self, tmp_path):
        path = tmp_path / "a.db"
        path.write_bytes(b"x" * 1234)
        assert get_file_size(path) == 1234

    def test_get_file_size_missing(self, tmp_path):
        with pytest.raises(BackupIOError):
            get_file_size(tmp_path / "absent.db")

    def test_file_exists_ignores_directories(self, tmp_path):
        assert file_exists(tmp_path) is False


class TestChecksum:
    def test_matches_hashlib(self, tmp_path):
        data = b"attendance" * 20000
        path = tmp_path / "a.db"
        path.write_bytes(data)

        assert compute_checksum(path) == hashlib.sha256(data).hexdigest()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.db"
        path.write_bytes(b"")
        assert compute_checksum(path) == hashlib.sha256(b"").hexdigest()

    def test_stable_across_calls(self, tmp_path):
        path = tmp_path / "a.db"
        path.write_bytes(b"same")
        assert compute_checksum(path) == compute_checksum(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(BackupIOError):
            compute_checksum(tmp_path / "absent.db")

    def test_verify_checksum(self, tmp_path):
        path = tmp_path / "a.db"
        path.write_bytes(b"data")
        expected = hashlib.sha256(b"data").hexdigest()

        assert verify_checksum(path, expected) is True
        assert verify_checksum(path, "0" * 64) is False
        assert verify_checksum(tmp_path / "absent.db", expected) is False
