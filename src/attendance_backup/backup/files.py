"""File operations for backup storage.

Path resolution for the tier directories, atomic copies, checksums and size
accounting. Every failure at the filesystem layer surfaces as a
``BackupIOError`` carrying the offending path.
"""

import contextlib
import hashlib
import os
import shutil
from pathlib import Path
from typing import Union

from attendance_backup.backup.models import ALL_TIERS, BackupTier
from attendance_backup.exceptions import BackupIOError

PathLike = Union[str, Path]

CHUNK_SIZE = 64 * 1024
PARTIAL_SUFFIX = ".partial"


def tier_dir(backup_root: PathLike, tier: BackupTier) -> Path:
    return Path(backup_root) / BackupTier.coerce(tier).value


def backup_file_path(backup_root: PathLike, tier: BackupTier, filename: str) -> Path:
    return tier_dir(backup_root, tier) / filename


def ensure_dir(path: PathLike) -> Path:
    """Create a directory (and parents); an existing directory is fine."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupIOError(f"Cannot create directory: {e}", path=path) from e
    return path


def ensure_backup_dirs(backup_root: PathLike) -> None:
    ensure_dir(backup_root)
    for tier in ALL_TIERS:
        ensure_dir(tier_dir(backup_root, tier))


def file_exists(path: PathLike) -> bool:
    return Path(path).is_file()


def get_file_size(path: PathLike) -> int:
    try:
        return Path(path).stat().st_size
    except OSError as e:
        raise BackupIOError(f"Cannot stat file: {e}", path=path) from e


def staged_path(dest: PathLike) -> Path:
    """Temporary sibling a copy is written to before it replaces ``dest``."""
    dest = Path(dest)
    return dest.with_name(dest.name + PARTIAL_SUFFIX)


def stage_database_file(source: PathLike, dest: PathLike) -> Path:
    """Copy ``source`` to ``<dest>.partial`` and return that path.

    ``dest`` itself is not touched; ``commit_staged_file`` moves the staged
    copy into place.

    Raises:
        BackupIOError: if the source is missing or the destination unwritable
    """
    source = Path(source)
    partial = staged_path(dest)
    if not source.is_file():
        raise BackupIOError(f"Source file not found: {source}", path=source)

    try:
        shutil.copyfile(source, partial)
    except OSError as e:
        with contextlib.suppress(OSError):
            partial.unlink(missing_ok=True)
        raise BackupIOError(f"Failed to copy {source} -> {partial}: {e}", path=partial) from e
    return partial


def commit_staged_file(dest: PathLike) -> None:
    """Atomically rename ``<dest>.partial`` over ``dest``."""
    dest = Path(dest)
    try:
        os.replace(staged_path(dest), dest)
    except OSError as e:
        raise BackupIOError(f"Failed to move staged copy into place: {e}", path=dest) from e


def copy_database_file(source: PathLike, dest: PathLike) -> None:
    """Copy ``source`` to ``dest`` byte for byte.

    The bytes are written to ``<dest>.partial`` and renamed over ``dest`` only
    once complete, so readers never observe a half-written destination. The
    destination directory must already exist.

    Raises:
        BackupIOError: if the source is missing or the destination unwritable
    """
    stage_database_file(source, dest)
    try:
        commit_staged_file(dest)
    except BackupIOError:
        with contextlib.suppress(OSError):
            staged_path(dest).unlink(missing_ok=True)
        raise


def delete_file(path: PathLike) -> bool:
    """Delete a file. Returns False if it was already gone."""
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        raise BackupIOError(f"Failed to delete file: {e}", path=path) from e


def compute_checksum(path: PathLike, algorithm: str = "sha256") -> str:
    """Hex digest of the full file contents, read in chunks.

    Raises:
        BackupIOError: if the file cannot be read
    """
    digest = hashlib.new(algorithm)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        raise BackupIOError(f"Cannot read file for checksum: {e}", path=path) from e
    return digest.hexdigest()


def verify_checksum(path: PathLike, expected_checksum: str) -> bool:
    """True if the file exists and hashes to ``expected_checksum``."""
    try:
        return compute_checksum(path) == expected_checksum
    except BackupIOError:
        return False
