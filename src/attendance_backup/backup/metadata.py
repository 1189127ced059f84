"""Backup metadata catalog

The catalog is the index of every known backup, keyed by backup id. It is
kept separate from the backup files themselves: files are the data of record,
the catalog is rebuildable. ``MetadataStore`` holds the catalog contract and
its locking; subclasses only decide where the records live.
"""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from attendance_backup.backup.files import backup_file_path, ensure_dir, file_exists
from attendance_backup.backup.models import ALL_TIERS, BackupRecord, BackupTier
from attendance_backup.exceptions import BackupIOError
from attendance_backup.logger import Logger, create_logger

METADATA_FILENAME = "metadata.json"
CATALOG_VERSION = 1


class MetadataStore(ABC):
    """Abstract backup catalog.

    Every public mutation runs as load -> modify -> save under one
    re-entrant lock, so interleaved add/remove calls in a process cannot
    lose updates.
    """

    def __init__(self, backup_root: Union[str, Path], logger: Optional[Logger] = None) -> None:
        self.backup_root = Path(backup_root)
        self.logger = logger or create_logger(name="attendance-backup-metadata")
        self._lock = threading.RLock()

    @abstractmethod
    def _load_records(self) -> Dict[str, BackupRecord]:
        """Return every stored record keyed by id."""

    @abstractmethod
    def _save_records(self, records: Dict[str, BackupRecord]) -> None:
        """Persist the full set of records, replacing what was stored."""

    def add_or_replace(self, record: BackupRecord) -> None:
        """Insert a record, replacing any existing record with the same id."""
        with self._lock:
            records = self._load_records()
            replaced = record.id in records
            records[record.id] = record
            self._save_records(records)
        self.logger.debug(
            "Backup metadata stored",
            backup_id=record.id,
            tier=record.tier.value,
            replaced=replaced,
        )

    def remove(self, backup_id: str) -> bool:
        """Remove a record. Returns False (and changes nothing) if absent."""
        with self._lock:
            records = self._load_records()
            if backup_id not in records:
                return False
            del records[backup_id]
            self._save_records(records)
        self.logger.debug("Backup metadata removed", backup_id=backup_id)
        return True

    def get(self, backup_id: str) -> Optional[BackupRecord]:
        with self._lock:
            return self._load_records().get(backup_id)

    def list_all(self) -> List[BackupRecord]:
        """All records, in no particular order."""
        with self._lock:
            return list(self._load_records().values())

    def list_by_tier(self, tier: BackupTier) -> List[BackupRecord]:
        tier = BackupTier.coerce(tier)
        return [record for record in self.list_all() if record.tier is tier]

    def count_by_tier(self) -> Dict[str, int]:
        counts = {tier.value: 0 for tier in ALL_TIERS}
        for record in self.list_all():
            counts[record.tier.value] += 1
        return counts

    def record_paths(self, record: BackupRecord) -> Dict[str, Path]:
        """Where each of a record's database files should be on disk."""
        return {
            name: backup_file_path(self.backup_root, record.tier, info.filename)
            for name, info in record.databases.items()
        }

    def reconcile(self) -> List[str]:
        """Drop records whose backing files are (partially or fully) missing.

        Returns:
            Ids of the removed (orphaned) records
        """
        with self._lock:
            records = self._load_records()
            orphaned = [
                backup_id
                for backup_id, record in records.items()
                if not all(file_exists(path) for path in self.record_paths(record).values())
            ]
            if orphaned:
                for backup_id in orphaned:
                    del records[backup_id]
                self._save_records(records)

        for backup_id in orphaned:
            self.logger.warning("Removed orphaned backup metadata", backup_id=backup_id)
        return orphaned

    def __len__(self) -> int:
        with self._lock:
            return len(self._load_records())


class MemoryMetadataStore(MetadataStore):
    """In-memory catalog. Nothing survives the instance."""

    def __init__(self, backup_root: Union[str, Path], logger: Optional[Logger] = None) -> None:
        super().__init__(backup_root, logger)
        self._records: Dict[str, BackupRecord] = {}

    def _load_records(self) -> Dict[str, BackupRecord]:
        return dict(self._records)

    def _save_records(self, records: Dict[str, BackupRecord]) -> None:
        self._records = dict(records)


class JsonMetadataStore(MetadataStore):
    """Catalog persisted as ``<backup_root>/metadata.json``.

    Writes go to a temporary file in the same directory which is fsynced and
    then renamed over the catalog, so a reader sees either the old or the new
    catalog, never a torn one. A corrupt catalog is logged and read as empty.
    """

    def __init__(
        self,
        backup_root: Union[str, Path],
        logger: Optional[Logger] = None,
        filename: str = METADATA_FILENAME,
    ) -> None:
        super().__init__(backup_root, logger)
        self.path = self.backup_root / filename

    def _load_records(self) -> Dict[str, BackupRecord]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            entries = data["backups"]
            if not isinstance(entries, list):
                raise ValueError("'backups' is not a list")
        except (OSError, ValueError, KeyError, TypeError) as e:
            self.logger.error(
                "Failed to load backup metadata, treating catalog as empty",
                path=str(self.path),
                error=str(e),
            )
            return {}

        records: Dict[str, BackupRecord] = {}
        for entry in entries:
            try:
                record = BackupRecord.from_dict(entry)
            except Exception as e:
                self.logger.warning(
                    "Skipping malformed backup metadata entry",
                    path=str(self.path),
                    error=str(e),
                )
                continue
            records[record.id] = record
        return records

    def _save_records(self, records: Dict[str, BackupRecord]) -> None:
        ensure_dir(self.path.parent)
        payload = {
            "version": CATALOG_VERSION,
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "backups": [record.to_dict() for record in records.values()],
        }

        fd, temp_path = tempfile.mkstemp(
            prefix=self.path.stem + "_",
            suffix=".tmp",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            self.logger.error("Failed to save backup metadata", path=str(self.path), error=str(e))
            raise BackupIOError(f"Failed to save backup metadata: {e}", path=self.path) from e
