"""Backup manager

Creates, rotates, verifies, restores and deletes snapshots of the tracked
databases. Retention is tiered:

- keep ``retain_daily`` daily backups; the oldest overflow is promoted to weekly
- keep ``retain_weekly`` weekly backups; the oldest overflow is promoted to monthly
- keep ``retain_monthly`` monthly backups; the oldest overflow is deleted
- manual backups are never rotated

Single-backup operations return structured results (``BackupResult``,
``RestoreResult``, ...) carrying a ``BackupError`` instead of raising for
expected failures. Rotation isolates per-item failures and always returns a
summary.
"""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from attendance_backup.backup.config import BackupConfig
from attendance_backup.backup.files import (
    backup_file_path,
    commit_staged_file,
    compute_checksum,
    copy_database_file,
    delete_file,
    ensure_backup_dirs,
    ensure_dir,
    file_exists,
    get_file_size,
    stage_database_file,
    staged_path,
)
from attendance_backup.backup.metadata import JsonMetadataStore, MetadataStore
from attendance_backup.backup.models import (
    BackupListItem,
    BackupRecord,
    BackupResult,
    BackupStatus,
    BackupTier,
    DatabaseFileInfo,
    DatabaseVerification,
    OperationResult,
    RestoreResult,
    RotationSummary,
    StorageUsage,
    VerificationResult,
    ensure_utc,
)
from attendance_backup.backup.naming import generate_backup_id, generate_filename
from attendance_backup.exceptions import (
    BackupError,
    BackupIOError,
    BackupNotFoundError,
    IntegrityCheckFailedError,
    InvalidTierError,
    SourceMissingError,
)
from attendance_backup.logger import Logger, create_logger

MISSING_CHECKSUM = "FILE_NOT_FOUND"
PRE_RESTORE_CREATOR = "pre-restore"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BackupManager:
    """Backup lifecycle orchestrator.

    Args:
        config: Retention, locations and tracked databases
        store: Catalog implementation (defaults to metadata.json under the backup root)
        logger: Logger instance
        clock: Returns the current instant; injectable for tests
    """

    def __init__(
        self,
        config: Optional[BackupConfig] = None,
        store: Optional[MetadataStore] = None,
        logger: Optional[Logger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or BackupConfig()
        self.backup_root = Path(self.config.backup_directory)
        self.logger = logger or create_logger(name="attendance-backup")
        self.store = store or JsonMetadataStore(self.backup_root, logger=self.logger)
        self._clock = clock or _utc_now
        # Serializes catalog-mutating operations within this process
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    def _file_path(self, tier: BackupTier, filename: str) -> Path:
        return backup_file_path(self.backup_root, tier, filename)

    def _oldest_first(self, tier: BackupTier) -> List[BackupRecord]:
        return sorted(self.store.list_by_tier(tier), key=lambda record: record.created_at)

    def _discard_files(self, paths: Iterable[Path]) -> None:
        for path in paths:
            try:
                delete_file(path)
            except BackupIOError as e:
                self.logger.warning("Could not remove leftover backup file", path=str(path), error=e.message)

    def _discard_attempt(self, dests: List[Path], replacing: bool) -> None:
        """Clean up after a failed write of ``dests``.

        Staged copies always go. Final files go only when no existing record
        owns them; a record being replaced keeps its files.
        """
        self._discard_files([staged_path(dest) for dest in dests])
        if not replacing:
            self._discard_files(dests)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_backup(
        self,
        tier: BackupTier = BackupTier.DAILY,
        created_by: str = "system",
    ) -> BackupResult:
        """Snapshot every tracked database into ``tier``.

        A daily backup triggers rotation before returning; the rotation summary
        is attached to the result.
        """
        try:
            tier = BackupTier.coerce(tier)
        except InvalidTierError as e:
            return BackupResult(success=False, error=e)

        with self._lock:
            result = self._create_backup(tier, created_by)
            if result.success and tier is BackupTier.DAILY:
                result.rotation = self.rotate_backups()
        return result

    def _create_backup(self, tier: BackupTier, created_by: str) -> BackupResult:
        self.logger.info("Starting backup", tier=tier.value, created_by=created_by)

        try:
            ensure_backup_dirs(self.backup_root)
        except BackupIOError as e:
            self.logger.error("Backup directories unavailable", error=str(e))
            return BackupResult(success=False, error=e)

        sources = self.config.resolve_database_paths()
        missing = [name for name, path in sources.items() if not file_exists(path)]
        if missing:
            error = SourceMissingError(
                f"Source database(s) not found: {', '.join(missing)}",
                details={
                    "databases": missing,
                    "paths": [str(sources[name]) for name in missing],
                },
            )
            self.logger.error("Backup aborted", tier=tier.value, error=str(error))
            return BackupResult(success=False, error=error)

        timestamp = self._now()
        backup_id = generate_backup_id(tier, timestamp)
        replacing = self.store.get(backup_id) is not None
        dests: List[Path] = []

        # No final name is touched until every file is staged and hashed
        try:
            databases: Dict[str, DatabaseFileInfo] = {}
            for name, source in sources.items():
                filename = generate_filename(backup_id, name)
                dest = self._file_path(tier, filename)
                dests.append(dest)
                staged = stage_database_file(source, dest)
                # Size and checksum come from what was actually stored
                databases[name] = DatabaseFileInfo(
                    filename=filename,
                    size_bytes=get_file_size(staged),
                    checksum=compute_checksum(staged),
                )

            record = BackupRecord(
                id=backup_id,
                tier=tier,
                created_at=timestamp,
                databases=databases,
                created_by=created_by,
            )
            for dest in dests:
                commit_staged_file(dest)
            self.store.add_or_replace(record)
        except BackupError as e:
            self._discard_attempt(dests, replacing)
            self.logger.error("Backup failed", backup_id=backup_id, error=str(e))
            return BackupResult(success=False, error=e)
        except OSError as e:
            self._discard_attempt(dests, replacing)
            error = BackupIOError(f"Backup failed: {e}", path=e.filename)
            self.logger.error("Backup failed", backup_id=backup_id, error=str(error))
            return BackupResult(success=False, error=error)

        self.logger.info(
            "Backup created",
            backup_id=backup_id,
            tier=tier.value,
            size_bytes=record.recorded_size_bytes,
        )
        return BackupResult(success=True, backup=record)

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def rotate_backups(self) -> RotationSummary:
        """Apply the retention policy tier by tier.

        Daily overflow is promoted to weekly, then weekly overflow (including
        anything just promoted) to monthly, then monthly overflow is deleted.
        One failed item never stops the rest.
        """
        summary = RotationSummary()
        with self._lock:
            try:
                ensure_backup_dirs(self.backup_root)
            except BackupIOError as e:
                summary.errors.append(f"Rotation error: {e.message}")
                return summary

            self._promote_overflow(BackupTier.DAILY, BackupTier.WEEKLY, summary)
            self._promote_overflow(BackupTier.WEEKLY, BackupTier.MONTHLY, summary)
            self._delete_overflow(BackupTier.MONTHLY, summary)

        if summary.has_errors:
            self.logger.warning("Rotation finished with errors", **summary.to_dict())
        elif summary.promoted or summary.deleted:
            self.logger.info("Rotation complete", promoted=len(summary.promoted), deleted=len(summary.deleted))
        return summary

    def _promote_overflow(
        self, source: BackupTier, target: BackupTier, summary: RotationSummary
    ) -> None:
        retain = self.config.retention_for(source)
        pending = self._oldest_first(source)
        while len(pending) > retain:
            oldest = pending.pop(0)
            try:
                self._promote_backup(oldest, target)
            except Exception as e:
                message = e.message if isinstance(e, BackupError) else str(e)
                summary.errors.append(f"Failed to promote {oldest.id}: {message}")
                self.logger.error("Promotion failed", backup_id=oldest.id, target=target.value, error=message)
            else:
                summary.promoted.append(f"{oldest.id} -> {target.value}")

    def _delete_overflow(self, tier: BackupTier, summary: RotationSummary) -> None:
        retain = self.config.retention_for(tier)
        pending = self._oldest_first(tier)
        while len(pending) > retain:
            oldest = pending.pop(0)
            result = self.delete_backup(oldest.id)
            if result.success:
                summary.deleted.append(oldest.id)
            else:
                summary.errors.append(f"Failed to delete {oldest.id}: {result.error.message}")

    def _promote_backup(self, record: BackupRecord, target: BackupTier) -> BackupRecord:
        """Move a record into ``target`` under a new id.

        The new id is derived from the original ``created_at``. New files are
        staged and checked, renamed into place, then the new record is
        written, and only then are the old files and the old record removed.
        An interruption leaves the old record, the new one, or both.

        Raises:
            BackupIOError: if a file cannot be copied or removed
            IntegrityCheckFailedError: if a copied file does not match its checksum
        """
        new_id = generate_backup_id(target, record.created_at)
        replacing = self.store.get(new_id) is not None
        if replacing:
            self.logger.info("Promotion replaces existing backup", backup_id=new_id, promoted_from=record.id)

        old_paths = self.store.record_paths(record)
        new_paths: List[Path] = []
        databases: Dict[str, DatabaseFileInfo] = {}
        try:
            for name, info in record.databases.items():
                new_filename = generate_filename(new_id, name)
                new_path = self._file_path(target, new_filename)
                new_paths.append(new_path)
                staged = stage_database_file(old_paths[name], new_path)

                actual = compute_checksum(staged)
                if actual != info.checksum:
                    raise IntegrityCheckFailedError(
                        f"Checksum mismatch while promoting {record.id} ({name})",
                        details={
                            "backup_id": record.id,
                            "database": name,
                            "expected": info.checksum,
                            "actual": actual,
                        },
                    )
                databases[name] = DatabaseFileInfo(
                    filename=new_filename,
                    size_bytes=info.size_bytes,
                    checksum=info.checksum,
                )

            promoted = BackupRecord(
                id=new_id,
                tier=target,
                created_at=record.created_at,
                databases=databases,
                promoted_from=record.id,
                created_by=record.created_by,
            )
            for new_path in new_paths:
                commit_staged_file(new_path)
            self.store.add_or_replace(promoted)
        except Exception:
            self._discard_attempt(new_paths, replacing)
            raise

        for path in old_paths.values():
            delete_file(path)
        self.store.remove(record.id)

        self.logger.info("Backup promoted", backup_id=record.id, new_id=new_id, tier=target.value)
        return promoted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_backups(self, tier: Optional[BackupTier] = None) -> List[BackupListItem]:
        """All backups (optionally one tier), newest first, with on-disk sizes."""
        records = self.store.list_by_tier(tier) if tier is not None else self.store.list_all()
        items = []
        for record in records:
            total = 0
            for name, path in self.store.record_paths(record).items():
                if file_exists(path):
                    total += get_file_size(path)
                else:
                    total += record.databases[name].size_bytes
            items.append(BackupListItem.from_record(record, total))
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items

    def get_backup(self, backup_id: str) -> Optional[BackupRecord]:
        return self.store.get(backup_id)

    def get_backup_paths(self, backup_id: str) -> Optional[Dict[str, Path]]:
        """On-disk location of each database file of a backup (for download)."""
        record = self.store.get(backup_id)
        if record is None:
            return None
        return self.store.record_paths(record)

    def get_newest_backup(self) -> Optional[BackupRecord]:
        records = self.store.list_all()
        if not records:
            return None
        return max(records, key=lambda record: record.created_at)

    def get_storage_usage(self) -> StorageUsage:
        usage = StorageUsage()
        for record in self.store.list_all():
            usage.add(record)
        return usage

    def get_status(self) -> BackupStatus:
        newest = self.get_newest_backup()
        return BackupStatus(
            enabled=self.config.enabled,
            last_backup=newest.created_at if newest else None,
            storage=self.get_storage_usage(),
        )

    # ------------------------------------------------------------------
    # Delete / verify / restore / cleanup
    # ------------------------------------------------------------------

    def delete_backup(self, backup_id: str) -> OperationResult:
        """Remove a backup's files, then its record.

        An unknown id yields a ``BackupNotFoundError`` result.
        """
        with self._lock:
            record = self.store.get(backup_id)
            if record is None:
                return OperationResult(
                    success=False,
                    error=BackupNotFoundError(
                        f"Backup not found: {backup_id}", details={"backup_id": backup_id}
                    ),
                )

            try:
                for path in self.store.record_paths(record).values():
                    delete_file(path)
                self.store.remove(backup_id)
            except BackupError as e:
                self.logger.error("Failed to delete backup", backup_id=backup_id, error=str(e))
                return OperationResult(success=False, error=e)

        self.logger.info("Backup deleted", backup_id=backup_id, tier=record.tier.value)
        return OperationResult(success=True)

    def verify_backup(self, backup_id: str) -> VerificationResult:
        """Recompute every checksum of a backup and compare with the catalog.

        A missing or unreadable file counts as a mismatch.
        """
        record = self.store.get(backup_id)
        if record is None:
            return VerificationResult(
                backup_id=backup_id,
                valid=False,
                error=BackupNotFoundError(
                    f"Backup not found: {backup_id}", details={"backup_id": backup_id}
                ),
            )
        return self._verify_record(record)

    def _verify_record(self, record: BackupRecord) -> VerificationResult:
        checks: Dict[str, DatabaseVerification] = {}
        for name, path in self.store.record_paths(record).items():
            expected = record.databases[name].checksum
            try:
                actual = compute_checksum(path)
            except BackupIOError:
                actual = MISSING_CHECKSUM
            checks[name] = DatabaseVerification(
                valid=actual == expected,
                expected_checksum=expected,
                actual_checksum=actual,
            )

        result = VerificationResult(
            backup_id=record.id,
            valid=all(check.valid for check in checks.values()),
            databases=checks,
        )
        if result.valid:
            self.logger.info("Backup verification passed", backup_id=record.id)
        else:
            self.logger.warning(
                "Backup verification failed",
                backup_id=record.id,
                databases=result.failed_databases,
            )
        return result

    def restore_backup(self, backup_id: str) -> RestoreResult:
        """Overwrite the live databases with a verified backup.

        A safety snapshot of the current databases is attempted first (manual
        tier, created by ``pre-restore``); if it fails the restore continues.
        """
        with self._lock:
            record = self.store.get(backup_id)
            if record is None:
                return RestoreResult(
                    success=False,
                    error=BackupNotFoundError(
                        f"Backup not found: {backup_id}", details={"backup_id": backup_id}
                    ),
                )

            verification = self._verify_record(record)
            if not verification.valid:
                error = IntegrityCheckFailedError(
                    "Backup integrity check failed. Checksums do not match.",
                    details={"backup_id": backup_id, "databases": verification.failed_databases},
                )
                self.logger.error("Restore refused", backup_id=backup_id, error=str(error))
                return RestoreResult(success=False, error=error)

            safety = self._create_backup(BackupTier.MANUAL, PRE_RESTORE_CREATOR)
            safety_id = safety.backup.id if safety.success and safety.backup else None
            if safety_id is None:
                self.logger.warning(
                    "Could not create pre-restore backup, restoring anyway",
                    backup_id=backup_id,
                    error=str(safety.error),
                )

            live_paths = self.config.resolve_database_paths()
            restored: List[str] = []
            failed: Dict[str, str] = {}
            for name, source in self.store.record_paths(record).items():
                target = live_paths.get(name)
                if target is None:
                    failed[name] = "not a tracked database"
                    continue
                try:
                    ensure_dir(target.parent)
                    copy_database_file(source, target)
                except BackupIOError as e:
                    failed[name] = e.message
                else:
                    restored.append(name)

        if failed:
            error = BackupIOError(
                f"Restore from {backup_id} failed for: {', '.join(failed)}",
                details={"backup_id": backup_id, "restored": restored, "failed": failed},
            )
            self.logger.error("Restore incomplete", backup_id=backup_id, error=str(error))
            return RestoreResult(success=False, safety_backup_id=safety_id, error=error)

        self.logger.info("Backup restored", backup_id=backup_id, safety_backup_id=safety_id)
        return RestoreResult(success=True, restored_from=backup_id, safety_backup_id=safety_id)

    def cleanup(self) -> List[str]:
        """Remove catalog entries whose files are gone; returns their ids."""
        with self._lock:
            orphaned = self.store.reconcile()
        if orphaned:
            self.logger.info("Orphaned backups cleaned up", count=len(orphaned))
        return orphaned
