"""Backup lifecycle management for the attendance databases.

Usage:
    from attendance_backup.backup import BackupConfig, BackupManager

    manager = BackupManager(BackupConfig.from_env())
    result = manager.create_backup("daily")
    if not result.success:
        print(result.error.to_dict())
"""

from attendance_backup.backup.config import BackupConfig
from attendance_backup.backup.manager import BackupManager
from attendance_backup.backup.metadata import (
    JsonMetadataStore,
    MemoryMetadataStore,
    MetadataStore,
)
from attendance_backup.backup.models import (
    ALL_TIERS,
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
)
from attendance_backup.backup.naming import (
    format_bytes,
    generate_backup_id,
    generate_filename,
    parse_backup_id,
)
from attendance_backup.backup.scheduler import BackupScheduler

__all__ = [
    # Orchestration
    "BackupManager",
    "BackupScheduler",
    "BackupConfig",
    # Catalog
    "MetadataStore",
    "JsonMetadataStore",
    "MemoryMetadataStore",
    # Models
    "ALL_TIERS",
    "BackupTier",
    "BackupRecord",
    "BackupListItem",
    "DatabaseFileInfo",
    "BackupResult",
    "OperationResult",
    "RestoreResult",
    "RotationSummary",
    "DatabaseVerification",
    "VerificationResult",
    "StorageUsage",
    "BackupStatus",
    # Naming
    "generate_backup_id",
    "generate_filename",
    "parse_backup_id",
    "format_bytes",
]
