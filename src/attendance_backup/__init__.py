"""Attendance Backup - lifecycle manager for the attendance application's databases.

This package provides:
- backup: tiered snapshots (daily/weekly/monthly/manual), rotation,
  checksum verification and restore
- config: environment loading with .env support
- exceptions: structured error classes (code, message, details)
- logger: structured logging with session tracking and JSON support
"""

__version__ = "1.0.0"

from attendance_backup.logger import (
    Logger,
    DefaultLogger,
    StructuredLogger,
    get_logger,
    create_logger,
)

from attendance_backup.exceptions import (
    BackupError,
    SourceMissingError,
    BackupIOError,
    IntegrityCheckFailedError,
    BackupNotFoundError,
    PartialRotationFailure,
    ConfigurationError,
    InvalidTierError,
)

from attendance_backup.backup import (
    BackupConfig,
    BackupManager,
    BackupRecord,
    BackupTier,
    JsonMetadataStore,
    MemoryMetadataStore,
    MetadataStore,
)

__all__ = [
    "__version__",
    # Logger
    "Logger",
    "DefaultLogger",
    "StructuredLogger",
    "get_logger",
    "create_logger",
    # Exceptions
    "BackupError",
    "SourceMissingError",
    "BackupIOError",
    "IntegrityCheckFailedError",
    "BackupNotFoundError",
    "PartialRotationFailure",
    "ConfigurationError",
    "InvalidTierError",
    # Backup
    "BackupConfig",
    "BackupManager",
    "BackupRecord",
    "BackupTier",
    "MetadataStore",
    "JsonMetadataStore",
    "MemoryMetadataStore",
]
