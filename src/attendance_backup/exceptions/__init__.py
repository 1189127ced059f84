"""Exceptions for the attendance backup subsystem.

All exceptions include structured error information:
- code: Machine-readable error identifier
- message: Human-readable error description
- details: Additional context for debugging/recovery

Usage:
    from attendance_backup.exceptions import (
        BackupError,
        BackupNotFoundError,
        IntegrityCheckFailedError,
    )
"""

from attendance_backup.exceptions.base import (
    BackupError,
    BackupIOError,
    BackupNotFoundError,
    ConfigurationError,
    IntegrityCheckFailedError,
    InvalidTierError,
    PartialRotationFailure,
    SourceMissingError,
)

__all__ = [
    # Base exception
    "BackupError",
    # Specific failures
    "SourceMissingError",
    "BackupIOError",
    "IntegrityCheckFailedError",
    "BackupNotFoundError",
    "PartialRotationFailure",
    "ConfigurationError",
    "InvalidTierError",
]
