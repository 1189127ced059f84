"""Base exception classes for the backup subsystem.

All backup exceptions include structured error information:
- code: Machine-readable error identifier
- message: Human-readable error description
- details: Additional context for debugging/recovery
"""

from typing import Any, Dict, Optional


class BackupError(Exception):
    """Base exception for all backup errors.

    Provides structured error information so callers (scheduler, CLI, an
    HTTP layer) can translate failures into operator-facing messages.

    Attributes:
        code: Machine-readable error code (e.g., "SOURCE_MISSING")
        message: Human-readable error message
        details: Optional additional context for debugging/recovery
    """

    default_code = "BACKUP_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize error with structured information.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (defaults to the class code)
            details: Optional additional context
        """
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string."""
        if self.details:
            return f"{self.code}: {self.message} (details: {self.details})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary with code, message, and details keys.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class SourceMissingError(BackupError):
    """A tracked live database file does not exist at backup time."""

    default_code = "SOURCE_MISSING"


class BackupIOError(BackupError):
    """Filesystem copy/read/write failure.

    The offending path is carried in ``details["path"]``.
    """

    default_code = "IO_ERROR"

    def __init__(
        self,
        message: str,
        path: Optional[Any] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if path is not None:
            details.setdefault("path", str(path))
        super().__init__(message, code=code, details=details)

    @property
    def path(self) -> Optional[str]:
        return self.details.get("path")


class IntegrityCheckFailedError(BackupError):
    """Checksum mismatch detected while verifying a backup."""

    default_code = "INTEGRITY_CHECK_FAILED"


class BackupNotFoundError(BackupError):
    """Operation referenced an unknown backup id.

    Not fatal: reported as a normal outcome by the manager.
    """

    default_code = "NOT_FOUND"


class PartialRotationFailure(BackupError):
    """One or more promotions/deletions failed during rotation."""

    default_code = "PARTIAL_ROTATION_FAILURE"


class ConfigurationError(BackupError):
    """Configuration is invalid or incomplete."""

    default_code = "CONFIGURATION_ERROR"


class InvalidTierError(BackupError):
    """Unknown backup tier name."""

    default_code = "INVALID_TIER"
