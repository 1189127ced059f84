"""Backup catalog records and structured operation results.

Records are immutable: promotion produces a new record under a new id rather
than editing the old one. Every type serializes to plain JSON-friendly dicts
via ``to_dict()``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from attendance_backup.exceptions import (
    BackupError,
    InvalidTierError,
    PartialRotationFailure,
)


class BackupTier(str, Enum):
    """Retention bucket; also names the storage subdirectory."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    MANUAL = "manual"

    @classmethod
    def coerce(cls, value: Any) -> "BackupTier":
        """Accept a tier or its name, raising InvalidTierError otherwise."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise InvalidTierError(
                f"Unknown backup tier '{value}'. Expected one of: {valid}",
                details={"tier": str(value)},
            ) from None

    def __str__(self) -> str:
        return self.value


ALL_TIERS = tuple(BackupTier)


def ensure_utc(moment: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _error_dict(error: Optional[BackupError]) -> Optional[Dict[str, Any]]:
    return error.to_dict() if error is not None else None


@dataclass(frozen=True)
class DatabaseFileInfo:
    """One tracked database's file inside a backup."""

    filename: str
    size_bytes: int
    checksum: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "size_bytes": self.size_bytes,
            "checksum": self.checksum,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseFileInfo":
        return cls(
            filename=str(data["filename"]),
            size_bytes=int(data["size_bytes"]),
            checksum=str(data["checksum"]),
        )


@dataclass(frozen=True)
class BackupRecord:
    """A durable snapshot of every tracked database taken at one instant."""

    id: str
    tier: BackupTier
    created_at: datetime
    databases: Dict[str, DatabaseFileInfo]
    promoted_from: Optional[str] = None
    created_by: str = "system"

    @property
    def recorded_size_bytes(self) -> int:
        """Sum of the sizes recorded when the files were copied."""
        return sum(info.size_bytes for info in self.databases.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tier": self.tier.value,
            "created_at": self.created_at.isoformat(),
            "databases": {name: info.to_dict() for name, info in self.databases.items()},
            "promoted_from": self.promoted_from,
            "created_by": self.created_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackupRecord":
        """Build a record from its serialized form.

        Raises:
            KeyError, ValueError, InvalidTierError: if the entry is malformed
        """
        databases = {
            name: DatabaseFileInfo.from_dict(info) for name, info in data["databases"].items()
        }
        if not databases:
            raise ValueError(f"Backup {data.get('id')!r} references no databases")
        return cls(
            id=str(data["id"]),
            tier=BackupTier.coerce(data["tier"]),
            created_at=ensure_utc(datetime.fromisoformat(data["created_at"])),
            databases=databases,
            promoted_from=data.get("promoted_from"),
            created_by=data.get("created_by") or "system",
        )


@dataclass(frozen=True)
class BackupListItem(BackupRecord):
    """A record plus the size its files currently occupy on disk."""

    total_size_bytes: int = 0

    @classmethod
    def from_record(cls, record: BackupRecord, total_size_bytes: int) -> "BackupListItem":
        return cls(
            id=record.id,
            tier=record.tier,
            created_at=record.created_at,
            databases=record.databases,
            promoted_from=record.promoted_from,
            created_by=record.created_by,
            total_size_bytes=total_size_bytes,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["total_size_bytes"] = self.total_size_bytes
        return data


@dataclass
class RotationSummary:
    """Outcome of one rotation pass. Per-item failures land in ``errors``."""

    promoted: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def failure(self) -> Optional[PartialRotationFailure]:
        """A PartialRotationFailure describing the errors, or None."""
        if not self.errors:
            return None
        return PartialRotationFailure(
            f"{len(self.errors)} rotation step(s) failed",
            details={"errors": list(self.errors)},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "promoted": list(self.promoted),
            "deleted": list(self.deleted),
            "errors": list(self.errors),
        }


@dataclass
class BackupResult:
    """Outcome of create_backup."""

    success: bool
    backup: Optional[BackupRecord] = None
    error: Optional[BackupError] = None
    rotation: Optional[RotationSummary] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "backup": self.backup.to_dict() if self.backup else None,
            "error": _error_dict(self.error),
            "rotation": self.rotation.to_dict() if self.rotation else None,
        }


@dataclass
class OperationResult:
    """Outcome of an operation that returns nothing on success (delete)."""

    success: bool
    error: Optional[BackupError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "error": _error_dict(self.error)}


@dataclass
class RestoreResult:
    """Outcome of restore_backup."""

    success: bool
    restored_from: Optional[str] = None
    safety_backup_id: Optional[str] = None
    error: Optional[BackupError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "restored_from": self.restored_from,
            "safety_backup_id": self.safety_backup_id,
            "error": _error_dict(self.error),
        }


@dataclass(frozen=True)
class DatabaseVerification:
    valid: bool
    expected_checksum: str
    actual_checksum: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "expected_checksum": self.expected_checksum,
            "actual_checksum": self.actual_checksum,
        }


@dataclass
class VerificationResult:
    """Per-database checksum comparison plus an aggregate flag."""

    backup_id: str
    valid: bool
    databases: Dict[str, DatabaseVerification] = field(default_factory=dict)
    error: Optional[BackupError] = None

    @property
    def failed_databases(self) -> List[str]:
        return [name for name, check in self.databases.items() if not check.valid]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.backup_id,
            "valid": self.valid,
            "databases": {name: check.to_dict() for name, check in self.databases.items()},
            "error": _error_dict(self.error),
        }


@dataclass
class StorageUsage:
    """Recorded bytes and record counts, in total and per tier."""

    total_bytes: int = 0
    by_tier: Dict[str, int] = field(default_factory=lambda: {t.value: 0 for t in ALL_TIERS})
    count_by_tier: Dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in ALL_TIERS}
    )

    def add(self, record: BackupRecord) -> None:
        size = record.recorded_size_bytes
        self.total_bytes += size
        self.by_tier[record.tier.value] += size
        self.count_by_tier[record.tier.value] += 1

    @property
    def total_count(self) -> int:
        return sum(self.count_by_tier.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_bytes": self.total_bytes,
            "by_tier": dict(self.by_tier),
            "count_by_tier": dict(self.count_by_tier),
        }


@dataclass
class BackupStatus:
    """Summary shown on an operator dashboard."""

    enabled: bool
    last_backup: Optional[datetime]
    storage: StorageUsage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "last_backup": self.last_backup.isoformat() if self.last_backup else None,
            "storage": self.storage.to_dict(),
        }
