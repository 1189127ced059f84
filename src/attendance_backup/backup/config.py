"""Backup configuration

Retention counts, storage locations and the set of tracked databases, with
environment variable overrides under a configurable prefix
(``ATTENDANCE_BACKUP_`` by default).
"""

import re
from pathlib import Path
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from attendance_backup.backup.models import BackupTier
from attendance_backup.config.env_loader import EnvLoader
from attendance_backup.exceptions import ConfigurationError

DEFAULT_ENV_PREFIX = "ATTENDANCE_BACKUP"

_DATABASE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def _default_databases() -> Dict[str, str]:
    return {"attendance": "attendance.db", "auth": "auth.db"}


class BackupConfig(BaseModel):
    """Backup manager configuration.

    ``schedule_hour``/``schedule_minute`` are only read by the scheduler
    adapter; the manager itself never decides when to run.
    """

    enabled: bool = Field(
        default=True,
        description="Enable/disable scheduled backups",
    )
    schedule_hour: int = Field(
        default=2,
        description="Hour of day (0-23) for the daily backup",
        ge=0,
        le=23,
    )
    schedule_minute: int = Field(
        default=0,
        description="Minute (0-59) for the daily backup",
        ge=0,
        le=59,
    )

    # Retention policy
    retain_daily: int = Field(default=7, description="Daily backups to keep", ge=1)
    retain_weekly: int = Field(default=4, description="Weekly backups to keep", ge=1)
    retain_monthly: int = Field(default=12, description="Monthly backups to keep", ge=1)

    # Locations
    data_dir: Path = Field(
        default=Path("databases"),
        description="Directory holding the live databases",
    )
    backup_directory: Path = Field(
        default=Path("databases/backups"),
        description="Root of the backup tree (metadata.json + tier dirs)",
    )
    databases: Dict[str, str] = Field(
        default_factory=_default_databases,
        description="Tracked databases: logical name -> path (relative to data_dir)",
    )

    @field_validator("databases")
    @classmethod
    def validate_databases(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v:
            raise ValueError("At least one tracked database is required")
        for name in v:
            if not _DATABASE_NAME_PATTERN.match(name):
                raise ValueError(
                    f"Invalid database name '{name}': use letters, digits and underscores"
                )
        return v

    def resolve_database_paths(self) -> Dict[str, Path]:
        """Live path of every tracked database, in configuration order."""
        paths = {}
        for name, location in self.databases.items():
            path = Path(location)
            paths[name] = path if path.is_absolute() else self.data_dir / path
        return paths

    def retention_for(self, tier: BackupTier) -> Optional[int]:
        """Retention count for a tier; None for manual (kept until deleted)."""
        return {
            BackupTier.DAILY: self.retain_daily,
            BackupTier.WEEKLY: self.retain_weekly,
            BackupTier.MONTHLY: self.retain_monthly,
        }.get(BackupTier.coerce(tier))

    @staticmethod
    def parse_databases(value: str) -> Dict[str, str]:
        """Parse ``name:path,name:path`` into a mapping."""
        databases = {}
        for pair in value.split(","):
            if not pair.strip():
                continue
            if ":" not in pair:
                raise ConfigurationError(
                    f"Invalid database entry '{pair}': expected name:path",
                    details={"entry": pair},
                )
            name, path = pair.split(":", 1)
            databases[name.strip()] = path.strip()
        return databases

    @classmethod
    def from_env(
        cls,
        prefix: str = DEFAULT_ENV_PREFIX,
        env_file: Optional[Path] = None,
        overrides: Optional[Mapping[str, object]] = None,
    ) -> "BackupConfig":
        """Create configuration from environment variables

        Args:
            prefix: Environment variable prefix (trailing underscore optional)
            env_file: Optional .env file (defaults to ./.env when present)
            overrides: Explicit key/value overrides, highest precedence

        Environment variables:
            {prefix}_ENABLED, {prefix}_SCHEDULE_HOUR, {prefix}_SCHEDULE_MINUTE,
            {prefix}_RETAIN_DAILY, {prefix}_RETAIN_WEEKLY, {prefix}_RETAIN_MONTHLY,
            {prefix}_DATA_DIR, {prefix}_DIR, {prefix}_DATABASES

        Raises:
            ConfigurationError: if a value cannot be parsed or fails validation
        """
        prefix = prefix.rstrip("_")
        env = EnvLoader(env_file).load_prefixed(prefix, overrides)

        def read(key: str, default: str) -> str:
            return env.get(key, default)

        def read_bool(key: str, default: bool) -> bool:
            raw = read(key, str(default)).strip().lower()
            if raw in _TRUE_VALUES:
                return True
            if raw in _FALSE_VALUES:
                return False
            raise ConfigurationError(
                f"{prefix}_{key} must be a boolean (true/false, yes/no, 1/0, on/off), got {raw!r}",
                details={"variable": f"{prefix}_{key}"},
            )

        def read_int(key: str, default: int) -> int:
            raw = read(key, str(default))
            try:
                return int(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{prefix}_{key} must be an integer, got {raw!r}",
                    details={"variable": f"{prefix}_{key}"},
                ) from exc

        databases_env = read("DATABASES", "")
        databases = cls.parse_databases(databases_env) if databases_env else _default_databases()

        try:
            return cls(
                enabled=read_bool("ENABLED", True),
                schedule_hour=read_int("SCHEDULE_HOUR", 2),
                schedule_minute=read_int("SCHEDULE_MINUTE", 0),
                retain_daily=read_int("RETAIN_DAILY", 7),
                retain_weekly=read_int("RETAIN_WEEKLY", 4),
                retain_monthly=read_int("RETAIN_MONTHLY", 12),
                data_dir=Path(read("DATA_DIR", "databases")),
                backup_directory=Path(read("DIR", "databases/backups")),
                databases=databases,
            )
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid backup configuration: {exc.error_count()} error(s)",
                details={"errors": [err["msg"] for err in exc.errors()]},
            ) from exc
