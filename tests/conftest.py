"""Shared fixtures for the backup tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from attendance_backup.backup import BackupConfig, BackupManager
from attendance_backup.logger import DefaultLogger


class FakeClock:
    """Settable clock for BackupManager(clock=...)."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class NullStream:
    def write(self, text):
        return len(text)

    def flush(self):
        pass


@pytest.fixture
def quiet_logger():
    return DefaultLogger(name="test-backup", output=NullStream())


@pytest.fixture
def data_dir(tmp_path) -> Path:
    """Live database directory holding attendance.db and auth.db."""
    path = tmp_path / "databases"
    path.mkdir()
    (path / "attendance.db").write_bytes(b"attendance-v1" * 100)
    (path / "auth.db").write_bytes(b"auth-v1" * 50)
    return path


@pytest.fixture
def config(tmp_path, data_dir) -> BackupConfig:
    return BackupConfig(
        data_dir=data_dir,
        backup_directory=tmp_path / "backups",
        retain_daily=7,
        retain_weekly=4,
        retain_monthly=12,
    )


@pytest.fixture
def clock() -> FakeClock:
    # A Monday
    return FakeClock(datetime(2024, 6, 3, 2, 0, tzinfo=timezone.utc))


@pytest.fixture
def manager(config, quiet_logger, clock) -> BackupManager:
    return BackupManager(config, logger=quiet_logger, clock=clock)
