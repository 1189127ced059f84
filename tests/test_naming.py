"""Tests for backup ids, filenames and byte formatting."""

from datetime import datetime, timedelta, timezone

import pytest

from attendance_backup.backup import BackupTier
from attendance_backup.backup.naming import (
    format_bytes,
    format_week,
    generate_backup_id,
    generate_filename,
    parse_backup_id,
)
from attendance_backup.exceptions import InvalidTierError

JUNE_1 = datetime(2024, 6, 1, 2, 0, tzinfo=timezone.utc)


class TestGenerateBackupId:
    """Ids are deterministic per tier bucket."""

    def test_daily(self):
        assert generate_backup_id(BackupTier.DAILY, JUNE_1) == "daily-2024-06-01"

    def test_weekly(self):
        assert generate_backup_id(BackupTier.WEEKLY, JUNE_1) == "weekly-2024-W22"

    def test_monthly(self):
        assert generate_backup_id(BackupTier.MONTHLY, JUNE_1) == "monthly-2024-06"

    def test_accepts_tier_name(self):
        assert generate_backup_id("daily", JUNE_1) == "daily-2024-06-01"

    def test_unknown_tier(self):
        with pytest.raises(InvalidTierError):
            generate_backup_id("hourly", JUNE_1)

    def test_same_day_same_id(self):
        later = JUNE_1 + timedelta(hours=20)
        assert generate_backup_id("daily", JUNE_1) == generate_backup_id("daily", later)

    def test_naive_timestamp_is_utc(self):
        naive = datetime(2024, 6, 1, 23, 30)
        assert generate_backup_id("daily", naive) == "daily-2024-06-01"

    def test_offset_timestamp_converted_to_utc(self):
        # 2024-06-02 01:00 at +02:00 is still June 1 in UTC
        local = datetime(2024, 6, 2, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        assert generate_backup_id("daily", local) == "daily-2024-06-01"

    def test_manual_ids_are_unique(self):
        ids = {generate_backup_id(BackupTier.MANUAL, JUNE_1) for _ in range(50)}
        assert len(ids) == 50
        assert all(backup_id.startswith("manual-2024-06-01T02-00-00-000000Z-") for backup_id in ids)


class TestFormatWeek:
    """Weeks follow ISO-8601 numbering, including the year boundary."""

    def test_week_one_in_previous_december(self):
        assert format_week(datetime(2024, 12, 30, tzinfo=timezone.utc)) == "2025-W01"

    def test_week_53(self):
        assert format_week(datetime(2021, 1, 1, tzinfo=timezone.utc)) == "2020-W53"

    def test_zero_padded(self):
        assert format_week(datetime(2024, 1, 3, tzinfo=timezone.utc)) == "2024-W01"


class TestFilenames:
    def test_generate_filename(self):
        assert generate_filename("daily-2024-06-01", "auth") == "daily-2024-06-01-auth.db"


class TestParseBackupId:
    def test_parses_known_tiers(self):
        assert parse_backup_id("daily-2024-06-01") == (BackupTier.DAILY, "2024-06-01")
        assert parse_backup_id("weekly-2024-W22") == (BackupTier.WEEKLY, "2024-W22")
        assert parse_backup_id("monthly-2024-06") == (BackupTier.MONTHLY, "2024-06")

    def test_rejects_garbage(self):
        assert parse_backup_id("hourly-2024") is None
        assert parse_backup_id("daily") is None
        assert parse_backup_id("") is None


class TestFormatBytes:
    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 Bytes"),
            (500, "500 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (1048576, "1 MB"),
            (5 * 1024 ** 3, "5 GB"),
        ],
    )
    def test_format(self, size, expected):
        assert format_bytes(size) == expected
