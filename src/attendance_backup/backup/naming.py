"""Backup identifiers and filenames.

Ids are derived from the tier and the snapshot instant (always taken in UTC):

    daily-2024-06-01            one per calendar day
    weekly-2024-W23             one per ISO week (ISO week-numbering year)
    monthly-2024-06             one per calendar month
    manual-2024-06-01T02-00-00-000000Z-0001

Two daily/weekly/monthly ids computed for instants in the same bucket are
equal, so a repeated backup for the same day overwrites instead of
duplicating. Manual ids carry a process-wide sequence number so rapid
successive triggers never collide.
"""

import itertools
import re
from datetime import datetime
from typing import Optional, Tuple

from attendance_backup.backup.models import BackupTier, ensure_utc

DATABASE_FILE_SUFFIX = ".db"

_manual_sequence = itertools.count(1)

_BACKUP_ID_PATTERN = re.compile(r"^(daily|weekly|monthly|manual)-(.+)$")


def format_day(moment: datetime) -> str:
    return ensure_utc(moment).strftime("%Y-%m-%d")


def format_week(moment: datetime) -> str:
    iso_year, iso_week, _ = ensure_utc(moment).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def format_month(moment: datetime) -> str:
    return ensure_utc(moment).strftime("%Y-%m")


def format_manual(moment: datetime) -> str:
    stamp = ensure_utc(moment).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return f"{stamp}-{next(_manual_sequence) % 10000:04d}"


def generate_backup_id(tier: BackupTier, timestamp: datetime) -> str:
    """Canonical id for a tier/instant pair."""
    tier = BackupTier.coerce(tier)
    if tier is BackupTier.DAILY:
        suffix = format_day(timestamp)
    elif tier is BackupTier.WEEKLY:
        suffix = format_week(timestamp)
    elif tier is BackupTier.MONTHLY:
        suffix = format_month(timestamp)
    else:
        suffix = format_manual(timestamp)
    return f"{tier.value}-{suffix}"


def generate_filename(backup_id: str, database_name: str) -> str:
    """Per-database filename inside a tier directory: ``<id>-<db>.db``."""
    return f"{backup_id}-{database_name}{DATABASE_FILE_SUFFIX}"


def parse_backup_id(backup_id: str) -> Optional[Tuple[BackupTier, str]]:
    """Split an id into its tier and date part, or None if it is not an id."""
    match = _BACKUP_ID_PATTERN.match(backup_id)
    if not match:
        return None
    return BackupTier(match.group(1)), match.group(2)


def format_bytes(size: int) -> str:
    """Human-readable byte count, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    if index == 0:
        return f"{size} Bytes"
    return f"{round(value, 2):g} {units[index]}"
