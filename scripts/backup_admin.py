#!/usr/bin/env python3
"""Operator CLI for the attendance database backups.

USAGE:
    backup_admin.py create [--tier daily|weekly|monthly|manual] [--created-by NAME]
    backup_admin.py list [--tier TIER] [--format table|json]
    backup_admin.py show <backup-id>
    backup_admin.py verify <backup-id>
    backup_admin.py restore <backup-id>
    backup_admin.py delete <backup-id>
    backup_admin.py rotate
    backup_admin.py usage [--format table|json]
    backup_admin.py cleanup
    backup_admin.py status
    backup_admin.py schedule

ENVIRONMENT VARIABLES:
    ATTENDANCE_BACKUP_DIR            Backup root (default: databases/backups)
    ATTENDANCE_BACKUP_DATA_DIR       Live database directory (default: databases)
    ATTENDANCE_BACKUP_DATABASES      Tracked databases as name:path,name:path
    ATTENDANCE_BACKUP_RETAIN_DAILY   Daily backups kept (default: 7)
    ATTENDANCE_BACKUP_RETAIN_WEEKLY  Weekly backups kept (default: 4)
    ATTENDANCE_BACKUP_RETAIN_MONTHLY Monthly backups kept (default: 12)

EXAMPLES:
    # Take a manual snapshot before a risky migration:
    backup_admin.py create --tier manual --created-by alice

    # List backups as JSON:
    backup_admin.py list --format json

    # Check and restore:
    backup_admin.py verify daily-2024-06-01
    backup_admin.py restore daily-2024-06-01
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, Optional

# Try to import from installed package, fall back to local path
try:
    from attendance_backup.backup import (
        BackupConfig,
        BackupManager,
        BackupScheduler,
        format_bytes,
    )
    from attendance_backup.exceptions import ConfigurationError
except ImportError:
    src_path = Path(__file__).parent.parent / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))
    from attendance_backup.backup import (
        BackupConfig,
        BackupManager,
        BackupScheduler,
        format_bytes,
    )
    from attendance_backup.exceptions import ConfigurationError

ENV_PREFIX = "ATTENDANCE_BACKUP"


def create_manager(
    backup_dir: Optional[str],
    data_dir: Optional[str],
    databases: Optional[str],
    quiet: bool = True,
) -> BackupManager:
    """Build a BackupManager from the environment plus command line overrides.

    Args:
        backup_dir: Backup root override
        data_dir: Live database directory override
        databases: Tracked databases override (name:path,name:path)
        quiet: If True, suppress logging output (for CLI use)
    """
    if quiet:
        import logging
        logging.disable(logging.CRITICAL)

    overrides: Dict[str, str] = {}
    if backup_dir:
        overrides[f"{ENV_PREFIX}_DIR"] = backup_dir
    if data_dir:
        overrides[f"{ENV_PREFIX}_DATA_DIR"] = data_dir
    if databases:
        overrides[f"{ENV_PREFIX}_DATABASES"] = databases

    config = BackupConfig.from_env(prefix=ENV_PREFIX, overrides=overrides)
    return BackupManager(config)


def print_error(error) -> None:
    print(f"ERROR: {error}", file=sys.stderr)


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_create(manager: BackupManager, tier: str, created_by: str) -> int:
    """Create a backup."""
    result = manager.create_backup(tier, created_by)
    if not result.success:
        print_error(result.error)
        return 1

    backup = result.backup
    print(f"Created backup: {backup.id}")
    print(f"  Tier: {backup.tier.value}")
    print(f"  Size: {format_bytes(backup.recorded_size_bytes)}")
    for name, info in backup.databases.items():
        print(f"  {name}: {info.filename} ({info.checksum[:12]}...)")

    if result.rotation is not None:
        for promoted in result.rotation.promoted:
            print(f"  Promoted: {promoted}")
        for deleted in result.rotation.deleted:
            print(f"  Deleted: {deleted}")
        for error in result.rotation.errors:
            print(f"  Rotation error: {error}", file=sys.stderr)
    return 0


def cmd_list(manager: BackupManager, tier: Optional[str] = None, format: str = "table") -> int:
    """List backups, newest first."""
    backups = manager.list_backups(tier)

    if format == "json":
        print(json.dumps([b.to_dict() for b in backups], indent=2))
        return 0

    if not backups:
        print("No backups found")
        return 0

    print(f"\n{'ID':<45} {'Tier':<9} {'Created':<18} {'Size':<12} {'By':<15}")
    print("-" * 102)
    for backup in backups:
        created = backup.created_at.strftime("%Y-%m-%d %H:%M")
        size = format_bytes(backup.total_size_bytes)
        print(f"{backup.id:<45} {backup.tier.value:<9} {created:<18} {size:<12} {backup.created_by:<15}")

    print(f"\nTotal: {len(backups)} backups")
    return 0


def cmd_show(manager: BackupManager, backup_id: str) -> int:
    """Show one backup's catalog entry."""
    backup = manager.get_backup(backup_id)
    if backup is None:
        print_error(f"Backup '{backup_id}' not found")
        return 1
    print(json.dumps(backup.to_dict(), indent=2))
    return 0


def cmd_verify(manager: BackupManager, backup_id: str) -> int:
    """Verify a backup's checksums."""
    result = manager.verify_backup(backup_id)
    if result.error is not None:
        print_error(result.error)
        return 1

    for name, check in result.databases.items():
        status = "OK" if check.valid else "MISMATCH"
        print(f"  {name:<15} {status}")
    print("VALID" if result.valid else "INVALID")
    return 0 if result.valid else 1


def cmd_restore(manager: BackupManager, backup_id: str) -> int:
    """Restore the live databases from a backup."""
    result = manager.restore_backup(backup_id)
    if not result.success:
        print_error(result.error)
        return 1

    print(f"Restored from: {result.restored_from}")
    if result.safety_backup_id:
        print(f"  Pre-restore backup: {result.safety_backup_id}")
    else:
        print("  WARNING: no pre-restore backup was taken", file=sys.stderr)
    return 0


def cmd_delete(manager: BackupManager, backup_id: str) -> int:
    """Delete a backup."""
    result = manager.delete_backup(backup_id)
    if not result.success:
        print_error(result.error)
        return 1
    print(f"Deleted backup: {backup_id}")
    return 0


def cmd_rotate(manager: BackupManager) -> int:
    """Apply the retention policy."""
    summary = manager.rotate_backups()
    print(json.dumps(summary.to_dict(), indent=2))
    return 1 if summary.has_errors else 0


def cmd_usage(manager: BackupManager, format: str = "table") -> int:
    """Show storage used per tier."""
    usage = manager.get_storage_usage()

    if format == "json":
        print(json.dumps(usage.to_dict(), indent=2))
        return 0

    print(f"\n{'Tier':<10} {'Count':<8} {'Size':<12}")
    print("-" * 30)
    for tier, size in usage.by_tier.items():
        print(f"{tier:<10} {usage.count_by_tier[tier]:<8} {format_bytes(size):<12}")
    print(f"\nTotal: {format_bytes(usage.total_bytes)}")
    return 0


def cmd_cleanup(manager: BackupManager) -> int:
    """Remove orphaned catalog entries."""
    orphaned = manager.cleanup()
    if not orphaned:
        print("No orphaned backups found")
        return 0
    for backup_id in orphaned:
        print(f"Removed orphan: {backup_id}")
    return 0


def cmd_status(manager: BackupManager) -> int:
    """Show dashboard status as JSON."""
    print(json.dumps(manager.get_status().to_dict(), indent=2))
    return 0


def cmd_schedule(manager: BackupManager) -> int:
    """Run the daily backup scheduler in the foreground."""
    BackupScheduler(manager).start()
    return 0


# ============================================================================
# MAIN
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage attendance database backups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES:
  Create a manual backup:
    %(prog)s create --tier manual --created-by alice

  Restore:
    %(prog)s restore daily-2024-06-01

For full documentation, see script header or run with --help.
        """,
    )
    parser.add_argument("--backup-dir", help="Backup root directory (overrides ATTENDANCE_BACKUP_DIR)")
    parser.add_argument("--data-dir", help="Live database directory (overrides ATTENDANCE_BACKUP_DATA_DIR)")
    parser.add_argument("--databases", help="Tracked databases as name:path,name:path")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging output for debugging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Operation")

    create = subparsers.add_parser("create", help="Create a backup")
    create.add_argument(
        "--tier",
        choices=["daily", "weekly", "monthly", "manual"],
        default="manual",
        help="Backup tier. Default: %(default)s",
    )
    create.add_argument("--created-by", default="operator", help="Attribution. Default: %(default)s")

    list_parser = subparsers.add_parser("list", help="List backups")
    list_parser.add_argument("--tier", choices=["daily", "weekly", "monthly", "manual"])
    list_parser.add_argument("--format", choices=["table", "json"], default="table")

    for name, help_text in (
        ("show", "Show a backup's catalog entry"),
        ("verify", "Verify a backup's checksums"),
        ("restore", "Restore the live databases from a backup"),
        ("delete", "Delete a backup"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("backup_id", help="Backup id (from 'list')")

    subparsers.add_parser("rotate", help="Apply the retention policy")
    usage = subparsers.add_parser("usage", help="Show storage usage")
    usage.add_argument("--format", choices=["table", "json"], default="table")
    subparsers.add_parser("cleanup", help="Remove catalog entries whose files are missing")
    subparsers.add_parser("status", help="Show backup status")
    subparsers.add_parser("schedule", help="Run the daily backup scheduler")
    return parser


def main() -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    # The scheduler runs long-lived and keeps its logs
    quiet = not (args.verbose or args.command == "schedule")
    try:
        manager = create_manager(args.backup_dir, args.data_dir, args.databases, quiet=quiet)
    except ConfigurationError as e:
        print_error(e)
        return 1

    if args.command == "create":
        return cmd_create(manager, args.tier, args.created_by)
    elif args.command == "list":
        return cmd_list(manager, args.tier, args.format)
    elif args.command == "show":
        return cmd_show(manager, args.backup_id)
    elif args.command == "verify":
        return cmd_verify(manager, args.backup_id)
    elif args.command == "restore":
        return cmd_restore(manager, args.backup_id)
    elif args.command == "delete":
        return cmd_delete(manager, args.backup_id)
    elif args.command == "rotate":
        return cmd_rotate(manager)
    elif args.command == "usage":
        return cmd_usage(manager, args.format)
    elif args.command == "cleanup":
        return cmd_cleanup(manager)
    elif args.command == "status":
        return cmd_status(manager)
    elif args.command == "schedule":
        return cmd_schedule(manager)

    return 0


if __name__ == "__main__":
    sys.exit(main())
