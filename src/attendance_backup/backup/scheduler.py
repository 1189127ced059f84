"""Scheduled daily backups

Runs ``BackupManager.create_backup("daily")`` once a day at
``schedule_hour:schedule_minute`` using APScheduler. This is the reference
caller for the manager; deployments with their own scheduler (cron, a job
queue) can call the manager directly instead.
"""

import signal
import sys
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from attendance_backup.backup.config import BackupConfig
from attendance_backup.backup.manager import BackupManager
from attendance_backup.backup.models import BackupResult, BackupTier
from attendance_backup.backup.naming import format_bytes
from attendance_backup.exceptions import ConfigurationError
from attendance_backup.logger import Logger, create_logger

JOB_ID = "daily_backup"
SYSTEM_CREATOR = "system"


class BackupScheduler:
    """Cron-style driver for the daily backup"""

    def __init__(
        self,
        manager: BackupManager,
        config: Optional[BackupConfig] = None,
        scheduler: Optional[BlockingScheduler] = None,
        logger: Optional[Logger] = None,
    ):
        self.manager = manager
        self.config = config or manager.config
        self.scheduler = scheduler or BlockingScheduler(timezone="UTC")
        self.logger = logger or create_logger(name="attendance-backup-scheduler")
        self.shutdown_requested = False

        self.logger.info(
            "Backup scheduler initialized",
            backup_dir=str(self.config.backup_directory),
            schedule=f"{self.config.schedule_hour:02d}:{self.config.schedule_minute:02d} UTC",
            retention=f"{self.config.retain_daily}/{self.config.retain_weekly}/{self.config.retain_monthly}",
        )

    def run_backup_job(self) -> Optional[BackupResult]:
        """Run one scheduled backup. Returns None when skipped for shutdown."""
        if self.shutdown_requested:
            self.logger.info("Shutdown requested, skipping backup")
            return None

        self.logger.info("Backup job started")
        result = self.manager.create_backup(BackupTier.DAILY, SYSTEM_CREATOR)

        if result.success:
            usage = self.manager.get_storage_usage()
            self.logger.info(
                "Backup job completed",
                backup_id=result.backup.id,
                total_backups=usage.total_count,
                total_size=format_bytes(usage.total_bytes),
            )
            if result.rotation is not None and result.rotation.has_errors:
                self.logger.warning("Rotation reported errors", errors=result.rotation.errors)
        else:
            self.logger.error("Backup job failed", error=str(result.error))
        return result

    def run_initial_cleanup(self) -> None:
        orphaned = self.manager.cleanup()
        self.logger.info("Initial cleanup complete", orphaned=len(orphaned))

    def setup_scheduler(self) -> bool:
        """Register the daily job. Returns False when backups are disabled."""
        if not self.config.enabled:
            self.logger.warning("Scheduled backups are DISABLED")
            return False

        trigger = CronTrigger(
            hour=self.config.schedule_hour,
            minute=self.config.schedule_minute,
            timezone="UTC",
        )
        self.scheduler.add_job(
            self.run_backup_job,
            trigger=trigger,
            id=JOB_ID,
            name="Daily database backup",
            replace_existing=True,
            misfire_grace_time=3600,
        )
        self.logger.info(
            "Backup scheduled",
            hour=self.config.schedule_hour,
            minute=self.config.schedule_minute,
        )
        return True

    def handle_shutdown(self, signum, frame):
        self.logger.info("Received signal, shutting down", signal=signum)
        self.shutdown_requested = True
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def start(self) -> None:
        """Block running the scheduler until SIGINT/SIGTERM."""
        signal.signal(signal.SIGTERM, self.handle_shutdown)
        signal.signal(signal.SIGINT, self.handle_shutdown)

        self.run_initial_cleanup()

        if not self.setup_scheduler():
            return

        self.logger.info("Backup scheduler started")
        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            pass
        self.logger.info("Backup scheduler stopped")


def main() -> int:
    """Entry point: load configuration from the environment and run forever."""
    logger = create_logger(name="attendance-backup-scheduler")
    try:
        config = BackupConfig.from_env()
    except ConfigurationError as e:
        logger.critical("Invalid backup configuration", error=str(e))
        return 1

    BackupScheduler(BackupManager(config), config, logger=logger).start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
