"""
app/scheduler/jobs.py

Periodic maintenance of the historical import data.

Schedule (UTC, hours from SchedulerSettings)
--------------------------------------------
  daily_backup  - SCHEDULER_DAILY_BACKUP_HOUR, one snapshot per calendar day
  rfv_rebuild   - SCHEDULER_RFV_REBUILD_HOUR, full RFV recomputation so
                  recency keeps advancing on days without imports

``build_scheduler()`` returns a configured, not yet started
``BackgroundScheduler``; main.py starts and stops it from the lifespan.
"""

from __future__ import annotations

import logging
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_scheduler_settings
from app.services.backup_service import BackupService
from app.services.errors import BackupError
from app.services.historical_import_service import get_historical_import_service
from db.session import session_scope

logger = logging.getLogger(__name__)

_MISFIRE_GRACE_SECONDS = 3600


def run_daily_backup() -> None:
    """Snapshot both record sets unless today's backup already exists."""
    logger.info("Scheduler: daily_backup starting")

    with session_scope() as db:
        try:
            result = BackupService(db).create_daily_backup()
        except BackupError as exc:
            logger.warning("Scheduler: daily_backup failed: %s", exc)
            return

    if result is None:
        logger.info("Scheduler: daily_backup skipped, backup already exists")
        return
    logger.info(
        "Scheduler: daily_backup complete backup_id=%s revenue_count=%d executed_count=%d",
        result.backup_id,
        result.revenue_count,
        result.executed_count,
    )


def run_rfv_rebuild() -> None:
    logger.info("Scheduler: rfv_rebuild starting")

    with session_scope() as db:
        outcome = get_historical_import_service().recalculate_rfv(db=db)

    if outcome.success:
        logger.info(
            "Scheduler: rfv_rebuild complete updated=%d total=%d",
            outcome.updated,
            outcome.total,
        )
    else:
        logger.warning("Scheduler: rfv_rebuild failed: %s", outcome.error)


def build_scheduler() -> BackgroundScheduler:
    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    daily_jobs: list[tuple[Callable[[], None], str, str, int]] = [
        (run_daily_backup, "daily_backup", "Daily record backup", settings.daily_backup_hour),
        (run_rfv_rebuild, "rfv_rebuild", "Nightly RFV rebuild", settings.rfv_rebuild_hour),
    ]
    for func, job_id, name, hour in daily_jobs:
        scheduler.add_job(
            func,
            trigger="cron",
            hour=hour,
            minute=0,
            id=job_id,
            name=name,
            replace_existing=True,
            misfire_grace_time=_MISFIRE_GRACE_SECONDS,
        )
        logger.debug("Scheduler: registered job_id=%s hour=%d", job_id, hour)

    return scheduler
