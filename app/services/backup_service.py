"""
app/services/backup_service.py

Point-in-time snapshot of both commercial record sets, taken before any
import mutates them.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.historical_import import BackupResult
from app.services.errors import BackupError
from db.repositories.backup_repository import BackupRepository

logger = logging.getLogger(__name__)

DAILY_BACKUP_TYPE = "automatic_daily"


def daily_backup_name(day: date) -> str:
    return f"backup_diario_{day.isoformat()}"


class BackupService:
    """
    Reads both record sets and persists one ImportBackup in a single
    transaction owned by this service.
    """

    def __init__(self, session: Session, repository: BackupRepository | None = None) -> None:
        self._session = session
        self._repository = repository or BackupRepository(session)

    def create_backup(
        self,
        *,
        backup_type: str,
        created_by: str | None = None,
        backup_name: str | None = None,
    ) -> BackupResult:
        """
        Snapshot revenue and executed records and commit the backup row.

        Raises BackupError on any read or write failure, after rolling back.
        """

        name = backup_name or f"Backup {datetime.now(timezone.utc):%d/%m/%Y %H:%M:%S}"
        try:
            snapshot = self._repository.snapshot_records()
            backup = self._repository.create_backup(
                backup_name=name,
                backup_type=backup_type,
                backup_data=snapshot,
                created_by=created_by,
            )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.exception("Backup failed backup_type=%s", backup_type)
            raise BackupError(f"Failed to create backup: {exc}") from exc

        logger.info(
            "Backup created backup_id=%s backup_type=%s revenue_count=%d executed_count=%d",
            backup.id,
            backup_type,
            backup.revenue_records_count,
            backup.executed_records_count,
        )
        return BackupResult(
            backup_id=backup.id,
            revenue_count=backup.revenue_records_count,
            executed_count=backup.executed_records_count,
        )

    def create_daily_backup(self, *, day: date | None = None) -> BackupResult | None:
        """
        Create the automatic backup for ``day`` unless one already exists.

        Returns None when the day's backup is already present.
        """

        target_day = day or datetime.now(timezone.utc).date()
        name = daily_backup_name(target_day)
        try:
            already_exists = self._repository.exists_with_name(name)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise BackupError(f"Failed to check existing backups: {exc}") from exc

        if already_exists:
            logger.info("Daily backup already exists backup_name=%s", name)
            return None
        return self.create_backup(backup_type=DAILY_BACKUP_TYPE, backup_name=name)
