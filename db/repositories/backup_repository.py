"""
Repository for pre-import snapshots of the commercial record sets.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, defer

from db.models.commercial_record import ExecutedRecord, RevenueRecord
from db.models.import_backup import BackupStatus, ImportBackup

BACKED_UP_TABLES: tuple[str, ...] = (
    RevenueRecord.__tablename__,
    ExecutedRecord.__tablename__,
)


def _json_safe(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class BackupRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def snapshot_records(self) -> dict[str, list[dict[str, Any]]]:
        """
        Read every revenue and executed record as JSON-serializable dicts.
        """

        snapshot: dict[str, list[dict[str, Any]]] = {}
        for model in (RevenueRecord, ExecutedRecord):
            columns = list(model.__table__.columns)
            rows = self._session.execute(select(*columns).order_by(model.date.asc()))
            snapshot[model.__tablename__] = [
                {column.name: _json_safe(row._mapping[column]) for column in columns}
                for row in rows
            ]
        return snapshot

    def create_backup(
        self,
        *,
        backup_name: str,
        backup_type: str,
        backup_data: dict[str, list[dict[str, Any]]],
        created_by: str | None = None,
    ) -> ImportBackup:
        backup = ImportBackup(
            backup_name=backup_name,
            backup_type=backup_type,
            revenue_records_count=len(backup_data.get(RevenueRecord.__tablename__, [])),
            executed_records_count=len(backup_data.get(ExecutedRecord.__tablename__, [])),
            backup_data=backup_data,
            tables_backed_up=list(BACKED_UP_TABLES),
            status=BackupStatus.COMPLETED,
            created_by=created_by,
        )
        self._session.add(backup)
        self._session.flush()
        return backup

    def get_backup(self, backup_id: uuid.UUID) -> ImportBackup | None:
        return self._session.get(ImportBackup, backup_id)

    def exists_with_name(self, backup_name: str) -> bool:
        stmt = select(func.count()).select_from(ImportBackup).where(
            ImportBackup.backup_name == backup_name
        )
        return (self._session.scalar(stmt) or 0) > 0

    def list_backups(self, *, limit: int = 50, backup_type: str | None = None) -> list[ImportBackup]:
        """
        List backups newest first without loading their payload.
        """

        stmt: Select[tuple[ImportBackup]] = select(ImportBackup).options(
            defer(ImportBackup.backup_data)
        )
        if backup_type:
            stmt = stmt.where(ImportBackup.backup_type == backup_type)
        stmt = stmt.order_by(ImportBackup.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
