"""
Repository for the append-only historical import log.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.import_log import ImportLog


class ImportLogRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_log(
        self,
        *,
        status: str,
        file_type: str,
        backup_id: uuid.UUID | None = None,
        file_name: str | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
        total_rows: int = 0,
        imported_rows: int = 0,
        duplicate_rows: int = 0,
        error_rows: int = 0,
        errors: list[dict[str, Any]] | None = None,
        duplicates_removed: list[str] | None = None,
        validation_warnings: list[dict[str, Any]] | None = None,
        failed_phase: str | None = None,
        error_message: str | None = None,
        duration_seconds: float = 0.0,
        rfv_recalculated: bool = False,
        created_by: str | None = None,
    ) -> ImportLog:
        log = ImportLog(
            backup_id=backup_id,
            file_type=file_type,
            file_name=file_name,
            period_start=period_start,
            period_end=period_end,
            total_rows=total_rows,
            imported_rows=imported_rows,
            duplicate_rows=duplicate_rows,
            error_rows=error_rows,
            errors=errors or [],
            duplicates_removed=duplicates_removed or [],
            validation_warnings=validation_warnings or [],
            status=status,
            failed_phase=failed_phase,
            error_message=error_message,
            duration_seconds=duration_seconds,
            rfv_recalculated=rfv_recalculated,
            created_by=created_by,
            completed_at=datetime.now(timezone.utc),
        )
        self._session.add(log)
        self._session.flush()
        return log

    def get_log(self, log_id: uuid.UUID) -> ImportLog | None:
        return self._session.get(ImportLog, log_id)

    def list_logs(
        self,
        *,
        limit: int = 50,
        status: str | None = None,
        file_type: str | None = None,
    ) -> list[ImportLog]:
        stmt: Select[tuple[ImportLog]] = select(ImportLog)

        if status:
            stmt = stmt.where(ImportLog.status == status)
        if file_type:
            stmt = stmt.where(ImportLog.file_type == file_type)

        stmt = stmt.order_by(ImportLog.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
