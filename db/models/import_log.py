"""
db/models/import_log.py

Append-only audit record written once per historical import invocation.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Float, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, JSONPayload


class ImportLogStatus:
    COMPLETED = "completed"
    FAILED = "failed"


class ImportLog(Base, CreatedAtMixin):
    __tablename__ = "data_import_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    backup_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    file_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="vendas, executado, both",
    )
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    imported_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duplicate_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(JSONPayload, nullable=False, default=list)
    duplicates_removed: Mapped[list[str]] = mapped_column(JSONPayload, nullable=False, default=list)
    validation_warnings: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONPayload,
        nullable=False,
        default=list,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    failed_phase: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="backup, validate, clear, import, rfv",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rfv_recalculated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_data_import_logs_created_at", "created_at"),
        Index("ix_data_import_logs_status", "status"),
        Index("ix_data_import_logs_file_type_status", "file_type", "status"),
    )
