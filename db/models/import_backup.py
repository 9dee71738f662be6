"""
db/models/import_backup.py

Immutable point-in-time snapshot of both commercial record sets, taken
before every historical import.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, JSONPayload


class BackupStatus:
    COMPLETED = "completed"


class ImportBackup(Base, CreatedAtMixin):
    __tablename__ = "data_import_backups"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    backup_name: Mapped[str] = mapped_column(String(120), nullable=False)
    backup_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="vendas, executado, both, daily",
    )
    revenue_records_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    executed_records_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    backup_data: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        nullable=False,
        comment="{'revenue_records': [...], 'executed_records': [...]}",
    )
    tables_backed_up: Mapped[list[str]] = mapped_column(JSONPayload, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=BackupStatus.COMPLETED,
    )
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_data_import_backups_created_at", "created_at"),
        Index("ix_data_import_backups_backup_name", "backup_name"),
    )
