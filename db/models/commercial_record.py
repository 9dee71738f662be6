"""
db/models/commercial_record.py

Sales (revenue) and executed-procedure records written by the historical
import pipeline.
"""

from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import Boolean, Date, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin

UNSPECIFIED_PROCEDURE = "Não especificado"


class RecordSetType:
    VENDAS = "vendas"
    EXECUTADO = "executado"
    BOTH = "both"


class CommercialRecordMixin(CreatedAtMixin):
    """
    Columns shared by revenue and executed records.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    patient_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    procedure_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(120), nullable=True)
    amount: Mapped[float] = mapped_column(
        Numeric(14, 2, asdecimal=False),
        nullable=False,
        default=0,
    )
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    team_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    upload_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        comment="Backup id of the import run that created the row",
    )
    registered_by_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    dedupe_key: Mapped[str | None] = mapped_column(
        String(600),
        nullable=True,
        comment="date|customer|procedure|amount; NULL for rows created outside imports",
    )


class RevenueRecord(CommercialRecordMixin, Base):
    __tablename__ = "revenue_records"

    __table_args__ = (
        Index("ix_revenue_records_date", "date"),
        Index("uq_revenue_records_dedupe_key", "dedupe_key", unique=True),
    )


class ExecutedRecord(CommercialRecordMixin, Base):
    __tablename__ = "executed_records"

    patient_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    patient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    origin: Mapped[str | None] = mapped_column(String(120), nullable=True)
    referral_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    executor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_executed_records_date", "date"),
        Index("ix_executed_records_patient_name", "patient_name"),
        Index("uq_executed_records_dedupe_key", "dedupe_key", unique=True),
    )
