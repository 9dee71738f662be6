"""
rfv/repository.py

SQLAlchemy model and repository for the RFV customer profile, a derived
view over executed records. No scoring logic lives here.
"""

import datetime as dt
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import Date, Index, Integer, Numeric, String, UniqueConstraint, Uuid, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Mapped, Session, mapped_column

from db.base import Base, TimestampMixin
from db.models.commercial_record import ExecutedRecord

_DEFAULT_BATCH_SIZE = 500


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

class RFVCustomer(Base, TimestampMixin):
    """One RFV profile per normalized (lower-cased, trimmed) customer name.

    Fully recomputed and upserted after every import; never deleted.
    """

    __tablename__ = "rfv_customers"

    __table_args__ = (
        UniqueConstraint("customer_name", name="uq_rfv_customers_customer_name"),
        Index("ix_rfv_customers_segment", "segment"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    recency_days: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency: Mapped[int] = mapped_column(Integer, nullable=False)
    monetary_value: Mapped[float] = mapped_column(Numeric(14, 2, asdecimal=False), nullable=False)
    rfv_score: Mapped[int] = mapped_column(Integer, nullable=False)
    segment: Mapped[str] = mapped_column(String(32), nullable=False)
    last_purchase_date: Mapped[dt.date] = mapped_column(Date, nullable=False)


@dataclass(frozen=True)
class ExecutedTransaction:
    """Slice of an executed record needed for RFV aggregation."""

    customer_name: Optional[str]
    date: dt.date
    amount: float
    email: Optional[str]
    phone: Optional[str]


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class RFVRepository:
    """Data access layer for RFV aggregation input and output.

    Operates within the caller's transaction boundary. No commits or
    rollbacks are issued internally.
    """

    def fetch_executed_history(self, session: Session) -> list[ExecutedTransaction]:
        """Load every executed record, oldest first.

        Args:
            session: Active SQLAlchemy session.

        Returns:
            One ExecutedTransaction per executed record, ordered by date
            ascending so later rows carry the most recent contact data.
        """
        stmt = select(
            ExecutedRecord.patient_name,
            ExecutedRecord.date,
            ExecutedRecord.amount,
            ExecutedRecord.patient_email,
            ExecutedRecord.patient_phone,
        ).order_by(ExecutedRecord.date.asc(), ExecutedRecord.created_at.asc())

        return [
            ExecutedTransaction(
                customer_name=row.patient_name,
                date=row.date,
                amount=float(row.amount or 0),
                email=row.patient_email,
                phone=row.patient_phone,
            )
            for row in session.execute(stmt)
        ]

    def upsert_customers(
        self,
        session: Session,
        payloads: Sequence[dict[str, Any]],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """Insert-or-replace RFV rows keyed by ``customer_name``.

        Args:
            session:    Active SQLAlchemy session.
            payloads:   Column dicts, one per customer.
            batch_size: Rows per INSERT statement.

        Returns:
            Number of rows written.
        """
        if not payloads:
            return 0

        insert = _dialect_insert(session)
        size = max(1, batch_size)
        written = 0

        for start in range(0, len(payloads), size):
            chunk = [{"id": uuid.uuid4(), **payload} for payload in payloads[start : start + size]]
            stmt = insert(RFVCustomer).values(chunk)
            stmt = stmt.on_conflict_do_update(
                index_elements=[RFVCustomer.customer_name],
                set_={
                    "email": stmt.excluded.email,
                    "phone": stmt.excluded.phone,
                    "recency_days": stmt.excluded.recency_days,
                    "frequency": stmt.excluded.frequency,
                    "monetary_value": stmt.excluded.monetary_value,
                    "rfv_score": stmt.excluded.rfv_score,
                    "segment": stmt.excluded.segment,
                    "last_purchase_date": stmt.excluded.last_purchase_date,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            session.execute(stmt)
            written += len(chunk)

        return written

    def get_customer(self, session: Session, customer_name: str) -> Optional[RFVCustomer]:
        stmt = select(RFVCustomer).where(RFVCustomer.customer_name == customer_name.strip().lower())
        return session.scalars(stmt).first()


def _dialect_insert(session: Session) -> Any:
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"RFV upsert is not supported on dialect {dialect!r}.")
