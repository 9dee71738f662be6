"""
rfv/orchestrator.py

Full RFV rebuild: aggregates the complete executed-record history per
customer, scores each customer and upserts the profiles. Contains no
scoring math (rfv.scoring) and no SQL (rfv.repository).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from rfv.repository import ExecutedTransaction, RFVRepository
from rfv.scoring import score_customer

logger = logging.getLogger(__name__)


@dataclass
class CustomerAggregate:
    last_purchase_date: date
    frequency: int = 0
    monetary: float = 0.0
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class RFVRunResult:
    updated: int
    total: int


def normalize_customer_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def aggregate_transactions(
    transactions: list[ExecutedTransaction],
) -> dict[str, CustomerAggregate]:
    """Group transactions by normalized customer name.

    Transactions without a customer name are ignored. Contact fields are
    overwritten in input order, so with oldest-first input the most recent
    non-empty email/phone wins.
    """
    aggregates: dict[str, CustomerAggregate] = {}

    for tx in transactions:
        key = normalize_customer_name(tx.customer_name)
        if not key:
            continue

        aggregate = aggregates.get(key)
        if aggregate is None:
            aggregate = CustomerAggregate(last_purchase_date=tx.date)
            aggregates[key] = aggregate

        aggregate.frequency += 1
        aggregate.monetary += tx.amount
        if tx.date > aggregate.last_purchase_date:
            aggregate.last_purchase_date = tx.date
        if tx.email:
            aggregate.email = tx.email
        if tx.phone:
            aggregate.phone = tx.phone

    return aggregates


class RFVRecalculator:
    """Coordinates RFV aggregation, scoring and persistence.

    Accepts a SQLAlchemy Session at construction time so the caller
    retains full control over commit / rollback.
    """

    def __init__(self, session: Session, repository: Optional[RFVRepository] = None) -> None:
        self._session = session
        self._repository = repository or RFVRepository()

    def recalculate(self, today: Optional[date] = None) -> RFVRunResult:
        """Recompute every customer's RFV profile from the full history.

        Args:
            today: Reference date for recency; defaults to the current UTC date.

        Returns:
            RFVRunResult with rows upserted and distinct customers seen.
        """
        now = datetime.now(timezone.utc)
        reference = today or now.date()

        transactions = self._repository.fetch_executed_history(self._session)
        aggregates = aggregate_transactions(transactions)

        payloads = []
        for customer_name, aggregate in aggregates.items():
            score = score_customer(
                last_purchase_date=aggregate.last_purchase_date,
                frequency=aggregate.frequency,
                monetary=aggregate.monetary,
                today=reference,
            )
            payloads.append(
                {
                    "customer_name": customer_name,
                    "email": aggregate.email,
                    "phone": aggregate.phone,
                    "recency_days": score.recency_days,
                    "frequency": score.frequency,
                    "monetary_value": round(score.monetary, 2),
                    "rfv_score": score.rfv_score,
                    "segment": score.segment,
                    "last_purchase_date": aggregate.last_purchase_date,
                    "updated_at": now,
                }
            )

        updated = self._repository.upsert_customers(self._session, payloads)
        logger.info(
            "RFV recalculated transactions=%d customers=%d updated=%d",
            len(transactions),
            len(aggregates),
            updated,
        )
        return RFVRunResult(updated=updated, total=len(aggregates))
