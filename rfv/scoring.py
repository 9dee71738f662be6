"""
rfv/scoring.py

Recency-Frequency-Monetary scoring for one customer.
Pure computation: no DB access, no aggregation across customers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

# ---------------------------------------------------------------------------
# Segment labels and thresholds
# ---------------------------------------------------------------------------

SEGMENT_VIP = "VIP"
SEGMENT_FREQUENT = "Frequente"
SEGMENT_RECENT = "Recente"
SEGMENT_OCCASIONAL = "Ocasional"

SEGMENTS: tuple[str, ...] = (SEGMENT_VIP, SEGMENT_FREQUENT, SEGMENT_RECENT, SEGMENT_OCCASIONAL)

_VIP_MIN_MONETARY: float = 10_000.0  # strictly greater than
_VIP_MIN_FREQUENCY: int = 5  # strictly greater than
_FREQUENT_MIN_FREQUENCY: int = 3  # strictly greater than
_RECENT_MAX_DAYS: int = 30  # strictly less than

# recency_score reaches 0 after ~365 days without a transaction
_RECENCY_DAYS_PER_POINT: float = 3.65
_FREQUENCY_POINTS_PER_TRANSACTION: float = 10.0
_MONETARY_PER_POINT: float = 100.0
_MAX_SUB_SCORE: float = 100.0


@dataclass(frozen=True)
class RFVScore:
    """
    Scored profile of one customer.
    """

    recency_days: int
    frequency: int
    monetary: float
    recency_score: float
    frequency_score: float
    monetary_score: float
    rfv_score: int
    segment: str


def recency_score(recency_days: int) -> float:
    return max(0.0, min(_MAX_SUB_SCORE, _MAX_SUB_SCORE - recency_days / _RECENCY_DAYS_PER_POINT))


def frequency_score(frequency: int) -> float:
    return max(0.0, min(frequency * _FREQUENCY_POINTS_PER_TRANSACTION, _MAX_SUB_SCORE))


def monetary_score(monetary: float) -> float:
    return max(0.0, min(monetary / _MONETARY_PER_POINT, _MAX_SUB_SCORE))


def assign_segment(*, recency_days: int, frequency: int, monetary: float) -> str:
    """
    Evaluate segment rules in priority order: VIP, Frequente, Recente, Ocasional.
    """

    if monetary > _VIP_MIN_MONETARY and frequency > _VIP_MIN_FREQUENCY:
        return SEGMENT_VIP
    if frequency > _FREQUENT_MIN_FREQUENCY:
        return SEGMENT_FREQUENT
    if recency_days < _RECENT_MAX_DAYS:
        return SEGMENT_RECENT
    return SEGMENT_OCCASIONAL


def score_customer(
    *,
    last_purchase_date: date,
    frequency: int,
    monetary: float,
    today: date,
) -> RFVScore:
    """Score one customer from its aggregates.

    The composite score is the rounded (half up) mean of the three
    sub-scores and is always an integer in [0, 100]. Future-dated
    transactions count as "today" (recency 0).

    Args:
        last_purchase_date: Date of the most recent transaction.
        frequency:          Number of transactions.
        monetary:           Sum of transaction amounts.
        today:              Reference date for recency.

    Returns:
        RFVScore with sub-scores, composite score and segment label.
    """
    recency_days = max(0, (today - last_purchase_date).days)

    r_score = recency_score(recency_days)
    f_score = frequency_score(frequency)
    m_score = monetary_score(monetary)
    composite = math.floor((r_score + f_score + m_score) / 3.0 + 0.5)

    return RFVScore(
        recency_days=recency_days,
        frequency=frequency,
        monetary=monetary,
        recency_score=r_score,
        frequency_score=f_score,
        monetary_score=m_score,
        rfv_score=int(max(0, min(100, composite))),
        segment=assign_segment(
            recency_days=recency_days,
            frequency=frequency,
            monetary=monetary,
        ),
    )
