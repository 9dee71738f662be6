"""
Repository for revenue and executed records written by historical imports.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Union

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Row
from sqlalchemy.orm import Session

from db.models.commercial_record import ExecutedRecord, RecordSetType, RevenueRecord

CommercialRecord = Union[RevenueRecord, ExecutedRecord]

_MODEL_BY_RECORD_SET: dict[str, type[RevenueRecord] | type[ExecutedRecord]] = {
    RecordSetType.VENDAS: RevenueRecord,
    RecordSetType.EXECUTADO: ExecutedRecord,
}


def model_for_record_set(record_set: str) -> type[RevenueRecord] | type[ExecutedRecord]:
    try:
        return _MODEL_BY_RECORD_SET[record_set]
    except KeyError as exc:
        raise ValueError(f"Unknown record set: {record_set!r}") from exc


class CommercialRecordRepository:
    """
    Operates on one record set within the caller's transaction.
    """

    def __init__(self, session: Session, record_set: str) -> None:
        self._session = session
        self._model = model_for_record_set(record_set)
        self.record_set = record_set

    @property
    def model(self) -> type[RevenueRecord] | type[ExecutedRecord]:
        return self._model

    def fetch_key_columns(self) -> list[Row[Any]]:
        """
        Read the columns that make up the duplicate key of every persisted row.
        """

        model = self._model
        stmt = select(
            model.date,
            model.patient_name,
            model.procedure_name,
            model.amount,
            model.dedupe_key,
        )
        return list(self._session.execute(stmt).all())

    def insert_record(self, values: dict[str, Any]) -> CommercialRecord:
        """
        Insert one record inside a SAVEPOINT.

        A failing insert rolls back only its own savepoint and re-raises, so
        previously inserted rows of the same transaction survive.
        """

        record = self._model(**values)
        with self._session.begin_nested():
            self._session.add(record)
            self._session.flush()
        return record

    def delete_period(self, period_start: date, period_end: date) -> int:
        stmt = delete(self._model).where(
            self._model.date >= period_start,
            self._model.date <= period_end,
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)

    def count(self) -> int:
        stmt = select(func.count()).select_from(self._model)
        return int(self._session.scalar(stmt) or 0)
