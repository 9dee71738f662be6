"""
tests/test_historical_import_service.py

End-to-end tests of the historical import orchestrator against the SQLite
fixture database: phase ordering, failure handling, the circuit breaker,
period clearing, RFV recalculation and the import log.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app.config import ImportSettings
from app.schemas.historical_import import ImportSetResponse
from app.services.backup_service import DAILY_BACKUP_TYPE, BackupService, daily_backup_name
from app.services.errors import BackupError, CircuitBreakerTripped, ImportPhaseError
from app.services.historical_import_service import (
    HistoricalImportService,
    submitted_record_sets,
)
from db.models.commercial_record import ExecutedRecord, RevenueRecord
from db.models.import_backup import ImportBackup
from db.models.import_log import ImportLog
from db.repositories.backup_repository import BackupRepository
from db.repositories.commercial_record_repository import CommercialRecordRepository
from rfv.orchestrator import RFVRecalculator
from rfv.repository import RFVRepository
from rfv.scoring import SEGMENT_VIP


def _sale(**overrides: Any) -> dict[str, Any]:
    row = {
        "date": "15/03/2024",
        "client_name": "Ana Souza",
        "procedure_name": "Limpeza",
        "value_sold": "R$ 150,00",
    }
    row.update(overrides)
    return row


def _logs(session) -> list[ImportLog]:
    session.expire_all()
    return list(session.scalars(select(ImportLog)).all())


def _count(session, model) -> int:
    session.expire_all()
    return len(session.scalars(select(model)).all())


@pytest.fixture()
def service(settings) -> HistoricalImportService:
    return HistoricalImportService(settings=settings)


# ---------------------------------------------------------------------------
# Record set routing
# ---------------------------------------------------------------------------


class TestSubmittedRecordSets:
    def test_vendas(self) -> None:
        assert submitted_record_sets("vendas", [{"a": 1}], None) == [("vendas", [{"a": 1}])]

    def test_executado_accepts_data_as_fallback(self) -> None:
        assert submitted_record_sets("executado", [{"a": 1}], None) == [("executado", [{"a": 1}])]
        assert submitted_record_sets("executado", [{"a": 1}], [{"b": 2}]) == [("executado", [{"b": 2}])]

    def test_both(self) -> None:
        assert submitted_record_sets("both", [{"a": 1}], [{"b": 2}]) == [
            ("vendas", [{"a": 1}]),
            ("executado", [{"b": 2}]),
        ]

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            submitted_record_sets("estoque", [], [])


# ---------------------------------------------------------------------------
# Backup and validate actions
# ---------------------------------------------------------------------------


class TestBackupAndValidate:
    def test_backup_counts_current_records(self, session, service) -> None:
        session.add(RevenueRecord(date=date(2024, 1, 5), patient_name="Ana", amount=10, registered_by_admin=False))
        session.commit()

        result = service.backup(db=session, file_type="vendas", invoking_user_id="admin-1")

        assert result.revenue_count == 1
        assert result.executed_count == 0
        backup = BackupRepository(session).get_backup(result.backup_id)
        assert backup.backup_name.startswith("Backup ")
        assert backup.created_by == "admin-1"
        assert backup.tables_backed_up == ["revenue_records", "executed_records"]
        assert backup.backup_data["revenue_records"][0]["patient_name"] == "Ana"

    def test_validate_touches_nothing(self, session, service) -> None:
        validations = service.validate(file_type="both", data=[_sale()], executado_data=[_sale(), _sale(date="")])

        assert set(validations) == {"vendas", "executado"}
        assert validations["executado"].summary.invalid == 1
        assert _count(session, ImportBackup) == 0
        assert _count(session, ImportLog) == 0

    def test_daily_backup_once_per_day(self, session) -> None:
        day = date(2025, 5, 1)
        first = BackupService(session).create_daily_backup(day=day)
        second = BackupService(session).create_daily_backup(day=day)

        assert first is not None
        assert second is None
        (backup,) = BackupRepository(session).list_backups()
        assert backup.backup_name == daily_backup_name(day)
        assert backup.backup_type == DAILY_BACKUP_TYPE


# ---------------------------------------------------------------------------
# Successful imports
# ---------------------------------------------------------------------------


class TestRunImport:
    def test_mixed_batch(self, session, service) -> None:
        outcome = service.run_import(
            db=session,
            file_type="vendas",
            data=[_sale(), _sale(), _sale(client_name="")],
            file_name="vendas_2024.xlsx",
            invoking_user_id="admin-1",
        )

        assert outcome.vendas.imported == 1
        assert outcome.vendas.duplicates == 1
        assert [(e.row, e.message) for e in outcome.vendas.errors] == [(3, "Nome do cliente é obrigatório")]
        assert outcome.executado is None
        assert outcome.rfv.success is True

        (log,) = _logs(session)
        assert log.id == outcome.log_id
        assert log.status == "completed"
        assert log.backup_id == outcome.backup_id
        assert log.file_name == "vendas_2024.xlsx"
        assert log.created_by == "admin-1"
        assert (log.total_rows, log.imported_rows, log.duplicate_rows, log.error_rows) == (3, 1, 1, 1)
        assert log.errors == [{"file_type": "vendas", "row": 3, "message": "Nome do cliente é obrigatório"}]
        assert log.duplicates_removed == ["Linha 2: Ana Souza - Limpeza"]
        assert log.rfv_recalculated is True
        assert log.failed_phase is None

    def test_rows_carry_backup_id(self, session, service) -> None:
        outcome = service.run_import(db=session, file_type="vendas", data=[_sale()])
        record = session.scalars(select(RevenueRecord)).one()
        assert record.upload_id == outcome.backup_id

    def test_one_log_and_one_backup_per_call(self, session, service) -> None:
        first = service.run_import(db=session, file_type="vendas", data=[_sale()])
        second = service.run_import(db=session, file_type="vendas", data=[_sale()])

        assert first.backup_id != second.backup_id
        assert second.vendas.imported == 0
        assert second.vendas.duplicates == 1
        assert len(_logs(session)) == 2
        assert _count(session, ImportBackup) == 2
        assert _count(session, RevenueRecord) == 1

    def test_both_record_sets(self, session, service) -> None:
        outcome = service.run_import(
            db=session,
            file_type="both",
            data=[_sale()],
            executado_data=[_sale(value_received="120", professional_name="Maria")],
        )

        assert outcome.vendas.imported == 1
        assert outcome.executado.imported == 1
        assert outcome.rfv.total == 1
        assert _count(session, RevenueRecord) == 1
        assert _count(session, ExecutedRecord) == 1
        (log,) = _logs(session)
        assert log.file_type == "both"
        assert log.imported_rows == 2

    def test_period_warnings_are_logged(self, session, service) -> None:
        service.run_import(
            db=session,
            file_type="vendas",
            data=[_sale(date="10/06/2024")],
            period_start=date(2024, 1, 1),
            period_end=date(2024, 3, 31),
        )
        (log,) = _logs(session)
        assert log.validation_warnings == [
            {"file_type": "vendas", "row": 1, "message": "Data fora do período (10/06/2024)"}
        ]

    def test_log_keeps_every_message(self, session, settings) -> None:
        service = HistoricalImportService(
            settings=replace(settings, max_reported_messages=2, max_error_rate=1.0),
        )
        rows = [_sale(date="") for _ in range(5)] + [_sale() for _ in range(4)]

        outcome = service.run_import(db=session, file_type="vendas", data=rows)

        (log,) = _logs(session)
        assert log.error_rows == 5
        assert len(log.errors) == log.error_rows
        assert log.duplicate_rows == 3
        assert len(log.duplicates_removed) == log.duplicate_rows

        response = ImportSetResponse.from_result(outcome.vendas, max_messages=2)
        assert len(response.errors) == 2
        assert response.error_count == 5
        assert len(response.duplicates_removed) == 2


# ---------------------------------------------------------------------------
# Clearing a period
# ---------------------------------------------------------------------------


class TestClearOldData:
    def test_only_the_period_is_replaced(self, session, service) -> None:
        session.add_all(
            [
                RevenueRecord(date=date(2024, 2, 1), patient_name="Antigo", amount=50, registered_by_admin=False),
                RevenueRecord(date=date(2023, 6, 1), patient_name="Fora", amount=70, registered_by_admin=False),
            ]
        )
        session.commit()

        outcome = service.run_import(
            db=session,
            file_type="vendas",
            data=[_sale()],
            clear_old_data=True,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 12, 31),
        )

        session.expire_all()
        names = sorted(r.patient_name for r in session.scalars(select(RevenueRecord)))
        assert names == ["Ana Souza", "Fora"]
        backup = BackupRepository(session).get_backup(outcome.backup_id)
        assert backup.revenue_records_count == 2

    def test_clear_requires_both_bounds(self, session, service) -> None:
        with pytest.raises(ValueError):
            service.run_import(db=session, file_type="vendas", data=[_sale()], clear_old_data=True)
        assert _count(session, ImportBackup) == 0


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_backup_failure_changes_nothing(self, session, service, monkeypatch) -> None:
        session.add(RevenueRecord(date=date(2024, 2, 1), patient_name="Antigo", amount=50, registered_by_admin=False))
        session.commit()

        def broken_snapshot(self):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(BackupRepository, "snapshot_records", broken_snapshot)

        with pytest.raises(BackupError) as exc_info:
            service.run_import(
                db=session,
                file_type="vendas",
                data=[_sale()],
                clear_old_data=True,
                period_start=date(2024, 1, 1),
                period_end=date(2024, 12, 31),
            )

        assert exc_info.value.phase == "backup"
        session.expire_all()
        assert [r.patient_name for r in session.scalars(select(RevenueRecord))] == ["Antigo"]
        (log,) = _logs(session)
        assert log.status == "failed"
        assert log.failed_phase == "backup"
        assert log.backup_id is None
        assert "disk full" in log.error_message

    def test_circuit_breaker_blocks_every_insert(self, session) -> None:
        service = HistoricalImportService(settings=ImportSettings(max_error_rate=0.10))
        rows = [_sale(client_name=f"Cliente {i}") for i in range(8)] + [
            _sale(client_name=""),
            _sale(client_name=" "),
        ]

        with pytest.raises(CircuitBreakerTripped) as exc_info:
            service.run_import(db=session, file_type="vendas", data=rows)

        assert exc_info.value.phase == "validate"
        assert exc_info.value.validation["vendas"].summary.invalid == 2
        assert _count(session, RevenueRecord) == 0
        assert _count(session, ImportBackup) == 1
        (log,) = _logs(session)
        assert log.status == "failed"
        assert log.failed_phase == "validate"
        assert log.error_rows == 2
        assert log.imported_rows == 0

    def test_error_rate_at_threshold_is_allowed(self, session) -> None:
        service = HistoricalImportService(settings=ImportSettings(max_error_rate=0.10))
        rows = [_sale(client_name=f"Cliente {i}") for i in range(9)] + [_sale(client_name="")]

        outcome = service.run_import(db=session, file_type="vendas", data=rows)
        assert outcome.vendas.imported == 9

    def test_import_phase_failure_is_logged(self, session, service, monkeypatch) -> None:
        def broken_keys(self):
            raise SQLAlchemyError("relation does not exist")

        monkeypatch.setattr(CommercialRecordRepository, "fetch_key_columns", broken_keys)

        with pytest.raises(ImportPhaseError) as exc_info:
            service.run_import(db=session, file_type="vendas", data=[_sale()])

        assert exc_info.value.phase == "import"
        (log,) = _logs(session)
        assert log.failed_phase == "import"
        assert log.backup_id is not None

    def test_rfv_failure_keeps_imported_rows(self, session, service, monkeypatch) -> None:
        def broken_recalculate(self, today=None):
            raise RuntimeError("rfv exploded")

        monkeypatch.setattr(RFVRecalculator, "recalculate", broken_recalculate)

        outcome = service.run_import(db=session, file_type="executado", data=[_sale(value_received="80")])

        assert outcome.executado.imported == 1
        assert outcome.rfv.success is False
        assert outcome.rfv.error == "rfv exploded"
        assert _count(session, ExecutedRecord) == 1
        (log,) = _logs(session)
        assert log.status == "completed"
        assert log.rfv_recalculated is False

    def test_failed_batch_commit_keeps_earlier_batches(self, session, service, monkeypatch) -> None:
        real_commit = session.commit
        commits = {"count": 0}

        def flaky_commit() -> None:
            commits["count"] += 1
            # 1: backup, 2: first batch of two rows, 3: the trailing batch
            if commits["count"] == 3:
                raise OperationalError("COMMIT", {}, Exception("connection reset"))
            real_commit()

        monkeypatch.setattr(session, "commit", flaky_commit)
        rows = [
            _sale(client_name=name, value_received="200")
            for name in ("Ana Souza", "Bruno Lima", "Carla Dias")
        ]

        with pytest.raises(ImportPhaseError) as exc_info:
            service.run_import(db=session, file_type="executado", data=rows)

        error = exc_info.value
        assert error.phase == "import"
        assert error.results["executado"].imported == 2
        assert [e.row for e in error.results["executado"].errors] == [3]
        assert error.rfv.success is True
        assert error.rfv.total == 2
        assert _count(session, ExecutedRecord) == 2

        (log,) = _logs(session)
        assert log.status == "failed"
        assert log.failed_phase == "import"
        assert log.imported_rows == 2
        assert log.error_rows == 1
        assert log.rfv_recalculated is True


# ---------------------------------------------------------------------------
# RFV after import
# ---------------------------------------------------------------------------


class TestRFVAfterImport:
    def test_frequent_high_value_customer_becomes_vip(self, session, service) -> None:
        today = date.today()
        rows = [
            _sale(
                date=(today - timedelta(days=7 * i)).strftime("%d/%m/%Y"),
                value_sold=None,
                value_received="R$ 2.500,00",
            )
            for i in range(6)
        ]

        outcome = service.run_import(db=session, file_type="executado", executado_data=rows)

        assert outcome.executado.imported == 6
        assert outcome.rfv.success is True
        assert outcome.rfv.total == 1
        customer = RFVRepository().get_customer(session, "Ana Souza")
        assert customer.frequency == 6
        assert customer.monetary_value == pytest.approx(15_000.0)
        assert customer.segment == SEGMENT_VIP

    def test_explicit_recalculation(self, session, service) -> None:
        outcome = service.recalculate_rfv(db=session)
        assert outcome.success is True
        assert outcome.total == 0


# ---------------------------------------------------------------------------
# Three-row sales batch with a case-different repeat and a missing date
# ---------------------------------------------------------------------------


class TestThreeRowBatch:
    ROWS = [
        {"date": "01/03/2024", "client_name": "Maria Silva", "value_sold": 1000},
        {"date": "01/03/2024", "client_name": "maria silva", "value_sold": 1000},
        {"date": "", "client_name": "João", "value_sold": 500},
    ]

    def test_validation(self, service) -> None:
        validation = service.validate(file_type="vendas", data=self.ROWS)["vendas"]

        assert validation.valid_rows == [0, 1]
        assert [(e.row, e.field) for e in validation.errors] == [(3, "date")]
        assert [d.row for d in validation.duplicates] == [2]

    def test_first_and_second_run(self, session, service) -> None:
        first = service.run_import(db=session, file_type="vendas", data=self.ROWS)
        second = service.run_import(db=session, file_type="vendas", data=self.ROWS)

        assert (first.vendas.imported, first.vendas.duplicates) == (1, 1)
        assert [e.row for e in first.vendas.errors] == [3]
        assert (second.vendas.imported, second.vendas.duplicates) == (0, 2)
        assert [e.row for e in second.vendas.errors] == [3]
        assert _count(session, RevenueRecord) == 1
