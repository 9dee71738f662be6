"""
Orchestrator service for historical imports: backup, validation, optional
period clearing, row import, RFV recalculation and the import log.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import ImportSettings, get_import_settings
from app.domain.historical_import import (
    BackupResult,
    HistoricalImportOutcome,
    ImporterResult,
    RFVOutcome,
    RowImportError,
    ValidationResult,
)
from app.services.backup_service import BackupService
from app.services.errors import CircuitBreakerTripped, HistoricalImportError, ImportPhaseError
from app.services.record_importer import importer_for
from app.validators.import_validator import validate_rows
from db.models.commercial_record import RecordSetType
from db.models.import_backup import ImportBackup
from db.models.import_log import ImportLog, ImportLogStatus
from db.repositories.backup_repository import BackupRepository
from db.repositories.commercial_record_repository import CommercialRecordRepository
from db.repositories.import_log_repository import ImportLogRepository
from rfv.orchestrator import RFVRecalculator

logger = logging.getLogger(__name__)

RowBatch = Sequence[Mapping[str, Any]]


def submitted_record_sets(
    file_type: str,
    data: RowBatch | None,
    executado_data: RowBatch | None,
) -> list[tuple[str, RowBatch]]:
    """
    Pair each record set affected by ``file_type`` with its rows.

    ``data`` carries sales rows; ``executado_data`` carries executed rows,
    and for a plain ``executado`` request ``data`` is accepted as well.
    """

    if file_type == RecordSetType.VENDAS:
        return [(RecordSetType.VENDAS, data or [])]
    if file_type == RecordSetType.EXECUTADO:
        return [(RecordSetType.EXECUTADO, executado_data or data or [])]
    if file_type == RecordSetType.BOTH:
        return [
            (RecordSetType.VENDAS, data or []),
            (RecordSetType.EXECUTADO, executado_data or []),
        ]
    raise ValueError(f"Unknown file type: {file_type!r}")


@dataclass
class _RunState:
    """Accumulates what a single import run has done so far."""

    phase: str = "backup"
    backup_id: uuid.UUID | None = None
    total_rows: int = 0
    validations: dict[str, ValidationResult] = field(default_factory=dict)
    results: dict[str, ImporterResult] = field(default_factory=dict)


class HistoricalImportService:
    """
    Runs the ``backup``, ``validate`` and ``import`` actions.

    Transaction contract:
      - BackupService commits the snapshot before anything is mutated.
      - Period clearing commits on its own, only after a successful backup.
      - Importers commit every ``commit_batch_size`` inserted rows.
      - RFV recalculation commits separately; its failure never rolls back
        imported rows.
      - Exactly one ImportLog row is committed per ``run_import`` call.
    """

    def __init__(self, *, settings: ImportSettings | None = None) -> None:
        self._settings = settings or get_import_settings()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def backup(
        self,
        *,
        db: Session,
        file_type: str,
        invoking_user_id: str | None = None,
    ) -> BackupResult:
        return BackupService(db).create_backup(backup_type=file_type, created_by=invoking_user_id)

    def validate(
        self,
        *,
        file_type: str,
        data: RowBatch | None = None,
        executado_data: RowBatch | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> dict[str, ValidationResult]:
        """
        Validate every submitted record set without touching the database.
        """

        validations: dict[str, ValidationResult] = {}
        for record_set, rows in submitted_record_sets(file_type, data, executado_data):
            validation = validate_rows(
                rows,
                record_set,
                period_start,
                period_end,
                default_period=self._settings.default_period,
            )
            self._log_validation_problems(record_set, validation)
            validations[record_set] = validation
        return validations

    def run_import(
        self,
        *,
        db: Session,
        file_type: str,
        data: RowBatch | None = None,
        executado_data: RowBatch | None = None,
        clear_old_data: bool = False,
        period_start: date | None = None,
        period_end: date | None = None,
        file_name: str | None = None,
        invoking_user_id: str | None = None,
    ) -> HistoricalImportOutcome:
        """
        Execute backup, validate, clear, import, RFV and log in that order.

        Raises a HistoricalImportError subclass naming the failed phase after
        writing a failed ImportLog row.
        """

        if clear_old_data and (period_start is None or period_end is None):
            raise ValueError("clear_old_data requires period_start and period_end.")

        started = time.perf_counter()
        record_sets = submitted_record_sets(file_type, data, executado_data)
        state = _RunState(total_rows=sum(len(rows) for _, rows in record_sets))
        log_fields: dict[str, Any] = {
            "file_type": file_type,
            "file_name": file_name,
            "period_start": period_start,
            "period_end": period_end,
            "created_by": invoking_user_id,
        }

        logger.info(
            "Historical import starting file_type=%s total_rows=%d clear_old_data=%s",
            file_type,
            state.total_rows,
            clear_old_data,
        )

        try:
            state.phase = "backup"
            backup = BackupService(db).create_backup(backup_type=file_type, created_by=invoking_user_id)
            state.backup_id = backup.backup_id

            state.phase = "validate"
            state.validations = self.validate(
                file_type=file_type,
                data=data,
                executado_data=executado_data,
                period_start=period_start,
                period_end=period_end,
            )
            self._check_circuit_breaker(state.validations)

            if clear_old_data:
                state.phase = "clear"
                self._clear_period(
                    db,
                    [record_set for record_set, _ in record_sets],
                    period_start,
                    period_end,
                )

            state.phase = "import"
            for record_set, rows in record_sets:
                if not rows:
                    continue
                importer = importer_for(record_set, db, settings=self._settings)
                imported = importer.import_rows(
                    rows,
                    state.validations[record_set].valid_rows,
                    backup_id=backup.backup_id,
                    invoking_user_id=invoking_user_id,
                )
                state.results[record_set] = self._merge_validation_errors(
                    imported,
                    state.validations[record_set],
                )
        except HistoricalImportError as exc:
            self._write_failed_log(db, state, exc, started, log_fields)
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            phase_error = ImportPhaseError(f"{state.phase} phase failed: {exc}", phase=state.phase)
            self._write_failed_log(db, state, phase_error, started, log_fields)
            raise phase_error from exc

        state.phase = "rfv"
        rfv = self.recalculate_rfv(db=db)

        duration_seconds = round(time.perf_counter() - started, 3)
        log = self._write_log(
            db,
            status=ImportLogStatus.COMPLETED,
            state=state,
            duration_seconds=duration_seconds,
            rfv_recalculated=rfv.success,
            **log_fields,
        )

        logger.info(
            "Historical import completed file_type=%s backup_id=%s duration_seconds=%.3f rfv=%s",
            file_type,
            backup.backup_id,
            duration_seconds,
            rfv.success,
        )
        return HistoricalImportOutcome(
            backup_id=backup.backup_id,
            vendas=state.results.get(RecordSetType.VENDAS),
            executado=state.results.get(RecordSetType.EXECUTADO),
            rfv=rfv,
            duration_seconds=duration_seconds,
            log_id=log.id if log is not None else None,
        )

    def recalculate_rfv(self, *, db: Session) -> RFVOutcome:
        """
        Rebuild every RFV profile and commit. Failures are reported, not raised.
        """

        try:
            run = RFVRecalculator(db).recalculate()
            db.commit()
        except Exception as exc:  # noqa: BLE001
            db.rollback()
            logger.warning("RFV recalculation failed: %s", exc)
            return RFVOutcome(success=False, error=str(exc))
        return RFVOutcome(success=True, updated=run.updated, total=run.total)

    # ------------------------------------------------------------------
    # Status lookups
    # ------------------------------------------------------------------

    def get_log(self, *, db: Session, log_id: uuid.UUID) -> ImportLog | None:
        return ImportLogRepository(db).get_log(log_id)

    def list_logs(
        self,
        *,
        db: Session,
        limit: int = 50,
        status: str | None = None,
        file_type: str | None = None,
    ) -> list[ImportLog]:
        return ImportLogRepository(db).list_logs(limit=limit, status=status, file_type=file_type)

    def list_backups(self, *, db: Session, limit: int = 50) -> list[ImportBackup]:
        return BackupRepository(db).list_backups(limit=limit)

    @property
    def max_reported_messages(self) -> int:
        return self._settings.max_reported_messages

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_circuit_breaker(self, validations: Mapping[str, ValidationResult]) -> None:
        for record_set, validation in validations.items():
            if validation.total_rows == 0:
                continue
            if validation.invalid_count > validation.total_rows * self._settings.max_error_rate:
                logger.warning(
                    "Circuit breaker tripped record_set=%s invalid=%d total=%d",
                    record_set,
                    validation.invalid_count,
                    validation.total_rows,
                )
                raise CircuitBreakerTripped(
                    f"Too many validation errors (>{self._settings.max_error_rate:.0%})",
                    validation=dict(validations),
                )

    def _clear_period(
        self,
        db: Session,
        record_sets: Sequence[str],
        period_start: date | None,
        period_end: date | None,
    ) -> None:
        if period_start is None or period_end is None:
            return
        try:
            for record_set in record_sets:
                deleted = CommercialRecordRepository(db, record_set).delete_period(period_start, period_end)
                logger.info(
                    "Cleared period record_set=%s period_start=%s period_end=%s deleted=%d",
                    record_set,
                    period_start,
                    period_end,
                    deleted,
                )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise ImportPhaseError(f"Failed to clear old data: {exc}", phase="clear") from exc

    def _merge_validation_errors(
        self,
        imported: ImporterResult,
        validation: ValidationResult,
    ) -> ImporterResult:
        validation_errors = [RowImportError(row=issue.row, message=issue.message) for issue in validation.errors]
        return ImporterResult(
            imported=imported.imported,
            duplicates=imported.duplicates,
            duplicates_removed=imported.duplicates_removed,
            errors=sorted(validation_errors + imported.errors, key=lambda error: error.row),
            unmapped_names=imported.unmapped_names,
        )

    def _log_validation_problems(self, record_set: str, validation: ValidationResult) -> None:
        if not self._settings.log_validation_errors:
            return
        for issue in validation.errors:
            logger.warning(
                "Import validation error record_set=%s row=%d field=%s message=%s",
                record_set,
                issue.row,
                issue.field,
                issue.message,
            )

    def _write_failed_log(
        self,
        db: Session,
        state: _RunState,
        exc: HistoricalImportError,
        started: float,
        log_fields: Mapping[str, Any],
    ) -> None:
        """
        Record a failed run, keeping whatever it committed before the failure.

        Rows committed by earlier batches stay in the database, so they are
        counted in the log and RFV is rebuilt over them.
        """

        logger.error("Historical import failed phase=%s error=%s", exc.phase, exc)
        db.rollback()

        partial = getattr(exc, "partial_result", None)
        record_set = getattr(exc, "record_set", None)
        if partial is not None and record_set in state.validations:
            state.results[record_set] = self._merge_validation_errors(partial, state.validations[record_set])

        rfv: RFVOutcome | None = None
        if any(result.imported for result in state.results.values()):
            state.phase = "rfv"
            rfv = self.recalculate_rfv(db=db)

        exc.results = dict(state.results)
        exc.rfv = rfv
        self._write_log(
            db,
            status=ImportLogStatus.FAILED,
            state=state,
            duration_seconds=round(time.perf_counter() - started, 3),
            rfv_recalculated=rfv is not None and rfv.success,
            failed_phase=exc.phase,
            error_message=str(exc)[:2000],
            **log_fields,
        )

    def _write_log(
        self,
        db: Session,
        *,
        status: str,
        state: _RunState,
        duration_seconds: float,
        rfv_recalculated: bool = False,
        failed_phase: str | None = None,
        error_message: str | None = None,
        **log_fields: Any,
    ) -> ImportLog | None:
        errors: list[dict[str, Any]] = []
        duplicates_removed: list[str] = []
        warnings: list[dict[str, Any]] = []
        error_rows = 0

        for record_set, result in state.results.items():
            error_rows += len(result.errors)
            errors.extend(
                {"file_type": record_set, "row": error.row, "message": error.message}
                for error in result.errors
            )
            duplicates_removed.extend(result.duplicates_removed)
        for record_set, validation in state.validations.items():
            if record_set not in state.results:
                error_rows += len(validation.errors)
                errors.extend(
                    {"file_type": record_set, "row": issue.row, "message": issue.message}
                    for issue in validation.errors
                )
            warnings.extend(
                {"file_type": record_set, "row": warning.row, "message": warning.message}
                for warning in validation.warnings
            )

        try:
            log = ImportLogRepository(db).create_log(
                status=status,
                backup_id=state.backup_id,
                total_rows=state.total_rows,
                imported_rows=sum(result.imported for result in state.results.values()),
                duplicate_rows=sum(result.duplicates for result in state.results.values()),
                error_rows=error_rows,
                errors=errors,
                duplicates_removed=duplicates_removed,
                validation_warnings=warnings,
                failed_phase=failed_phase,
                error_message=error_message,
                duration_seconds=duration_seconds,
                rfv_recalculated=rfv_recalculated,
                **log_fields,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to persist import log status=%s", status)
            return None
        return log


@lru_cache(maxsize=1)
def get_historical_import_service() -> HistoricalImportService:
    return HistoricalImportService()
