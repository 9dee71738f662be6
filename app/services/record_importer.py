"""
app/services/record_importer.py

Sales and executed-procedure importers.

Each importer run reads the persisted duplicate keys and the user directory
once, then walks the validated rows in their original order: rows whose
composite key is already known are skipped as duplicates, the others are
attributed to an owner and inserted inside their own SAVEPOINT so a failing
row never undoes the rows before it.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import ImportSettings, get_import_settings
from app.domain.historical_import import ImporterResult, RowImportError
from app.normalization.value_normalizer import (
    InvalidAmountError,
    composite_key,
    is_blank,
    parse_date,
    procedure_or_placeholder,
)
from app.services.errors import ImportPhaseError
from app.services.owner_resolution import OwnerResolver, build_owner_resolver, users_from_profiles
from app.validators.import_validator import (
    MSG_AMOUNT_INVALID,
    MSG_DATE_INVALID,
    amount_or_zero,
    raw_amount_for,
)
from db.models.commercial_record import RecordSetType
from db.repositories.commercial_record_repository import CommercialRecordRepository
from db.repositories.user_directory_repository import UserDirectoryRepository

logger = logging.getLogger(__name__)

MSG_BATCH_ROLLED_BACK = "Linha não gravada: falha ao confirmar o lote"


def _clean_text(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


def _error_message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


def _is_dedupe_violation(exc: IntegrityError) -> bool:
    return "dedupe_key" in str(exc.orig)


class RecordImporter:
    """
    Base importer for one record set. Subclasses name the record set, the
    column holding the owner's name and any extra persisted columns.
    """

    record_set: str = ""
    owner_field: str = ""

    def __init__(
        self,
        session: Session,
        *,
        settings: ImportSettings | None = None,
        records: CommercialRecordRepository | None = None,
        directory: UserDirectoryRepository | None = None,
        owner_resolver: OwnerResolver | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_import_settings()
        self._records = records or CommercialRecordRepository(session, self.record_set)
        self._directory = directory or UserDirectoryRepository(session)
        self._owner_resolver = owner_resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def import_rows(
        self,
        rows: Sequence[Mapping[str, Any]],
        valid_indices: Sequence[int],
        *,
        backup_id: uuid.UUID,
        invoking_user_id: str | None = None,
    ) -> ImporterResult:
        """
        Insert the rows at ``valid_indices`` that are not already persisted.

        Row-level failures are collected in the result. Raises
        ImportPhaseError when the upfront reads or a batch commit fail; a
        failed commit carries the rows committed by earlier batches.
        """

        known_keys = self._load_known_keys()
        resolver, default_team_id = self._load_directory()

        result = ImporterResult()
        unmapped: dict[str, None] = {}
        pending_rows: list[int] = []

        for index in valid_indices:
            row = rows[index]
            row_number = index + 1

            record_date = parse_date(row.get("date"))
            if record_date is None:
                self._record_error(result, row_number, MSG_DATE_INVALID)
                continue
            try:
                amount = amount_or_zero(raw_amount_for(row, self.record_set))
            except InvalidAmountError:
                self._record_error(result, row_number, MSG_AMOUNT_INVALID)
                continue

            key = composite_key(record_date, row.get("client_name"), row.get("procedure_name"), amount)
            if key in known_keys:
                self._record_duplicate(result, row_number, row)
                continue

            owner_name = row.get(self.owner_field)
            owner = resolver.resolve(_clean_text(owner_name))
            if owner is None and not is_blank(owner_name):
                unmapped.setdefault(str(owner_name).strip(), None)

            values = {
                "date": record_date,
                "patient_name": _clean_text(row.get("client_name")),
                "procedure_name": procedure_or_placeholder(row.get("procedure_name")),
                "department": _clean_text(row.get("department")),
                "amount": amount,
                "user_id": owner.user_id if owner is not None else invoking_user_id,
                "team_id": (owner.team_id if owner is not None else None) or default_team_id,
                "notes": _clean_text(row.get("notes")),
                "upload_id": backup_id,
                "registered_by_admin": True,
                "dedupe_key": key,
            }
            values.update(self._extra_values(row))

            try:
                self._records.insert_record(values)
            except IntegrityError as exc:
                if _is_dedupe_violation(exc):
                    # Another writer inserted the same key after our upfront read.
                    known_keys.add(key)
                    self._record_duplicate(result, row_number, row)
                else:
                    self._record_error(result, row_number, _error_message(exc))
                continue
            except SQLAlchemyError as exc:
                self._record_error(result, row_number, _error_message(exc))
                continue

            known_keys.add(key)
            result.imported += 1
            pending_rows.append(row_number)
            if len(pending_rows) >= self._settings.commit_batch_size:
                self._commit(result, pending_rows, unmapped)
                pending_rows = []

        if pending_rows:
            self._commit(result, pending_rows, unmapped)

        result.unmapped_names = list(unmapped)
        logger.info(
            "Import finished record_set=%s backup_id=%s imported=%d duplicates=%d errors=%d unmapped=%d",
            self.record_set,
            backup_id,
            result.imported,
            result.duplicates,
            len(result.errors),
            len(result.unmapped_names),
        )
        return result

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _extra_values(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return {}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_known_keys(self) -> set[str]:
        try:
            persisted = self._records.fetch_key_columns()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise ImportPhaseError(
                f"Failed to read existing {self.record_set} records: {_error_message(exc)}",
                phase="import",
            ) from exc

        keys: set[str] = set()
        for row in persisted:
            keys.add(composite_key(row.date, row.patient_name, row.procedure_name, float(row.amount or 0)))
            if row.dedupe_key:
                keys.add(row.dedupe_key)
        return keys

    def _load_directory(self) -> tuple[OwnerResolver, str | None]:
        try:
            default_team_id = self._settings.default_team_id or self._directory.first_team_id()
            if self._owner_resolver is not None:
                return self._owner_resolver, default_team_id
            users = users_from_profiles(self._directory.list_profiles())
            mappings = (
                self._directory.list_name_mappings()
                if self._settings.owner_resolution == "mapping"
                else {}
            )
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise ImportPhaseError(
                f"Failed to read user directory: {_error_message(exc)}",
                phase="import",
            ) from exc

        resolver = build_owner_resolver(
            self._settings.owner_resolution,
            users=users,
            name_mappings=mappings,
        )
        return resolver, default_team_id

    def _commit(
        self,
        result: ImporterResult,
        pending_rows: Sequence[int],
        unmapped: Mapping[str, None],
    ) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            # The rolled-back batch is reported per row; earlier batches stay counted.
            result.imported -= len(pending_rows)
            result.errors.extend(
                RowImportError(row=row_number, message=MSG_BATCH_ROLLED_BACK) for row_number in pending_rows
            )
            result.unmapped_names = list(unmapped)
            raise ImportPhaseError(
                f"Failed to commit {self.record_set} records: {_error_message(exc)}",
                phase="import",
                record_set=self.record_set,
                partial_result=result,
            ) from exc

    def _record_duplicate(self, result: ImporterResult, row_number: int, row: Mapping[str, Any]) -> None:
        client = _clean_text(row.get("client_name")) or ""
        procedure = procedure_or_placeholder(row.get("procedure_name"))
        result.duplicates += 1
        result.duplicates_removed.append(f"Linha {row_number}: {client} - {procedure}")

    def _record_error(self, result: ImporterResult, row_number: int, message: str) -> None:
        result.errors.append(RowImportError(row=row_number, message=message))
        if self._settings.log_validation_errors:
            logger.warning(
                "Row import failed record_set=%s row=%d message=%s",
                self.record_set,
                row_number,
                message,
            )


class SalesImporter(RecordImporter):
    record_set = RecordSetType.VENDAS
    owner_field = "seller_name"


class ExecutedImporter(RecordImporter):
    record_set = RecordSetType.EXECUTADO
    owner_field = "professional_name"

    def _extra_values(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return {
            "patient_phone": _clean_text(row.get("phone")),
            "patient_email": _clean_text(row.get("email")),
            "origin": _clean_text(row.get("origin")),
            "referral_name": _clean_text(row.get("referred_by")),
            "executor_name": _clean_text(row.get("professional_name")),
        }


def importer_for(record_set: str, session: Session, **kwargs: Any) -> RecordImporter:
    if record_set == RecordSetType.VENDAS:
        return SalesImporter(session, **kwargs)
    if record_set == RecordSetType.EXECUTADO:
        return ExecutedImporter(session, **kwargs)
    raise ValueError(f"Unknown record set: {record_set!r}")
