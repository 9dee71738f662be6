"""
app/validators/import_validator.py

Row-level validation for historical import batches.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Sequence

from app.domain.historical_import import (
    DuplicateEntry,
    ValidationIssue,
    ValidationResult,
    ValidationWarning,
)
from app.normalization.value_normalizer import (
    InvalidAmountError,
    composite_key,
    is_blank,
    parse_amount,
    parse_date,
)
from db.models.commercial_record import RecordSetType

DEFAULT_PERIOD_START = date(2023, 1, 1)
DEFAULT_PERIOD_END = date(2025, 12, 31)

MSG_DATE_REQUIRED = "Data é obrigatória"
MSG_DATE_INVALID = "Data inválida"
MSG_CLIENT_REQUIRED = "Nome do cliente é obrigatório"
MSG_AMOUNT_INVALID = "Valor inválido"


def raw_amount_for(row: Mapping[str, Any], file_type: str) -> Any:
    """
    Pick the amount column for the record set.

    Executed rows use ``value_received`` and fall back to ``value_sold``
    when it is blank or zero. Sales rows use ``value_sold``.
    """

    if file_type == RecordSetType.EXECUTADO:
        received = row.get("value_received")
        if not is_blank(received) and not _is_zero_amount(received):
            return received
    return row.get("value_sold")


def _is_zero_amount(raw_amount: Any) -> bool:
    try:
        return parse_amount(raw_amount) == 0
    except InvalidAmountError:
        return False


def amount_or_zero(raw_amount: Any) -> float:
    """
    Parse an amount, treating a blank value as zero.
    """

    if is_blank(raw_amount):
        return 0.0
    return parse_amount(raw_amount)


def validate_rows(
    rows: Sequence[Mapping[str, Any]],
    file_type: str,
    period_start: date | None = None,
    period_end: date | None = None,
    *,
    default_period: tuple[date, date] | None = None,
) -> ValidationResult:
    """
    Validate a batch of import rows without touching the database.

    A row is valid when its date parses, its client name is not blank and
    its amount is numeric and non-negative. Out-of-period dates only warn.
    Rows repeating an earlier row's composite key are reported as
    duplicates but stay valid; the importer skips them.
    """

    fallback_start, fallback_end = default_period or (DEFAULT_PERIOD_START, DEFAULT_PERIOD_END)
    min_date = period_start or fallback_start
    max_date = period_end or fallback_end

    valid_rows: list[int] = []
    errors: list[ValidationIssue] = []
    warnings: list[ValidationWarning] = []
    duplicates: list[DuplicateEntry] = []
    seen: dict[str, int] = {}

    for index, row in enumerate(rows):
        row_number = index + 1
        is_valid = True

        raw_date = row.get("date")
        parsed_date = None
        if is_blank(raw_date):
            errors.append(ValidationIssue(row=row_number, field="date", message=MSG_DATE_REQUIRED))
            is_valid = False
        else:
            parsed_date = parse_date(raw_date)
            if parsed_date is None:
                errors.append(ValidationIssue(row=row_number, field="date", message=MSG_DATE_INVALID))
                is_valid = False
            elif parsed_date < min_date or parsed_date > max_date:
                warnings.append(
                    ValidationWarning(row=row_number, message=f"Data fora do período ({raw_date})")
                )

        if is_blank(row.get("client_name")):
            errors.append(ValidationIssue(row=row_number, field="client_name", message=MSG_CLIENT_REQUIRED))
            is_valid = False

        amount: float | None
        try:
            amount = amount_or_zero(raw_amount_for(row, file_type))
        except InvalidAmountError:
            amount = None
        if amount is None or amount < 0:
            errors.append(ValidationIssue(row=row_number, field="value", message=MSG_AMOUNT_INVALID))
            is_valid = False

        key = composite_key(
            parsed_date if parsed_date is not None else raw_date,
            row.get("client_name"),
            row.get("procedure_name"),
            amount if amount is not None else raw_amount_for(row, file_type),
        )
        if key in seen:
            duplicates.append(DuplicateEntry(row=row_number, key=key))
        else:
            seen[key] = row_number

        if is_valid:
            valid_rows.append(index)

    return ValidationResult(
        total_rows=len(rows),
        valid_rows=valid_rows,
        errors=errors,
        warnings=warnings,
        duplicates=duplicates,
    )
