"""
app/domain/historical_import.py

Domain models shared by the historical import validator, importers and
orchestrator.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ValidationIssue:
    """
    One row-level validation error. ``row`` is 1-based.
    """

    row: int
    field: str
    message: str


@dataclass(frozen=True)
class ValidationWarning:
    row: int
    message: str


@dataclass(frozen=True)
class DuplicateEntry:
    row: int
    key: str


@dataclass(frozen=True)
class ValidationSummary:
    valid: int
    invalid: int
    duplicates: int


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one batch of rows.

    ``valid_rows`` holds 0-based indices into the submitted batch, every
    other row reference is 1-based. Rows repeated inside the batch are
    listed in ``duplicates`` and stay valid.
    """

    total_rows: int
    valid_rows: list[int] = field(default_factory=list)
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    duplicates: list[DuplicateEntry] = field(default_factory=list)

    @property
    def invalid_count(self) -> int:
        return self.total_rows - len(self.valid_rows)

    @property
    def summary(self) -> ValidationSummary:
        return ValidationSummary(
            valid=len(self.valid_rows),
            invalid=self.invalid_count,
            duplicates=len(self.duplicates),
        )


@dataclass(frozen=True)
class BackupResult:
    backup_id: uuid.UUID
    revenue_count: int
    executed_count: int


@dataclass(frozen=True)
class RowImportError:
    row: int
    message: str


@dataclass
class ImporterResult:
    """
    Counters and messages produced by one importer run.
    """

    imported: int = 0
    duplicates: int = 0
    duplicates_removed: list[str] = field(default_factory=list)
    errors: list[RowImportError] = field(default_factory=list)
    unmapped_names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RFVOutcome:
    success: bool
    updated: int = 0
    total: int = 0
    error: str | None = None


@dataclass(frozen=True)
class HistoricalImportOutcome:
    """
    End-of-run summary of a successful ``import`` action.
    """

    backup_id: uuid.UUID
    vendas: ImporterResult | None
    executado: ImporterResult | None
    rfv: RFVOutcome
    duration_seconds: float
    log_id: uuid.UUID | None = None
