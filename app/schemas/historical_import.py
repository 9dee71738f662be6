"""
app/schemas/historical_import.py

Request and response schemas for the historical import endpoints.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.domain.historical_import import ImporterResult, RFVOutcome, ValidationResult

CellValue = str | int | float | None


class ImportRow(BaseModel):
    """
    One spreadsheet row. Dates and values may arrive as strings or numbers.
    """

    model_config = ConfigDict(extra="ignore")

    date: CellValue = None
    client_name: CellValue = None
    procedure_name: CellValue = None
    department: CellValue = None
    value_sold: CellValue = None
    value_received: CellValue = None
    seller_name: CellValue = None
    professional_name: CellValue = None
    phone: CellValue = None
    email: CellValue = None
    origin: CellValue = None
    referred_by: CellValue = None
    status: CellValue = None
    notes: CellValue = None


class HistoricalImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["backup", "validate", "import"]
    file_type: Literal["vendas", "executado", "both"] = Field(..., alias="fileType")
    data: list[ImportRow] = Field(default_factory=list)
    executado_data: list[ImportRow] = Field(default_factory=list, alias="executadoData")
    clear_old_data: bool = Field(default=False, alias="clearOldData")
    period_start: dt.date | None = Field(default=None, alias="periodStart")
    period_end: dt.date | None = Field(default=None, alias="periodEnd")
    file_name: str | None = Field(default=None, alias="fileName", max_length=255)

    @model_validator(mode="after")
    def _check_period(self) -> HistoricalImportRequest:
        if self.clear_old_data and (self.period_start is None or self.period_end is None):
            raise ValueError("clearOldData requires periodStart and periodEnd.")
        if self.period_start and self.period_end and self.period_start > self.period_end:
            raise ValueError("periodStart must not be after periodEnd.")
        return self

    def rows(self) -> list[dict[str, Any]]:
        return [row.model_dump() for row in self.data]

    def executado_rows(self) -> list[dict[str, Any]]:
        return [row.model_dump() for row in self.executado_data]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationErrorItem(BaseModel):
    row: int = Field(..., ge=1)
    field: str
    message: str


class ValidationWarningItem(BaseModel):
    row: int = Field(..., ge=1)
    message: str


class DuplicateItem(BaseModel):
    row: int = Field(..., ge=1)
    key: str


class ValidationSummaryResponse(BaseModel):
    valid: int = Field(..., ge=0)
    invalid: int = Field(..., ge=0)
    duplicates: int = Field(..., ge=0)


class ValidationResultResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_rows: int = Field(..., ge=0, alias="totalRows")
    valid_rows: list[int] = Field(default_factory=list, alias="validRows")
    errors: list[ValidationErrorItem] = Field(default_factory=list)
    warnings: list[ValidationWarningItem] = Field(default_factory=list)
    duplicates: list[DuplicateItem] = Field(default_factory=list)
    summary: ValidationSummaryResponse

    @classmethod
    def from_result(cls, result: ValidationResult) -> ValidationResultResponse:
        summary = result.summary
        return cls(
            total_rows=result.total_rows,
            valid_rows=list(result.valid_rows),
            errors=[ValidationErrorItem(row=e.row, field=e.field, message=e.message) for e in result.errors],
            warnings=[ValidationWarningItem(row=w.row, message=w.message) for w in result.warnings],
            duplicates=[DuplicateItem(row=d.row, key=d.key) for d in result.duplicates],
            summary=ValidationSummaryResponse(
                valid=summary.valid,
                invalid=summary.invalid,
                duplicates=summary.duplicates,
            ),
        )


class BothValidationResponse(BaseModel):
    vendas: ValidationResultResponse
    executado: ValidationResultResponse


# ---------------------------------------------------------------------------
# Backup and import
# ---------------------------------------------------------------------------


class BackupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    backup_id: UUID = Field(..., alias="backupId")
    revenue_count: int = Field(..., ge=0, alias="revenueCount")
    executed_count: int = Field(..., ge=0, alias="executedCount")


class RowErrorItem(BaseModel):
    row: int = Field(..., ge=1)
    message: str


class ImportSetResponse(BaseModel):
    """
    Counts are complete; message lists are capped.
    """

    model_config = ConfigDict(populate_by_name=True)

    imported: int = Field(..., ge=0)
    duplicates: int = Field(..., ge=0)
    duplicates_removed: list[str] = Field(default_factory=list, alias="duplicatesRemoved")
    errors: list[RowErrorItem] = Field(default_factory=list)
    error_count: int = Field(default=0, ge=0, alias="errorCount")
    unmapped_names: list[str] = Field(default_factory=list, alias="unmappedNames")

    @classmethod
    def from_result(cls, result: ImporterResult, *, max_messages: int) -> ImportSetResponse:
        return cls(
            imported=result.imported,
            duplicates=result.duplicates,
            duplicates_removed=result.duplicates_removed[:max_messages],
            errors=[RowErrorItem(row=e.row, message=e.message) for e in result.errors[:max_messages]],
            error_count=len(result.errors),
            unmapped_names=list(result.unmapped_names),
        )


class RFVResponse(BaseModel):
    success: bool
    updated: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: RFVOutcome) -> RFVResponse:
        return cls(
            success=outcome.success,
            updated=outcome.updated,
            total=outcome.total,
            error=outcome.error,
        )


class ImportResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    backup_id: UUID = Field(..., alias="backupId")
    vendas: ImportSetResponse | None = None
    executado: ImportSetResponse | None = None
    rfv: RFVResponse
    duration_seconds: float = Field(..., ge=0)
    log_id: UUID | None = Field(default=None, alias="logId")


class FailureResponse(BaseModel):
    """
    Set counts are present when rows were committed before the failure.
    """

    success: bool = False
    error: str
    phase: str | None = None
    validation: ValidationResultResponse | BothValidationResponse | None = None
    vendas: ImportSetResponse | None = None
    executado: ImportSetResponse | None = None
    rfv: RFVResponse | None = None


# ---------------------------------------------------------------------------
# Status lookups
# ---------------------------------------------------------------------------


class ImportLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    backup_id: UUID | None = None
    file_type: str
    file_name: str | None = None
    period_start: dt.date | None = None
    period_end: dt.date | None = None
    total_rows: int
    imported_rows: int
    duplicate_rows: int
    error_rows: int
    errors: list[dict[str, Any]] = Field(default_factory=list)
    duplicates_removed: list[str] = Field(default_factory=list)
    validation_warnings: list[dict[str, Any]] = Field(default_factory=list)
    status: str
    failed_phase: str | None = None
    error_message: str | None = None
    duration_seconds: float
    rfv_recalculated: bool
    created_by: str | None = None
    created_at: dt.datetime
    completed_at: dt.datetime | None = None


class ImportLogListResponse(BaseModel):
    logs: list[ImportLogResponse] = Field(default_factory=list)


class BackupMetadataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    backup_name: str
    backup_type: str
    revenue_records_count: int
    executed_records_count: int
    tables_backed_up: list[str] = Field(default_factory=list)
    status: str
    created_by: str | None = None
    created_at: dt.datetime


class BackupListResponse(BaseModel):
    backups: list[BackupMetadataResponse] = Field(default_factory=list)
