"""
app/domain package marker.
"""

from app.domain.historical_import import (
    BackupResult,
    DuplicateEntry,
    HistoricalImportOutcome,
    ImporterResult,
    RFVOutcome,
    RowImportError,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
    ValidationWarning,
)

__all__ = [
    "BackupResult",
    "DuplicateEntry",
    "HistoricalImportOutcome",
    "ImporterResult",
    "RFVOutcome",
    "RowImportError",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
    "ValidationWarning",
]
