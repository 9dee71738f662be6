"""
app/services/errors.py

Phase-level failures of the historical import pipeline. Row-level problems
are collected into results and never raised.
"""

from __future__ import annotations

from typing import Any


class HistoricalImportError(Exception):
    """
    Base exception for historical import failures.

    The orchestrator fills ``results`` and ``rfv`` with whatever the run had
    already committed before the failure.
    """

    phase: str = "import"

    def __init__(self, message: str, *, phase: str | None = None) -> None:
        super().__init__(message)
        if phase is not None:
            self.phase = phase
        self.results: dict[str, Any] = {}
        self.rfv: Any = None


class BackupError(HistoricalImportError):
    """Raised when the pre-import snapshot cannot be read or written."""

    phase = "backup"


class ImportPhaseError(HistoricalImportError):
    """
    Raised when an infrastructure failure aborts a mutating phase.

    ``partial_result`` carries the rows of ``record_set`` committed before
    the failure, when there were any.
    """

    def __init__(
        self,
        message: str,
        *,
        phase: str | None = None,
        record_set: str | None = None,
        partial_result: Any = None,
    ) -> None:
        super().__init__(message, phase=phase)
        self.record_set = record_set
        self.partial_result = partial_result


class CircuitBreakerTripped(HistoricalImportError):
    """Raised when too many rows fail validation to proceed with an import."""

    phase = "validate"

    def __init__(self, message: str, *, validation: dict[str, Any]) -> None:
        super().__init__(message)
        self.validation = validation
