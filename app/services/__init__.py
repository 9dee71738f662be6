"""
app/services package marker.
"""

from app.services.backup_service import BackupService
from app.services.errors import (
    BackupError,
    CircuitBreakerTripped,
    HistoricalImportError,
    ImportPhaseError,
)
from app.services.historical_import_service import (
    HistoricalImportService,
    get_historical_import_service,
)
from app.services.record_importer import ExecutedImporter, SalesImporter

__all__ = [
    "BackupError",
    "BackupService",
    "CircuitBreakerTripped",
    "ExecutedImporter",
    "HistoricalImportError",
    "HistoricalImportService",
    "ImportPhaseError",
    "SalesImporter",
    "get_historical_import_service",
]
