"""
app/schemas package marker.
"""

from app.schemas.historical_import import (
    BackupListResponse,
    BackupResponse,
    FailureResponse,
    HistoricalImportRequest,
    ImportLogListResponse,
    ImportLogResponse,
    ImportResponse,
    ImportRow,
    ValidationResultResponse,
)

__all__ = [
    "BackupListResponse",
    "BackupResponse",
    "FailureResponse",
    "HistoricalImportRequest",
    "ImportLogListResponse",
    "ImportLogResponse",
    "ImportResponse",
    "ImportRow",
    "ValidationResultResponse",
]
