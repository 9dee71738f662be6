"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports. The RFV profile model lives in
``rfv.repository`` and is registered by importing that module.
"""

from db.models.commercial_record import ExecutedRecord, RecordSetType, RevenueRecord
from db.models.import_backup import BackupStatus, ImportBackup
from db.models.import_log import ImportLog, ImportLogStatus
from db.models.user_directory import Team, UserNameMapping, UserProfile

__all__ = [
    "BackupStatus",
    "ExecutedRecord",
    "ImportBackup",
    "ImportLog",
    "ImportLogStatus",
    "RecordSetType",
    "RevenueRecord",
    "Team",
    "UserNameMapping",
    "UserProfile",
]
