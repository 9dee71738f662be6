"""
Repository layer exports.
"""

from db.repositories.backup_repository import BackupRepository
from db.repositories.commercial_record_repository import CommercialRecordRepository
from db.repositories.import_log_repository import ImportLogRepository
from db.repositories.user_directory_repository import UserDirectoryRepository

__all__ = [
    "BackupRepository",
    "CommercialRecordRepository",
    "ImportLogRepository",
    "UserDirectoryRepository",
]
