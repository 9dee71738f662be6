"""
app/config.py

Environment-backed settings for the historical import pipeline and its
scheduler. Unparseable values fall back to the defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Callable, TypeVar

from db.config import load_env_files

OWNER_RESOLUTION_STRATEGIES = frozenset({"exact", "normalized", "mapping"})

_T = TypeVar("_T")


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _raw_env(name: str) -> str | None:
    """
    Stripped environment value, or None when unset or blank.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _parsed_env(name: str, parse: Callable[[str], _T], default: _T) -> _T:
    raw_value = _raw_env(name)
    if raw_value is None:
        return default
    try:
        return parse(raw_value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = _raw_env(name)
    if raw_value is None:
        return default
    return raw_value.lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    return _parsed_env(name, int, default)


def _get_float_env(name: str, default: float) -> float:
    return _parsed_env(name, float, default)


def _get_date_env(name: str, default: date) -> date:
    """ISO dates only (YYYY-MM-DD)."""
    return _parsed_env(name, date.fromisoformat, default)


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for the historical import pipeline.
    """

    default_period_start: date = date(2023, 1, 1)
    default_period_end: date = date(2025, 12, 31)
    max_error_rate: float = 0.10
    max_reported_messages: int = 200
    commit_batch_size: int = 500
    owner_resolution: str = "mapping"
    default_team_id: str | None = None
    log_validation_errors: bool = True

    @property
    def default_period(self) -> tuple[date, date]:
        return self.default_period_start, self.default_period_end


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Periodic job settings.
    """

    enabled: bool = True
    rfv_rebuild_hour: int = 2
    daily_backup_hour: int = 1


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached historical import settings from environment variables.
    """

    owner_resolution = (_raw_env("IMPORT_OWNER_RESOLUTION") or "mapping").lower()
    if owner_resolution not in OWNER_RESOLUTION_STRATEGIES:
        owner_resolution = "mapping"

    return ImportSettings(
        default_period_start=_get_date_env("IMPORT_DEFAULT_PERIOD_START", date(2023, 1, 1)),
        default_period_end=_get_date_env("IMPORT_DEFAULT_PERIOD_END", date(2025, 12, 31)),
        max_error_rate=min(1.0, max(0.0, _get_float_env("IMPORT_MAX_ERROR_RATE", 0.10))),
        max_reported_messages=max(1, _get_int_env("IMPORT_MAX_REPORTED_MESSAGES", 200)),
        commit_batch_size=max(1, _get_int_env("IMPORT_COMMIT_BATCH_SIZE", 500)),
        owner_resolution=owner_resolution,
        default_team_id=_raw_env("IMPORT_DEFAULT_TEAM_ID"),
        log_validation_errors=_get_bool_env("IMPORT_LOG_VALIDATION_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        rfv_rebuild_hour=min(23, max(0, _get_int_env("SCHEDULER_RFV_REBUILD_HOUR", 2))),
        daily_backup_hour=min(23, max(0, _get_int_env("SCHEDULER_DAILY_BACKUP_HOUR", 1))),
    )
