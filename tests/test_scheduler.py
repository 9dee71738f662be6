"""
tests/test_scheduler.py

Scheduler wiring and the periodic job bodies, run against the SQLite
fixture database.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date

import pytest
from sqlalchemy import select

from app.config import get_scheduler_settings
from app.scheduler import jobs
from app.services.historical_import_service import get_historical_import_service
from db.models.commercial_record import ExecutedRecord
from db.models.import_backup import ImportBackup
from rfv.repository import RFVCustomer


@pytest.fixture()
def job_sessions(monkeypatch, session_factory):
    @contextmanager
    def scope():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(jobs, "session_scope", scope)
    return session_factory


def test_build_scheduler_registers_jobs(monkeypatch) -> None:
    monkeypatch.setenv("SCHEDULER_DAILY_BACKUP_HOUR", "4")
    get_scheduler_settings.cache_clear()
    try:
        scheduler = jobs.build_scheduler()
    finally:
        get_scheduler_settings.cache_clear()

    job_ids = {job.id for job in scheduler.get_jobs()}
    assert job_ids == {"daily_backup", "rfv_rebuild"}
    assert not scheduler.running


def test_daily_backup_runs_once_per_day(job_sessions) -> None:
    jobs.run_daily_backup()
    jobs.run_daily_backup()

    session = job_sessions()
    try:
        backups = session.scalars(select(ImportBackup)).all()
    finally:
        session.close()
    assert len(backups) == 1
    assert backups[0].backup_type == "automatic_daily"


def test_rfv_rebuild(job_sessions) -> None:
    get_historical_import_service.cache_clear()

    session = job_sessions()
    try:
        session.add(
            ExecutedRecord(
                date=date(2025, 1, 10),
                patient_name="Ana Souza",
                amount=300,
                registered_by_admin=True,
            )
        )
        session.commit()
    finally:
        session.close()

    try:
        jobs.run_rfv_rebuild()
    finally:
        get_historical_import_service.cache_clear()

    session = job_sessions()
    try:
        customers = session.scalars(select(RFVCustomer)).all()
    finally:
        session.close()
    assert [c.customer_name for c in customers] == ["ana souza"]
