"""
tests/conftest.py

Shared fixtures. Database-backed tests run against a throwaway SQLite file
so savepoints, unique indexes and commits behave like they do in production.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

import db.models  # noqa: F401 (registers ORM models on Base.metadata)
import rfv.repository  # noqa: F401
from app.config import ImportSettings
from db.base import Base
from db.models.user_directory import Team, UserNameMapping, UserProfile


@pytest.fixture()
def engine(tmp_path) -> Iterator[Engine]:
    db_path = tmp_path / "historical_import.db"
    test_engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )

    # pysqlite only emits BEGIN lazily; take over so SAVEPOINT works.
    @event.listens_for(test_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(test_engine)
    try:
        yield test_engine
    finally:
        test_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture()
def session(session_factory: sessionmaker) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def settings() -> ImportSettings:
    """Defaults with the circuit breaker relaxed enough for mixed batches."""
    return ImportSettings(
        default_period_start=date(2023, 1, 1),
        default_period_end=date(2025, 12, 31),
        max_error_rate=0.5,
        commit_batch_size=2,
    )


@pytest.fixture()
def directory(session: Session) -> Session:
    """Seed two teams, three users and one external name mapping."""
    session.add_all(
        [
            Team(id="team-a", name="Equipe A"),
            Team(id="team-b", name="Equipe B"),
        ]
    )
    session.flush()
    session.add_all(
        [
            UserProfile(id="u-joao", full_name="João Silva", team_id="team-a"),
            UserProfile(id="u-maria", full_name="Maria Oliveira", team_id="team-b"),
            UserProfile(id="u-carla", full_name="Carla Mendes", team_id=None),
        ]
    )
    session.flush()
    session.add(UserNameMapping(external_name="Dra. Carla", user_id="u-carla"))
    session.commit()
    return session
