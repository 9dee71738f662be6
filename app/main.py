"""
app/main.py

FastAPI entrypoint: startup validation, database and schema checks, the
maintenance scheduler and the historical import router.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _validate_env() -> None:
    """
    Fail fast on configuration that would only surface mid-import.

    Every problem is collected so one restart fixes them all.
    """

    from app.config import OWNER_RESOLUTION_STRATEGIES
    from db.config import load_env_files, resolve_database_url

    load_env_files()
    errors: list[str] = []

    try:
        resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))

    timeout_raw = os.getenv("DB_STATEMENT_TIMEOUT_MS", "").strip()
    if timeout_raw and not timeout_raw.isdigit():
        errors.append(f"DB_STATEMENT_TIMEOUT_MS='{timeout_raw}' is not a non-negative integer.")

    strategy = os.getenv("IMPORT_OWNER_RESOLUTION", "").strip().lower()
    if strategy and strategy not in OWNER_RESOLUTION_STRATEGIES:
        errors.append(
            f"IMPORT_OWNER_RESOLUTION='{strategy}' is not valid. "
            f"Allowed values: {sorted(OWNER_RESOLUTION_STRATEGIES)}."
        )

    for name in ("IMPORT_DEFAULT_PERIOD_START", "IMPORT_DEFAULT_PERIOD_END"):
        raw = os.getenv(name, "").strip()
        if not raw:
            continue
        try:
            date.fromisoformat(raw)
        except ValueError:
            errors.append(f"{name}='{raw}' must be an ISO date (YYYY-MM-DD).")

    if errors:
        raise RuntimeError(
            "Startup validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
        )


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _verify_database() -> None:
    """
    Check connectivity, then that every mapped table exists.

    Never migrates; a missing table aborts startup until
    ``alembic upgrade head`` has been run.
    """

    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    import db.models  # noqa: F401 (registers ORM models on Base.metadata)
    import rfv.repository  # noqa: F401
    from db.base import Base
    from db.session import get_engine

    engine = get_engine()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            present = set(sa_inspect(connection).get_table_names())
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc
    logger.info("Database connectivity confirmed")

    missing = sorted(set(Base.metadata.tables) - present)
    if missing:
        logger.critical(
            "Schema mismatch: tables absent from the database: %s. Run 'alembic upgrade head' and restart.",
            ", ".join(missing),
        )
        raise RuntimeError(f"Schema mismatch: missing tables {', '.join(missing)}.")
    logger.info("Database schema validated")


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _verify_database()

    from app.config import get_scheduler_settings

    application.state.scheduler = None
    if not get_scheduler_settings().enabled:
        logger.info("Scheduler disabled by SCHEDULER_ENABLED")
        yield
        return

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    application.state.scheduler = scheduler
    logger.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler shut down")


def create_app() -> FastAPI:
    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Historical Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import historical_import_router

    application.include_router(historical_import_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        scheduler = getattr(application.state, "scheduler", None)
        return {
            "status": "ok",
            "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
        }

    return application


app = create_app()
