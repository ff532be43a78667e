"""Choose the record store backend once, at application startup."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from teamshare.core.settings import Settings
from teamshare.db.session import build_engine
from teamshare.storage.base import RecordStore
from teamshare.storage.memory import MemoryRecordStore
from teamshare.storage.sql import SqlRecordStore

logger = logging.getLogger(__name__)


def create_record_store(settings: Settings) -> RecordStore:
    """Open the database if reachable, otherwise fall back to process memory.

    The result is not re-evaluated for the lifetime of the process.
    """
    if settings.memory_store:
        logger.info("Memory record store selected by configuration")
        return MemoryRecordStore()

    engine = None
    try:
        engine = build_engine(settings)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        store = SqlRecordStore(engine)
        store.create_schema()
    except (SQLAlchemyError, ImportError) as exc:
        # ImportError covers a database URL whose driver is not installed.
        if engine is not None:
            engine.dispose()
        logger.warning("Database unavailable, falling back to memory record store: %s", exc)
        return MemoryRecordStore()

    logger.info("SQL record store ready (%s)", engine.dialect.name)
    return store


def seed_default_assignments(store: RecordStore, assignments: Iterable[str]) -> None:
    """Best-effort seeding run once after startup; failures are logged, never retried."""
    try:
        created = store.seed_default_assignments(list(assignments))
    except Exception:
        logger.exception("Could not initialise default assignment settings")
        return
    if created:
        logger.info("Seeded %d default assignment settings", created)
