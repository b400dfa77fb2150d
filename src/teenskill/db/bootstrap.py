"""Idempotent schema bootstrap.

Creates any missing tables, then applies additive column migrations one
statement at a time. This is not a migration framework: columns are only ever
added, never altered or dropped, and every step is safe to run on every boot.
"""

from __future__ import annotations

import structlog
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine

from teenskill.db import models  # noqa: F401  (registers tables on Base.metadata)
from teenskill.db.base import Base

logger = structlog.get_logger()

# (table, column, column DDL). Columns that shipped after the first schema.
ADDITIVE_COLUMNS: list[tuple[str, str, str]] = [
    ("users", "xp", "INTEGER NOT NULL DEFAULT 0"),
    ("users", "task_quota", "INTEGER NOT NULL DEFAULT 5"),
    ("users", "payment_method", "VARCHAR(32)"),
    ("users", "payment_number", "VARCHAR(64)"),
    ("tasks", "deadline", "VARCHAR(32)"),
    ("tasks", "submission_url", "TEXT"),
    ("tasks", "submission_note", "TEXT"),
]

# SQLite says "duplicate column name", PostgreSQL says "already exists"
_DUPLICATE_COLUMN_MARKERS = ("duplicate column", "already exists")

_bootstrapped = False


def _is_duplicate_column(exc: DBAPIError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _DUPLICATE_COLUMN_MARKERS)


async def bootstrap_schema(engine: AsyncEngine) -> list[str]:
    """Create missing tables and add missing columns.

    Each ALTER runs in its own transaction so that a rejected statement does
    not abort the rest (PostgreSQL poisons the whole transaction otherwise).

    Returns:
        The "table.column" names that were actually added on this run.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    added: list[str] = []
    for table, column, ddl in ADDITIVE_COLUMNS:
        try:
            async with engine.begin() as conn:
                await conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
        except DBAPIError as exc:
            if not _is_duplicate_column(exc):
                raise
            logger.debug("schema_column_exists", table=table, column=column)
            continue
        added.append(f"{table}.{column}")
        logger.info("schema_column_added", table=table, column=column)

    return added


async def ensure_schema(engine: AsyncEngine) -> None:
    """Run the bootstrap once per process."""
    global _bootstrapped  # noqa: PLW0603
    if _bootstrapped:
        return
    await bootstrap_schema(engine)
    _bootstrapped = True


def schema_ready() -> bool:
    return _bootstrapped
