"""Database migration runner.

Migrations are applied in order and tracked with SQLite's ``user_version``.
"""

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

MIGRATIONS = [
    # 1: durable key-value storage, values are JSON documents
    """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    """,
]


async def run_migrations(db_path: Path) -> None:
    """Bring the database at db_path up to the latest schema version."""
    db_path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(db_path) as db:
        async with db.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
            version = row[0] if row else 0

        for index, script in enumerate(MIGRATIONS[version:], start=version + 1):
            await db.executescript(script)
            await db.execute(f"PRAGMA user_version = {index}")
            logger.info(f"Applied migration {index}")

        await db.commit()

    logger.info(f"Database ready at {db_path} (schema v{len(MIGRATIONS)})")
