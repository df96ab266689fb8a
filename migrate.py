"""
migrate.py — Bring an existing database up to the current schema.

SQLAlchemy's create_all() only creates NEW tables — it never alters existing
ones. Databases created by the first release have shared_quotes.owner_id
declared NOT NULL (login-only sharing), no access_count column and no
expires_at index. This script fixes that in place.

Usage:
  python migrate.py

Safe to run multiple times — every statement is idempotent.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from database import engine, init_db

logger = logging.getLogger(__name__)

# PostgreSQL syntax; on SQLite only init_db() runs
MIGRATIONS = [
    # ── users ───────────────────────────────────────────────────────────────
    "ALTER TABLE users ADD COLUMN IF NOT EXISTS nickname VARCHAR",
    "ALTER TABLE users ADD COLUMN IF NOT EXISTS updated_at TIMESTAMP WITH TIME ZONE DEFAULT now()",

    # ── shared_quotes: anonymous shares ────────────────────────────────────
    "ALTER TABLE shared_quotes ALTER COLUMN owner_id DROP NOT NULL",

    # ── shared_quotes: access counter ──────────────────────────────────────
    "ALTER TABLE shared_quotes ADD COLUMN IF NOT EXISTS access_count INTEGER NOT NULL DEFAULT 0",

    # ── shared_quotes: indexes ─────────────────────────────────────────────
    "CREATE UNIQUE INDEX IF NOT EXISTS ix_shared_quotes_token ON shared_quotes (token)",
    "CREATE INDEX IF NOT EXISTS ix_shared_quotes_expires_at ON shared_quotes (expires_at)",
    "CREATE INDEX IF NOT EXISTS ix_shared_quotes_owner_id ON shared_quotes (owner_id)",
]


def run_migrations(bind=None):
    bind = bind or engine
    logger.info("Creating missing tables")
    init_db(bind)

    if bind.dialect.name != "postgresql":
        logger.info(f"Skipping ALTER migrations on {bind.dialect.name}")
        return 0

    applied = 0
    with bind.connect() as conn:
        for i, sql in enumerate(MIGRATIONS, 1):
            clean = sql.strip().replace("\n", " ")[:80]
            try:
                conn.execute(text(sql))
                conn.commit()
                applied += 1
                logger.info(f"[{i:02d}] {clean}")
            except SQLAlchemyError as e:
                conn.rollback()
                # Non-fatal: the change may already be in place
                logger.warning(f"[{i:02d}] Skipped ({e.__class__.__name__}): {clean}")

    logger.info(f"Migration complete: {applied}/{len(MIGRATIONS)} statements applied")
    return applied


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    run_migrations()
