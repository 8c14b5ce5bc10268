"""
Database migration utilities for ensuring schema consistency.
Adds columns introduced after the first release of the price_calculations table.
"""
from typing import Set
from sqlmodel import Session
from sqlalchemy import text, Engine
import logging

logger = logging.getLogger(__name__)

TABLE_NAME = "price_calculations"

REQUIRED_COLUMNS = {
    "tax_rate": "NUMERIC DEFAULT 0",
    "other_costs": "NUMERIC DEFAULT 0",
    "wholesale_price": "NUMERIC DEFAULT 0",
}


def _existing_columns(session: Session) -> Set[str]:
    """Get set of existing column names from the price_calculations table."""
    rows = session.exec(text(f"PRAGMA table_info('{TABLE_NAME}')")).all()
    return {row[1] for row in rows}  # row[1] = name column


def ensure_schema(engine: Engine) -> None:
    """
    Ensure late columns exist in the price_calculations table.
    Adds missing columns if they don't exist (idempotent).
    """
    if engine.dialect.name != "sqlite":
        logger.debug(f"Skipping schema check for dialect {engine.dialect.name}")
        return

    try:
        with Session(engine) as session:
            cols = _existing_columns(session)
            if not cols:
                logger.debug(f"Table {TABLE_NAME} does not exist yet; nothing to migrate")
                return

            added = []
            for name, sqltype in REQUIRED_COLUMNS.items():
                if name not in cols:
                    try:
                        session.exec(text(f"ALTER TABLE {TABLE_NAME} ADD COLUMN {name} {sqltype}"))
                        added.append(name)
                        logger.info(f"Added missing column: {name} ({sqltype})")
                    except Exception as e:
                        logger.error(f"Failed to add column {name}: {e}")
                        session.rollback()
                        raise

            if added:
                session.commit()
                logger.info(f"Schema migration completed. Added columns: {', '.join(added)}")
            else:
                logger.debug("Schema already up to date. No columns added.")

    except Exception as e:
        logger.error(f"Schema migration failed: {e}", exc_info=True)
        raise
