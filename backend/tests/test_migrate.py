"""
Schema Migration Tests
"""

from sqlalchemy import text
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from db import migrate


def make_engine():
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def column_names(engine):
    with Session(engine) as session:
        return {row[1] for row in session.exec(text("PRAGMA table_info('price_calculations')")).all()}


def test_adds_late_columns_to_old_table():
    engine = make_engine()
    with Session(engine) as session:
        session.exec(text(
            "CREATE TABLE price_calculations (id INTEGER PRIMARY KEY, listing_id VARCHAR NOT NULL, created_at INTEGER)"
        ))
        session.commit()

    migrate.ensure_schema(engine)

    assert {"tax_rate", "other_costs", "wholesale_price"} <= column_names(engine)


def test_idempotent_on_current_schema():
    engine = make_engine()
    SQLModel.metadata.create_all(engine)

    migrate.ensure_schema(engine)
    migrate.ensure_schema(engine)

    assert "wholesale_price" in column_names(engine)


def test_missing_table_is_ignored():
    engine = make_engine()

    migrate.ensure_schema(engine)

    assert column_names(engine) == set()
