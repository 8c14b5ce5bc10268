"""
Database utilities and engine initialization.
"""
import os
from sqlmodel import create_engine, SQLModel, Session
from typing import Generator

from models import Token, PriceCalculation  # noqa: F401 - registers tables on SQLModel.metadata
from settings import meli_settings

# Database URL (SQLite by default)
DATABASE_URL = meli_settings.database_url

# Create engine with proper settings for SQLite
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    echo=False  # Set to True for SQL debugging
)


def create_db_and_tables():
    """Create database and all tables"""
    # Ensure data directory exists for file-backed SQLite
    if DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
        db_dir = os.path.dirname(DATABASE_URL[len("sqlite:///"):])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session
