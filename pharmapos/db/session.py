"""SQLAlchemy engine and session helpers.

The engine is built once from ``settings.database_url``; by default that is a
SQLite file under ``DATA_DIR``. Tables are created on application startup
from ``Base.metadata``. Sessions do not autoflush, so repository code decides
exactly when statements reach the database.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..core.config import settings

DB_URL = settings.database_url
# SQLite connections are shared across FastAPI worker threads.
CONNECT_ARGS = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

engine = create_engine(DB_URL, connect_args=CONNECT_ARGS)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
