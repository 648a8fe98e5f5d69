"""
Database engine, session management, and base model.

This module is the foundation for all database operations.
Every model inherits from Base. Every request gets a session
from get_db().
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from branch_finance.config import get_settings

settings = get_settings()


def _connect_args(url: str, statement_timeout_ms: int) -> dict:
    # The statement timeout is the only bound on runaway queries.
    if url.startswith("postgresql"):
        return {"options": f"-c statement_timeout={statement_timeout_ms}"}
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# --- Engine ---
# pool_pre_ping=True tests connections before using them,
# which handles cases where the database restarted or a
# connection went stale.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(
        settings.DATABASE_URL, settings.STATEMENT_TIMEOUT_MS
    ),
)

# --- Session Factory ---
# autocommit=False means we explicitly control when changes
# are saved. Receipt allocation and the record insert must
# commit together or not at all.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The try/finally pattern ensures the session is always
    closed, preventing connection leaks.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
