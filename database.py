"""
Database connection and session management for MediCare Reminder
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from config import settings


logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Persistence failure surfaced to callers as a recoverable error"""

    def __init__(self, message: str = "Could not save your changes. Please try again."):
        super().__init__(message)
        self.message = message


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Engine for `url`. SQLite gets a single shared connection with foreign
    keys enforced, so in-memory databases survive across sessions.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_size=10, max_overflow=20, pool_pre_ping=True)

    sqlite_engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=echo
    )

    @event.listens_for(sqlite_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for work outside a request (startup, reminder callbacks).
    Commits on normal exit and rolls back if the block raises.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def commit_or_raise(session: Session, action: str) -> None:
    """Commit the session, converting driver failures into StoreError"""
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Store error while trying to {action}: {e}")
        raise StoreError(f"Failed to {action}. Please try again.") from e


def init_db() -> None:
    """Create any missing tables"""
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at: {settings.DATABASE_URL}")


class DatabaseHealthCheck:
    """Database health check utilities"""

    @staticmethod
    def is_connected() -> bool:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "StoreError",
    "build_engine",
    "get_db",
    "get_db_context",
    "commit_or_raise",
    "init_db",
    "DatabaseHealthCheck"
]
