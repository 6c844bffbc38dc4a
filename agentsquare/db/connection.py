"""Database connection management for AgentSquare.

Provides synchronous database access using SQLAlchemy. SQLite is the
default store; any SQLAlchemy URL can be supplied via DATABASE_URL.

Usage:
    # FastAPI Depends
    from agentsquare.db.connection import get_db, init_db

    init_db()  # Create tables
    db = next(get_db())

    # Outside a request
    with get_db_context() as db:
        ...
"""

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from agentsquare.db.models import Base

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Get database URL from environment or use the default SQLite file.

    Precedence:
    1. DATABASE_URL (canonical)
    2. AGENTSQUARE_DB_PATH (converted to sqlite URL)
    3. agentsquare.db in the data directory
    """
    database_url = os.environ.get("DATABASE_URL", "").strip()
    if database_url:
        return database_url

    db_path = os.environ.get("AGENTSQUARE_DB_PATH", "").strip()
    if db_path:
        if db_path.startswith("sqlite:"):
            return db_path
        return f"sqlite:///{db_path}"

    from agentsquare.utils.paths import ensure_data_dir, get_default_db_path
    ensure_data_dir()
    return f"sqlite:///{get_default_db_path()}"


DATABASE_URL = get_database_url()

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False}
    if DATABASE_URL.startswith("sqlite")
    else {},
    echo=os.environ.get("SQL_ECHO", "").lower() == "true",
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    """Configure SQLite pragmas for correctness and concurrency.

    Enables:
    - foreign_keys=ON: agent deletion cascades to its messages.
    - journal_mode=WAL: concurrent readers alongside the single writer
      that persists chat turns while history/feed reads continue.
    - synchronous=NORMAL: durable after WAL fsync.
    """
    if DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.close()


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for a single request.

    Usage:
        @router.get("/agents")
        def list_agents(db: Session = Depends(get_db)):
            ...

    Yields:
        Session: SQLAlchemy session that will be closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """Return the session factory used by background orchestration tasks.

    The message stream outlives the request-scoped session, so the
    orchestrator opens its own sessions. Tests override this dependency.
    """
    return SessionLocal


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            agent = db.query(Agent).first()
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


def _ensure_columns_exist(conn: Any) -> None:
    """Add columns introduced after the first schema to legacy tables.

    Idempotent. Rows migrated from the original message shape keep a NULL
    sender_kind and are classified by the legacy heuristic at read time.

    Args:
        conn: SQLAlchemy Connection.

    Raises:
        OperationalError: For non-duplicate-column DDL failures.
    """
    if conn.dialect.name != "sqlite":
        return

    migrations: list[tuple[str, str, str]] = [
        ("messages", "sender_kind", "ALTER TABLE messages ADD COLUMN sender_kind VARCHAR(10)"),
        (
            "settings",
            "version",
            "ALTER TABLE settings ADD COLUMN version INTEGER NOT NULL DEFAULT 1",
        ),
    ]

    for table, col_name, ddl in migrations:
        result = conn.execute(text(f"PRAGMA table_info({table})"))
        existing = {row[1] for row in result.fetchall()}
        if not existing or col_name in existing:
            continue
        try:
            conn.execute(text(ddl))
            logger.info("Added column %s.%s", table, col_name)
        except OperationalError as e:
            if "duplicate column" in str(e).lower():
                logger.debug("Column %s already exists (concurrent add).", col_name)
            else:
                logger.error("Failed to add column %s: %s", col_name, e)
                raise


def init_db() -> None:
    """Create all database tables.

    Safe to call multiple times - will not recreate existing tables.
    Runs column migration for new columns on existing tables.
    """
    Base.metadata.create_all(bind=engine)
    with engine.begin() as conn:
        _ensure_columns_exist(conn)


def close_db() -> None:
    """Dispose of the engine's connection pool."""
    engine.dispose()
