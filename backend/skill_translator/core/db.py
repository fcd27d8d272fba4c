"""
Database engine and session management for the translation cache.

Uses synchronous SQLAlchemy over SQLite with the session_scope pattern for
transaction management. WAL journaling lets readers proceed while a writer
commits.
"""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from skill_translator.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for ORM models."""


# =============================================================================
# Database Engine Configuration
# =============================================================================

# Applied to every new SQLite connection.
SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA cache_size=-8000",
    "PRAGMA busy_timeout=5000",
    "PRAGMA wal_autocheckpoint=100",
)


def _apply_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def create_cache_engine(db_path: str, echo: bool = False) -> sa.Engine:
    """
    Create the SQLite engine backing the cache store.

    Args:
        db_path: Filesystem path of the database file (":memory:" is not supported,
            the cache must survive restarts)
        echo: Log emitted SQL

    Returns:
        sa.Engine: Configured engine with tables created
    """
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    engine = sa.create_engine(
        f"sqlite:///{path}",
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 5},
        pool_pre_ping=True,
    )
    sa.event.listen(engine, "connect", _apply_sqlite_pragmas)

    # Import models so their tables are registered on Base.metadata
    from skill_translator.models import translation_cache  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Cache database ready at {path}")
    return engine


def create_session_factory(engine: sa.Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the given engine."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


# =============================================================================
# Session Management
# =============================================================================


@contextmanager
def session_scope(factory: Callable[[], Session]) -> Generator[Session, None, None]:
    """
    Provide a transactional scope for database operations.

    This context manager handles session lifecycle:
    - Creates a new session
    - Commits on successful completion
    - Rolls back on exception
    - Closes the session in all cases

    Yields:
        Session: SQLAlchemy database session
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database transaction failed, rolling back: {e}")
        raise
    finally:
        session.close()


def check_db_health(engine: sa.Engine) -> bool:
    """
    Check if the database is accessible and healthy.

    Returns:
        bool: True if database is healthy, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(sa.text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def close_db(engine: sa.Engine) -> None:
    """
    Close all database connections.

    This function should be called at application shutdown.
    """
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA wal_checkpoint(TRUNCATE)")
        engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}", exc_info=True)
