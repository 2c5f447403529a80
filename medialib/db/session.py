# File: medialib/db/session.py
"""
Database session management for the media library.

The engine is owned by an explicitly constructed ``Database`` object. The
application creates one in its lifespan, health-checks it on startup and
disposes it on shutdown; tests build their own against in-memory SQLite.

Usage:
    from medialib.api.deps import get_db

    # In FastAPI dependency
    def some_endpoint(db: Session = Depends(get_db)):
        # Use db for database operations
        ...
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from medialib.core.config import settings
from medialib.core.exceptions import DatabaseException
from medialib.db.models.base import Base

# Configure module logger
logger = logging.getLogger(__name__)

CONNECTION_POOL_PRE_PING = True


def _configure_sqlite(engine: Engine) -> None:
    """
    Enable foreign keys and make SAVEPOINTs work with pysqlite.

    pysqlite opens transactions lazily on its own, which breaks
    ``Session.begin_nested``; the driver is switched to autocommit and
    SQLAlchemy emits BEGIN itself.
    """

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    Args:
        database_url: SQLAlchemy URL
        echo: Log every statement

    Returns:
        Configured engine
    """
    if database_url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise each checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
        _configure_sqlite(engine)
        return engine

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=CONNECTION_POOL_PRE_PING,
        echo=echo,
    )


class Database:
    """
    Owner of the engine and the session factory.

    Lifecycle: construct, ``connect()`` (health check), hand out sessions,
    ``dispose()`` on shutdown.
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        self.url = database_url or settings.DATABASE_URL
        self.engine = build_engine(self.url, echo=echo)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

    def health_check(self) -> bool:
        """
        Verify that we can connect to the database.

        Returns:
            True if connection succeeds, False otherwise
        """
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1")).scalar()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection verification failed: {e}")
            return False

    def connect(self) -> None:
        """Health-check the engine; raise DatabaseException when unreachable."""
        if not self.health_check():
            raise DatabaseException(f"Could not connect to database at {self.url}")
        logger.info(f"Database connection verified for {self.engine.url!r}")

    def create_all(self, reset: bool = False) -> None:
        """Create every table known to the models, dropping them first on reset."""
        # Importing the package registers every model on Base.metadata
        import medialib.db.models  # noqa: F401

        if reset:
            logger.info("Dropping all tables for reset...")
            Base.metadata.drop_all(bind=self.engine)
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database schema ready with {len(Base.metadata.tables)} tables")

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")

    def session(self) -> Session:
        return self.SessionLocal()

    def get_db(self) -> Generator[Session, None, None]:
        """
        Get a database session with proper resource management.

        Returns:
            SQLAlchemy Session for database operations
        """
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def transaction(self, session: Optional[Session] = None):
        """
        Context manager for database transactions.

        Args:
            session: Optional session to use (if None, creates a new one)

        Yields:
            Database session for use within the transaction
        """
        close_session = False

        if session is None:
            session = self.SessionLocal()
            close_session = True

        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            if close_session:
                session.close()
