"""
Database connection management for CivicReport
PostgreSQL with the PostGIS extension
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from civicreport.core.config import settings
from .models import Base

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """
    Engine and session factory shared by the API and the moderation worker.

    Sessions are short lived: one per HTTP request, one per worker cycle.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        pool_timeout: int = 30
    ):
        """
        Initialize database connection.

        Args:
            database_url: PostgreSQL connection URL (defaults to settings)
            pool_size: Connection pool size
            max_overflow: Max connections beyond pool_size
            pool_timeout: Timeout for getting connection from pool
        """
        self.database_url = database_url or settings.database_url

        self.engine = create_engine(
            self.database_url,
            poolclass=QueuePool,
            pool_size=pool_size or settings.db_pool_size,
            max_overflow=max_overflow or settings.db_max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
            echo=settings.db_echo,
        )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

        logger.info(f"Database connection initialized: {mask_url(self.database_url)}")

    def create_tables(self) -> None:
        """Create all database tables."""
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("All database tables dropped")

    def check_connection(self) -> bool:
        """Return True when a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    def enable_postgis(self) -> None:
        """Enable the PostGIS extension if not already enabled."""
        with self.engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))
        logger.info("PostGIS extension enabled")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Transactional scope: commit on success, roll back on any error.

        Yields:
            SQLAlchemy session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        self.engine.dispose()
        logger.info("Database connection closed")


def mask_url(url: str) -> str:
    """Hide the password of a connection URL for logging."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable database url>"


# Global database instance
_db: Optional[DatabaseConnection] = None


def get_db() -> DatabaseConnection:
    """Get (lazily creating) the global database connection."""
    global _db
    if _db is None:
        _db = DatabaseConnection()
    return _db


def get_session() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get a request-scoped database session.

    Yields:
        SQLAlchemy session
    """
    with get_db().session_scope() as session:
        yield session
