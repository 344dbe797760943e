"""
Database connection via SQLAlchemy.

PostgreSQL (psycopg3) is the system of record; SQLite URLs are accepted
for development and tests.
"""

import threading
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base
from sqlalchemy.pool import StaticPool

from healthvault.config import config

# SQLAlchemy base for model declarations
Base = declarative_base()

# Engine and session factory (initialized lazily)
_engine = None
_session_factory = None

# One lock over users/providers/records/permissions/logs/counters
_state_lock = threading.RLock()


def normalize_url(db_url: str) -> str:
    """PostgreSQL URLs are served through the psycopg 3 driver."""
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_url


def build_engine(db_url: str, echo: bool = False):
    """Create an engine for db_url, choosing pool options per dialect."""
    if db_url.startswith("sqlite"):
        # In-memory databases must share a single connection
        return create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        normalize_url(db_url),
        echo=echo,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=300,  # Recycle connections every 5 minutes
        pool_reset_on_return="rollback",
    )


def get_engine():
    """Get or create the SQLAlchemy engine."""
    global _engine
    if _engine is None:
        _engine = build_engine(config.get_database_url(), echo=config.DEBUG)
    return _engine


def get_db_session() -> DbSession:
    """Get a scoped database session.

    Returns the thread-local session from the scoped session factory.
    The session is cleaned up at the end of each request via close_db_session().
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = scoped_session(
            sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
        )

    return _session_factory()


def init_db(engine=None):
    """Create all tables (for development/testing)."""
    # Import models so they register with Base.metadata
    from healthvault import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def reset_engine():
    """Drop the cached engine and session factory (tests, config reloads)."""
    global _engine, _session_factory
    if _session_factory is not None:
        _session_factory.remove()
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def close_db_session(exception=None):
    """Remove the current session (call at end of request)."""
    if _session_factory is not None:
        try:
            _session_factory.rollback()
        finally:
            _session_factory.remove()


@contextmanager
def transaction(session: DbSession):
    """Run a block as one all-or-nothing unit of work.

    The outermost block commits on success and rolls back on any exception;
    nested blocks join it. The process-wide state lock is held throughout.
    """
    with _state_lock:
        depth = session.info.get("tx_depth", 0)
        session.info["tx_depth"] = depth + 1
        try:
            yield session
            if depth == 0:
                session.commit()
        except Exception:
            if depth == 0:
                session.rollback()
            raise
        finally:
            session.info["tx_depth"] = depth
