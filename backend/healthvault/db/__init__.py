"""
Database access for the health vault.

- SQLAlchemy engine/session management
- transaction(): serialized all-or-nothing unit of work
"""

from .session import Base, init_db, get_db_session, get_engine, transaction

__all__ = [
    "Base",
    "init_db",
    "get_db_session",
    "get_engine",
    "transaction",
]
