"""
SQLAlchemy models for the health vault.

These are the authoritative tables.
"""

from .registry import HealthUser, Provider
from .record import HealthRecord
from .permission import Permission
from .access_log import AccessBasis, AccessLogEntry
from .ledger import IdSequence, LogicalClock

__all__ = [
    # Registry
    "HealthUser",
    "Provider",
    # Records
    "HealthRecord",
    # Permission ledger
    "Permission",
    # Audit
    "AccessBasis",
    "AccessLogEntry",
    # Sequences and time
    "IdSequence",
    "LogicalClock",
]
