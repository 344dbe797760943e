"""
Global id sequences and the shared logical clock.
"""

from sqlalchemy import Column, String, Integer

from healthvault.db.session import Base


class IdSequence(Base):
    """Named monotonic counter; next_value is handed out then incremented."""

    __tablename__ = "id_sequence"

    name = Column(String(50), primary_key=True)  # record | permission | log
    next_value = Column(Integer, default=0, nullable=False)


class LogicalClock(Base):
    """Single-row, monotonically non-decreasing time counter."""

    __tablename__ = "logical_clock"

    clock_id = Column(Integer, primary_key=True, autoincrement=False)
    now = Column(Integer, default=0, nullable=False)
