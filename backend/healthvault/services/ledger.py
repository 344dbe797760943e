"""
Global id sequences and the logical clock.

Ids for records, permissions and log entries are handed out from named
rows in ``id_sequence``; the row is locked for the rest of the enclosing
transaction so each committed allocation increments exactly once and a
rolled-back one leaves no gap.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session as DbSession

from healthvault.db.session import get_db_session, transaction
from healthvault.errors import InvalidInput
from healthvault.models import IdSequence, LogicalClock

RECORD_SEQUENCE = "record"
PERMISSION_SEQUENCE = "permission"
LOG_SEQUENCE = "log"

logger = logging.getLogger("service.ledger")


def allocate_id(db: DbSession, name: str) -> int:
    """Return the next value of sequence ``name`` (first value is 0)."""
    seq = (
        db.query(IdSequence)
        .filter(IdSequence.name == name)
        .with_for_update()
        .first()
    )
    if seq is None:
        seq = IdSequence(name=name, next_value=0)
        db.add(seq)
    value = seq.next_value
    seq.next_value = value + 1
    db.flush()
    return value


class LogicalClockService:
    """
    Shared logical time.

    Non-decreasing; advanced only between operations. Every operation reads
    it once and uses that value for all of its timestamps and expiry checks.
    """

    CLOCK_ID = 1

    def __init__(self, db_session: Optional[DbSession] = None):
        self._db = db_session

    @property
    def db(self) -> DbSession:
        if self._db is None:
            self._db = get_db_session()
        return self._db

    def _row(self, lock: bool = False) -> Optional[LogicalClock]:
        query = self.db.query(LogicalClock).filter(LogicalClock.clock_id == self.CLOCK_ID)
        if lock:
            query = query.with_for_update()
        return query.first()

    def now(self) -> int:
        row = self._row()
        return row.now if row else 0

    def _locked_row(self) -> LogicalClock:
        row = self._row(lock=True)
        if row is None:
            row = LogicalClock(clock_id=self.CLOCK_ID, now=0)
            self.db.add(row)
        return row

    def set_time(self, value: int) -> int:
        """Move the clock to ``value``; moving backwards is rejected."""
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidInput("time must be an integer")
        with transaction(self.db):
            row = self._locked_row()
            if value < row.now:
                raise InvalidInput(f"clock cannot move backwards ({row.now} -> {value})")
            row.now = value
        logger.debug(f"Logical clock set to {value}")
        return value

    def advance(self, ticks: int = 1) -> int:
        if not isinstance(ticks, int) or isinstance(ticks, bool) or ticks < 0:
            raise InvalidInput("ticks must be a non-negative integer")
        with transaction(self.db):
            row = self._locked_row()
            row.now = row.now + ticks
            value = row.now
        logger.debug(f"Logical clock advanced by {ticks} to {value}")
        return value
