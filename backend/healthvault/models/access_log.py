"""
Access log model for audit.

Append-only ledger of cross-principal reads. Carries no health payload.
"""

from enum import Enum

from sqlalchemy import Column, String, Integer, ForeignKey, Index, JSON, event
from sqlalchemy.dialects.postgresql import JSONB

from healthvault.db.session import Base
from healthvault.errors import ImmutableRecordError


class AccessBasis(str, Enum):
    """What allowed an access."""
    OWNER = "owner"
    PERMISSION = "permission"
    EMERGENCY = "emergency"


class AccessLogEntry(Base):
    """
    One row per non-owner read.

    ``access_basis`` says what authorized the read ("permission" or
    "emergency"); ``permission_id`` is the permission actually consulted,
    or NULL when none was.
    """

    __tablename__ = "access_log"

    log_id = Column(Integer, primary_key=True, autoincrement=False)
    owner = Column(String(128), ForeignKey("health_user.identity"), nullable=False)
    accessor = Column(String(128), nullable=False)
    timestamp = Column(Integer, nullable=False)  # logical time
    data_types_accessed = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    permission_id = Column(Integer, ForeignKey("permission.permission_id"), nullable=True)
    access_basis = Column(String(20), nullable=False)
    record_id = Column(Integer, ForeignKey("health_record.sequence_id"), nullable=True)

    # Per-owner lookup by log id; deliberately no accessor index
    __table_args__ = (
        Index("ix_access_log_owner", "owner", "log_id"),
    )

    def to_dict(self) -> dict:
        return {
            "log_id": self.log_id,
            "owner": self.owner,
            "accessor": self.accessor,
            "timestamp": self.timestamp,
            "data_types_accessed": list(self.data_types_accessed or []),
            "permission_id": self.permission_id,
            "access_basis": self.access_basis,
            "record_id": self.record_id,
        }


@event.listens_for(AccessLogEntry, "before_update")
def _reject_log_update(mapper, connection, target):
    raise ImmutableRecordError(f"access log entry {target.log_id} is immutable")


@event.listens_for(AccessLogEntry, "before_delete")
def _reject_log_delete(mapper, connection, target):
    raise ImmutableRecordError(f"access log entry {target.log_id} cannot be deleted")
