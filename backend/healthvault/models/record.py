"""
Health record model.

Payloads arrive already encrypted; the vault never inspects them.
Rows are immutable once inserted.
"""

import base64

from sqlalchemy import Column, String, Integer, LargeBinary, ForeignKey, Index, event

from healthvault.config import config
from healthvault.db.session import Base
from healthvault.errors import ImmutableRecordError


class HealthRecord(Base):
    """Opaque encrypted entry keyed by owner and global sequence id."""

    __tablename__ = "health_record"

    sequence_id = Column(Integer, primary_key=True, autoincrement=False)
    owner = Column(String(128), ForeignKey("health_user.identity"), nullable=False)
    data_type = Column(String(config.MAX_TAG_LENGTH), nullable=False)  # e.g. "heart-rate"
    created_at = Column(Integer, nullable=False)  # logical time
    ciphertext = Column(LargeBinary, nullable=False)
    external_ref = Column(String(500), nullable=True)  # large-blob store address
    checksum = Column(String(128), nullable=False)
    recorded_by = Column(String(128), ForeignKey("provider.identity"), nullable=True)

    __table_args__ = (
        Index("ix_health_record_owner", "owner", "sequence_id"),
    )

    def to_dict(self) -> dict:
        return {
            "record_id": self.sequence_id,
            "owner": self.owner,
            "data_type": self.data_type,
            "created_at": self.created_at,
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
            "external_ref": self.external_ref,
            "checksum": self.checksum,
            "recorded_by": self.recorded_by,
        }


@event.listens_for(HealthRecord, "before_update")
def _reject_record_update(mapper, connection, target):
    raise ImmutableRecordError(f"health record {target.sequence_id} is immutable")


@event.listens_for(HealthRecord, "before_delete")
def _reject_record_delete(mapper, connection, target):
    raise ImmutableRecordError(f"health record {target.sequence_id} cannot be deleted")
