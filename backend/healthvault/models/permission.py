"""
Permission ledger model.

Grants are append-only. The only permitted change is revocation
(revoked False -> True, stamping revoked_at).
"""

from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Index, JSON, event, inspect
from sqlalchemy.dialects.postgresql import JSONB

from healthvault.db.session import Base
from healthvault.errors import ImmutableRecordError

_REVOCATION_FIELDS = ("revoked", "revoked_at")


class Permission(Base):
    """Scoped, optionally time-bounded read grant from owner to accessor."""

    __tablename__ = "permission"

    permission_id = Column(Integer, primary_key=True, autoincrement=False)
    owner = Column(String(128), ForeignKey("health_user.identity"), nullable=False)
    accessor = Column(String(128), nullable=False)  # need not be registered
    granted_at = Column(Integer, nullable=False)
    expires_at = Column(Integer, nullable=True)  # None = no expiry
    data_types = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)  # ordered tags
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(Integer, nullable=True)
    is_emergency = Column(Boolean, default=False, nullable=False)

    # (owner, accessor) -> ordered permission ids
    __table_args__ = (
        Index("ix_permission_owner_accessor", "owner", "accessor", "permission_id"),
    )

    def to_dict(self) -> dict:
        return {
            "permission_id": self.permission_id,
            "owner": self.owner,
            "accessor": self.accessor,
            "granted_at": self.granted_at,
            "expires_at": self.expires_at,
            "data_types": list(self.data_types or []),
            "revoked": self.revoked,
            "revoked_at": self.revoked_at,
            "is_emergency": self.is_emergency,
        }


@event.listens_for(Permission, "before_update")
def _only_revocation(mapper, connection, target):
    state = inspect(target)
    for attr in state.attrs:
        if attr.key in _REVOCATION_FIELDS:
            continue
        if attr.history.has_changes():
            raise ImmutableRecordError(
                f"permission {target.permission_id}: {attr.key} cannot change after grant"
            )
    if not target.revoked:
        raise ImmutableRecordError(f"permission {target.permission_id}: revocation is final")


@event.listens_for(Permission, "before_delete")
def _reject_permission_delete(mapper, connection, target):
    raise ImmutableRecordError(f"permission {target.permission_id} cannot be deleted")
