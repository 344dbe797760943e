"""
Authorization Engine.

Decides whether ``accessor`` may read ``owner``'s data of a given type:

1. the owner always may;
2. otherwise any valid permission for the pair grants access;
3. otherwise an active emergency policy naming the accessor does.

A permission is valid when it is not revoked, not expired (expiry is
strict: ``expires_at == now`` is already expired) and its scope contains
the data type or the wildcard tag.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session as DbSession

from healthvault.config import config
from healthvault.db.session import get_db_session
from healthvault.models import AccessBasis, Permission
from healthvault.services.emergency import EmergencyAccessService
from healthvault.services.ledger import LogicalClockService
from healthvault.services.permissions import PermissionLedgerService


class DenialReason(str, Enum):
    """Why an access was refused (internal; surfaced as Unauthorized)."""
    NO_PERMISSION = "no_permission"
    OUT_OF_SCOPE = "out_of_scope"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass
class AccessDecision:
    """Result of an authorization check."""
    allowed: bool
    basis: Optional[AccessBasis] = None
    permission_id: Optional[int] = None
    reason: Optional[DenialReason] = None

    def __bool__(self) -> bool:
        return self.allowed

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "basis": self.basis.value if self.basis else None,
            "permission_id": self.permission_id,
            "reason": self.reason.value if self.reason else None,
        }


def covers(permission: Permission, data_type: str, wildcard: Optional[str] = None) -> bool:
    wildcard = config.WILDCARD_DATA_TYPE if wildcard is None else wildcard
    tags = permission.data_types or []
    return data_type in tags or wildcard in tags


def check_permission(permission: Permission, data_type: str, now: int) -> Optional[DenialReason]:
    """Return None if the permission is valid for data_type at now, else why not."""
    if not covers(permission, data_type):
        return DenialReason.OUT_OF_SCOPE
    if permission.revoked:
        return DenialReason.REVOKED
    if permission.expires_at is not None and permission.expires_at <= now:
        return DenialReason.EXPIRED
    return None


# Most specific reason wins when several permissions fail
_REASON_RANK = {
    DenialReason.NO_PERMISSION: 0,
    DenialReason.OUT_OF_SCOPE: 1,
    DenialReason.REVOKED: 2,
    DenialReason.EXPIRED: 3,
}


def find_valid_permission(
    permissions: Iterable[Permission], data_type: str, now: int
) -> Tuple[Optional[Permission], Optional[DenialReason]]:
    """First valid permission (early exit), or None with the denial reason."""
    reason = DenialReason.NO_PERMISSION
    for permission in permissions:
        failure = check_permission(permission, data_type, now)
        if failure is None:
            return permission, None
        if _REASON_RANK[failure] > _REASON_RANK[reason]:
            reason = failure
    return None, reason


class AuthorizationEngine:
    """
    Access decisions over the permission ledger and emergency policy.

    Usage:
        engine = AuthorizationEngine(db_session)
        decision = engine.evaluate("alice", "dr-bob", "heart-rate")
        if decision.allowed:
            ...
    """

    def __init__(self, db_session: Optional[DbSession] = None):
        self._db = db_session
        self.logger = logging.getLogger("service.AuthorizationEngine")

    @property
    def db(self) -> DbSession:
        if self._db is None:
            self._db = get_db_session()
        return self._db

    def _now(self, now: Optional[int]) -> int:
        return LogicalClockService(self.db).now() if now is None else now

    def valid_permission(
        self, owner: str, accessor: str, data_type: str, now: Optional[int] = None
    ) -> Tuple[Optional[Permission], Optional[DenialReason]]:
        permissions = PermissionLedgerService(self.db).iter_permissions(owner, accessor)
        return find_valid_permission(permissions, data_type, self._now(now))

    def has_valid_permission(
        self, owner: str, accessor: str, data_type: str, now: Optional[int] = None
    ) -> bool:
        permission, _ = self.valid_permission(owner, accessor, data_type, now)
        return permission is not None

    def evaluate(
        self, owner: str, accessor: str, data_type: str, now: Optional[int] = None
    ) -> AccessDecision:
        if accessor == owner:
            return AccessDecision(allowed=True, basis=AccessBasis.OWNER)

        permission, reason = self.valid_permission(owner, accessor, data_type, now)
        if permission is not None:
            return AccessDecision(
                allowed=True,
                basis=AccessBasis.PERMISSION,
                permission_id=permission.permission_id,
            )

        if EmergencyAccessService(self.db).emergency_access_active(owner, accessor):
            return AccessDecision(allowed=True, basis=AccessBasis.EMERGENCY)

        self.logger.debug(f"Denied {accessor} -> {owner}/{data_type}: {reason.value}")
        return AccessDecision(allowed=False, reason=reason)

    def authorize(self, owner: str, accessor: str, data_type: str) -> bool:
        return self.evaluate(owner, accessor, data_type).allowed

    # Read-only query surface
    is_access_authorized = authorize
