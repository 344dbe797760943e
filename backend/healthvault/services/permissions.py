"""
Permission Ledger service.

Owners grant scoped, optionally time-bounded read access to any accessor
identity and revoke it later. Grants are never edited: changing a scope or
an expiry means revoke and grant again.

Permissions for an (owner, accessor) pair are looked up through the
``ix_permission_owner_accessor`` index, so the number of grants per pair
is unbounded.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session as DbSession

from healthvault.db.session import get_db_session, transaction
from healthvault.errors import PermissionNotFound
from healthvault.models import Permission
from healthvault.services.ledger import PERMISSION_SEQUENCE, LogicalClockService, allocate_id
from healthvault.services.registry import RegistryService
from healthvault.services.validation import normalize_data_types, optional_time, require_text


class PermissionLedgerService:
    """Append-only grants and revocations."""

    def __init__(self, db_session: Optional[DbSession] = None):
        self._db = db_session
        self.logger = logging.getLogger("service.PermissionLedgerService")

    @property
    def db(self) -> DbSession:
        if self._db is None:
            self._db = get_db_session()
        return self._db

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    def iter_permissions(self, owner: str, accessor: str) -> List[Permission]:
        """Every permission from owner to accessor, oldest first."""
        return (
            self.db.query(Permission)
            .filter(Permission.owner == owner, Permission.accessor == accessor)
            .order_by(Permission.permission_id.asc())
            .all()
        )

    def get_permissions(self, owner: str, accessor: str) -> List[int]:
        return [p.permission_id for p in self.iter_permissions(owner, accessor)]

    def get_permission_details(
        self, owner: str, accessor: str, permission_id: int
    ) -> Optional[Permission]:
        return (
            self.db.query(Permission)
            .filter(
                Permission.owner == owner,
                Permission.accessor == accessor,
                Permission.permission_id == permission_id,
            )
            .first()
        )

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def grant_access(
        self,
        caller: str,
        accessor: str,
        data_types: Iterable[str],
        expires_at: Optional[int] = None,
    ) -> int:
        """
        Grant ``accessor`` read access to the caller's records of the given types.

        ``expires_at`` is a logical time; access is denied from that instant on.
        Returns the new permission id.
        """
        with transaction(self.db):
            RegistryService(self.db).require_user(caller)
            require_text(accessor, "accessor", 128)
            tags = normalize_data_types(data_types)
            expires_at = optional_time(expires_at, "expires_at")

            permission = Permission(
                permission_id=allocate_id(self.db, PERMISSION_SEQUENCE),
                owner=caller,
                accessor=accessor,
                granted_at=LogicalClockService(self.db).now(),
                expires_at=expires_at,
                data_types=tags,
                revoked=False,
                is_emergency=False,
            )
            self.db.add(permission)
            self.db.flush()
            permission_id = permission.permission_id

        self.logger.info(
            f"Permission {permission_id} granted: owner={caller} accessor={accessor} "
            f"types={tags} expires_at={expires_at}"
        )
        return permission_id

    def revoke_access(self, caller: str, accessor: str, permission_id: int) -> None:
        """Revoke a grant. Revoking an already-revoked grant is a no-op."""
        with transaction(self.db):
            permission = self.get_permission_details(caller, accessor, permission_id)
            if permission is None:
                raise PermissionNotFound(
                    f"no permission {permission_id} from {caller!r} to {accessor!r}"
                )
            if permission.revoked:
                return
            permission.revoked = True
            permission.revoked_at = LogicalClockService(self.db).now()
        self.logger.info(f"Permission {permission_id} revoked: owner={caller} accessor={accessor}")
