"""
Record Store service.

Holds opaque, already-encrypted health entries. Records are written by
their owner or by a provider holding a valid permission for the data type,
and are never updated or deleted. Reads go through ``get_health_data``,
which authorizes and, for anyone but the owner, writes one audit entry in
the same transaction.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session as DbSession

from healthvault.config import config
from healthvault.db.session import get_db_session, transaction
from healthvault.errors import DataNotFound, InvalidInput, Unauthorized
from healthvault.models import AccessBasis, HealthRecord
from healthvault.services.audit import AuditLogService
from healthvault.services.authorization import AuthorizationEngine
from healthvault.services.ledger import RECORD_SEQUENCE, LogicalClockService, allocate_id
from healthvault.services.registry import RegistryService
from healthvault.services.validation import optional_text, require_text

MAX_CHECKSUM_LENGTH = 128
MAX_REF_LENGTH = 500


def _validate_payload(data_type, ciphertext, checksum, external_ref):
    require_text(data_type, "data_type", config.MAX_TAG_LENGTH)
    if not isinstance(ciphertext, (bytes, bytearray)) or not ciphertext:
        raise InvalidInput("ciphertext must be non-empty bytes")
    require_text(checksum, "checksum", MAX_CHECKSUM_LENGTH)
    optional_text(external_ref, "external_ref", MAX_REF_LENGTH)


class RecordStoreService:
    """Immutable encrypted records plus the authorized read path."""

    def __init__(self, db_session: Optional[DbSession] = None):
        self._db = db_session
        self.logger = logging.getLogger("service.RecordStoreService")

    @property
    def db(self) -> DbSession:
        if self._db is None:
            self._db = get_db_session()
        return self._db

    def _store(
        self,
        owner: str,
        data_type: str,
        ciphertext: bytes,
        checksum: str,
        external_ref: Optional[str],
        recorded_by: Optional[str],
    ) -> int:
        record = HealthRecord(
            sequence_id=allocate_id(self.db, RECORD_SEQUENCE),
            owner=owner,
            data_type=data_type,
            created_at=LogicalClockService(self.db).now(),
            ciphertext=bytes(ciphertext),
            external_ref=external_ref,
            checksum=checksum,
            recorded_by=recorded_by,
        )
        self.db.add(record)
        self.db.flush()
        return record.sequence_id

    def get_record(self, owner: str, record_id: int) -> Optional[HealthRecord]:
        """Raw lookup, no authorization. Not for use on behalf of callers."""
        return (
            self.db.query(HealthRecord)
            .filter(HealthRecord.owner == owner, HealthRecord.sequence_id == record_id)
            .first()
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def add_health_data(
        self,
        caller: str,
        data_type: str,
        ciphertext: bytes,
        checksum: str,
        external_ref: Optional[str] = None,
    ) -> int:
        """Store a record owned by the caller. Returns the record id."""
        with transaction(self.db):
            RegistryService(self.db).require_user(caller)
            _validate_payload(data_type, ciphertext, checksum, external_ref)
            record_id = self._store(caller, data_type, ciphertext, checksum, external_ref, None)
        self.logger.info(f"Record {record_id} ({data_type}) added by owner {caller}")
        return record_id

    def add_provider_health_data(
        self,
        caller: str,
        owner: str,
        data_type: str,
        ciphertext: bytes,
        checksum: str,
        external_ref: Optional[str] = None,
    ) -> int:
        """
        Store a record for ``owner`` written by the calling provider.

        The provider must hold a valid permission covering ``data_type``;
        owner identity and emergency access do not count here.
        """
        with transaction(self.db):
            registry = RegistryService(self.db)
            registry.require_user(owner)
            registry.require_provider(caller)
            _validate_payload(data_type, ciphertext, checksum, external_ref)

            permission, reason = AuthorizationEngine(self.db).valid_permission(
                owner, caller, data_type
            )
            if permission is None:
                self.logger.info(
                    f"Provider write by {caller} for {owner}/{data_type} denied: {reason.value}"
                )
                raise Unauthorized(
                    f"{caller!r} holds no valid permission for {data_type!r}",
                    reason=reason.value,
                )
            record_id = self._store(owner, data_type, ciphertext, checksum, external_ref, caller)
        self.logger.info(
            f"Record {record_id} ({data_type}) added for {owner} by provider {caller} "
            f"under permission {permission.permission_id}"
        )
        return record_id

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    def get_health_data(self, owner: str, record_id: int, accessor: str) -> HealthRecord:
        with transaction(self.db):
            record = self.get_record(owner, record_id)
            if record is None:
                raise DataNotFound(f"no record {record_id} for {owner!r}")

            now = LogicalClockService(self.db).now()
            decision = AuthorizationEngine(self.db).evaluate(
                owner, accessor, record.data_type, now=now
            )
            if not decision.allowed:
                self.logger.info(
                    f"Read of record {record_id} of {owner} by {accessor} denied: "
                    f"{decision.reason.value}"
                )
                raise Unauthorized(
                    f"{accessor!r} may not read record {record_id}",
                    reason=decision.reason.value,
                )

            if decision.basis != AccessBasis.OWNER:
                AuditLogService(self.db).append(
                    owner=owner,
                    accessor=accessor,
                    data_types_accessed=[record.data_type],
                    permission_id=decision.permission_id,
                    access_basis=decision.basis.value,
                    record_id=record.sequence_id,
                    timestamp=now,
                )
        return record
