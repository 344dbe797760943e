"""
Emergency Access Policy.

An owner may designate one emergency contact and, independently, switch
emergency access on. The bypass is active only when both are set and the
accessor is that contact.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session as DbSession

from healthvault.db.session import get_db_session, transaction
from healthvault.errors import DataNotFound, EmergencyAccessNotEnabled, InvalidInput, Unauthorized
from healthvault.models import AccessBasis, HealthRecord
from healthvault.services.audit import AuditLogService
from healthvault.services.registry import RegistryService
from healthvault.services.validation import optional_text


class EmergencyAccessService:
    """Owner-controlled bypass for one designated contact."""

    def __init__(self, db_session: Optional[DbSession] = None):
        self._db = db_session
        self.logger = logging.getLogger("service.EmergencyAccessService")

    @property
    def db(self) -> DbSession:
        if self._db is None:
            self._db = get_db_session()
        return self._db

    @property
    def registry(self) -> RegistryService:
        return RegistryService(self.db)

    def emergency_access_active(self, owner: str, accessor: str) -> bool:
        user = self.registry.get_user(owner)
        if user is None or not user.emergency_access_enabled:
            return False
        return user.emergency_contact is not None and user.emergency_contact == accessor

    def get_emergency_settings(self, owner: str) -> Optional[dict]:
        user = self.registry.get_user(owner)
        if user is None:
            return None
        return {
            "owner": owner,
            "emergency_contact": user.emergency_contact,
            "emergency_access_enabled": user.emergency_access_enabled,
        }

    def set_emergency_contact(self, caller: str, contact: Optional[str] = None) -> None:
        """Set or clear (``None``) the caller's emergency contact."""
        with transaction(self.db):
            user = self.registry.require_user(caller)
            contact = optional_text(contact, "contact", 128) or None
            user.emergency_contact = contact
        self.logger.info(f"Emergency contact for {caller} set to {contact}")

    def set_emergency_access(self, caller: str, enabled: bool) -> None:
        with transaction(self.db):
            user = self.registry.require_user(caller)
            if not isinstance(enabled, bool):
                raise InvalidInput("enabled must be true or false")
            user.emergency_access_enabled = enabled
        self.logger.info(f"Emergency access for {caller} {'enabled' if enabled else 'disabled'}")

    def emergency_access(self, caller: str, owner: str, record_id: int) -> HealthRecord:
        """
        Read one of ``owner``'s records as their emergency contact.

        Checks, in order: owner registered, flag on, caller is the contact,
        record exists. Appends one access log entry on success.
        """
        with transaction(self.db):
            user = self.registry.require_user(owner)
            if not user.emergency_access_enabled:
                raise EmergencyAccessNotEnabled(f"{owner!r} has not enabled emergency access")
            if user.emergency_contact is None or user.emergency_contact != caller:
                self.logger.info(f"Emergency read of {owner} by non-contact {caller} rejected")
                raise Unauthorized(f"{caller!r} is not the emergency contact of {owner!r}")

            record = (
                self.db.query(HealthRecord)
                .filter(HealthRecord.owner == owner, HealthRecord.sequence_id == record_id)
                .first()
            )
            if record is None:
                raise DataNotFound(f"no record {record_id} for {owner!r}")

            AuditLogService(self.db).append(
                owner=owner,
                accessor=caller,
                data_types_accessed=[record.data_type],
                permission_id=None,
                access_basis=AccessBasis.EMERGENCY.value,
                record_id=record.sequence_id,
            )
        self.logger.info(f"Emergency read of record {record_id} of {owner} by {caller}")
        return record
