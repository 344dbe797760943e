"""
Services for the health vault.

- RegistryService: users, providers, provider verification
- RecordStoreService: encrypted records and the authorized read path
- PermissionLedgerService: scoped, time-bounded grants and revocations
- AuthorizationEngine: access decisions
- EmergencyAccessService: owner-controlled emergency bypass
- AuditLogService: append-only access log
- LogicalClockService: shared logical time
- CallerIdentityService: bearer token verification
"""

from .ledger import LogicalClockService, allocate_id
from .registry import RegistryService
from .audit import AuditLogService
from .permissions import PermissionLedgerService
from .emergency import EmergencyAccessService
from .authorization import AccessBasis, AccessDecision, AuthorizationEngine, DenialReason
from .record_store import RecordStoreService
from .identity import CallerIdentityService, get_identity_service

__all__ = [
    "LogicalClockService",
    "allocate_id",
    "RegistryService",
    "AuditLogService",
    "PermissionLedgerService",
    "EmergencyAccessService",
    "AccessBasis",
    "AccessDecision",
    "AuthorizationEngine",
    "DenialReason",
    "RecordStoreService",
    "CallerIdentityService",
    "get_identity_service",
]
