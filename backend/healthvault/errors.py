"""
Error taxonomy for vault operations.

Every failure carries a stable ``code`` that the API returns verbatim.
Validation happens before any write, so raising one of these inside
``transaction()`` leaves the store unchanged.
"""

from typing import Optional


class VaultError(Exception):
    """Base class for all expected operation failures."""

    code = "VaultError"
    http_status = 400

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.reason = reason

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {"ok": False, "error": self.code, "message": self.message}


class NotFoundError(VaultError):
    http_status = 404


class UserNotFound(NotFoundError):
    code = "UserNotFound"


class ProviderNotFound(NotFoundError):
    code = "ProviderNotFound"


class DataNotFound(NotFoundError):
    code = "DataNotFound"


class PermissionNotFound(NotFoundError):
    code = "PermissionNotFound"


class AlreadyRegistered(VaultError):
    code = "AlreadyRegistered"
    http_status = 409


class Unauthorized(VaultError):
    """Missing role, relationship or permission.

    ``reason`` keeps the internal cause (e.g. "expired", "revoked") for
    logging; callers only ever see Unauthorized.
    """

    code = "Unauthorized"
    http_status = 403


class EmergencyAccessNotEnabled(VaultError):
    code = "EmergencyAccessNotEnabled"
    http_status = 403


class InvalidInput(VaultError):
    code = "InvalidInput"
    http_status = 400


class ImmutableRecordError(RuntimeError):
    """Raised when something tries to rewrite append-only rows."""
