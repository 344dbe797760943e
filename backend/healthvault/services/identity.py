"""
Caller identity resolution.

Tokens are issued by the external authentication layer; this service only
verifies them and extracts the caller identity from the ``sub`` claim.
"""

import logging
from typing import Optional

import jwt

from healthvault.config import config


class CallerIdentityService:
    """Verifies bearer tokens and returns the authenticated identity."""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self.jwt_secret = secret or config.JWT_SECRET
        self.jwt_algorithm = algorithm or config.JWT_ALGORITHM
        self.logger = logging.getLogger("service.CallerIdentityService")

    def decode_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT token."""
        try:
            return jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            self.logger.info("Rejected expired caller token")
            return None
        except jwt.InvalidTokenError:
            self.logger.info("Rejected invalid caller token")
            return None

    def resolve_caller(self, authorization_header: Optional[str]) -> Optional[str]:
        """Identity from an ``Authorization: Bearer <token>`` header value."""
        if not authorization_header or not authorization_header.startswith("Bearer "):
            return None
        payload = self.decode_token(authorization_header[7:])
        if not payload:
            return None
        identity = payload.get("sub")
        if not isinstance(identity, str) or not identity:
            return None
        return identity


# Singleton instance
_identity_service = None


def get_identity_service() -> CallerIdentityService:
    """Get the singleton caller identity service."""
    global _identity_service
    if _identity_service is None:
        _identity_service = CallerIdentityService()
    return _identity_service
