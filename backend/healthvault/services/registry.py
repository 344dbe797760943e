"""
Identity & Registry service.

Self-registration of users (record owners) and providers, profile updates,
and provider verification by an admin identity. Existence checks are pure
lookups with no side effects.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session as DbSession

from healthvault.config import config
from healthvault.db.session import get_db_session, transaction
from healthvault.errors import AlreadyRegistered, ProviderNotFound, Unauthorized, UserNotFound
from healthvault.models import HealthUser, Provider
from healthvault.services.ledger import LogicalClockService
from healthvault.services.validation import optional_text, require_text

MAX_REF_LENGTH = 500
MAX_NAME_LENGTH = 255


class RegistryService:
    """
    Users and providers.

    Usage:
        registry = RegistryService(db_session)
        registry.register_user("alice", profile_ref="blob://profiles/alice")
        registry.require_user("alice")
    """

    def __init__(
        self,
        db_session: Optional[DbSession] = None,
        admin_identities: Optional[Iterable[str]] = None,
    ):
        self._db = db_session
        self.admin_identities = frozenset(
            config.ADMIN_IDENTITIES if admin_identities is None else admin_identities
        )
        self.logger = logging.getLogger("service.RegistryService")

    @property
    def db(self) -> DbSession:
        if self._db is None:
            self._db = get_db_session()
        return self._db

    @property
    def clock(self) -> LogicalClockService:
        return LogicalClockService(self.db)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_user(self, identity: str) -> Optional[HealthUser]:
        return self.db.query(HealthUser).filter(HealthUser.identity == identity).first()

    def get_provider(self, identity: str) -> Optional[Provider]:
        return self.db.query(Provider).filter(Provider.identity == identity).first()

    def is_user_registered(self, identity: str) -> bool:
        user = self.get_user(identity)
        return bool(user and user.registered)

    def is_provider_registered(self, identity: str) -> bool:
        provider = self.get_provider(identity)
        return bool(provider and provider.registered)

    def require_user(self, identity: str) -> HealthUser:
        user = self.get_user(identity)
        if user is None or not user.registered:
            raise UserNotFound(f"user {identity!r} is not registered")
        return user

    def require_provider(self, identity: str) -> Provider:
        provider = self.get_provider(identity)
        if provider is None or not provider.registered:
            raise ProviderNotFound(f"provider {identity!r} is not registered")
        return provider

    def is_admin(self, identity: str) -> bool:
        return identity in self.admin_identities

    # Read-only views
    get_user_profile = get_user
    get_provider_info = get_provider

    # -------------------------------------------------------------------------
    # Mutators (caller is the authenticated identity)
    # -------------------------------------------------------------------------

    def register_user(self, caller: str, profile_ref: Optional[str] = None) -> str:
        """Register the caller as a record owner. Returns the identity."""
        require_text(caller, "caller", 128)
        profile_ref = optional_text(profile_ref, "profile_ref", MAX_REF_LENGTH)
        with transaction(self.db):
            if self.get_user(caller) is not None:
                raise AlreadyRegistered(f"user {caller!r} is already registered")
            self.db.add(
                HealthUser(
                    identity=caller,
                    registered=True,
                    profile_ref=profile_ref,
                    emergency_access_enabled=False,
                    registered_at=self.clock.now(),
                )
            )
        self.logger.info(f"Registered user {caller}")
        return caller

    def update_user_profile(self, caller: str, profile_ref: Optional[str] = None) -> None:
        with transaction(self.db):
            user = self.require_user(caller)
            user.profile_ref = optional_text(profile_ref, "profile_ref", MAX_REF_LENGTH)
        self.logger.info(f"Updated profile reference for user {caller}")

    def register_provider(self, caller: str, name: str, provider_type: str) -> None:
        require_text(caller, "caller", 128)
        require_text(name, "name", MAX_NAME_LENGTH)
        require_text(provider_type, "provider_type", MAX_NAME_LENGTH)
        with transaction(self.db):
            if self.get_provider(caller) is not None:
                raise AlreadyRegistered(f"provider {caller!r} is already registered")
            self.db.add(
                Provider(
                    identity=caller,
                    registered=True,
                    name=name,
                    provider_type=provider_type,
                    verified=False,
                    registered_at=self.clock.now(),
                )
            )
        self.logger.info(f"Registered provider {caller} ({provider_type})")

    def verify_provider(self, caller: str, provider_identity: str) -> None:
        """Mark a provider verified. Only admin identities may do this."""
        with transaction(self.db):
            provider = self.require_provider(provider_identity)
            if not self.is_admin(caller):
                self.logger.info(f"Rejected verification of {provider_identity} by non-admin {caller}")
                raise Unauthorized(f"{caller!r} may not verify providers")
            if provider.verified:
                # First verification time is kept
                return
            provider.verified = True
            provider.verified_at = self.clock.now()
        self.logger.info(f"Provider {provider_identity} verified by {caller}")
