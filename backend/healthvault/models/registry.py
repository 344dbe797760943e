"""
Registered users (record owners) and healthcare providers.

Identities are opaque strings supplied by the authentication layer.
Neither table supports deletion.
"""

from sqlalchemy import Column, String, Integer, Boolean

from healthvault.db.session import Base


class HealthUser(Base):
    """Record owner.

    Mutated only by its own identity: profile reference and the two
    independent emergency-policy fields.
    """

    __tablename__ = "health_user"

    identity = Column(String(128), primary_key=True)
    registered = Column(Boolean, default=True, nullable=False)
    profile_ref = Column(String(500), nullable=True)  # opaque, e.g. blob-store key

    # Emergency access policy
    emergency_contact = Column(String(128), nullable=True)
    emergency_access_enabled = Column(Boolean, default=False, nullable=False)

    registered_at = Column(Integer, nullable=False)  # logical time

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "registered": self.registered,
            "profile_ref": self.profile_ref,
            "emergency_contact": self.emergency_contact,
            "emergency_access_enabled": self.emergency_access_enabled,
            "registered_at": self.registered_at,
        }


class Provider(Base):
    """Healthcare provider, verified once by an admin identity."""

    __tablename__ = "provider"

    identity = Column(String(128), primary_key=True)
    registered = Column(Boolean, default=True, nullable=False)
    name = Column(String(255), nullable=False)
    provider_type = Column(String(255), nullable=False)  # hospital, clinic, lab, ...
    verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(Integer, nullable=True)
    registered_at = Column(Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "registered": self.registered,
            "name": self.name,
            "provider_type": self.provider_type,
            "verified": self.verified,
            "verified_at": self.verified_at,
            "registered_at": self.registered_at,
        }
