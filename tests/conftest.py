"""
Pytest configuration for all tests.

Sets up Python path to find the backend package and points the vault at a
throwaway in-memory SQLite database.
"""

import sys
import os

# Must be set before healthvault.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_IDENTITIES", "admin-1")
os.environ.setdefault("JWT_SECRET", "test-secret")

# Add backend directory to Python path
backend_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'backend'))
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

import pytest
from sqlalchemy.orm import sessionmaker

from healthvault.db.session import build_engine, init_db
from healthvault.services import (
    AuditLogService,
    AuthorizationEngine,
    EmergencyAccessService,
    LogicalClockService,
    PermissionLedgerService,
    RecordStoreService,
    RegistryService,
)


@pytest.fixture
def db():
    """Fresh in-memory database session per test."""
    engine = build_engine("sqlite://")
    init_db(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def registry(db):
    return RegistryService(db, admin_identities={"admin-1"})


@pytest.fixture
def records(db):
    return RecordStoreService(db)


@pytest.fixture
def ledger(db):
    return PermissionLedgerService(db)


@pytest.fixture
def engine(db):
    return AuthorizationEngine(db)


@pytest.fixture
def emergency(db):
    return EmergencyAccessService(db)


@pytest.fixture
def audit(db):
    return AuditLogService(db)


@pytest.fixture
def clock(db):
    return LogicalClockService(db)


@pytest.fixture
def alice(registry):
    """A registered record owner."""
    return registry.register_user("alice")


@pytest.fixture
def dr_bob(registry):
    """A registered provider."""
    registry.register_provider("dr-bob", "Dr Bob", "clinic")
    return "dr-bob"
