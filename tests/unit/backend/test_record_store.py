"""
Unit tests for the Record Store and its authorized read path.

Tests:
- Owner and provider writes
- Read authorization and audit logging
- Immutability of stored records
"""

import pytest

from healthvault.config import config
from healthvault.errors import (
    DataNotFound,
    ImmutableRecordError,
    InvalidInput,
    ProviderNotFound,
    Unauthorized,
    UserNotFound,
)
from healthvault.models import AccessLogEntry, HealthRecord

CIPHERTEXT = b"\x00\x01encrypted-payload"


def _add(records, owner="alice", data_type="heart-rate"):
    return records.add_health_data(owner, data_type, CIPHERTEXT, checksum="sha256:abc")


# =============================================================================
# Writes
# =============================================================================

class TestAddHealthData:
    """Tests for owner writes."""

    def test_owner_adds_record(self, records, alice, clock):
        clock.set_time(4)
        record_id = records.add_health_data(
            "alice", "heart-rate", CIPHERTEXT, checksum="sha256:abc", external_ref="blob://1"
        )
        assert record_id == 0

        record = records.get_record("alice", record_id)
        assert record.data_type == "heart-rate"
        assert record.ciphertext == CIPHERTEXT
        assert record.checksum == "sha256:abc"
        assert record.external_ref == "blob://1"
        assert record.created_at == 4
        assert record.recorded_by is None

    def test_ids_are_global_across_owners(self, records, registry, alice):
        registry.register_user("dave")
        assert _add(records, "alice") == 0
        assert _add(records, "dave") == 1
        assert _add(records, "alice") == 2

    def test_unregistered_owner_fails(self, records, db):
        with pytest.raises(UserNotFound):
            _add(records, "ghost")
        assert db.query(HealthRecord).count() == 0

    @pytest.mark.parametrize(
        "data_type,ciphertext,checksum",
        [("", CIPHERTEXT, "c"), ("heart-rate", b"", "c"), ("heart-rate", "text", "c"), ("heart-rate", CIPHERTEXT, "")],
    )
    def test_invalid_payload_rejected(self, records, alice, db, data_type, ciphertext, checksum):
        with pytest.raises(InvalidInput):
            records.add_health_data("alice", data_type, ciphertext, checksum=checksum)
        assert db.query(HealthRecord).count() == 0

    @pytest.mark.parametrize(
        "data_type,ciphertext,checksum",
        [("", CIPHERTEXT, "c"), ("heart-rate", b"", "c"), ("heart-rate", None, "c"), ("heart-rate", CIPHERTEXT, "")],
    )
    def test_unregistered_owner_checked_before_payload(self, records, db, data_type, ciphertext, checksum):
        with pytest.raises(UserNotFound):
            records.add_health_data("ghost", data_type, ciphertext, checksum=checksum)
        assert db.query(HealthRecord).count() == 0

    def test_data_type_limit_matches_column(self, records, alice):
        assert HealthRecord.__table__.c.data_type.type.length == config.MAX_TAG_LENGTH
        assert _add(records, data_type="t" * config.MAX_TAG_LENGTH) == 0
        with pytest.raises(InvalidInput):
            _add(records, data_type="t" * (config.MAX_TAG_LENGTH + 1))


class TestAddProviderHealthData:

    """Tests for provider writes."""

    def test_permitted_provider_writes(self, records, ledger, alice, dr_bob):
        ledger.grant_access("alice", "dr-bob", ["heart-rate"])
        record_id = records.add_provider_health_data(
            "dr-bob", "alice", "heart-rate", CIPHERTEXT, checksum="c"
        )

        record = records.get_record("alice", record_id)
        assert record.owner == "alice"
        assert record.recorded_by == "dr-bob"

    def test_wildcard_permission_allows_any_type(self, records, ledger, alice, dr_bob):
        ledger.grant_access("alice", "dr-bob", ["all"])
        assert records.add_provider_health_data("dr-bob", "alice", "genome", CIPHERTEXT, "c") == 0

    def test_unregistered_owner(self, records, dr_bob):
        with pytest.raises(UserNotFound):
            records.add_provider_health_data("dr-bob", "ghost", "heart-rate", CIPHERTEXT, "c")

    def test_unregistered_provider(self, records, ledger, alice):
        ledger.grant_access("alice", "dr-nobody", ["heart-rate"])
        with pytest.raises(ProviderNotFound):
            records.add_provider_health_data("dr-nobody", "alice", "heart-rate", CIPHERTEXT, "c")

    def test_registration_checked_before_payload(self, records, alice, db):
        with pytest.raises(UserNotFound):
            records.add_provider_health_data("dr-bob", "ghost", "", b"", "c")
        with pytest.raises(ProviderNotFound):
            records.add_provider_health_data("dr-nobody", "alice", "heart-rate", b"", "")
        assert db.query(HealthRecord).count() == 0

    def test_invalid_payload_from_permitted_provider(self, records, ledger, alice, dr_bob, db):
        ledger.grant_access("alice", "dr-bob", ["all"])
        with pytest.raises(InvalidInput):
            records.add_provider_health_data("dr-bob", "alice", "heart-rate", b"", "c")
        assert db.query(HealthRecord).count() == 0


    def test_out_of_scope_type(self, records, ledger, alice, dr_bob, db):
        ledger.grant_access("alice", "dr-bob", ["sleep"])
        with pytest.raises(Unauthorized) as exc:
            records.add_provider_health_data("dr-bob", "alice", "heart-rate", CIPHERTEXT, "c")
        assert exc.value.reason == "out_of_scope"
        assert db.query(HealthRecord).count() == 0

    def test_expired_permission_reported_as_unauthorized(self, records, ledger, clock, alice, dr_bob):
        ledger.grant_access("alice", "dr-bob", ["heart-rate"], expires_at=2)
        clock.set_time(2)
        with pytest.raises(Unauthorized) as exc:
            records.add_provider_health_data("dr-bob", "alice", "heart-rate", CIPHERTEXT, "c")
        assert exc.value.code == "Unauthorized"
        assert exc.value.reason == "expired"

    def test_emergency_contact_cannot_write(self, records, emergency, registry, alice):
        registry.register_provider("sis", "Sister Care", "home-care")
        emergency.set_emergency_contact("alice", "sis")
        emergency.set_emergency_access("alice", True)
        with pytest.raises(Unauthorized):
            records.add_provider_health_data("sis", "alice", "heart-rate", CIPHERTEXT, "c")

    def test_failed_write_does_not_consume_id(self, records, ledger, alice, dr_bob):
        with pytest.raises(Unauthorized):
            records.add_provider_health_data("dr-bob", "alice", "heart-rate", CIPHERTEXT, "c")
        assert _add(records) == 0


# =============================================================================
# Read path
# =============================================================================

class TestGetHealthData:
    """Tests for the authorized, audited read path."""

    def test_owner_read_logs_nothing(self, records, alice, db):
        record_id = _add(records)
        record = records.get_health_data("alice", record_id, "alice")
        assert record.sequence_id == record_id
        assert db.query(AccessLogEntry).count() == 0

    def test_missing_record(self, records, alice):
        with pytest.raises(DataNotFound):
            records.get_health_data("alice", 5, "alice")

    def test_record_of_another_owner_is_not_found(self, records, registry, alice):
        registry.register_user("dave")
        record_id = _add(records, "dave")
        with pytest.raises(DataNotFound):
            records.get_health_data("alice", record_id, "alice")

    def test_unauthorized_read_logs_nothing(self, records, alice, db):
        record_id = _add(records)
        with pytest.raises(Unauthorized):
            records.get_health_data("alice", record_id, "eve")
        assert db.query(AccessLogEntry).count() == 0

    def test_permitted_read_logs_once_with_permission_id(self, records, ledger, audit, clock, alice):
        record_id = _add(records)
        pid = ledger.grant_access("alice", "dr-bob", ["heart-rate"])
        clock.set_time(12)

        records.get_health_data("alice", record_id, "dr-bob")

        entries = audit.list_access_logs("alice")
        assert len(entries) == 1
        entry = entries[0]
        assert entry.log_id == 0
        assert entry.accessor == "dr-bob"
        assert entry.timestamp == 12
        assert entry.data_types_accessed == ["heart-rate"]
        assert entry.permission_id == pid
        assert entry.access_basis == "permission"
        assert entry.record_id == record_id

    def test_each_read_logs_one_entry(self, records, ledger, audit, alice):
        record_id = _add(records)
        ledger.grant_access("alice", "dr-bob", ["all"])
        for _ in range(3):
            records.get_health_data("alice", record_id, "dr-bob")
        assert [e.log_id for e in audit.list_access_logs("alice")] == [0, 1, 2]

    def test_emergency_basis_read_is_logged(self, records, emergency, audit, alice):
        record_id = _add(records)
        emergency.set_emergency_contact("alice", "sis")
        emergency.set_emergency_access("alice", True)

        records.get_health_data("alice", record_id, "sis")

        entry = audit.list_access_logs("alice")[0]
        assert entry.access_basis == "emergency"
        assert entry.permission_id is None

    def test_revoked_permission_denies_read(self, records, ledger, alice):
        record_id = _add(records)
        pid = ledger.grant_access("alice", "dr-bob", ["heart-rate"])
        ledger.revoke_access("alice", "dr-bob", pid)
        with pytest.raises(Unauthorized) as exc:
            records.get_health_data("alice", record_id, "dr-bob")
        assert exc.value.reason == "revoked"


class TestRecordImmutability:
    """Stored records cannot be rewritten or removed."""

    def test_update_rejected(self, records, alice, db):
        record = records.get_record("alice", _add(records))
        record.data_type = "sleep"
        with pytest.raises(ImmutableRecordError):
            db.flush()
        db.rollback()

    def test_delete_rejected(self, records, alice, db):
        db.delete(records.get_record("alice", _add(records)))
        with pytest.raises(ImmutableRecordError):
            db.flush()
        db.rollback()
