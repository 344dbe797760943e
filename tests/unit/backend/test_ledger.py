"""
Unit tests for id sequences and the logical clock.
"""

import pytest

from healthvault.db.session import transaction
from healthvault.errors import InvalidInput
from healthvault.models import IdSequence
from healthvault.services.ledger import allocate_id


class TestAllocateId:
    """Tests for global id sequences."""

    def test_starts_at_zero_and_increments(self, db):
        assert allocate_id(db, "record") == 0
        assert allocate_id(db, "record") == 1
        assert allocate_id(db, "record") == 2

    def test_sequences_are_independent(self, db):
        assert allocate_id(db, "record") == 0
        assert allocate_id(db, "permission") == 0
        assert allocate_id(db, "record") == 1

    def test_rolled_back_allocation_is_not_consumed(self, db):
        with transaction(db):
            allocate_id(db, "log")

        with pytest.raises(RuntimeError):
            with transaction(db):
                allocate_id(db, "log")
                raise RuntimeError("abort")

        assert db.query(IdSequence).filter_by(name="log").one().next_value == 1


class TestLogicalClock:
    """Tests for the shared logical clock."""

    def test_starts_at_zero(self, clock):
        assert clock.now() == 0

    def test_advance(self, clock):
        assert clock.advance(5) == 5
        assert clock.advance() == 6
        assert clock.now() == 6

    def test_set_time_forward(self, clock):
        clock.set_time(100)
        assert clock.now() == 100

    def test_set_time_same_value_allowed(self, clock):
        clock.set_time(3)
        clock.set_time(3)
        assert clock.now() == 3

    def test_cannot_move_backwards(self, clock):
        clock.set_time(10)
        with pytest.raises(InvalidInput):
            clock.set_time(9)
        assert clock.now() == 10

    def test_negative_ticks_rejected(self, clock):
        with pytest.raises(InvalidInput):
            clock.advance(-1)
