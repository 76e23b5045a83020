"""Integration tests for the scheduled-cycle lease."""

from datetime import timedelta

from app.models.cycle_lease import CycleLease

NAME = "scheduled_closure"


class TestCycleLease:
    """Tests for CycleLease.acquire and CycleLease.release."""

    def test_first_acquire_creates_lease(self, db_session, fixed_now):
        assert CycleLease.acquire(db_session, NAME, "run-a", fixed_now, 600) is True

        lease = db_session.get(CycleLease, NAME)
        assert lease.holder == "run-a"

    def test_held_lease_blocks_second_holder(self, db_session, fixed_now):
        CycleLease.acquire(db_session, NAME, "run-a", fixed_now, 600)

        assert CycleLease.acquire(db_session, NAME, "run-b", fixed_now + timedelta(seconds=30), 600) is False

    def test_expired_lease_can_be_taken(self, db_session, fixed_now):
        """A crashed run's lease lapses after its TTL."""
        CycleLease.acquire(db_session, NAME, "run-a", fixed_now, 600)

        later = fixed_now + timedelta(seconds=601)
        assert CycleLease.acquire(db_session, NAME, "run-b", later, 600) is True

        db_session.expire_all()
        assert db_session.get(CycleLease, NAME).holder == "run-b"

    def test_release_then_reacquire(self, db_session, fixed_now):
        CycleLease.acquire(db_session, NAME, "run-a", fixed_now, 600)

        assert CycleLease.release(db_session, NAME, "run-a", fixed_now + timedelta(seconds=5)) is True
        assert CycleLease.acquire(db_session, NAME, "run-b", fixed_now + timedelta(seconds=10), 600) is True

    def test_release_by_other_holder_is_ignored(self, db_session, fixed_now):
        CycleLease.acquire(db_session, NAME, "run-a", fixed_now, 600)

        assert CycleLease.release(db_session, NAME, "run-b", fixed_now) is False
        assert CycleLease.acquire(db_session, NAME, "run-c", fixed_now, 600) is False

    def test_release_records_finish_time(self, db_session, fixed_now):
        CycleLease.acquire(db_session, NAME, "run-a", fixed_now, 600)
        CycleLease.release(db_session, NAME, "run-a", fixed_now + timedelta(seconds=2))

        db_session.expire_all()
        lease = db_session.get(CycleLease, NAME)
        assert lease.holder is None
        assert lease.expires_at is None
        assert lease.last_finished_at.replace(tzinfo=None) == (
            fixed_now + timedelta(seconds=2)
        ).replace(tzinfo=None)
