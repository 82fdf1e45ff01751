"""Tests for database storage layer."""

import pytest
import tempfile
import os

from conftest import DAY, DEPOSIT_AMOUNT, make_nullifier
from mpool.core.events import DepositEvent, WithdrawalEvent
from mpool.exceptions import StorageError
from mpool.storage.database import (
    DatabaseManager,
    EventRecorder,
    get_db_manager,
    reset_db_manager,
)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    db_url = f"sqlite:///{path}"
    manager = DatabaseManager(db_url)
    manager.create_tables()
    yield manager
    # Cleanup
    manager.engine.dispose()
    os.unlink(path)


def deposit_event(depositor="0x" + "11" * 20, timestamp=1000):
    return DepositEvent(timestamp=timestamp, depositor=depositor, amount=DEPOSIT_AMOUNT)


class TestDatabaseManager:
    """Test database manager initialization."""

    def test_database_creation(self, temp_db):
        assert temp_db.engine is not None
        assert temp_db.SessionLocal is not None

    def test_get_session(self, temp_db):
        session = temp_db.get_session()
        assert session is not None
        session.close()


class TestEventOperations:
    """Test event table operations."""

    def test_add_event(self, temp_db):
        session = temp_db.get_session()
        record = temp_db.add_event(session, deposit_event())

        assert record.id is not None
        assert record.event_type == "Deposit"
        assert record.block_timestamp == 1000
        assert record.to_dict()["amount"] == DEPOSIT_AMOUNT
        session.close()

    def test_get_events_in_order(self, temp_db):
        session = temp_db.get_session()
        for ts in (3, 1, 2):
            temp_db.add_event(session, deposit_event(timestamp=ts))

        events = temp_db.get_events(session)
        assert [event.block_timestamp for event in events] == [3, 1, 2]
        session.close()

    def test_filter_by_type(self, temp_db):
        session = temp_db.get_session()
        temp_db.add_event(session, deposit_event())
        temp_db.add_event(
            session,
            WithdrawalEvent(timestamp=5, nullifier="0x" + "01" * 32, recipient="0x" + "22" * 20, amount=1),
        )

        assert temp_db.count_events(session) == 2
        assert temp_db.count_events(session, "Withdrawal") == 1
        assert len(temp_db.get_events(session, event_type="Deposit")) == 1
        session.close()


class TestWithdrawalOperations:
    """Test withdrawal table operations."""

    def test_add_and_get_withdrawal(self, temp_db):
        session = temp_db.get_session()
        nullifier = "0x" + "ab" * 32
        event = WithdrawalEvent(
            timestamp=7, nullifier=nullifier, recipient="0x" + "22" * 20, amount=DEPOSIT_AMOUNT
        )
        temp_db.add_withdrawal(session, event)

        record = temp_db.get_withdrawal(session, nullifier.upper().replace("0X", "0x"))
        assert record is not None
        assert int(record.amount) == DEPOSIT_AMOUNT
        session.close()

    def test_unknown_withdrawal(self, temp_db):
        session = temp_db.get_session()
        assert temp_db.get_withdrawal(session, "0x" + "00" * 32) is None
        session.close()


class TestEventRecorder:
    """Test persisting events published by a pool."""

    def test_records_published_events(self, temp_db, pool, substrate, users, relayer, proof_for):
        pool.events.subscribe(EventRecorder(temp_db))

        pool.deposit(users[0], DEPOSIT_AMOUNT)
        pool.register_relayer(relayer)
        substrate.advance(DAY)
        nullifier = make_nullifier(0)
        pool.withdraw_via_relayer(users[0], nullifier, proof_for(nullifier, users[0]), users[0], relayer)

        session = temp_db.get_session()
        kinds = [record.event_type for record in temp_db.get_events(session)]
        assert kinds == ["Deposit", "RelayerRegistered", "Withdrawal"]
        assert temp_db.get_withdrawal(session, "0x" + nullifier.hex()) is not None
        session.close()

    def test_withdrawal_rows_written_together(self, temp_db):
        """A rejected withdrawal row leaves no orphan event row behind."""
        nullifier = "0x" + "cd" * 32
        event = WithdrawalEvent(timestamp=9, nullifier=nullifier, recipient="0x" + "22" * 20, amount=1)
        session = temp_db.get_session()
        temp_db.add_withdrawal(session, event)
        session.close()

        with pytest.raises(StorageError):
            EventRecorder(temp_db)(event)

        session = temp_db.get_session()
        assert temp_db.count_events(session) == 0
        session.close()

    def test_reverted_operation_not_recorded(self, temp_db, pool, users):
        pool.events.subscribe(EventRecorder(temp_db))

        with pytest.raises(Exception):
            pool.deposit(users[0], 1)

        session = temp_db.get_session()
        assert temp_db.count_events(session) == 0
        session.close()

    def test_storage_failure_does_not_revert_pool(self, temp_db, pool, users):
        """A broken database is logged; the committed deposit stands."""
        pool.events.subscribe(EventRecorder(temp_db))
        temp_db.drop_tables()

        pool.deposit(users[0], DEPOSIT_AMOUNT)
        assert pool.batch_size() == 1


class TestDefaultManager:
    def test_singleton(self, tmp_path):
        reset_db_manager()
        db_url = f"sqlite:///{tmp_path / 'default.db'}"
        try:
            first = get_db_manager(db_url)
            assert get_db_manager() is first
            assert first.database_url == db_url
        finally:
            first.engine.dispose()
            reset_db_manager()
