"""Tests for the nullifier, deposit, relayer and memo stores and the guard."""

import pytest
import os

from mpool.core.deposits import DepositRecordStore
from mpool.core.guard import ReentrancyGuard
from mpool.core.memo import MemoStore
from mpool.core.nullifier import NullifierRegistry
from mpool.core.relayer import RelayerRegistry
from mpool.exceptions import AlreadyRegisteredError, AlreadySpentError, ReentrancyError

ALICE = b"\xa1" * 20
BOB = b"\xb0" * 20


class TestNullifierRegistry:
    def test_initially_unspent(self):
        registry = NullifierRegistry()
        assert not registry.is_spent(os.urandom(32))
        assert registry.size == 0

    def test_mark_spent(self):
        registry = NullifierRegistry()
        nullifier = os.urandom(32)

        record = registry.mark_spent(nullifier, recipient=ALICE, timestamp=42)

        assert registry.is_spent(nullifier)
        assert record.spent_at == 42
        assert registry.get_record(nullifier).recipient == ALICE
        assert len(registry) == 1

    def test_double_spend_rejected(self):
        registry = NullifierRegistry()
        nullifier = os.urandom(32)
        registry.mark_spent(nullifier)

        with pytest.raises(AlreadySpentError):
            registry.mark_spent(nullifier)
        assert registry.size == 1

    def test_record_serialization(self):
        registry = NullifierRegistry()
        record = registry.mark_spent(b"\x01" * 32, recipient=BOB, timestamp=7)
        data = record.to_dict()
        assert data["nullifier"] == "0x" + "01" * 32
        assert data["recipient"] == "0x" + "b0" * 20


class TestDepositRecordStore:
    def test_unknown_identity_has_zero_timestamp(self):
        store = DepositRecordStore(withdrawal_delay=100)
        assert store.get_timestamp(ALICE) == 0
        assert ALICE not in store

    def test_overwrite_on_new_deposit(self):
        store = DepositRecordStore(withdrawal_delay=100)
        store.record_deposit(ALICE, 1000)
        store.record_deposit(ALICE, 5000)
        assert store.get_timestamp(ALICE) == 5000
        assert len(store) == 1

    def test_time_lock_boundary_inclusive(self):
        store = DepositRecordStore(withdrawal_delay=100)
        store.record_deposit(ALICE, 1000)

        assert not store.is_eligible(ALICE, 1099)
        assert store.is_eligible(ALICE, 1100)
        assert store.is_eligible(ALICE, 5000)
        assert store.unlock_time(ALICE) == 1100

    def test_lock_is_per_identity(self):
        store = DepositRecordStore(withdrawal_delay=100)
        store.record_deposit(ALICE, 1000)
        store.record_deposit(BOB, 1050)

        assert store.is_eligible(ALICE, 1100)
        assert not store.is_eligible(BOB, 1100)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            DepositRecordStore(withdrawal_delay=-1)


class TestRelayerRegistry:
    def test_register(self):
        registry = RelayerRegistry()
        assert not registry.is_relayer(ALICE)
        registry.register(ALICE)
        assert registry.is_relayer(ALICE)
        assert not registry.is_relayer(BOB)

    def test_register_twice_rejected(self):
        registry = RelayerRegistry()
        registry.register(ALICE)
        with pytest.raises(AlreadyRegisteredError):
            registry.register(ALICE)
        assert len(registry) == 1


class TestMemoStore:
    def test_fetch_missing_returns_empty(self):
        assert MemoStore().fetch(os.urandom(32)) == b""

    def test_store_and_fetch(self):
        store = MemoStore()
        key = os.urandom(32)
        store.store(key, b"encrypted")
        assert store.fetch(key) == b"encrypted"
        assert key in store

    def test_overwrite(self):
        store = MemoStore()
        key = os.urandom(32)
        store.store(key, b"first")
        store.store(key, b"second")
        assert store.fetch(key) == b"second"
        assert len(store) == 1


class TestReentrancyGuard:
    def test_same_entry_point_blocked(self):
        guard = ReentrancyGuard()
        with guard.hold("withdraw"):
            assert guard.is_active("withdraw")
            with pytest.raises(ReentrancyError):
                with guard.hold("withdraw"):
                    pass
        assert not guard.is_active("withdraw")

    def test_other_entry_points_allowed(self):
        guard = ReentrancyGuard()
        with guard.hold("withdraw"):
            with guard.hold("deposit"):
                assert guard.is_active("deposit")

    def test_released_on_exception(self):
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("withdraw"):
                raise RuntimeError("boom")
        assert not guard.is_active("withdraw")
