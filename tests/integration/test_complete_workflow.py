"""Integration tests for the complete Merkle pool system."""

import pytest

from conftest import DAY, DEPOSIT_AMOUNT, ETHER, RELAYER_FEE, make_nullifier
from mpool.core.events import BatchProcessedEvent, WithdrawalEvent
from mpool.crypto import MemoCipher
from mpool.storage import DatabaseManager, EventRecorder
from mpool.exceptions import AlreadySpentError, TooEarlyError


class TestCompletePoolWorkflow:
    """Tests for complete pool workflows."""

    def test_single_user_deposit_and_withdrawal(self, pool, substrate, users, relayer, proof_for):
        """Deposit, wait out the delay, withdraw through a relayer."""
        alice = users[0]

        # Step 1: Deposit
        receipt = pool.deposit(alice, DEPOSIT_AMOUNT)
        assert receipt.pending_batch_size == 1

        # Step 2: Relayer joins
        pool.register_relayer(relayer)

        # Step 3: Too early
        nullifier = make_nullifier(0)
        proof = proof_for(nullifier, alice)
        with pytest.raises(TooEarlyError):
            pool.withdraw_via_relayer(alice, nullifier, proof, alice, relayer)

        # Step 4: Withdraw after the delay
        substrate.advance(DAY)
        pool.withdraw_via_relayer(alice, nullifier, proof, alice, relayer)

        assert substrate.balance_of(alice) == 10 * ETHER - RELAYER_FEE
        assert substrate.balance_of(relayer) == ETHER + RELAYER_FEE
        assert substrate.balance_of(pool.address) == 0

        # Step 5: No second redemption
        with pytest.raises(AlreadySpentError):
            pool.withdraw_via_relayer(alice, nullifier, proof, alice, relayer)

    def test_full_anonymity_set(self, pool, substrate, users, relayer, proof_for):
        """Eight users deposit, one batch commits, everyone withdraws."""
        for user in users:
            pool.deposit(user, DEPOSIT_AMOUNT)

        assert len(pool.events.filter(BatchProcessedEvent)) == 1
        assert pool.batch_size() == 3

        pool.register_relayer(relayer)
        substrate.advance(DAY)

        for i, user in enumerate(users):
            nullifier = make_nullifier(i)
            pool.withdraw_via_relayer(user, nullifier, proof_for(nullifier, user), user, relayer)

        assert len(pool.events.filter(WithdrawalEvent)) == len(users)
        assert substrate.balance_of(pool.address) == 0
        assert substrate.balance_of(relayer) == ETHER + len(users) * RELAYER_FEE
        assert pool.get_state().num_nullifiers == len(users)

    def test_mixed_native_and_asset(self, pool, substrate, asset, users, relayer, proof_for):
        """Native and asset deposits settle through their own paths."""
        pool.deposit(users[0], DEPOSIT_AMOUNT)
        pool.deposit_asset(users[1])
        pool.register_relayer(relayer)
        substrate.advance(DAY)

        n0, n1 = make_nullifier(0), make_nullifier(1)
        pool.withdraw_via_relayer(users[0], n0, proof_for(n0, users[0]), users[0], relayer)
        pool.withdraw_asset(users[1], n1, proof_for(n1, users[1]), users[1])

        assert asset.balance_of(users[1]) == 10 * DEPOSIT_AMOUNT
        assert asset.balance_of(pool.address) == 0
        assert substrate.balance_of(pool.address) == 0

    def test_memo_handoff(self, pool, users):
        """Depositor leaves a sealed note the recipient can read."""
        private_key, public_key = MemoCipher.generate_keypair()
        sealed = MemoCipher.seal(public_key, b"nullifier0 is yours")

        receipt = pool.deposit_with_memo(users[0], sealed, DEPOSIT_AMOUNT)
        key = pool.memo_key(users[0], receipt.timestamp)

        assert MemoCipher.open(private_key, pool.get_memo(key)) == b"nullifier0 is yours"

    def test_history_persisted(self, tmp_path, pool, substrate, users, relayer, proof_for):
        """Every committed notification lands in the database."""
        db = DatabaseManager(f"sqlite:///{tmp_path / 'history.db'}")
        db.create_tables()
        pool.events.subscribe(EventRecorder(db))

        for user in users[:5]:
            pool.deposit(user, DEPOSIT_AMOUNT)
        pool.register_relayer(relayer)
        substrate.advance(DAY)
        nullifier = make_nullifier(2)
        pool.withdraw_via_relayer(
            users[2], nullifier, proof_for(nullifier, users[2]), users[2], relayer
        )

        session = db.get_session()
        try:
            assert db.count_events(session, "Deposit") == 5
            assert db.count_events(session, "BatchProcessed") == 1
            assert db.count_events(session, "Withdrawal") == 1
            assert db.count_events(session) == len(pool.events)
        finally:
            session.close()
            db.engine.dispose()
