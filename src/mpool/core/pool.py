"""Merkle Pool: withdrawal authorization and anonymity-set engine.

Depositors lock a fixed denomination; withdrawals to any recipient are
authorized by a Merkle proof of the (nullifier, recipient) credential
against a commitment root fixed at construction.

Transaction Flow:

    DEPOSIT Phase:
        1. Caller attaches exactly DEPOSIT_AMOUNT (native) or the asset
           collaborator pulls it from the caller
        2. Caller's deposit timestamp is recorded (restarts its time-lock)
        3. Optional memo stored under keccak256(caller || now)
        4. Caller appended to the pending batch; a full batch is committed
           and may trigger a decoy notification

    WITHDRAWAL Phase:
        1. Relayer must be registered (relayer path only)
        2. Caller's time-lock must have elapsed
        3. Nullifier and recipient must be non-zero
        4. Nullifier must be unspent
        5. Proof must be non-empty and lead to the commitment root
        6. Nullifier marked spent
        7. Funds sent: net amount to recipient and fee to relayer (relayer
           path), or the full amount to the recipient (direct and asset paths)

Key Invariants:
    - Each nullifier is spent at most once
    - State changes are committed before any external transfer
    - Every operation either completes or leaves no effect at all
    - No entry point can be re-entered while it is running
"""

import copy
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence, Union

from mpool.config import PoolSettings, get_settings
from mpool.core.asset import AssetTransfer, Snapshottable
from mpool.core.events import (
    BatchProcessedEvent,
    DepositEvent,
    DummyTransactionEvent,
    EventLog,
    MemoStoredEvent,
    RelayerRegisteredEvent,
    WithdrawalEvent,
)
from mpool.core.guard import ReentrancyGuard
from mpool.core.merkle_tree import verify_proof
from mpool.core.state import PoolState
from mpool.core.substrate import Substrate
from mpool.utils.encoding import (
    ZERO_ADDRESS,
    ZERO_BYTES32,
    bytes_to_hex,
    to_address,
    to_bytes32,
)
from mpool.utils.hash import compute_leaf, compute_memo_key, keccak256
from mpool.exceptions import (
    AlreadySpentError,
    DirectTransferRejectedError,
    EmptyProofError,
    InvalidConstructionError,
    InvalidNullifierError,
    InvalidProofError,
    InvalidRecipientError,
    InvalidRelayerError,
    TooEarlyError,
    TransferFailedError,
    WrongAmountError,
)

logger = logging.getLogger(__name__)

AddressLike = Union[bytes, str]
Bytes32Like = Union[bytes, str]


class DepositReceipt:
    """Receipt for a successful deposit."""

    def __init__(
        self,
        depositor: bytes,
        amount: int,
        timestamp: int,
        pending_batch_size: int,
        batch_hash: Optional[bytes] = None,
        memo_key: Optional[bytes] = None,
    ):
        self.depositor = depositor
        self.amount = amount
        self.timestamp = timestamp
        self.pending_batch_size = pending_batch_size
        self.batch_hash = batch_hash
        self.memo_key = memo_key

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "depositor": bytes_to_hex(self.depositor),
            "amount": self.amount,
            "timestamp": self.timestamp,
            "pending_batch_size": self.pending_batch_size,
            "batch_hash": bytes_to_hex(self.batch_hash) if self.batch_hash else None,
            "memo_key": bytes_to_hex(self.memo_key) if self.memo_key else None,
        }


class WithdrawalReceipt:
    """Receipt for a successful withdrawal."""

    def __init__(
        self,
        nullifier: bytes,
        recipient: bytes,
        amount: int,
        timestamp: int,
        relayer: Optional[bytes] = None,
        fee: int = 0,
    ):
        self.nullifier = nullifier
        self.recipient = recipient
        self.amount = amount
        self.timestamp = timestamp
        self.relayer = relayer
        self.fee = fee

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "nullifier": bytes_to_hex(self.nullifier),
            "recipient": bytes_to_hex(self.recipient),
            "amount": self.amount,
            "timestamp": self.timestamp,
            "relayer": bytes_to_hex(self.relayer) if self.relayer else None,
            "fee": self.fee,
        }


class PoolStateView:
    """Read-only summary of the pool."""

    def __init__(
        self,
        merkle_root: bytes,
        pool_address: bytes,
        native_balance: int,
        asset_balance: Optional[int],
        pending_batch_size: int,
        processed_batches: int,
        num_depositors: int,
        num_nullifiers: int,
        num_relayers: int,
        num_memos: int,
    ):
        self.merkle_root = merkle_root
        self.pool_address = pool_address
        self.native_balance = native_balance
        self.asset_balance = asset_balance
        self.pending_batch_size = pending_batch_size
        self.processed_batches = processed_batches
        self.num_depositors = num_depositors
        self.num_nullifiers = num_nullifiers
        self.num_relayers = num_relayers
        self.num_memos = num_memos

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "merkle_root": bytes_to_hex(self.merkle_root),
            "pool_address": bytes_to_hex(self.pool_address),
            "native_balance": self.native_balance,
            "asset_balance": self.asset_balance,
            "pending_batch_size": self.pending_batch_size,
            "processed_batches": self.processed_batches,
            "num_depositors": self.num_depositors,
            "num_nullifiers": self.num_nullifiers,
            "num_relayers": self.num_relayers,
            "num_memos": self.num_memos,
        }


class MerklePool:
    """
    Fixed-denomination privacy pool.

    All mutable state lives in ``self.state``; the commitment root, asset
    reference and amounts are fixed at construction.
    """

    def __init__(
        self,
        merkle_root: Bytes32Like,
        asset: AssetTransfer,
        substrate: Substrate,
        settings: Optional[PoolSettings] = None,
    ):
        """
        Create a pool bound to one commitment root and one asset.

        Args:
            merkle_root: Root of the (nullifier, recipient) credential tree
            asset: Fungible token collaborator for the asset variant
            substrate: Execution substrate (clock and native value)
            settings: Pool constants (default: environment settings)

        Raises:
            InvalidConstructionError: If the root or asset reference is zero
        """
        try:
            root = to_bytes32(merkle_root)
        except (TypeError, ValueError) as e:
            raise InvalidConstructionError(f"Invalid Merkle root: {e}")
        if root == ZERO_BYTES32:
            raise InvalidConstructionError("Merkle root cannot be zero")

        asset_address = getattr(asset, "address", None)
        if asset is None or not asset_address or asset_address == ZERO_ADDRESS:
            raise InvalidConstructionError("Asset reference cannot be zero")

        settings = settings or get_settings()

        self._merkle_root = root
        self._asset = asset
        self.substrate = substrate

        self.DEPOSIT_AMOUNT = settings.deposit_amount
        self.RELAYER_FEE = settings.relayer_fee
        self.WITHDRAWAL_DELAY = settings.withdrawal_delay
        self.BATCH_SIZE = settings.batch_size

        self.address = keccak256(b"pool:", root, asset_address)[12:]
        self.state = PoolState.create(
            withdrawal_delay=settings.withdrawal_delay,
            batch_size=settings.batch_size,
            decoy_modulus=settings.decoy_modulus,
        )
        self.events = EventLog()

        self._guard = ReentrancyGuard()
        self._depth = 0

        # Value reaches the pool only through a deposit entry point
        self._pulling = 0
        self.substrate.on_receive(self.address, self._on_receive)

        logger.info(
            f"Pool {bytes_to_hex(self.address)} created for root {bytes_to_hex(root)[:18]}..."
        )

    @property
    def merkle_root(self) -> bytes:
        return self._merkle_root

    @property
    def asset(self) -> AssetTransfer:
        return self._asset

    # ========== ATOMIC EXECUTION ==========

    def _checkpoint(self) -> tuple:
        asset_snapshot = (
            self._asset.snapshot() if isinstance(self._asset, Snapshottable) else None
        )
        return (
            copy.deepcopy(self.state),
            self.substrate.snapshot(),
            asset_snapshot,
            self.events.mark(),
        )

    def _restore(self, checkpoint: tuple) -> None:
        state, balances, asset_snapshot, event_mark = checkpoint
        self.state = state
        self.substrate.restore(balances)
        if asset_snapshot is not None:
            self._asset.restore(asset_snapshot)
        self.events.rollback(event_mark)

    @contextmanager
    def _operation(self, entry_point: str) -> Iterator[None]:
        """
        Run an entry point under its reentrancy slot, atomically.

        On any exception every change made since entry is reverted and the
        exception propagates. Events are published when the outermost
        operation completes.
        """
        with self._guard.hold(entry_point):
            checkpoint = self._checkpoint()
            self._depth += 1
            try:
                yield
            except Exception as e:
                self._restore(checkpoint)
                logger.warning(f"{entry_point} reverted: {e.__class__.__name__}: {e}")
                raise
            finally:
                self._depth -= 1
            if self._depth == 0:
                self.events.publish()

    # ========== DEPOSITS ==========

    def deposit(self, caller: AddressLike, value: int) -> DepositReceipt:
        """
        Deposit the fixed amount of native value.

        Args:
            caller: Depositor identity
            value: Native value attached to the call

        Raises:
            WrongAmountError: If ``value`` differs from DEPOSIT_AMOUNT
            TransferFailedError: If the caller cannot cover ``value``
        """
        caller = to_address(caller)
        with self._operation("deposit"):
            self._require_exact_amount(value)
            self._pull_native(caller, value)
            receipt = self._record_deposit(caller)
        return receipt

    def deposit_asset(self, caller: AddressLike) -> DepositReceipt:
        """
        Deposit the fixed amount of the asset.

        The caller must have approved the pool for at least DEPOSIT_AMOUNT.

        Raises:
            TransferFailedError: If the asset cannot pull the funds
        """
        caller = to_address(caller)
        with self._operation("deposit_asset"):
            if not self._asset.transfer_from(
                self.address, caller, self.address, self.DEPOSIT_AMOUNT
            ):
                raise TransferFailedError("Asset transfer into pool failed")
            receipt = self._record_deposit(caller, asset=self._asset.address)
        return receipt

    def deposit_with_memo(self, caller: AddressLike, payload: bytes, value: int) -> DepositReceipt:
        """
        Deposit native value and attach an encrypted memo.

        The memo is stored under ``compute_memo_key(caller, now)``, which the
        receipt returns.

        Raises:
            WrongAmountError: If ``value`` differs from DEPOSIT_AMOUNT
            TransferFailedError: If the caller cannot cover ``value``
        """
        caller = to_address(caller)
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError(f"Memo payload must be bytes, got {type(payload)}")

        with self._operation("deposit_with_memo"):
            self._require_exact_amount(value)
            self._pull_native(caller, value)
            receipt = self._record_deposit(caller, memo=bytes(payload))
        return receipt

    def receive(self, caller: AddressLike, value: int) -> None:
        """Reject value sent to the pool outside the deposit functions."""
        raise DirectTransferRejectedError()

    def _on_receive(self, sender: bytes, amount: int) -> None:
        """Receive hook of the pool address on the substrate."""
        if not self._pulling:
            raise DirectTransferRejectedError()

    def _require_exact_amount(self, value: int) -> None:
        if not isinstance(value, int) or value != self.DEPOSIT_AMOUNT:
            raise WrongAmountError(
                f"Must deposit exact amount: expected {self.DEPOSIT_AMOUNT}, got {value!r}"
            )

    def _pull_native(self, caller: bytes, value: int) -> None:
        self._pulling += 1
        try:
            accepted = self.substrate.send(caller, self.address, value)
        finally:
            self._pulling -= 1
        if not accepted:
            raise TransferFailedError(f"{bytes_to_hex(caller)} cannot cover {value}")

    def _record_deposit(
        self,
        caller: bytes,
        memo: Optional[bytes] = None,
        asset: Optional[bytes] = None,
    ) -> DepositReceipt:
        now = self.substrate.now()
        self.state.deposits.record_deposit(caller, now)

        memo_key = None
        if memo is not None:
            memo_key = compute_memo_key(caller, now)
            self.state.memos.store(memo_key, memo)
            self.events.emit(MemoStoredEvent(timestamp=now, memo_key=bytes_to_hex(memo_key)))

        self.events.emit(
            DepositEvent(
                timestamp=now,
                depositor=bytes_to_hex(caller),
                amount=self.DEPOSIT_AMOUNT,
                asset=bytes_to_hex(asset) if asset else None,
            )
        )

        batch_hash = None
        commit = self.state.batch.append(caller, now)
        if commit is not None:
            batch_hash = commit.digest
            self.events.emit(
                BatchProcessedEvent(
                    timestamp=now, batch_hash=bytes_to_hex(commit.digest), size=commit.size
                )
            )
            if commit.decoy:
                self.events.emit(DummyTransactionEvent(timestamp=now))

        logger.info(f"Deposit from {bytes_to_hex(caller)} at {now}")

        return DepositReceipt(
            depositor=caller,
            amount=self.DEPOSIT_AMOUNT,
            timestamp=now,
            pending_batch_size=self.state.batch.size,
            batch_hash=batch_hash,
            memo_key=memo_key,
        )

    # ========== RELAYERS ==========

    def register_relayer(self, caller: AddressLike) -> None:
        """
        Approve the caller as a relayer.

        Raises:
            AlreadyRegisteredError: If the caller is already approved
        """
        caller = to_address(caller)
        with self._operation("register_relayer"):
            self.state.relayers.register(caller)
            self.events.emit(
                RelayerRegisteredEvent(timestamp=self.substrate.now(), relayer=bytes_to_hex(caller))
            )
        logger.info(f"Relayer registered: {bytes_to_hex(caller)}")

    # ========== WITHDRAWALS ==========

    def withdraw(
        self,
        caller: AddressLike,
        nullifier: Bytes32Like,
        proof: Sequence[Bytes32Like],
        recipient: AddressLike,
    ) -> WithdrawalReceipt:
        """
        Withdraw the full DEPOSIT_AMOUNT of native value, without a relayer.

        Same checks as ``withdraw_via_relayer`` minus the relayer; no fee.

        Raises:
            TooEarlyError: If the caller's withdrawal delay has not elapsed
            AlreadySpentError: If the nullifier was already redeemed
            EmptyProofError: If the proof has no siblings
            InvalidProofError: If the proof does not lead to the root
            TransferFailedError: If the payout cannot complete
        """
        caller = to_address(caller)
        nullifier = to_bytes32(nullifier)
        recipient = to_address(recipient)

        with self._operation("withdraw"):
            now = self.substrate.now()
            self._authorize_withdrawal(caller, nullifier, proof, recipient, now)

            if not self.substrate.send(self.address, recipient, self.DEPOSIT_AMOUNT):
                raise TransferFailedError("Transfer to recipient failed")

            self.events.emit(
                WithdrawalEvent(
                    timestamp=now,
                    nullifier=bytes_to_hex(nullifier),
                    recipient=bytes_to_hex(recipient),
                    amount=self.DEPOSIT_AMOUNT,
                )
            )

        logger.info(f"Withdrawal of {self.DEPOSIT_AMOUNT} to {bytes_to_hex(recipient)}")
        return WithdrawalReceipt(
            nullifier=nullifier,
            recipient=recipient,
            amount=self.DEPOSIT_AMOUNT,
            timestamp=now,
        )

    def withdraw_via_relayer(
        self,
        caller: AddressLike,
        nullifier: Bytes32Like,
        proof: Sequence[Bytes32Like],
        recipient: AddressLike,
        relayer: AddressLike,
    ) -> WithdrawalReceipt:
        """
        Withdraw native value, paying RELAYER_FEE to a registered relayer.

        The time-lock is evaluated against the caller's own deposit history.

        Raises:
            InvalidRelayerError: If the relayer is not registered
            TooEarlyError: If the caller's withdrawal delay has not elapsed
            InvalidNullifierError: If the nullifier is zero
            InvalidRecipientError: If the recipient is the zero address
            AlreadySpentError: If the nullifier was already redeemed
            EmptyProofError: If the proof has no siblings
            InvalidProofError: If the proof does not lead to the root
            TransferFailedError: If either payout cannot complete
        """
        caller = to_address(caller)
        nullifier = to_bytes32(nullifier)
        recipient = to_address(recipient)
        relayer = to_address(relayer)

        with self._operation("withdraw_via_relayer"):
            if not self.state.relayers.is_relayer(relayer):
                raise InvalidRelayerError(f"{bytes_to_hex(relayer)} is not a registered relayer")

            now = self.substrate.now()
            self._authorize_withdrawal(caller, nullifier, proof, recipient, now)

            net_amount = self.DEPOSIT_AMOUNT - self.RELAYER_FEE
            if not self.substrate.send(self.address, recipient, net_amount):
                raise TransferFailedError("Transfer to recipient failed")
            if not self.substrate.send(self.address, relayer, self.RELAYER_FEE):
                raise TransferFailedError("Transfer to relayer failed")

            self.events.emit(
                WithdrawalEvent(
                    timestamp=now,
                    nullifier=bytes_to_hex(nullifier),
                    recipient=bytes_to_hex(recipient),
                    amount=net_amount,
                )
            )

        logger.info(f"Withdrawal of {net_amount} to {bytes_to_hex(recipient)} via relayer")
        return WithdrawalReceipt(
            nullifier=nullifier,
            recipient=recipient,
            amount=net_amount,
            timestamp=now,
            relayer=relayer,
            fee=self.RELAYER_FEE,
        )

    def withdraw_asset(
        self,
        caller: AddressLike,
        nullifier: Bytes32Like,
        proof: Sequence[Bytes32Like],
        recipient: AddressLike,
    ) -> WithdrawalReceipt:
        """
        Withdraw the full DEPOSIT_AMOUNT of the asset to ``recipient``.

        Same checks as ``withdraw_via_relayer`` minus the relayer; no fee.
        """
        caller = to_address(caller)
        nullifier = to_bytes32(nullifier)
        recipient = to_address(recipient)

        with self._operation("withdraw_asset"):
            now = self.substrate.now()
            self._authorize_withdrawal(caller, nullifier, proof, recipient, now)

            if not self._asset.transfer(self.address, recipient, self.DEPOSIT_AMOUNT):
                raise TransferFailedError("Asset transfer to recipient failed")

            self.events.emit(
                WithdrawalEvent(
                    timestamp=now,
                    nullifier=bytes_to_hex(nullifier),
                    recipient=bytes_to_hex(recipient),
                    amount=self.DEPOSIT_AMOUNT,
                )
            )

        logger.info(f"Asset withdrawal of {self.DEPOSIT_AMOUNT} to {bytes_to_hex(recipient)}")
        return WithdrawalReceipt(
            nullifier=nullifier,
            recipient=recipient,
            amount=self.DEPOSIT_AMOUNT,
            timestamp=now,
        )

    def _authorize_withdrawal(
        self,
        caller: bytes,
        nullifier: bytes,
        proof: Sequence[Bytes32Like],
        recipient: bytes,
        now: int,
    ) -> None:
        """Eligibility and proof checks shared by both withdrawal paths; marks the nullifier."""
        deposits = self.state.deposits
        if not deposits.is_eligible(caller, now):
            raise TooEarlyError(
                f"Withdrawal too early: unlocks at {deposits.unlock_time(caller)}, now {now}"
            )

        if nullifier == ZERO_BYTES32:
            raise InvalidNullifierError()
        if recipient == ZERO_ADDRESS:
            raise InvalidRecipientError()

        if self.state.nullifiers.is_spent(nullifier):
            raise AlreadySpentError()

        leaf = compute_leaf(nullifier, recipient)
        if not proof:
            raise EmptyProofError()
        try:
            siblings = [to_bytes32(sibling) for sibling in proof]
        except (TypeError, ValueError) as e:
            raise InvalidProofError(f"Malformed proof: {e}")
        if not verify_proof(siblings, self._merkle_root, leaf):
            raise InvalidProofError()

        self.state.nullifiers.mark_spent(nullifier, recipient=recipient, timestamp=now)

    # ========== QUERIES ==========

    def batch_size(self) -> int:
        """Number of deposits in the pending batch."""
        return self.state.batch.size

    def deposit_timestamp(self, identity: AddressLike) -> int:
        """Timestamp of the identity's latest deposit, or 0."""
        return self.state.deposits.get_timestamp(to_address(identity))

    def get_memo(self, key: Bytes32Like) -> bytes:
        """Memo payload stored under ``key``, or empty bytes."""
        return self.state.memos.fetch(to_bytes32(key))

    def memo_key(self, identity: AddressLike, timestamp: int) -> bytes:
        """Derive the memo key of a deposit."""
        return compute_memo_key(to_address(identity), timestamp)

    def is_relayer(self, address: AddressLike) -> bool:
        return self.state.relayers.is_relayer(to_address(address))

    def is_spent(self, nullifier: Bytes32Like) -> bool:
        return self.state.nullifiers.is_spent(to_bytes32(nullifier))

    def get_state(self) -> PoolStateView:
        """Return a summary of the pool for monitoring."""
        balance_of = getattr(self._asset, "balance_of", None)
        return PoolStateView(
            merkle_root=self._merkle_root,
            pool_address=self.address,
            native_balance=self.substrate.balance_of(self.address),
            asset_balance=balance_of(self.address) if balance_of else None,
            pending_batch_size=self.state.batch.size,
            processed_batches=len(self.state.batch.processed),
            num_depositors=len(self.state.deposits),
            num_nullifiers=self.state.nullifiers.size,
            num_relayers=len(self.state.relayers),
            num_memos=len(self.state.memos),
        )

    def __repr__(self) -> str:
        return (
            f"MerklePool(address={bytes_to_hex(self.address)}, "
            f"root={self._merkle_root.hex()[:16]}..., "
            f"spent={self.state.nullifiers.size})"
        )
