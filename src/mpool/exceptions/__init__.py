"""Custom exceptions for the Merkle privacy pool."""


class PoolException(Exception):
    """Base exception for all pool errors."""

    reason = "Pool operation failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.reason)


# Construction Errors
class ConfigurationError(PoolException):
    """Base exception for configuration errors."""

    reason = "Invalid configuration"


class InvalidConstructionError(ConfigurationError):
    """Raised when the pool is created with a zero root or asset reference."""

    reason = "Invalid construction parameters"


# Deposit Errors
class DepositError(PoolException):
    """Base exception for deposit errors."""

    reason = "Deposit failed"


class WrongAmountError(DepositError):
    """Raised when a deposit does not carry exactly the fixed amount."""

    reason = "Must deposit exact amount"


class DirectTransferRejectedError(DepositError):
    """Raised on unsolicited value sent straight to the pool."""

    reason = "Use deposit functions"


# Withdrawal Errors
class WithdrawalError(PoolException):
    """Base exception for withdrawal errors."""

    reason = "Withdrawal failed"


class TooEarlyError(WithdrawalError):
    """Raised when the withdrawal delay has not elapsed."""

    reason = "Withdrawal too early"


class InvalidNullifierError(WithdrawalError):
    """Raised when the nullifier is the zero value."""

    reason = "Invalid nullifier"


class InvalidRecipientError(WithdrawalError):
    """Raised when the recipient is the zero address."""

    reason = "Invalid recipient"


class AlreadySpentError(WithdrawalError):
    """Raised when a nullifier has already been redeemed."""

    reason = "Withdrawal already processed"


# Proof Errors
class ProofError(PoolException):
    """Base exception for Merkle proof errors."""

    reason = "Proof rejected"


class EmptyProofError(ProofError):
    """Raised when the proof carries no sibling hashes."""

    reason = "Empty proof"


class InvalidProofError(ProofError):
    """Raised when the proof does not lead to the commitment root."""

    reason = "Invalid Merkle proof"


# Relayer Errors
class RelayerError(PoolException):
    """Base exception for relayer errors."""

    reason = "Relayer error"


class InvalidRelayerError(RelayerError):
    """Raised when a withdrawal names an unregistered relayer."""

    reason = "Invalid relayer"


class AlreadyRegisteredError(RelayerError):
    """Raised when an address registers as relayer twice."""

    reason = "Already registered"


# Batch Errors
class BatchError(PoolException):
    """Base exception for batch errors."""

    reason = "Batch error"


class EmptyBatchError(BatchError):
    """Raised when committing a batch with no members."""

    reason = "Empty batch"


class DuplicateBatchError(BatchError):
    """Raised when a batch digest was already committed."""

    reason = "Batch already processed"


# Transfer Errors
class TransferError(PoolException):
    """Base exception for fund movement errors."""

    reason = "Transfer error"


class TransferFailedError(TransferError):
    """Raised when a native or asset transfer cannot complete."""

    reason = "Transfer failed"


class ReentrancyError(PoolException):
    """Raised when an entry point is re-entered while it is running."""

    reason = "Reentrant call"


# Merkle Tree Errors
class MerkleTreeError(PoolException):
    """Base exception for off-chain tree building errors."""

    reason = "Merkle tree error"


class InvalidLeafError(MerkleTreeError):
    """Raised when a leaf is not part of the tree."""

    reason = "Leaf not in tree"


# Cryptography Errors
class CryptoError(PoolException):
    """Base exception for cryptographic errors."""

    reason = "Cryptographic error"


class EncryptionError(CryptoError):
    """Raised when memo encryption fails."""

    reason = "Encryption failed"


class DecryptionError(CryptoError):
    """Raised when memo decryption fails."""

    reason = "Decryption failed"


# Storage Errors
class StorageError(PoolException):
    """Base exception for storage errors."""

    reason = "Storage error"
