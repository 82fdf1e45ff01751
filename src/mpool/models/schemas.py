"""Pydantic data models for the pool REST API."""

from pydantic import BaseModel, Field
from typing import List, Optional


class DepositRequest(BaseModel):
    """Request model for native deposits."""
    value: int = Field(..., ge=0, description="Native value attached, in base units")


class MemoDepositRequest(BaseModel):
    """Request model for native deposits carrying a memo."""
    value: int = Field(..., ge=0, description="Native value attached, in base units")
    memo: str = Field(..., description="Encrypted memo payload (hex)")


class DepositResponse(BaseModel):
    """Response model for deposit operations."""
    depositor: str = Field(..., description="Depositor address (hex)")
    amount: int
    timestamp: int = Field(..., description="Block timestamp of the deposit")
    pending_batch_size: int
    batch_hash: Optional[str] = Field(default=None, description="Set when this deposit closed a batch")
    memo_key: Optional[str] = Field(default=None, description="Key of the stored memo (hex)")


class RelayerWithdrawalRequest(BaseModel):
    """Request model for relayer-mediated native withdrawals."""
    nullifier: str = Field(..., description="Nullifier (hex)")
    proof: List[str] = Field(..., description="Merkle proof (hex list)")
    recipient: str = Field(..., description="Recipient address")
    relayer: str = Field(..., description="Registered relayer address")


class WithdrawalRequest(BaseModel):
    """Request model for direct native withdrawals and asset withdrawals."""
    nullifier: str = Field(..., description="Nullifier (hex)")
    proof: List[str] = Field(..., description="Merkle proof (hex list)")
    recipient: str = Field(..., description="Recipient address")


class WithdrawalResponse(BaseModel):
    """Response model for withdrawal operations."""
    nullifier: str
    recipient: str
    amount: int = Field(..., description="Net amount received by the recipient")
    timestamp: int
    relayer: Optional[str] = None
    fee: int = 0


class PoolStateResponse(BaseModel):
    """Response model for pool state."""
    merkle_root: str = Field(..., description="Commitment root (hex)")
    pool_address: str
    native_balance: int
    asset_balance: Optional[int] = None
    pending_batch_size: int
    processed_batches: int
    num_depositors: int
    num_nullifiers: int
    num_relayers: int
    num_memos: int


class ErrorResponse(BaseModel):
    """Error response."""
    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Error class name")
