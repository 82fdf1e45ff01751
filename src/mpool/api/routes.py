"""REST API endpoints for the Merkle pool."""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mpool.core.pool import MerklePool
from mpool.models.schemas import (
    DepositRequest,
    DepositResponse,
    ErrorResponse,
    MemoDepositRequest,
    PoolStateResponse,
    RelayerWithdrawalRequest,
    WithdrawalRequest,
    WithdrawalResponse,
)
from mpool.storage import DatabaseManager, EventRecorder
from mpool.utils.encoding import bytes_to_hex, hex_to_bytes
from mpool.exceptions import (
    AlreadyRegisteredError,
    AlreadySpentError,
    BatchError,
    InvalidRelayerError,
    PoolException,
    ReentrancyError,
    TooEarlyError,
    TransferError,
)

# Configure logging
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Most specific classes first
_STATUS_CODES = (
    (TooEarlyError, 403),
    (InvalidRelayerError, 403),
    (AlreadySpentError, 409),
    (AlreadyRegisteredError, 409),
    (ReentrancyError, 409),
    (BatchError, 409),
    (TransferError, 502),
)


def status_for(exc: PoolException) -> int:
    """HTTP status for a pool exception."""
    for exc_type, status in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 400


def require_caller(x_caller: Optional[str] = Header(None)) -> str:
    """Caller identity from the ``X-Caller`` header."""
    if not x_caller:
        raise HTTPException(status_code=401, detail="Missing X-Caller header")
    return x_caller


def create_app(pool: MerklePool, db: Optional[DatabaseManager] = None) -> FastAPI:
    """
    Build the API around one pool.

    Args:
        pool: The pool served by this app
        db: Optional database; every published event is persisted to it
    """
    app = FastAPI(
        title="Merkle Pool REST API",
        description="Fixed-denomination privacy pool with relayers and batching",
        version=API_VERSION,
    )
    app.state.pool = pool
    app.state.db = db

    if db is not None:
        pool.events.subscribe(EventRecorder(db))

    # ============================================================================
    # Error Handlers
    # ============================================================================

    @app.exception_handler(PoolException)
    async def pool_exception_handler(request: Request, exc: PoolException):
        """Map pool rejections to HTTP errors."""
        return JSONResponse(
            status_code=status_for(exc),
            content=ErrorResponse(error=str(exc), code=exc.__class__.__name__).model_dump(),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Malformed addresses, hashes and hex payloads."""
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=f"Invalid input: {exc}", code="INVALID_INPUT").model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Convert Pydantic validation errors (422) to 400 Bad Request."""
        messages = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            messages.append(f"{field}: {error['msg']}")
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="; ".join(messages), code="VALIDATION_ERROR").model_dump(),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail), code="HTTP_ERROR").model_dump(),
        )

    # ============================================================================
    # System Endpoints
    # ============================================================================

    @app.get("/health", tags=["System"])
    async def health():
        """Health check."""
        return {"status": "operational", "version": API_VERSION}

    @app.get("/state", response_model=PoolStateResponse, tags=["System"])
    async def get_state():
        """Current pool summary."""
        return pool.get_state().to_dict()

    @app.get("/events", tags=["System"])
    async def list_events(kind: Optional[str] = None, limit: int = 100):
        """Published notifications, oldest first."""
        events = pool.events.filter(kind) if kind else pool.events.events
        return {
            "events": [event.model_dump() for event in events[:limit]],
            "total_count": len(events),
        }

    # ============================================================================
    # Deposit Endpoints
    # ============================================================================

    @app.post("/deposit", response_model=DepositResponse, tags=["Deposit"])
    async def deposit(request: DepositRequest, caller: str = Depends(require_caller)):
        """Deposit exactly the fixed amount of native value."""
        return pool.deposit(caller, request.value).to_dict()

    @app.post("/deposit/asset", response_model=DepositResponse, tags=["Deposit"])
    async def deposit_asset(caller: str = Depends(require_caller)):
        """Deposit the fixed amount of the asset (requires prior approval)."""
        return pool.deposit_asset(caller).to_dict()

    @app.post("/deposit/memo", response_model=DepositResponse, tags=["Deposit"])
    async def deposit_with_memo(request: MemoDepositRequest, caller: str = Depends(require_caller)):
        """Deposit native value together with an encrypted memo."""
        payload = hex_to_bytes(request.memo)
        return pool.deposit_with_memo(caller, payload, request.value).to_dict()

    @app.post("/receive", tags=["Deposit"])
    async def receive(request: DepositRequest, caller: str = Depends(require_caller)):
        """Plain value transfer to the pool; always rejected."""
        pool.receive(caller, request.value)

    # ============================================================================
    # Relayer Endpoints
    # ============================================================================

    @app.post("/relayers", tags=["Relayer"])
    async def register_relayer(caller: str = Depends(require_caller)):
        """Register the caller as a relayer."""
        pool.register_relayer(caller)
        return {"relayer": caller, "registered": True}

    @app.get("/relayers/{address}", tags=["Relayer"])
    async def is_relayer(address: str):
        return {"relayer": address, "registered": pool.is_relayer(address)}

    # ============================================================================
    # Withdrawal Endpoints
    # ============================================================================

    @app.post("/withdraw", response_model=WithdrawalResponse, tags=["Withdrawal"])
    async def withdraw(request: WithdrawalRequest, caller: str = Depends(require_caller)):
        """Withdraw the full native amount to the recipient, without a relayer."""
        receipt = pool.withdraw(caller, request.nullifier, request.proof, request.recipient)
        return receipt.to_dict()

    @app.post("/withdraw/relayer", response_model=WithdrawalResponse, tags=["Withdrawal"])
    async def withdraw_via_relayer(
        request: RelayerWithdrawalRequest, caller: str = Depends(require_caller)
    ):
        """Withdraw native value through a registered relayer."""
        receipt = pool.withdraw_via_relayer(
            caller, request.nullifier, request.proof, request.recipient, request.relayer
        )
        return receipt.to_dict()

    @app.post("/withdraw/asset", response_model=WithdrawalResponse, tags=["Withdrawal"])
    async def withdraw_asset(request: WithdrawalRequest, caller: str = Depends(require_caller)):
        """Withdraw the full asset amount to the recipient."""
        receipt = pool.withdraw_asset(caller, request.nullifier, request.proof, request.recipient)
        return receipt.to_dict()

    # ============================================================================
    # Query Endpoints
    # ============================================================================

    @app.get("/batch/size", tags=["Query"])
    async def batch_size():
        return {"pending_batch_size": pool.batch_size()}

    @app.get("/deposits/{identity}", tags=["Query"])
    async def deposit_timestamp(identity: str):
        return {"identity": identity, "timestamp": pool.deposit_timestamp(identity)}

    @app.get("/memos/{key}", tags=["Query"])
    async def get_memo(key: str):
        return {"memo_key": key, "memo": bytes_to_hex(pool.get_memo(key))}

    @app.get("/", tags=["System"])
    async def root():
        """API documentation root."""
        return {
            "name": "Merkle Pool REST API",
            "version": API_VERSION,
            "merkle_root": bytes_to_hex(pool.merkle_root),
            "endpoints": {
                "health": "/health",
                "state": "/state",
                "events": "/events",
                "deposit": "POST /deposit",
                "deposit_asset": "POST /deposit/asset",
                "deposit_memo": "POST /deposit/memo",
                "register_relayer": "POST /relayers",
                "withdraw": "POST /withdraw",
                "withdraw_relayer": "POST /withdraw/relayer",
                "withdraw_asset": "POST /withdraw/asset",
                "docs": "/docs",
            },
        }

    return app


if __name__ == "__main__":
    import uvicorn

    from mpool.config import configure_logging, get_settings
    from mpool.core.asset import InMemoryAsset
    from mpool.core.substrate import Substrate
    from mpool.storage import get_db_manager

    settings = get_settings()
    configure_logging(settings.log_level)
    if not settings.merkle_root:
        raise SystemExit("Set MPOOL_MERKLE_ROOT to the commitment root")

    served_pool = MerklePool(
        settings.merkle_root, InMemoryAsset("Pool Token", "POOL"), Substrate(), settings
    )
    uvicorn.run(create_app(served_pool, get_db_manager()), host="0.0.0.0", port=8000)
