"""Pool configuration.

Values are read from ``MPOOL_*`` environment variables or a ``.env`` file.
A pool copies them at construction and never changes them afterwards.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ONE_ETHER = 10**18


class PoolSettings(BaseSettings):
    """Constants fixed for the lifetime of a pool."""

    model_config = SettingsConfigDict(
        env_prefix="MPOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    deposit_amount: int = Field(default=ONE_ETHER, gt=0, description="Fixed denomination in base units")
    relayer_fee: int = Field(default=ONE_ETHER // 1000, ge=0, description="Fee paid to the relayer")
    withdrawal_delay: int = Field(default=24 * 60 * 60, ge=0, description="Seconds after deposit")
    batch_size: int = Field(default=5, ge=1, description="Deposits per committed batch")
    decoy_modulus: int = Field(default=3, ge=1, description="Decoy fires when time % modulus == 0")

    merkle_root: Optional[str] = Field(default=None, description="Commitment root served by the API")
    database_url: str = Field(default="sqlite:///mpool.db")
    log_level: str = Field(default="INFO")

    @model_validator(mode="after")
    def _fee_below_amount(self) -> "PoolSettings":
        if self.relayer_fee >= self.deposit_amount:
            raise ValueError("relayer_fee must be smaller than deposit_amount")
        return self


@lru_cache(maxsize=1)
def get_settings() -> PoolSettings:
    """Get the process-wide settings."""
    return PoolSettings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts and the API server."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
