"""
Configuration management using pydantic-settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quizpay.constants import (
    DEFAULT_FEE_RATE_PER_KB,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SETTLE_DELAY,
    DUST_THRESHOLD,
    WHATSONCHAIN_API_MAINNET,
    WHATSONCHAIN_API_TESTNET,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: Literal["mainnet", "testnet"] = "mainnet"

    # Platform (paying) wallet; absent means rewards are never sent
    platform_wif: SecretStr | None = None

    # Empty = WhatsOnChain endpoint for the network
    indexer_url: str = ""

    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    settle_delay: float = Field(default=DEFAULT_SETTLE_DELAY, ge=0)

    fee_rate_per_kb: int = Field(default=DEFAULT_FEE_RATE_PER_KB, ge=0)
    dust_threshold: int = Field(default=DUST_THRESHOLD, ge=1)

    key_store_path: Path = Path.home() / ".quizpay" / "wallet.json"

    log_level: str = "INFO"

    @model_validator(mode="after")
    def set_indexer_default(self) -> Settings:
        """Pick the WhatsOnChain endpoint matching the network if none was given."""
        if not self.indexer_url:
            default = (
                WHATSONCHAIN_API_MAINNET if self.network == "mainnet" else WHATSONCHAIN_API_TESTNET
            )
            object.__setattr__(self, "indexer_url", default)
        return self


def get_settings() -> Settings:
    return Settings()
