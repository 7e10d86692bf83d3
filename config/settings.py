"""Pydantic BaseSettings — contract addresses keyed by chain id, validated on load."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from web3 import Web3


class Settings(BaseSettings):
    """Central configuration loaded from env / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────
    APP_ENV: Literal["dev", "paper", "prod"] = "dev"
    APP_NAME: str = "nft-orders"
    LOG_LEVEL: str = "INFO"

    # ── Network / API ───────────────────────────────────────────
    RESERVOIR_API_BASE: str = "https://api.reservoir.tools"
    RESERVOIR_API_KEY: str = ""
    CHAIN_ID: int = 1
    RPC_URL: str = "https://cloudflare-eth.com"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # ── Credentials (never commit real values) ──────────────────
    PRIVATE_KEY: str = ""

    # ── Wyvern v2 ───────────────────────────────────────────────
    ORDER_KIND: str = "wyvern-v2"
    PROXY_REGISTRY_ADDRESSES: dict[int, str] = Field(
        default_factory=lambda: {
            1: "0xa5409ec958c83c3f309868babaca7c86dcb077c1",
            4: "0xf57b2c51ded3a29e6891aba85459d600256cf317",
        },
        validate_default=True,
    )
    EXCHANGE_ADDRESSES: dict[int, str] = Field(
        default_factory=lambda: {
            1: "0x7be8076f4ea4a4ad08075c2508e481d6c946d12b",
            4: "0x5206e78b21ce315ce284fb24cf05e0585a93b1d9",
        },
        validate_default=True,
    )

    # ── Transactions ────────────────────────────────────────────
    TX_RECEIPT_TIMEOUT_SECONDS: float = 120.0
    GAS_PRICE_MULTIPLIER: Decimal = Field(default=Decimal("1.2"))

    @field_validator("PROXY_REGISTRY_ADDRESSES", "EXCHANGE_ADDRESSES")
    @classmethod
    def checksum_addresses(cls, v: dict[int, str]) -> dict[int, str]:
        """Every configured contract address must be a valid address."""
        checked: dict[int, str] = {}
        for chain_id, address in v.items():
            if not Web3.is_address(address):
                raise ValueError(f"invalid address for chain {chain_id}: {address!r}")
            checked[chain_id] = Web3.to_checksum_address(address)
        return checked

    @field_validator("GAS_PRICE_MULTIPLIER")
    @classmethod
    def multiplier_at_least_one(cls, v: Decimal) -> Decimal:
        if v < Decimal("1"):
            raise ValueError("GAS_PRICE_MULTIPLIER must be >= 1")
        return v


settings = Settings()
