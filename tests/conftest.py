"""Shared fixtures: an in-memory chain and signers bound to it."""

from __future__ import annotations

import time
from typing import Any, Callable

import pytest

from config.settings import settings
from web3_infra.wyvern import (
    ERC721_SINGLE_TOKEN,
    REPLACEMENT_PATTERN_BUY,
    REPLACEMENT_PATTERN_SELL,
    ZERO_ADDRESS,
    Order,
)

from fakes import (
    BUYER_KEY,
    CHAIN_ID,
    COLLECTION,
    FEE_RECIPIENT,
    OWNER_KEY,
    STRANGER_KEY,
    TOKEN_ID,
    WETH,
    FakeChain,
    FakeSigner,
    transfer_from_calldata,
)

# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def owner(chain: FakeChain) -> FakeSigner:
    signer = FakeSigner(chain, OWNER_KEY)
    chain.collection.owners[TOKEN_ID] = signer.address
    return signer


@pytest.fixture
def buyer(chain: FakeChain) -> FakeSigner:
    return FakeSigner(chain, BUYER_KEY)


@pytest.fixture
def stranger(chain: FakeChain) -> FakeSigner:
    return FakeSigner(chain, STRANGER_KEY)


@pytest.fixture
def buy_params(buyer: FakeSigner) -> Callable[..., dict[str, Any]]:
    """Factory for API-shaped buy-order params made by ``buyer``."""

    def _make(**overrides: Any) -> dict[str, Any]:
        params = {
            "kind": ERC721_SINGLE_TOKEN,
            "exchange": settings.EXCHANGE_ADDRESSES[CHAIN_ID].lower(),
            "maker": buyer.address.lower(),
            "taker": ZERO_ADDRESS,
            "makerRelayerFee": "0",
            "takerRelayerFee": "250",
            "feeRecipient": FEE_RECIPIENT,
            "side": 0,
            "saleKind": 0,
            "target": COLLECTION,
            "howToCall": 0,
            "calldata": transfer_from_calldata(ZERO_ADDRESS, buyer.address, TOKEN_ID),
            "replacementPattern": REPLACEMENT_PATTERN_BUY,
            "staticTarget": ZERO_ADDRESS,
            "staticExtradata": "0x",
            "paymentToken": WETH,
            "basePrice": "1000000000000000000",
            "extra": "0",
            "listingTime": str(int(time.time()) - 3600),
            "expirationTime": "0",
            "salt": "81538496619347337074542542218443290443424325640464128087155316546428592446394",
        }
        params.update(overrides)
        return params

    return _make


@pytest.fixture
def sell_params(owner: FakeSigner) -> Callable[..., dict[str, Any]]:
    """Factory for API-shaped unsigned sell-order params made by ``owner``."""

    def _make(**overrides: Any) -> dict[str, Any]:
        params = {
            "kind": ERC721_SINGLE_TOKEN,
            "exchange": settings.EXCHANGE_ADDRESSES[CHAIN_ID].lower(),
            "maker": owner.address.lower(),
            "taker": ZERO_ADDRESS,
            "makerRelayerFee": "250",
            "takerRelayerFee": "0",
            "feeRecipient": FEE_RECIPIENT,
            "side": 1,
            "saleKind": 0,
            "target": COLLECTION,
            "howToCall": 0,
            "calldata": transfer_from_calldata(owner.address, ZERO_ADDRESS, TOKEN_ID),
            "replacementPattern": REPLACEMENT_PATTERN_SELL,
            "staticTarget": ZERO_ADDRESS,
            "staticExtradata": "0x",
            "paymentToken": ZERO_ADDRESS,
            "basePrice": "2000000000000000000",
            "extra": "0",
            "listingTime": str(int(time.time()) - 60),
            "expirationTime": str(int(time.time()) + 86_400),
            "salt": "12345",
        }
        params.update(overrides)
        return params

    return _make


@pytest.fixture
def signed_buy_order(buy_params: Callable[..., dict[str, Any]], buyer: FakeSigner) -> Order:
    order = Order(CHAIN_ID, buy_params())
    order.sign(buyer)
    return order
