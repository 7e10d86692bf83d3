"""Wyvern v2 order primitives.

- ``OrderParams`` — the order fields as exchanged with the Reservoir API
- ``Order``       — hashing (Wyvern v2.2 ``hashOrder``), personal-message
                    signing, counter-order construction, price calculation
- ``Exchange``    — ``atomicMatch_`` submission through a ``Signer``

Only ``erc721-single-token`` orders can be matched: the calldata is an
ERC721 ``transferFrom(from, to, tokenId)`` whose ``from`` (buy side) or
``to`` (sell side) is left for the counter-order to fill in via the
replacement pattern.
"""

from __future__ import annotations

import secrets
import time
from enum import IntEnum
from typing import Any, Optional

import structlog
from eth_abi import decode, encode
from eth_account import Account
from eth_account.messages import encode_defunct
from hexbytes import HexBytes
from pydantic import BaseModel, ConfigDict, field_serializer, field_validator
from pydantic.alias_generators import to_camel
from web3 import Web3

from web3_infra.contracts import WYVERN_EXCHANGE_ABI, exchange_address
from web3_infra.signer import Signer, TxResult

logger = structlog.get_logger("web3_infra.wyvern")

# ── Constants ────────────────────────────────────────────────────────

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = "0x" + "00" * 32

ERC721_SINGLE_TOKEN = "erc721-single-token"

# transferFrom(address,address,uint256)
TRANSFER_FROM_SELECTOR = "0x23b872dd"

# Buy orders leave ``from`` open, sell orders leave ``to`` open
REPLACEMENT_PATTERN_BUY = "0x" + "00" * 4 + "ff" * 32 + "00" * 64
REPLACEMENT_PATTERN_SELL = "0x" + "00" * 4 + "00" * 32 + "ff" * 32 + "00" * 32

# The exchange only ever sees split-fee orders with no protocol fee
FEE_METHOD_SPLIT_FEE = 1
PROTOCOL_FEE = 0

# Matching orders start slightly in the past so the exchange accepts them
LISTING_TIME_OFFSET_S = 60


class OrderSide(IntEnum):
    BUY = 0
    SELL = 1


class SaleKind(IntEnum):
    FIXED_PRICE = 0
    DUTCH_AUCTION = 1


class HowToCall(IntEnum):
    CALL = 0
    DELEGATE_CALL = 1


_UINT_FIELDS = (
    "maker_relayer_fee",
    "taker_relayer_fee",
    "base_price",
    "extra",
    "listing_time",
    "expiration_time",
    "salt",
)

_ADDRESS_FIELDS = (
    "exchange",
    "maker",
    "taker",
    "fee_recipient",
    "target",
    "static_target",
    "payment_token",
)


class OrderParams(BaseModel):
    """Wyvern v2 order fields. Immutable; unknown API fields are kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    kind: Optional[str] = None
    exchange: str
    maker: str
    taker: str = ZERO_ADDRESS
    maker_relayer_fee: int = 0
    taker_relayer_fee: int = 0
    fee_recipient: str = ZERO_ADDRESS
    side: OrderSide
    sale_kind: SaleKind = SaleKind.FIXED_PRICE
    target: str
    how_to_call: HowToCall = HowToCall.CALL
    calldata: str
    replacement_pattern: str = "0x"
    static_target: str = ZERO_ADDRESS
    static_extradata: str = "0x"
    payment_token: str = ZERO_ADDRESS
    base_price: int
    extra: int = 0
    listing_time: int
    expiration_time: int = 0
    salt: int
    v: Optional[int] = None
    r: Optional[str] = None
    s: Optional[str] = None

    @field_validator(*_UINT_FIELDS, mode="before")
    @classmethod
    def parse_uint(cls, v: Any) -> Any:
        """Accept decimal or 0x-prefixed hex strings."""
        if isinstance(v, str) and v.lower().startswith("0x"):
            return int(v, 16)
        return v

    @field_validator("side", "sale_kind", "how_to_call", mode="before")
    @classmethod
    def parse_small_int(cls, v: Any) -> Any:
        if isinstance(v, str):
            return int(v)
        return v

    @field_validator(*_ADDRESS_FIELDS)
    @classmethod
    def normalize_address(cls, v: str) -> str:
        if not Web3.is_address(v):
            raise ValueError(f"invalid address: {v!r}")
        return v.lower()

    @field_serializer(*_UINT_FIELDS)
    def serialize_uint(self, v: int) -> str:
        return str(v)

    @field_serializer("side", "sale_kind", "how_to_call")
    def serialize_enum(self, v: IntEnum) -> int:
        return int(v)

    def to_api(self) -> dict[str, Any]:
        """Params as the API expects them (camelCase, uints as strings)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class UnsupportedOrderKind(ValueError):
    """Raised when an order cannot be matched by this module."""


# ── Order ────────────────────────────────────────────────────────────


class Order:
    """A Wyvern v2 order on a given chain.

    Usage::

        buy = Order(1, api_response["order"]["params"])
        sell = buy.build_matching(signer.address)
        await Exchange(1).match(signer, buy, sell)
    """

    def __init__(self, chain_id: int, params: OrderParams | dict[str, Any]) -> None:
        self.chain_id = chain_id
        self.params = (
            params if isinstance(params, OrderParams)
            else OrderParams.model_validate(params)
        )

    def __repr__(self) -> str:
        p = self.params
        return (
            f"Order(chain_id={self.chain_id}, side={p.side.name}, "
            f"maker={p.maker}, price={p.base_price})"
        )

    # ── Hashing / signatures ─────────────────────────────────────

    def hash(self) -> bytes:
        """Wyvern v2.2 ``hashOrder``: keccak of the tightly packed fields."""
        p = self.params
        cs = Web3.to_checksum_address
        return bytes(Web3.solidity_keccak(
            [
                "address", "address", "address",
                "uint256", "uint256", "uint256", "uint256",
                "address",
                "uint8", "uint8", "uint8",
                "address",
                "uint8",
                "bytes", "bytes",
                "address",
                "bytes",
                "address",
                "uint256", "uint256", "uint256", "uint256", "uint256",
            ],
            [
                cs(p.exchange), cs(p.maker), cs(p.taker),
                p.maker_relayer_fee, p.taker_relayer_fee, PROTOCOL_FEE, PROTOCOL_FEE,
                cs(p.fee_recipient),
                FEE_METHOD_SPLIT_FEE, int(p.side), int(p.sale_kind),
                cs(p.target),
                int(p.how_to_call),
                HexBytes(p.calldata), HexBytes(p.replacement_pattern),
                cs(p.static_target),
                HexBytes(p.static_extradata),
                cs(p.payment_token),
                p.base_price, p.extra, p.listing_time, p.expiration_time, p.salt,
            ],
        ))

    @property
    def is_signed(self) -> bool:
        p = self.params
        return p.v is not None and p.r is not None and p.s is not None

    def sign(self, signer: Signer) -> None:
        """Attach the signer's signature over ``hash()``."""
        v, r, s = signer.sign_message(self.hash())
        self.params = self.params.model_copy(update={"v": v, "r": r, "s": s})
        logger.debug("wyvern.order_signed", maker=self.params.maker, v=v)

    def check_signature(self) -> bool:
        """True if the attached signature recovers to the maker."""
        if not self.is_signed:
            return False
        p = self.params
        recovered = Account.recover_message(
            encode_defunct(primitive=self.hash()),
            vrs=(p.v, HexBytes(p.r), HexBytes(p.s)),
        )
        return recovered.lower() == p.maker

    # ── Pricing ──────────────────────────────────────────────────

    def matching_price(self, now: int | None = None) -> int:
        """Current price per Wyvern ``calculateFinalPrice``."""
        p = self.params
        if p.sale_kind == SaleKind.FIXED_PRICE:
            return p.base_price

        now = int(time.time()) if now is None else now
        diff = p.extra * (now - p.listing_time) // (p.expiration_time - p.listing_time)
        if p.side == OrderSide.SELL:
            return p.base_price - diff
        return p.base_price + diff

    # ── Matching ─────────────────────────────────────────────────

    def token_id(self) -> int:
        """Token id encoded in an ERC721 ``transferFrom`` calldata."""
        data = HexBytes(self.params.calldata)
        if data[:4] != HexBytes(TRANSFER_FROM_SELECTOR):
            raise UnsupportedOrderKind(
                f"Order calldata is not an ERC721 transferFrom: {self.params.calldata[:10]}"
            )
        _, _, token_id = decode(["address", "address", "uint256"], bytes(data[4:]))
        return token_id

    def build_matching(self, taker: str, data: dict[str, Any] | None = None) -> Order:
        """Derive the counter-order that ``taker`` submits to fill this one.

        Parameters
        ----------
        taker:
            Address that will own the matching order.
        data:
            Server-supplied matching arguments; ``tokenId`` overrides the
            id decoded from this order's calldata.
        """
        p = self.params
        if p.kind not in (None, ERC721_SINGLE_TOKEN):
            raise UnsupportedOrderKind(f"Cannot build matching order for kind {p.kind!r}")

        data = data or {}
        token_id = int(data["tokenId"]) if data.get("tokenId") is not None else self.token_id()
        taker = Web3.to_checksum_address(taker)

        if p.side == OrderSide.BUY:
            side = OrderSide.SELL
            calldata = _transfer_from(taker, ZERO_ADDRESS, token_id)
            pattern = REPLACEMENT_PATTERN_SELL
        else:
            side = OrderSide.BUY
            calldata = _transfer_from(ZERO_ADDRESS, taker, token_id)
            pattern = REPLACEMENT_PATTERN_BUY

        now = int(time.time())
        matching = OrderParams(
            kind=ERC721_SINGLE_TOKEN,
            exchange=p.exchange,
            maker=taker,
            taker=ZERO_ADDRESS,
            maker_relayer_fee=p.maker_relayer_fee,
            taker_relayer_fee=p.taker_relayer_fee,
            fee_recipient=ZERO_ADDRESS,
            side=side,
            sale_kind=SaleKind.FIXED_PRICE,
            target=p.target,
            how_to_call=HowToCall.CALL,
            calldata=calldata,
            replacement_pattern=pattern,
            static_target=ZERO_ADDRESS,
            static_extradata="0x",
            payment_token=p.payment_token,
            base_price=self.matching_price(now),
            extra=0,
            listing_time=now - LISTING_TIME_OFFSET_S,
            expiration_time=0,
            salt=secrets.randbits(256),
        )
        return Order(self.chain_id, matching)


def _transfer_from(from_: str, to: str, token_id: int) -> str:
    encoded = encode(["address", "address", "uint256"], [from_, to, token_id])
    return TRANSFER_FROM_SELECTOR + encoded.hex()


# ── Exchange ─────────────────────────────────────────────────────────


def match_price(buy: Order, sell: Order, now: int | None = None) -> int:
    """Price the exchange settles at: the fee-bearing order's price."""
    if sell.params.fee_recipient != ZERO_ADDRESS:
        return sell.matching_price(now)
    return buy.matching_price(now)


def atomic_match_args(buy: Order, sell: Order) -> list[Any]:
    """Positional ``atomicMatch_`` arguments for a buy/sell pair."""
    cs = Web3.to_checksum_address
    addrs: list[str] = []
    uints: list[int] = []
    small: list[int] = []
    for order in (buy, sell):
        p = order.params
        addrs += [
            cs(p.exchange), cs(p.maker), cs(p.taker), cs(p.fee_recipient),
            cs(p.target), cs(p.static_target), cs(p.payment_token),
        ]
        uints += [
            p.maker_relayer_fee, p.taker_relayer_fee, PROTOCOL_FEE, PROTOCOL_FEE,
            p.base_price, p.extra, p.listing_time, p.expiration_time, p.salt,
        ]
        small += [FEE_METHOD_SPLIT_FEE, int(p.side), int(p.sale_kind), int(p.how_to_call)]

    b, s = buy.params, sell.params
    return [
        addrs,
        uints,
        small,
        HexBytes(b.calldata),
        HexBytes(s.calldata),
        HexBytes(b.replacement_pattern),
        HexBytes(s.replacement_pattern),
        HexBytes(b.static_extradata),
        HexBytes(s.static_extradata),
        [b.v or 0, s.v or 0],
        [
            HexBytes(b.r or ZERO_BYTES32),
            HexBytes(b.s or ZERO_BYTES32),
            HexBytes(s.r or ZERO_BYTES32),
            HexBytes(s.s or ZERO_BYTES32),
            HexBytes(ZERO_BYTES32),
        ],
    ]


class Exchange:
    """Wyvern v2 exchange contract on ``chain_id``."""

    def __init__(self, chain_id: int, address: str | None = None) -> None:
        self.chain_id = chain_id
        self.address = address or exchange_address(chain_id)

    async def match(self, signer: Signer, buy: Order, sell: Order) -> TxResult:
        """Submit ``atomicMatch_`` and wait for it to be mined.

        ETH is attached only when the signer is the buyer paying in ETH.
        """
        value = 0
        if (
            buy.params.maker == signer.address.lower()
            and buy.params.payment_token == ZERO_ADDRESS
        ):
            value = match_price(buy, sell)

        contract = signer.contract(self.address, WYVERN_EXCHANGE_ABI)
        call = contract.functions.atomicMatch_(*atomic_match_args(buy, sell))

        logger.info(
            "wyvern.match_submitting",
            exchange=self.address,
            buy_maker=buy.params.maker,
            sell_maker=sell.params.maker,
            value=value,
        )
        return await signer.send_transaction(call, value=value)
