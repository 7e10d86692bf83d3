"""Signer — a local key bound to an AsyncWeb3 connection.

Builds, signs and submits contract transactions and waits for their
receipts; also signs order hashes as Ethereum personal messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.types import TxReceipt

from config.settings import settings

logger = structlog.get_logger("web3_infra.signer")


class TxStatus(str, Enum):
    """Transaction submission status."""

    CONFIRMED = "CONFIRMED"
    REVERTED = "REVERTED"


@dataclass(frozen=True)
class TxResult:
    """Result of a mined transaction."""

    tx_hash: str
    status: TxStatus
    gas_used: int
    block_number: int


def to_bytes32_hex(value: int) -> str:
    return "0x" + value.to_bytes(32, "big").hex()


class Signer:
    """Transaction and message signer for a single account.

    Parameters
    ----------
    w3:
        Connected ``AsyncWeb3`` instance.
    account:
        ``LocalAccount`` holding the private key.
    tx_receipt_timeout_s:
        How long to wait for a transaction to be mined.
    gas_price_multiplier:
        Buffer applied over the node's gas price.

    Usage::

        w3 = AsyncWeb3(AsyncHTTPProvider(settings.RPC_URL))
        signer = Signer.from_private_key(w3, settings.PRIVATE_KEY)
        result = await signer.send_transaction(
            registry.functions.registerProxy()
        )
    """

    def __init__(
        self,
        w3: AsyncWeb3 | None,
        account: LocalAccount,
        tx_receipt_timeout_s: float | None = None,
        gas_price_multiplier: Decimal | None = None,
    ) -> None:
        self._w3 = w3
        self._account = account
        self._receipt_timeout = tx_receipt_timeout_s or settings.TX_RECEIPT_TIMEOUT_SECONDS
        self._gas_multiplier = gas_price_multiplier or settings.GAS_PRICE_MULTIPLIER

    @classmethod
    def from_private_key(cls, w3: AsyncWeb3, private_key: str, **kwargs: Any) -> Signer:
        return cls(w3, Account.from_key(private_key), **kwargs)

    @property
    def address(self) -> str:
        """Checksummed account address."""
        return self._account.address

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise RuntimeError("Signer has no web3 connection")
        return self._w3

    async def get_address(self) -> str:
        return self.address

    # ── Contracts ────────────────────────────────────────────────

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        """Contract instance bound to this signer's connection."""
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address),
            abi=abi,
        )

    async def send_transaction(self, call: Any, value: int = 0) -> TxResult:
        """Build, sign and send a contract call; wait until it is mined.

        Raises
        ------
        TransactionError
            If the transaction reverts.
        """
        w3 = self.w3
        tx = await call.build_transaction(await self._base_tx_params(w3, value))
        signed = self._account.sign_transaction(tx)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = tx_hash.to_0x_hex() if hasattr(tx_hash, "to_0x_hex") else tx_hash.hex()

        logger.info(
            "signer.tx_sent",
            tx_hash=tx_hash_hex,
            fn=getattr(call, "fn_name", None),
        )

        receipt: TxReceipt = await w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._receipt_timeout
        )
        return self._result_from_receipt(tx_hash_hex, receipt)

    # ── Messages ─────────────────────────────────────────────────

    def sign_message(self, digest: bytes) -> tuple[int, str, str]:
        """Sign a 32-byte digest with the personal-message prefix.

        Returns ``(v, r, s)`` with ``r`` and ``s`` as 0x-prefixed hex.
        """
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return signed.v, to_bytes32_hex(signed.r), to_bytes32_hex(signed.s)

    # ── Internals ────────────────────────────────────────────────

    async def _base_tx_params(self, w3: AsyncWeb3, value: int) -> dict[str, Any]:
        nonce = await w3.eth.get_transaction_count(self.address)
        gas_price = await w3.eth.gas_price
        adjusted_gas_price = int(
            gas_price * int(self._gas_multiplier * 100) // 100
        )
        return {
            "from": self.address,
            "nonce": nonce,
            "gasPrice": adjusted_gas_price,
            "chainId": await w3.eth.chain_id,
            "value": value,
        }

    @staticmethod
    def _result_from_receipt(tx_hash_hex: str, receipt: TxReceipt) -> TxResult:
        gas_used = receipt.get("gasUsed", 0)
        block_number = receipt.get("blockNumber", 0)

        if receipt.get("status", 0) != 1:
            logger.error("signer.tx_reverted", tx_hash=tx_hash_hex, gas_used=gas_used)
            result = TxResult(
                tx_hash=tx_hash_hex,
                status=TxStatus.REVERTED,
                gas_used=gas_used,
                block_number=block_number,
            )
            raise TransactionError(
                "Transaction reverted on-chain",
                tx_hash=tx_hash_hex,
                result=result,
            )

        logger.info(
            "signer.tx_confirmed",
            tx_hash=tx_hash_hex,
            gas_used=gas_used,
            block=block_number,
        )
        return TxResult(
            tx_hash=tx_hash_hex,
            status=TxStatus.CONFIRMED,
            gas_used=gas_used,
            block_number=block_number,
        )


# ── Exceptions ───────────────────────────────────────────────────────


class TransactionError(Exception):
    """Raised when a submitted transaction does not succeed."""

    def __init__(
        self,
        message: str,
        tx_hash: str | None = None,
        result: TxResult | None = None,
    ) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
        self.result = result
