"""In-memory chain for tests.

The fake contracts mimic the ``contract.functions.<name>(*args).call()``
surface of web3 contracts; ``FakeSigner.send_transaction`` applies writes
to the chain state and records them, yielding to the event loop once as a
stand-in for mining.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from eth_account import Account
from eth_abi import encode

from config.settings import settings
from web3_infra.signer import Signer, TransactionError, TxResult, TxStatus
from web3_infra.wyvern import TRANSFER_FROM_SELECTOR, ZERO_ADDRESS

CHAIN_ID = 1
COLLECTION = "0x" + "c0" * 20
WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
FEE_RECIPIENT = "0x5b3256965e7c3cf26e11fcaf296dfc8807c01073"
TOKEN_ID = 42

OWNER_KEY = "0x" + "11" * 32
BUYER_KEY = "0x" + "22" * 32
STRANGER_KEY = "0x" + "33" * 32


class FakeCall:
    def __init__(self, contract: Any, fn_name: str, args: tuple[Any, ...]) -> None:
        self.contract = contract
        self.fn_name = fn_name
        self.args = args

    async def call(self) -> Any:
        self.contract.chain.reads.append(self.fn_name)
        return self.contract.read(self.fn_name, *self.args)


class _Functions:
    def __init__(self, contract: Any) -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> Callable[..., FakeCall]:
        return lambda *args: FakeCall(self._contract, name, args)


class FakeContract:
    def __init__(self, chain: FakeChain, address: str) -> None:
        self.chain = chain
        self.address = address.lower()

    @property
    def functions(self) -> _Functions:
        return _Functions(self)

    def read(self, name: str, *args: Any) -> Any:
        raise AttributeError(f"{type(self).__name__} has no view {name}")

    def write(self, name: str, sender: str, args: tuple[Any, ...], value: int) -> None:
        raise AttributeError(f"{type(self).__name__} has no function {name}")


class FakeERC721(FakeContract):
    def __init__(self, chain: FakeChain, address: str) -> None:
        super().__init__(chain, address)
        self.owners: dict[int, str] = {}
        self.token_approvals: dict[int, str] = {}
        self.operator_approvals: set[tuple[str, str]] = set()

    def read(self, name: str, *args: Any) -> Any:
        if name == "ownerOf":
            return self.owners[args[0]]
        if name == "getApproved":
            return self.token_approvals.get(args[0], ZERO_ADDRESS)
        if name == "isApprovedForAll":
            owner, operator = args
            return (owner.lower(), operator.lower()) in self.operator_approvals
        return super().read(name, *args)

    def write(self, name: str, sender: str, args: tuple[Any, ...], value: int) -> None:
        if name == "setApprovalForAll":
            operator, approved = args
            key = (sender.lower(), operator.lower())
            if approved:
                self.operator_approvals.add(key)
            else:
                self.operator_approvals.discard(key)
            return
        super().write(name, sender, args, value)


class FakeProxyRegistry(FakeContract):
    def __init__(self, chain: FakeChain, address: str) -> None:
        super().__init__(chain, address)
        self.proxies: dict[str, str] = {}

    def read(self, name: str, *args: Any) -> Any:
        if name == "proxies":
            return self.proxies.get(args[0].lower(), ZERO_ADDRESS)
        return super().read(name, *args)

    def write(self, name: str, sender: str, args: tuple[Any, ...], value: int) -> None:
        if name == "registerProxy":
            if sender.lower() in self.proxies:
                raise TransactionError("User already has a proxy")
            self.proxies[sender.lower()] = "0x" + sender.lower()[2:][::-1]
            return
        super().write(name, sender, args, value)


class FakeExchange(FakeContract):
    def __init__(self, chain: FakeChain, address: str) -> None:
        super().__init__(chain, address)
        self.matches: list[tuple[tuple[Any, ...], int]] = []

    def write(self, name: str, sender: str, args: tuple[Any, ...], value: int) -> None:
        if name == "atomicMatch_":
            self.matches.append((args, value))
            return
        super().write(name, sender, args, value)


class FakeChain:
    def __init__(self) -> None:
        self.reads: list[str] = []
        self.transactions: list[tuple[str, str, int]] = []
        self.revert_on: set[str] = set()
        self.collection = FakeERC721(self, COLLECTION)
        self.registry = FakeProxyRegistry(self, settings.PROXY_REGISTRY_ADDRESSES[CHAIN_ID])
        self.exchange = FakeExchange(self, settings.EXCHANGE_ADDRESSES[CHAIN_ID])
        self.contracts = {
            c.address: c for c in (self.collection, self.registry, self.exchange)
        }

    def tx_names(self) -> list[str]:
        return [name for name, _, _ in self.transactions]


class FakeSigner(Signer):
    """Real key for message signing, fake chain for transactions."""

    def __init__(self, chain: FakeChain, private_key: str) -> None:
        super().__init__(None, Account.from_key(private_key))
        self.chain = chain

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        return self.chain.contracts[address.lower()]

    async def send_transaction(self, call: Any, value: int = 0) -> TxResult:
        await asyncio.sleep(0)
        if call.fn_name in self.chain.revert_on:
            raise TransactionError("Transaction reverted on-chain", tx_hash="0xdead")
        call.contract.write(call.fn_name, self.address, call.args, value)
        self.chain.transactions.append((call.fn_name, self.address, value))
        n = len(self.chain.transactions)
        return TxResult(
            tx_hash=f"0x{n:064x}",
            status=TxStatus.CONFIRMED,
            gas_used=50_000,
            block_number=1_000 + n,
        )


def transfer_from_calldata(from_: str, to: str, token_id: int) -> str:
    return TRANSFER_FROM_SELECTOR + encode(
        ["address", "address", "uint256"], [from_, to, token_id]
    ).hex()


