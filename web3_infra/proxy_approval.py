"""ProxyApprovalChecker — make sure the marketplace proxy may move a token.

Before an order can be matched or listed, the owner needs:
1. a user proxy registered in the Wyvern proxy registry, and
2. the collection contract's approval for that proxy.

Both are created on-chain when missing. Proxy registration per (chain,
signer) and the approval grant per (collection, signer) each run under an
``asyncio.Lock``, so concurrent workflows for the same owner register at
most one proxy and send at most one approval. Locks live only while some
task holds or awaits them.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from web3 import Web3

from config.settings import Settings
from core.errors import ApprovalError, FailureKind, NotTokenOwnerError
from web3_infra.contracts import ERC721_ABI, PROXY_REGISTRY_ABI, proxy_registry_address
from web3_infra.signer import Signer
from web3_infra.wyvern import ZERO_ADDRESS

logger = structlog.get_logger("web3_infra.proxy_approval")


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of an approval check, with any transactions it submitted."""

    approved: bool
    proxy: str | None = None
    failure: FailureKind | None = None
    error: str | None = None
    tx_hashes: tuple[str, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.approved


class ProxyApprovalChecker:
    """Checks and, when needed, grants proxy approval for a token owner.

    Parameters
    ----------
    config:
        Settings providing the proxy registry address per chain. Defaults
        to the global settings.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._config = config
        # key -> (lock, number of tasks holding or waiting on it)
        self._locks: dict[tuple[Any, ...], tuple[asyncio.Lock, int]] = {}

    # ── Public API ───────────────────────────────────────────────

    async def ensure_proxy_approved(
        self,
        chain_id: int,
        contract: str,
        signer: Signer,
        token_id: str | int,
    ) -> bool:
        """True once the signer's proxy is approved for ``contract``."""
        outcome = await self.approve(chain_id, contract, signer, token_id)
        return outcome.approved

    async def approve(
        self,
        chain_id: int,
        contract: str,
        signer: Signer,
        token_id: str | int,
    ) -> ApprovalOutcome:
        """Run ownership check, proxy registration and approval.

        Never raises: failures are logged and returned as an outcome with
        ``approved=False`` and the failure kind.
        """
        tx_hashes: list[str] = []
        try:
            collection = signer.contract(contract, ERC721_ABI)
            registry = signer.contract(
                proxy_registry_address(chain_id, self._config), PROXY_REGISTRY_ABI
            )
            proxy = await self.register_user_proxy(
                chain_id, collection, registry, signer, token_id, tx_hashes
            )
            await self.check_proxy_approval(
                collection, signer, proxy, token_id, tx_hashes
            )
        except NotTokenOwnerError as exc:
            logger.error(
                "proxy_approval.not_token_owner",
                contract=contract,
                token_id=str(token_id),
                owner=exc.owner,
                signer=exc.signer,
            )
            return ApprovalOutcome(
                approved=False,
                failure=exc.kind,
                error=str(exc),
                tx_hashes=tuple(tx_hashes),
            )
        except Exception as exc:
            logger.error(
                "proxy_approval.failed",
                contract=contract,
                token_id=str(token_id),
                error=str(exc),
            )
            return ApprovalOutcome(
                approved=False,
                failure=FailureKind.APPROVAL_FAILURE,
                error=str(exc),
                tx_hashes=tuple(tx_hashes),
            )

        return ApprovalOutcome(approved=True, proxy=proxy, tx_hashes=tuple(tx_hashes))

    # ── Steps ────────────────────────────────────────────────────

    async def register_user_proxy(
        self,
        chain_id: int,
        collection: Any,
        registry: Any,
        signer: Signer,
        token_id: str | int,
        tx_hashes: list[str] | None = None,
    ) -> str:
        """Return the signer's proxy, registering one if none exists.

        Raises
        ------
        NotTokenOwnerError
            If the signer does not own ``token_id``.
        ApprovalError
            If registration completes but no proxy is recorded.
        """
        signer_address = await signer.get_address()

        owner = await collection.functions.ownerOf(int(token_id)).call()
        if owner.lower() != signer_address.lower():
            raise NotTokenOwnerError(owner=owner, signer=signer_address)

        async with self._locked("register", chain_id, signer_address.lower()):
            proxy = await registry.functions.proxies(signer_address).call()
            if proxy != ZERO_ADDRESS:
                return proxy

            logger.info("proxy_approval.registering", signer=signer_address, chain_id=chain_id)
            result = await signer.send_transaction(registry.functions.registerProxy())
            if tx_hashes is not None:
                tx_hashes.append(result.tx_hash)

            proxy = await registry.functions.proxies(signer_address).call()
            if proxy == ZERO_ADDRESS:
                raise ApprovalError("Proxy registration mined but no proxy recorded")

            logger.info(
                "proxy_approval.registered",
                signer=signer_address,
                proxy=proxy,
                tx_hash=result.tx_hash,
            )
            return proxy

    async def check_proxy_approval(
        self,
        collection: Any,
        signer: Signer,
        proxy: str,
        token_id: str | int,
        tx_hashes: list[str] | None = None,
    ) -> bool:
        """Ensure ``proxy`` may transfer the token; grant blanket approval if not.

        Check and grant run under one lock per (collection, signer), so
        concurrent callers send at most one ``setApprovalForAll``.
        """
        signer_address = await signer.get_address()

        key = ("approve", str(collection.address).lower(), signer_address.lower())
        async with self._locked(*key):
            approved = await collection.functions.isApprovedForAll(
                signer_address, Web3.to_checksum_address(proxy)
            ).call()
            if not approved:
                approved_address = await collection.functions.getApproved(int(token_id)).call()
                approved = approved_address.lower() == proxy.lower()

            if approved:
                logger.debug("proxy_approval.already_approved", proxy=proxy)
                return True

            result = await signer.send_transaction(
                collection.functions.setApprovalForAll(Web3.to_checksum_address(proxy), True)
            )
            if tx_hashes is not None:
                tx_hashes.append(result.tx_hash)

        logger.info(
            "proxy_approval.approval_set",
            proxy=proxy,
            tx_hash=result.tx_hash,
        )
        return True

    # ── Internals ────────────────────────────────────────────────

    @asynccontextmanager
    async def _locked(self, *key: Any) -> AsyncIterator[None]:
        """Hold the lock for ``key``; the entry is dropped when nobody uses it."""
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)


default_checker = ProxyApprovalChecker()


async def ensure_proxy_approved(
    chain_id: int,
    contract: str,
    signer: Signer,
    token_id: str | int,
) -> bool:
    """Module-level shortcut using the shared checker."""
    return await default_checker.ensure_proxy_approved(chain_id, contract, signer, token_id)
