"""OfferAcceptor — sell a token into the best standing offer.

Sequence: proxy approval → fetch the buy order and build the matching
sell order → ``atomicMatch_`` on the exchange. Every stage failure is
logged and folded into a ``WorkflowResult``; nothing is raised.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from core.errors import FailureKind
from data.reservoir_client import ReservoirClient
from execution.order_fetcher import OrderFetcher
from models.query import FillOrderQuery, coerce_query
from models.workflow import WorkflowResult, WorkflowState, WorkflowTracker
from web3_infra.proxy_approval import ProxyApprovalChecker, default_checker
from web3_infra.signer import Signer
from web3_infra.wyvern import Exchange, Order

logger = structlog.get_logger("execution.accept_offer")


class OfferAcceptor:
    """Accepts the best offer on a token for one chain.

    Parameters
    ----------
    api_base:
        Order API base URL.
    chain_id:
        Chain the collection and exchange live on.
    approval_checker:
        Shared ``ProxyApprovalChecker``; defaults to the module-wide one
        so concurrent runs share registration locks.
    exchange:
        Exchange to match on; defaults to the configured one for the chain.
    transport:
        Optional httpx transport for the API client.
    """

    def __init__(
        self,
        api_base: str,
        chain_id: int,
        approval_checker: ProxyApprovalChecker | None = None,
        exchange: Exchange | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = api_base
        self._chain_id = chain_id
        self._checker = approval_checker or default_checker
        self._exchange = exchange
        self._transport = transport

    async def run(
        self,
        signer: Signer | None,
        query: FillOrderQuery | Mapping[str, Any],
    ) -> WorkflowResult:
        tracker = WorkflowTracker()
        query = coerce_query(FillOrderQuery, query)

        if signer is None or query is None or not query.contract:
            logger.error(
                "accept_offer.invalid_input",
                has_signer=signer is not None,
                query=query.model_dump(by_alias=True, exclude_none=True) if query else None,
            )
            return tracker.finish(
                WorkflowState.APPROVAL_DENIED,
                error=FailureKind.INVALID_INPUT,
                detail="signer and query.contract are required",
            )

        try:
            tracker.advance(WorkflowState.CHECKING_APPROVAL)
            approval = await self._checker.approve(
                self._chain_id, query.contract, signer, query.token_id
            )
            tracker.record_tx(*approval.tx_hashes)
            if not approval:
                return tracker.finish(
                    WorkflowState.APPROVAL_DENIED,
                    error=approval.failure,
                    detail=approval.error,
                )

            tracker.advance(WorkflowState.FETCHING_ORDER)
            async with ReservoirClient(self._api_base, transport=self._transport) as client:
                fetcher = OrderFetcher(client, self._chain_id)
                orders = await fetcher.fetch_matching_order(signer, query)
            if orders is None:
                return tracker.finish(
                    WorkflowState.FETCH_FAILED,
                    error=FailureKind.ORDER_FETCH_FAILURE,
                    detail=str(fetcher.last_error) if fetcher.last_error else None,
                )

            mismatch = _token_mismatch(orders.sell_order, query)
            if mismatch:
                logger.error(
                    "accept_offer.token_mismatch",
                    contract=query.contract,
                    token_id=query.token_id,
                    detail=mismatch,
                )
                return tracker.finish(
                    WorkflowState.FETCH_FAILED,
                    error=FailureKind.ORDER_FETCH_FAILURE,
                    detail=mismatch,
                )

            tracker.advance(WorkflowState.EXECUTING)
            exchange = self._exchange or Exchange(self._chain_id)
            tx = await exchange.match(signer, orders.buy_order, orders.sell_order)
            tracker.record_tx(tx.tx_hash)
        except Exception as exc:
            logger.error(
                "accept_offer.failed",
                contract=query.contract,
                token_id=query.token_id,
                state=tracker.state.value,
                error=str(exc),
            )
            return self._fail(tracker, exc)

        logger.info(
            "accept_offer.filled",
            contract=query.contract,
            token_id=query.token_id,
            tx_hash=tx.tx_hash,
        )
        return tracker.finish(WorkflowState.SUCCESS)

    @staticmethod
    def _fail(tracker: WorkflowTracker, exc: Exception) -> WorkflowResult:
        # Unexpected errors end the workflow at whatever stage they hit.
        terminal = {
            WorkflowState.IDLE: WorkflowState.APPROVAL_DENIED,
            WorkflowState.CHECKING_APPROVAL: WorkflowState.APPROVAL_DENIED,
            WorkflowState.FETCHING_ORDER: WorkflowState.FETCH_FAILED,
        }.get(tracker.state, WorkflowState.EXECUTION_FAILED)
        kind = {
            WorkflowState.APPROVAL_DENIED: FailureKind.APPROVAL_FAILURE,
            WorkflowState.FETCH_FAILED: FailureKind.ORDER_FETCH_FAILURE,
        }.get(terminal, FailureKind.EXECUTION_FAILURE)
        return tracker.finish(terminal, error=kind, detail=str(exc))


def _token_mismatch(sell_order: Order, query: FillOrderQuery) -> str | None:
    """Describe how the order to be signed differs from the approved token, if it does."""
    target = sell_order.params.target
    if target != query.contract.lower():
        return f"Order targets {target}, approved collection is {query.contract}"
    token_id = sell_order.token_id()
    if token_id != int(query.token_id):
        return f"Order transfers token {token_id}, approved token is {query.token_id}"
    return None


async def accept_offer(
    api_base: str,
    chain_id: int,
    signer: Signer | None,
    query: FillOrderQuery | Mapping[str, Any],
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Accept the best offer for ``query``'s token.

    Returns ``True`` once the match transaction is mined, ``False`` on any
    failure (details are in the logs).
    """
    result = await OfferAcceptor(api_base, chain_id, transport=transport).run(signer, query)
    return result.success
