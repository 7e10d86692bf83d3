"""Lister — list a token for sale on the order book.

Sequence: proxy approval → ``GET /orders/build`` → sign the order locally
→ ``POST /orders``. Like ``OfferAcceptor`` it never raises.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from config.settings import settings
from core.errors import ExecutionError, FailureKind
from data.reservoir_client import ReservoirClient
from execution.order_fetcher import OrderFetcher
from models.query import BuildOrderQuery, coerce_query
from models.workflow import WorkflowResult, WorkflowState, WorkflowTracker
from web3_infra.proxy_approval import ProxyApprovalChecker, default_checker
from web3_infra.signer import Signer

logger = structlog.get_logger("execution.listing")


class Lister:
    """Lists tokens for sale on one chain.

    Parameters
    ----------
    api_base:
        Order API base URL.
    chain_id:
        Chain the collection lives on.
    approval_checker:
        Shared ``ProxyApprovalChecker``; defaults to the module-wide one.
    order_kind:
        Protocol tag sent with submitted orders.
    transport:
        Optional httpx transport for the API client.
    """

    def __init__(
        self,
        api_base: str,
        chain_id: int,
        approval_checker: ProxyApprovalChecker | None = None,
        order_kind: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = api_base
        self._chain_id = chain_id
        self._checker = approval_checker or default_checker
        self._order_kind = order_kind or settings.ORDER_KIND
        self._transport = transport

    async def run(
        self,
        signer: Signer | None,
        query: BuildOrderQuery | Mapping[str, Any],
    ) -> WorkflowResult:
        tracker = WorkflowTracker()
        query = coerce_query(BuildOrderQuery, query)

        if signer is None or query is None or not query.token_id or not query.contract:
            logger.debug(
                "listing.missing_input",
                has_signer=signer is not None,
                query=query.model_dump(by_alias=True, exclude_none=True) if query else None,
            )
            return tracker.finish(
                WorkflowState.APPROVAL_DENIED,
                error=FailureKind.INVALID_INPUT,
                detail="signer, query.tokenId and query.contract are required",
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

            async with ReservoirClient(self._api_base, transport=self._transport) as client:
                tracker.advance(WorkflowState.FETCHING_ORDER)
                fetcher = OrderFetcher(client, self._chain_id)
                sell_order = await fetcher.fetch_buildable_order(query)
                if sell_order is None:
                    return tracker.finish(
                        WorkflowState.FETCH_FAILED,
                        error=FailureKind.ORDER_FETCH_FAILURE,
                        detail=str(fetcher.last_error) if fetcher.last_error else None,
                    )

                tracker.advance(WorkflowState.EXECUTING)
                signer_address = await signer.get_address()
                if sell_order.params.maker != signer_address.lower():
                    raise ExecutionError(
                        f"Built order maker {sell_order.params.maker} is not the signer"
                    )

                sell_order.sign(signer)
                await client.post_orders(
                    [{"kind": self._order_kind, "data": sell_order.params.to_api()}]
                )
        except Exception as exc:
            logger.error(
                "listing.failed",
                contract=query.contract,
                token_id=query.token_id,
                state=tracker.state.value,
                error=str(exc),
            )
            return self._fail(tracker, exc)

        logger.info(
            "listing.posted",
            contract=query.contract,
            token_id=query.token_id,
            price=str(sell_order.params.base_price),
        )
        return tracker.finish(WorkflowState.SUCCESS)

    @staticmethod
    def _fail(tracker: WorkflowTracker, exc: Exception) -> WorkflowResult:
        if tracker.state == WorkflowState.FETCHING_ORDER:
            return tracker.finish(
                WorkflowState.FETCH_FAILED,
                error=FailureKind.ORDER_FETCH_FAILURE,
                detail=str(exc),
            )
        if tracker.state == WorkflowState.CHECKING_APPROVAL:
            return tracker.finish(
                WorkflowState.APPROVAL_DENIED,
                error=FailureKind.APPROVAL_FAILURE,
                detail=str(exc),
            )
        return tracker.finish(
            WorkflowState.EXECUTION_FAILED,
            error=FailureKind.EXECUTION_FAILURE,
            detail=str(exc),
        )


async def list_token_for_sell(
    api_base: str,
    chain_id: int,
    signer: Signer | None,
    query: BuildOrderQuery | Mapping[str, Any],
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """List ``query``'s token for sale.

    Returns ``True`` once the signed order is accepted by the API,
    ``False`` otherwise.
    """
    result = await Lister(api_base, chain_id, transport=transport).run(signer, query)
    return result.success
