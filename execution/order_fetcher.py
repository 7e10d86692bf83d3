"""OrderFetcher — turn order API responses into Wyvern ``Order`` objects."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from core.errors import MissingOrderParams, OrderFetchError
from data.reservoir_client import ReservoirClient
from web3_infra.signer import Signer
from web3_infra.wyvern import Order, OrderSide

logger = structlog.get_logger("execution.order_fetcher")

Query = Mapping[str, Any] | BaseModel


@dataclass(frozen=True)
class MatchedOrders:
    """A fetched buy order and the locally built sell order that fills it."""

    buy_order: Order
    sell_order: Order


def _order_payload(response: Any) -> dict[str, Any]:
    order = response.get("order") if isinstance(response, Mapping) else None
    if not isinstance(order, Mapping) or not order.get("params"):
        raise MissingOrderParams("API ERROR: Could not retrieve order params")
    return dict(order)


class OrderFetcher:
    """Fetches fill / build orders for one chain through an API client.

    Both methods return ``None`` on any failure (network, HTTP status,
    JSON decoding, missing ``order.params``, malformed params) after
    logging it; ``last_error`` keeps the most recent exception.
    """

    def __init__(self, client: ReservoirClient, chain_id: int) -> None:
        self._client = client
        self._chain_id = chain_id
        self.last_error: Exception | None = None

    async def fetch_matching_order(
        self, signer: Signer, query: Query
    ) -> MatchedOrders | None:
        """Fetch the best offer (a buy order) for a token and build the sell order that fills it."""
        try:
            response = await self._client.get_fill_order(query)
            order = _order_payload(response)

            buy_order = Order(self._chain_id, order["params"])
            if buy_order.params.side != OrderSide.BUY:
                raise OrderFetchError(
                    f"Fill order is a {buy_order.params.side.name} order, expected BUY"
                )
            sell_order = buy_order.build_matching(
                await signer.get_address(),
                order.get("buildMatchingArgs"),
            )
        except Exception as exc:
            self._fail("order_fetcher.fill_failed", exc)
            return None

        logger.info(
            "order_fetcher.matching_order_built",
            buy_maker=buy_order.params.maker,
            price=str(sell_order.params.base_price),
        )
        return MatchedOrders(buy_order=buy_order, sell_order=sell_order)

    async def fetch_buildable_order(self, query: Query) -> Order | None:
        """Fetch unsigned params for a new order."""
        try:
            response = await self._client.get_build_order(query)
            order = _order_payload(response)
            built = Order(self._chain_id, order["params"])
        except Exception as exc:
            self._fail("order_fetcher.build_failed", exc)
            return None

        logger.info(
            "order_fetcher.order_built",
            maker=built.params.maker,
            side=built.params.side.name,
        )
        return built

    def _fail(self, event: str, exc: Exception) -> None:
        if not isinstance(exc, OrderFetchError):
            wrapped = OrderFetchError(str(exc))
            wrapped.__cause__ = exc
            exc = wrapped
        self.last_error = exc
        cause = exc.__cause__
        logger.error(
            event,
            error=str(exc),
            status=cause.response.status_code
            if isinstance(cause, httpx.HTTPStatusError) else None,
        )


async def fetch_matching_order(
    api_base: str,
    chain_id: int,
    signer: Signer,
    query: Query,
    transport: httpx.AsyncBaseTransport | None = None,
) -> MatchedOrders | None:
    async with ReservoirClient(api_base, transport=transport) as client:
        return await OrderFetcher(client, chain_id).fetch_matching_order(signer, query)


async def fetch_buildable_order(
    api_base: str,
    chain_id: int,
    query: Query,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Order | None:
    async with ReservoirClient(api_base, transport=transport) as client:
        return await OrderFetcher(client, chain_id).fetch_buildable_order(query)
