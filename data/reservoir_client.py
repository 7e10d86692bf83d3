"""ReservoirClient — async REST client for the Reservoir order API.

Covers the three endpoints the order workflows need:
- ``GET /orders/fill``  — best order for a token plus matching arguments
- ``GET /orders/build`` — unsigned order params for a new listing
- ``POST /orders``      — submit signed orders to the order book

No retries: a failed request surfaces to the caller as an exception.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from config.settings import settings
from data.params import set_params

logger = structlog.get_logger("data.reservoir_client")

FILL_PATH = "/orders/fill"
BUILD_PATH = "/orders/build"
ORDERS_PATH = "/orders"


class ReservoirClient:
    """Thin async wrapper over ``httpx.AsyncClient``.

    Parameters
    ----------
    api_base:
        API base URL, e.g. ``https://api.reservoir.tools``.
    api_key:
        Optional key sent as ``x-api-key``.
    http_timeout:
        Request timeout in seconds.
    transport:
        Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_base: str,
        api_key: str | None = None,
        http_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = api_base
        self._api_key = settings.RESERVOIR_API_KEY if api_key is None else api_key
        self._http_timeout = http_timeout or settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def api_base(self) -> str:
        return self._api_base

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Open the HTTP client. Idempotent."""
        if self._client is not None:
            return
        headers = {"x-api-key": self._api_key} if self._api_key else {}
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._http_timeout),
            headers=headers,
            transport=self._transport,
        )

    async def stop(self) -> None:
        """Close the HTTP client. Idempotent."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ReservoirClient:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    # ── Public API ───────────────────────────────────────────────

    async def get_fill_order(self, query: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
        """Fetch the order to fill for a token (``{"order": {...}}``)."""
        return await self._get_json(FILL_PATH, query)

    async def get_build_order(self, query: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
        """Fetch unsigned order params for a new order (``{"order": {...}}``)."""
        return await self._get_json(BUILD_PATH, query)

    async def post_orders(self, orders: list[dict[str, Any]]) -> dict[str, Any]:
        """Submit signed orders.

        Each entry is ``{"kind": <protocol>, "data": <order params>}``.
        """
        client = self._require_client()
        url = self._url(ORDERS_PATH)
        response = await client.post(url, json={"orders": orders})
        response.raise_for_status()
        logger.info(
            "reservoir_client.orders_posted",
            count=len(orders),
            status=response.status_code,
        )
        if not response.content:
            return {}
        return response.json()

    # ── Internals ────────────────────────────────────────────────

    def _url(self, path: str) -> str:
        return str(httpx.URL(self._api_base).join(path))

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("ReservoirClient not started — call start() first")
        return self._client

    async def _get_json(
        self, path: str, query: Mapping[str, Any] | BaseModel
    ) -> dict[str, Any]:
        client = self._require_client()
        url = set_params(self._url(path), query)
        logger.debug("reservoir_client.get", url=url)
        response = await client.get(url)
        response.raise_for_status()
        return response.json()
