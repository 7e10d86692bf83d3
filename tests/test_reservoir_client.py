"""Tests for data/reservoir_client.py — requests go to an httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from data.reservoir_client import ReservoirClient

API_BASE = "https://api.example.com"


def _recording_transport(
    requests: list[httpx.Request],
    status: int = 200,
    payload: dict | None = None,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status, json=payload if payload is not None else {})

    return httpx.MockTransport(handler)


class TestReservoirClient:

    @pytest.mark.asyncio
    async def test_fill_order_request(self) -> None:
        requests: list[httpx.Request] = []
        transport = _recording_transport(requests, payload={"order": {"params": {"a": 1}}})
        async with ReservoirClient(API_BASE, api_key="", transport=transport) as client:
            result = await client.get_fill_order({"contract": "0xabc", "tokenId": "5"})

        assert result == {"order": {"params": {"a": 1}}}
        assert len(requests) == 1
        req = requests[0]
        assert req.method == "GET"
        assert req.url.path == "/orders/fill"
        assert req.url.params["contract"] == "0xabc"
        assert req.url.params["tokenId"] == "5"
        assert "x-api-key" not in req.headers

    @pytest.mark.asyncio
    async def test_build_order_path_ignores_base_path(self) -> None:
        requests: list[httpx.Request] = []
        transport = _recording_transport(requests)
        async with ReservoirClient(API_BASE + "/v1/", api_key="", transport=transport) as client:
            await client.get_build_order({"contract": "0xabc"})
        assert requests[0].url.path == "/orders/build"

    @pytest.mark.asyncio
    async def test_api_key_header(self) -> None:
        requests: list[httpx.Request] = []
        transport = _recording_transport(requests)
        async with ReservoirClient(API_BASE, api_key="secret", transport=transport) as client:
            await client.get_fill_order({})
        assert requests[0].headers["x-api-key"] == "secret"

    @pytest.mark.asyncio
    async def test_post_orders_body(self) -> None:
        requests: list[httpx.Request] = []
        transport = _recording_transport(requests, payload={"message": "ok"})
        orders = [{"kind": "wyvern-v2", "data": {"maker": "0xabc"}}]
        async with ReservoirClient(API_BASE, api_key="", transport=transport) as client:
            result = await client.post_orders(orders)

        assert result == {"message": "ok"}
        req = requests[0]
        assert req.method == "POST"
        assert req.url.path == "/orders"
        assert json.loads(req.content) == {"orders": orders}

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        transport = _recording_transport([], status=500)
        async with ReservoirClient(API_BASE, api_key="", transport=transport) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_fill_order({"contract": "0xabc"})

    @pytest.mark.asyncio
    async def test_not_started_raises(self) -> None:
        client = ReservoirClient(API_BASE, api_key="")
        with pytest.raises(RuntimeError, match="not started"):
            await client.get_fill_order({})

    @pytest.mark.asyncio
    async def test_stop_idempotent(self) -> None:
        client = ReservoirClient(API_BASE, api_key="", transport=_recording_transport([]))
        await client.start()
        await client.stop()
        await client.stop()
        assert client._client is None
