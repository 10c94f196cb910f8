"""
Shared test fixtures for integration tests.

This file provides fixtures that span multiple components,
unlike component-specific fixtures in src/glin_forge/{component}/tests/conftest.py

The fake bridge is a real aiohttp server on a random loopback port that
speaks the same JSON-RPC "watch" method as the glin-forge bridge, backed by
an in-memory list of chain events.
"""

import asyncio
import socket
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from aiohttp import web

from glin_forge.events.config import BridgeConfig


# =============================================================================
# Fake Bridge Server
# =============================================================================


class FakeBridge:
    """
    In-memory glin-forge bridge.

    Events are stored in the bridge's own snake_case form. Each "watch"
    request applies the fromBlock, event and limit parameters to the stored
    events. Queued overrides replace the next responses verbatim:
        - dict -> sent as the JSON body
        - str  -> sent as a raw text body
    """

    def __init__(self):
        self.events: list[dict] = []
        self.requests: list[dict] = []
        self.overrides: list = []
        self.port: Optional[int] = None
        self._waiters: dict[int, asyncio.Event] = {}

    def emit(self, block_number: int, event_name: str, data=None) -> None:
        """Append an event to the fake chain."""
        self.events.append({
            "block_number": block_number,
            "event_name": event_name,
            "data": data,
        })

    def queue_response(self, body) -> None:
        self.overrides.append(body)

    async def wait_for_requests(self, count: int, timeout: float = 5.0) -> None:
        if len(self.requests) >= count:
            return
        waiter = self._waiters.setdefault(count, asyncio.Event())
        await asyncio.wait_for(waiter.wait(), timeout=timeout)

    def _select(self, params: dict) -> list[dict]:
        from_block = params.get("fromBlock")
        event_name = params.get("event")
        limit = params.get("limit")

        selected = [
            e for e in self.events
            if (from_block is None or e["block_number"] >= from_block)
            and (event_name is None or e["event_name"] == event_name)
        ]
        if limit is not None:
            selected = selected[:limit]
        return selected

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.requests.append(body)

        waiter = self._waiters.get(len(self.requests))
        if waiter is not None:
            waiter.set()

        if self.overrides:
            override = self.overrides.pop(0)
            if isinstance(override, str):
                return web.Response(text=override, status=500)
            return web.json_response(override)

        if body.get("method") != "watch":
            return web.json_response({
                "jsonrpc": "2.0",
                "id": body.get("id"),
                "error": {"code": -32601, "message": "Method not found"},
            })

        return web.json_response({
            "jsonrpc": "2.0",
            "id": body.get("id"),
            "result": {
                "success": True,
                "events": self._select(body["params"][0]),
                "error": None,
            },
        })


@pytest_asyncio.fixture
async def fake_bridge() -> AsyncGenerator[FakeBridge, None]:
    """Fake bridge listening on a random loopback port."""
    bridge = FakeBridge()

    app = web.Application()
    app.router.add_post("/", bridge.handle)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    bridge.port = runner.addresses[0][1]

    yield bridge

    await runner.cleanup()


@pytest.fixture
def bridge_config(fake_bridge: FakeBridge) -> BridgeConfig:
    """Config pointing at the fake bridge, with short delays."""
    return BridgeConfig(
        port=fake_bridge.port,
        request_timeout=5.0,
        poll_interval=0.01,
        retry_delay=0.01,
    )


@pytest.fixture
def unused_port() -> int:
    """A loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# =============================================================================
# Test Data Fixtures
# =============================================================================


@pytest.fixture
def contract_address() -> str:
    return "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
