"""
Test fixtures for the events layer.

IMPORTANT: The bridge is always faked.
Never talk to a real glin-forge bridge or chain in these tests.
"""

import asyncio
import json as json_module
from typing import Any, Optional

import pytest

from glin_forge.events.config import BridgeConfig
from glin_forge.events.models import ContractEvent, WatchOptions, WatchResult


ADDRESS = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"


# =============================================================================
# Fakes
# =============================================================================


class FakeBridgeClient:
    """
    Scripted stand-in for BridgeClient.

    Each watch() call records the parameters as they were at call time and
    answers with the next scripted item:
        - a list of ContractEvent -> successful result with those events
        - a WatchResult -> returned as-is
        - an Exception instance -> raised
    Once the script is exhausted every call returns no events.
    """

    def __init__(self, responses=None, gate: Optional[asyncio.Event] = None):
        self.responses = list(responses or [])
        self.calls: list[dict] = []
        self.gate = gate
        self.closed = False
        self._waiters: dict[int, asyncio.Event] = {}

    async def watch(self, options: WatchOptions, follow=None, limit=None) -> WatchResult:
        self.calls.append(options.to_params(follow=follow, limit=limit))

        waiter = self._waiters.get(len(self.calls))
        if waiter is not None:
            waiter.set()

        if self.gate is not None:
            await self.gate.wait()

        if not self.responses:
            return WatchResult(success=True, events=[])

        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, WatchResult):
            return item
        return WatchResult(success=True, events=list(item))

    async def wait_for_calls(self, count: int, timeout: float = 2.0) -> None:
        """Wait until at least `count` watch() calls have been made."""
        if len(self.calls) >= count:
            return
        waiter = self._waiters.setdefault(count, asyncio.Event())
        await asyncio.wait_for(waiter.wait(), timeout=timeout)

    async def close(self) -> None:
        self.closed = True


class FakeResponse:
    """Minimal aiohttp response stand-in."""

    def __init__(self, body: Any = None, status: int = 200, raw: Optional[str] = None):
        self.status = status
        self._body = body
        self._raw = raw

    async def json(self, content_type=None):
        if self._raw is not None:
            return json_module.loads(self._raw)
        return self._body


class _RequestContext:
    def __init__(self, response: Optional[FakeResponse], error: Optional[BaseException]):
        self._response = response
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self._response

    async def __aexit__(self, *args):
        return False


class FakeSession:
    """aiohttp.ClientSession stand-in recording POSTed payloads."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[BaseException] = None):
        self.response = response or FakeResponse({"result": {"success": True, "events": []}})
        self.error = error
        self.requests: list[tuple[str, dict]] = []
        self.closed = False

    def post(self, url: str, json: dict):
        self.requests.append((url, json))
        return _RequestContext(self.response, self.error)

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Model Fixtures
# =============================================================================


def make_event(block_number: int, event_name: str = "Transfer", data: Any = None) -> ContractEvent:
    return ContractEvent(
        block_number=block_number,
        event_name=event_name,
        data=data if data is not None else {"block": block_number},
    )


@pytest.fixture
def sample_events():
    """Three events at blocks 100, 101, 103."""
    return [
        make_event(100, "Transfer", {"from": "alice", "to": "bob", "value": 10}),
        make_event(101, "Approval", {"owner": "alice", "spender": "carol", "value": 5}),
        make_event(103, "Transfer", {"from": "bob", "to": "carol", "value": 3}),
    ]


@pytest.fixture
def historical_options():
    return WatchOptions(address=ADDRESS, network="testnet", follow=False, limit=10)


@pytest.fixture
def follow_options():
    return WatchOptions(address=ADDRESS, network="testnet", follow=True)


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def fast_config():
    """Bridge config with short delays for fast tests."""
    return BridgeConfig(
        port=9933,
        poll_interval=0.01,
        retry_delay=0.01,
    )


@pytest.fixture
def slow_config():
    """Bridge config whose delays would time out a test if not interrupted."""
    return BridgeConfig(
        port=9933,
        poll_interval=30.0,
        retry_delay=30.0,
    )


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def event_factory():
    """Build ContractEvent instances: event_factory(block, name, data)."""
    return make_event


@pytest.fixture
def bridge_factory():
    """Build scripted fake bridge clients: bridge_factory(responses, gate=None)."""
    return FakeBridgeClient


@pytest.fixture
def session_factory():
    """Build fake aiohttp sessions: session_factory(response=None, error=None)."""
    return FakeSession


@pytest.fixture
def response_factory():
    """Build fake aiohttp responses: response_factory(body, status=200, raw=None)."""
    return FakeResponse
