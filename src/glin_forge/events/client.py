"""
JSON-RPC client for the glin-forge bridge.

The bridge is a local HTTP server started by `glin-forge run`. It exposes
JSON-RPC 2.0 methods backed by a live chain connection; this client only
performs request/response exchanges against it.

Error taxonomy:
    - BridgeNotRunningError: no port available, raised at construction
    - BridgeConnectionError: connection refused, timeout, other transport failures
    - BridgeProtocolError: malformed envelope or event entries
    - BridgeRPCError: the bridge reported an error (RPC error object or success=false)

No retries happen here. Retry policy belongs to the caller (EventWatcher).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional, Union

import aiohttp

from .models import ContractEvent, WatchOptions, WatchResult

if TYPE_CHECKING:
    from .config import BridgeConfig

logger = logging.getLogger(__name__)


class BridgeError(Exception):
    """Base exception for bridge errors."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class BridgeNotRunningError(BridgeError):
    """No bridge endpoint is available."""
    pass


class BridgeConnectionError(BridgeError):
    """The bridge could not be reached."""
    pass


class BridgeProtocolError(BridgeError):
    """The bridge returned something that is not a valid response."""
    pass


class BridgeRPCError(BridgeProtocolError):
    """The bridge reported an error for the call."""
    pass


def _validate_port(port: Union[int, str, None]) -> int:
    if port is None or (isinstance(port, str) and not port.strip()):
        raise BridgeNotRunningError(
            "glin-forge RPC server not running. "
            'This SDK must be used with "glin-forge run" command.'
        )
    try:
        port_number = int(port)
    except (TypeError, ValueError):
        raise BridgeNotRunningError(f"Invalid bridge port: {port!r}") from None
    if not 0 < port_number < 65536:
        raise BridgeNotRunningError(f"Invalid bridge port: {port!r}")
    return port_number


class BridgeClient:
    """
    Async JSON-RPC 2.0 client bound to a single bridge endpoint.

    Usage:
        async with BridgeClient(port=9933) as client:
            result = await client.watch(
                WatchOptions(address="5Grw...", network="testnet"),
                limit=10,
            )
            for event in result.events:
                print(event.block_number, event.event_name)
    """

    def __init__(
        self,
        port: Union[int, str, None],
        host: str = "127.0.0.1",
        timeout: float = 300.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the client.

        Args:
            port: Port the bridge listens on (required)
            host: Bridge host
            timeout: Total per-request timeout in seconds
            session: Optional aiohttp session (created lazily if not provided)

        Raises:
            BridgeNotRunningError: If no valid port was given
        """
        self._port = _validate_port(port)
        self._url = f"http://{host}:{self._port}"
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._request_id = 0

    @classmethod
    def from_config(cls, config: "BridgeConfig", session: Optional[aiohttp.ClientSession] = None) -> "BridgeClient":
        """Create a client from a BridgeConfig."""
        return cls(
            port=config.port,
            host=config.host,
            timeout=config.request_timeout,
            session=session,
        )

    @property
    def url(self) -> str:
        """Base URL of the bridge endpoint."""
        return self._url

    @property
    def request_count(self) -> int:
        """Number of requests issued by this client."""
        return self._request_id

    async def __aenter__(self) -> "BridgeClient":
        """Async context manager entry."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the client session."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def call(self, method: str, params: dict) -> dict:
        """
        Perform a single JSON-RPC request.

        Args:
            method: RPC method name
            params: Parameter object (sent as the single positional param)

        Returns:
            The "result" object of the response

        Raises:
            BridgeConnectionError: On transport failure or timeout
            BridgeRPCError: If the response carries an "error" object
            BridgeProtocolError: If the response is malformed
            asyncio.CancelledError: When the task is cancelled (re-raised)
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True

        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": [params],
        }

        try:
            async with self._session.post(f"{self._url}/", json=payload) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError as e:
                    raise BridgeProtocolError(
                        f"Malformed response from bridge (HTTP {response.status}): {e}"
                    ) from e

        except asyncio.CancelledError:
            logger.debug(f"RPC call {method} cancelled")
            raise

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            detail = str(e) or type(e).__name__
            raise BridgeConnectionError(
                f"RPC call failed: {detail}. "
                f"Is glin-forge RPC server running on {self._url}?"
            ) from e

        return self._unwrap(body)

    def _unwrap(self, body: Any) -> dict:
        """Extract the result object from a JSON-RPC response body."""
        if not isinstance(body, dict):
            raise BridgeProtocolError(
                f"Malformed response from bridge: expected an object, got {type(body).__name__}"
            )

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise BridgeRPCError(
                    error.get("message") or "RPC call failed",
                    code=error.get("code"),
                )
            raise BridgeRPCError(str(error))

        result = body.get("result")
        if not isinstance(result, dict):
            raise BridgeProtocolError("Malformed response from bridge: missing result object")

        return result

    async def watch(
        self,
        options: WatchOptions,
        follow: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> WatchResult:
        """
        Fetch contract events through the "watch" method.

        Args:
            options: Watch parameters (address, filter, network, cursor)
            follow: Override for the follow flag
            limit: Override for the limit

        Returns:
            WatchResult with success=True and the decoded events

        Raises:
            BridgeRPCError: If the bridge returned success=false
            BridgeProtocolError: If the events list is malformed
            BridgeConnectionError: On transport failure
        """
        params = options.to_params(follow=follow, limit=limit)
        logger.debug(f"watch request: {params}")

        result = await self.call("watch", params)
        return self._parse_watch_result(result)

    def _parse_watch_result(self, result: dict) -> WatchResult:
        """Decode a watch result object, raising on failure."""
        if not result.get("success"):
            raise BridgeRPCError(result.get("error") or "Failed to fetch events")

        raw_events = result.get("events")
        if raw_events is None:
            raw_events = []
        if not isinstance(raw_events, list):
            raise BridgeProtocolError(
                f"Malformed watch result: events must be a list, got {type(raw_events).__name__}"
            )

        events = []
        for index, item in enumerate(raw_events):
            try:
                events.append(ContractEvent.from_dict(item))
            except ValueError as e:
                raise BridgeProtocolError(f"Malformed event at index {index}: {e}") from e

        return WatchResult(success=True, events=events, error=result.get("error"))
