"""
Contract event watcher.

Drives the glin-forge bridge "watch" method in one of two modes:
    - Historical: one bounded fetch, dispatch, return
    - Follow: poll until stop() is called, advancing the block cursor

Features:
    - Single active run per watcher (start() while running raises)
    - Cooperative stop: an in-flight bridge call always runs to completion,
      the stop flag is checked before each call and around each delay
    - Cursor advances to (last event block + 1) after each non-empty batch
    - Follow mode survives bridge outages (logged, retried after a longer delay)
    - Listener failures are isolated by the ListenerRegistry
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Optional

from .client import BridgeClient, BridgeError
from .config import BridgeConfig
from .listeners import EventCallback, ListenerRegistry, WILDCARD
from .metrics import MetricsCollector, WatcherMetrics
from .models import ContractEvent, WatcherState, WatchOptions, WatchResult

logger = logging.getLogger(__name__)


class WatcherAlreadyRunningError(RuntimeError):
    """start() was called on a watcher that is not idle."""
    pass


class EventWatcher:
    """
    Historical and real-time contract event monitoring.

    Usage:
        # Historical events
        watcher = EventWatcher(WatchOptions(
            address="5GrwvaEF...",
            network="testnet",
            limit=100,
        ))
        watcher.on("Transfer", lambda event: print(event.data))
        await watcher.start()

        # Follow mode
        live = EventWatcher(WatchOptions(
            address="5GrwvaEF...",
            network="testnet",
            follow=True,
        ))
        live.on("*", handle_any_event)
        task = asyncio.create_task(live.start())

        # ... later
        live.stop()
        await task
    """

    def __init__(
        self,
        options: WatchOptions,
        client: Optional[BridgeClient] = None,
        config: Optional[BridgeConfig] = None,
    ):
        """
        Initialize the watcher.

        Args:
            options: Watch parameters. The watcher keeps its own copy; only
                its poll loop changes from_block.
            client: Bridge client to use. If omitted, one is built from
                config and closed after each run. When config is omitted
                too, BridgeConfig.from_env() reads the process environment
                (GLIN_FORGE_RPC_PORT and friends); this is the only place the
                watcher touches process state.
            config: Bridge configuration (endpoint and poll timings)

        Raises:
            BridgeNotRunningError: If no client is given and no bridge port
                is configured
        """
        self._options = dataclasses.replace(options)

        if client is None:
            if config is None:
                config = BridgeConfig.from_env()
            client = BridgeClient.from_config(config)
            self._owns_client = True
        else:
            self._owns_client = False

        self._client = client
        self._config = config or BridgeConfig()

        self._metrics = MetricsCollector()
        self._registry = ListenerRegistry(on_error=self._handle_listener_error)

        # State
        self._state = WatcherState.IDLE
        self._stop_requested = False
        self._stop_event = asyncio.Event()
        self._idle_event = asyncio.Event()
        self._idle_event.set()

    @property
    def state(self) -> WatcherState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether a run is active and no stop has been requested."""
        return self._state == WatcherState.RUNNING

    @property
    def from_block(self) -> Optional[int]:
        """Next block height the watcher will query from."""
        return self._options.from_block

    @property
    def options(self) -> WatchOptions:
        """Copy of the current watch parameters."""
        return dataclasses.replace(self._options)

    @property
    def listeners(self) -> ListenerRegistry:
        """Listener registry used for dispatch."""
        return self._registry

    @property
    def metrics(self) -> WatcherMetrics:
        """Snapshot of poll and dispatch counters."""
        return self._metrics.get_metrics()

    def on(self, event_name: str, callback: EventCallback) -> None:
        """
        Register an event listener.

        Args:
            event_name: Event name to listen for, or "*" for all events
            callback: Function to call when the event occurs
        """
        self._registry.on(event_name, callback)

    def off(self, event_name: str, callback: Optional[EventCallback] = None) -> None:
        """
        Remove an event listener.

        Args:
            event_name: Event name
            callback: Callback to remove (if not provided, removes all
                callbacks for this event)
        """
        self._registry.off(event_name, callback)

    def remove_all_listeners(self) -> None:
        """Remove all event listeners."""
        self._registry.remove_all()

    async def start(self) -> None:
        """
        Start watching for events.

        In follow mode this returns once stop() takes effect. In historical
        mode it returns after the single fetch has been dispatched.

        Raises:
            WatcherAlreadyRunningError: If a run is already active
            BridgeError: Historical mode only, if the bridge call fails
        """
        if self._state != WatcherState.IDLE:
            raise WatcherAlreadyRunningError("EventWatcher is already running")

        self._state = WatcherState.RUNNING
        self._stop_requested = False
        self._stop_event.clear()
        self._idle_event.clear()

        mode = "follow" if self._options.follow else "historical"
        logger.info(
            f"Watching {self._options.address} on {self._options.network} "
            f"({mode}, event={self._options.event or '*'}, from_block={self._options.from_block})"
        )

        try:
            if self._options.follow:
                await self._watch_continuously()
            else:
                await self._fetch_historical_events()
        finally:
            self._state = WatcherState.IDLE
            self._idle_event.set()
            if self._owns_client:
                await self._client.close()
            logger.info(f"Event watcher for {self._options.address} stopped")

    def stop(self) -> None:
        """
        Request the watcher to stop.

        Does not cancel a bridge call already in flight; its response is
        discarded. Calling stop() on an idle watcher does nothing.
        """
        if self._state != WatcherState.RUNNING:
            return

        logger.info("Stopping event watcher...")
        self._stop_requested = True
        self._stop_event.set()
        self._state = WatcherState.STOPPING

    async def wait_stopped(self) -> None:
        """Wait until the current run (if any) has fully ended."""
        await self._idle_event.wait()

    async def _fetch_historical_events(self) -> None:
        """Historical mode: fetch once and dispatch."""
        result = await self._client.watch(
            self._options,
            follow=False,
            limit=self._options.limit,
        )
        self._metrics.record_poll_success(len(result.events))

        if self._stop_requested:
            self._discard(result.events)
            return

        await self._dispatch_batch(result.events)

    async def _watch_continuously(self) -> None:
        """Follow mode: keep polling until stopped."""
        limit = self._options.limit or self._config.follow_limit

        while not self._stop_requested:
            try:
                result = await self._client.watch(self._options, follow=True, limit=limit)

            except asyncio.CancelledError:
                raise

            except BridgeError as e:
                self._metrics.record_poll_failure(e)
                if self._stop_requested:
                    break
                logger.warning(
                    f"Error watching events: {e} "
                    f"(retrying in {self._config.retry_delay}s)"
                )
                await self._wait(self._config.retry_delay)
                continue

            except Exception as e:
                self._metrics.record_poll_failure(e)
                if self._stop_requested:
                    break
                logger.error(
                    f"Unexpected error watching events: {e} "
                    f"(retrying in {self._config.retry_delay}s)"
                )
                await self._wait(self._config.retry_delay)
                continue

            self._metrics.record_poll_success(len(result.events))

            if self._stop_requested:
                self._discard(result.events)
                break

            logger.debug(
                f"Poll from_block={self._options.from_block} "
                f"returned {len(result.events)} events"
            )

            await self._dispatch_batch(result.events)
            self._advance_cursor(result)

            if not self._stop_requested:
                await self._wait(self._config.poll_interval)

    async def _dispatch_batch(self, events: list[ContractEvent]) -> None:
        """Dispatch a batch in bridge order."""
        for event in events:
            await self._registry.dispatch(event)
            self._metrics.record_event_dispatched(event.block_number)

    def _advance_cursor(self, result: WatchResult) -> None:
        """Move from_block past the last event of a batch."""
        last_block = result.last_block
        if last_block is None:
            return

        next_block = last_block + 1
        current = self._options.from_block

        if current is not None and next_block < current:
            logger.warning(
                f"Bridge returned block {last_block} "
                f"behind cursor {current}, keeping cursor"
            )
            return

        self._options.from_block = next_block

    def _discard(self, events: list[ContractEvent]) -> None:
        if events:
            logger.debug(f"Discarding {len(events)} events received after stop")
            self._metrics.record_events_discarded(len(events))

    async def _wait(self, delay: float) -> None:
        """Sleep for delay seconds, waking early if stop() is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _handle_listener_error(self, event: ContractEvent, error: BaseException) -> None:
        self._metrics.record_listener_error(error, event_name=event.event_name)


async def watch_events(
    address: str,
    network: str,
    on_event: EventCallback,
    event: Optional[str] = None,
    follow: bool = False,
    limit: Optional[int] = None,
    from_block: Optional[int] = None,
    client: Optional[BridgeClient] = None,
    config: Optional[BridgeConfig] = None,
) -> EventWatcher:
    """
    Watch contract events (convenience function).

    Builds an EventWatcher, registers on_event for every event and runs it
    to completion. In follow mode this only returns when the awaiting task
    is cancelled; cancellation leaves the watcher idle.

    Usage:
        await watch_events(
            address="5GrwvaEF...",
            network="testnet",
            on_event=lambda event: print(event),
        )

    Returns:
        The watcher, idle, after the run ended
    """
    watcher = EventWatcher(
        WatchOptions(
            address=address,
            network=network,
            event=event,
            follow=follow,
            limit=limit,
            from_block=from_block,
        ),
        client=client,
        config=config,
    )

    watcher.on(WILDCARD, on_event)
    await watcher.start()
    return watcher
