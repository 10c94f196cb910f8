"""
Events Layer - Contract event watching through the glin-forge bridge.

This module provides contract event retrieval and dispatch:
    - JSON-RPC client for the local bridge started by `glin-forge run`
    - Listener registry keyed by event name, with a "*" wildcard
    - EventWatcher for historical fetches and continuous follow mode
    - watch_events() convenience function
    - Assertion helpers for contract tests

Usage:
    from glin_forge.events import EventWatcher, WatchOptions

    watcher = EventWatcher(WatchOptions(
        address="5GrwvaEF...",
        network="testnet",
        follow=True,
    ))
    watcher.on("Transfer", handle_transfer)
    watcher.on("*", log_event)

    task = asyncio.create_task(watcher.start())

    # Stop gracefully
    watcher.stop()
    await task
"""

# Models
from .models import (
    ContractEvent,
    ErrorRecord,
    WatcherState,
    WatchOptions,
    WatchResult,
)

# Bridge client
from .client import (
    BridgeClient,
    BridgeConnectionError,
    BridgeError,
    BridgeNotRunningError,
    BridgeProtocolError,
    BridgeRPCError,
)

# Configuration
from .config import (
    PORT_ENV_VAR,
    BridgeConfig,
)

# Listeners
from .listeners import (
    WILDCARD,
    EventCallback,
    ListenerRegistry,
)

# Metrics
from .metrics import (
    MetricsCollector,
    WatcherMetrics,
)

# Watcher
from .watcher import (
    EventWatcher,
    WatcherAlreadyRunningError,
    watch_events,
)

# Assertions
from .assertions import (
    EventAssertionError,
    EventMatcher,
    collect_events,
    expect_event,
    expect_events,
    expect_no_event,
    find_event,
    find_events,
    has_event,
)


__all__ = [
    # Models
    "ContractEvent",
    "ErrorRecord",
    "WatcherState",
    "WatchOptions",
    "WatchResult",
    # Bridge client
    "BridgeClient",
    "BridgeConnectionError",
    "BridgeError",
    "BridgeNotRunningError",
    "BridgeProtocolError",
    "BridgeRPCError",
    # Configuration
    "PORT_ENV_VAR",
    "BridgeConfig",
    # Listeners
    "WILDCARD",
    "EventCallback",
    "ListenerRegistry",
    # Metrics
    "MetricsCollector",
    "WatcherMetrics",
    # Watcher
    "EventWatcher",
    "WatcherAlreadyRunningError",
    "watch_events",
    # Assertions
    "EventAssertionError",
    "EventMatcher",
    "collect_events",
    "expect_event",
    "expect_events",
    "expect_no_event",
    "find_event",
    "find_events",
    "has_event",
]
