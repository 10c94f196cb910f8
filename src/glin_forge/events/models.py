"""
Data models for contract event watching.

These models represent data structures for:
- Contract events returned by the glin-forge bridge
- Watch parameters (address, filter, network, cursor)
- The decoded result of a "watch" RPC call
- Watcher lifecycle state and error records

Note on event payloads:
    ContractEvent.data is passed through exactly as the bridge returned it.
    Decoding it against contract metadata is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class WatcherState(str, Enum):
    """EventWatcher lifecycle state."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


def _require_block_number(value: Any, name: str) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


@dataclass(frozen=True)
class ContractEvent:
    """
    A single contract event emitted on chain.

    Attributes:
        block_number: Height of the block the event was emitted in
        event_name: Name of the event variant (e.g. "Transfer")
        data: Opaque event payload, as returned by the bridge
    """
    block_number: int
    event_name: str
    data: Any = None

    def __post_init__(self):
        _require_block_number(self.block_number, "block_number")
        if not isinstance(self.event_name, str) or not self.event_name:
            raise ValueError(f"event_name must be a non-empty string, got {self.event_name!r}")

    @classmethod
    def from_dict(cls, raw: dict) -> "ContractEvent":
        """
        Parse an event from a bridge response entry.

        The JSON-RPC envelope uses camelCase (blockNumber, eventName) while
        the bridge's own serializer emits snake_case (block_number,
        event_name). Both are accepted.

        Raises:
            ValueError: If the entry is not an object or fields are invalid
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Event entry must be an object, got {type(raw).__name__}")

        block_number = raw.get("blockNumber", raw.get("block_number"))
        event_name = raw.get("eventName", raw.get("event_name"))

        if block_number is None:
            raise ValueError("Event entry is missing blockNumber")
        if event_name is None:
            raise ValueError("Event entry is missing eventName")

        return cls(
            block_number=block_number,
            event_name=event_name,
            data=raw.get("data"),
        )

    def to_dict(self) -> dict:
        """Convert to the camelCase wire representation."""
        return {
            "blockNumber": self.block_number,
            "eventName": self.event_name,
            "data": self.data,
        }


@dataclass
class WatchOptions:
    """
    Parameters for watching contract events.

    Attributes:
        address: Contract address to watch
        network: Network to watch on (e.g. "testnet", "mainnet", "local")
        event: Event name filter (all events if not specified)
        follow: Keep polling for new events until stopped
        limit: Maximum number of events per bridge call
        from_block: First block to return events from
    """
    address: str
    network: str
    event: Optional[str] = None
    follow: bool = False
    limit: Optional[int] = None
    from_block: Optional[int] = None

    def __post_init__(self):
        if not self.address:
            raise ValueError("address is required")
        if not self.network:
            raise ValueError("network is required")
        if self.limit is not None:
            if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit <= 0:
                raise ValueError(f"limit must be a positive integer, got {self.limit!r}")
        if self.from_block is not None:
            _require_block_number(self.from_block, "from_block")

    def to_params(self, follow: Optional[bool] = None, limit: Optional[int] = None) -> dict:
        """
        Build the "watch" RPC parameter object.

        Absent optional fields (event, limit, fromBlock) are omitted rather
        than sent as null.

        Args:
            follow: Override for the follow flag (defaults to self.follow)
            limit: Override for the limit (defaults to self.limit)
        """
        params: dict[str, Any] = {
            "address": self.address,
            "network": self.network,
            "follow": self.follow if follow is None else follow,
        }
        if self.event is not None:
            params["event"] = self.event

        effective_limit = self.limit if limit is None else limit
        if effective_limit is not None:
            params["limit"] = effective_limit
        if self.from_block is not None:
            params["fromBlock"] = self.from_block

        return params


@dataclass
class WatchResult:
    """Decoded result object of a "watch" RPC call."""
    success: bool
    events: list[ContractEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def last_block(self) -> Optional[int]:
        """Block number of the last event, or None if there are no events."""
        return self.events[-1].block_number if self.events else None


@dataclass
class ErrorRecord:
    """Record of an error that occurred while watching."""
    timestamp: datetime
    error_type: str
    message: str
    component: str  # "bridge", "listener"
    event_name: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "error_type": self.error_type,
            "message": self.message,
            "component": self.component,
            "event_name": self.event_name,
        }
