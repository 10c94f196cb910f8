"""
Assertion helpers for contract events.

Intended for contract tests: collect the events a contract emitted, then
assert on names and payloads.

Usage:
    events = await collect_events(address, "local", from_block=start)

    expect_event(events, "Transfer")
    expect_no_event(events, "Approval")
    expect_events(events, [
        EventMatcher("Transfer", data={"from": alice, "to": bob, "value": 100}),
        EventMatcher("Burn"),
    ])
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from .client import BridgeClient
from .config import BridgeConfig
from .models import ContractEvent
from .watcher import watch_events


class EventAssertionError(AssertionError):
    """An expected event condition did not hold."""
    pass


@dataclass(frozen=True)
class EventMatcher:
    """Expected event name and, optionally, its exact payload."""
    event_name: str
    data: Any = None

    def matches(self, event: ContractEvent) -> bool:
        if event.event_name != self.event_name:
            return False
        return self.data is None or event.data == self.data


def _describe(events: Iterable[ContractEvent]) -> str:
    names = [f"{e.event_name}@{e.block_number}" for e in events]
    return ", ".join(names) if names else "(none)"


def find_event(events: Iterable[ContractEvent], event_name: str) -> Optional[ContractEvent]:
    """First event with the given name, or None."""
    for event in events:
        if event.event_name == event_name:
            return event
    return None


def find_events(events: Iterable[ContractEvent], event_name: str) -> list[ContractEvent]:
    """All events with the given name, in order."""
    return [event for event in events if event.event_name == event_name]


def has_event(events: Iterable[ContractEvent], event_name: str) -> bool:
    return find_event(events, event_name) is not None


def expect_event(
    events: Sequence[ContractEvent],
    event_name: str,
    message: Optional[str] = None,
) -> ContractEvent:
    """
    Assert that an event was emitted.

    Returns:
        The first matching event

    Raises:
        EventAssertionError: If no event with that name is present
    """
    event = find_event(events, event_name)
    if event is None:
        raise EventAssertionError(
            message or f"Expected event {event_name} not found. Events: {_describe(events)}"
        )
    return event


def expect_no_event(
    events: Sequence[ContractEvent],
    event_name: str,
    message: Optional[str] = None,
) -> None:
    """
    Assert that an event was NOT emitted.

    Raises:
        EventAssertionError: If an event with that name is present
    """
    event = find_event(events, event_name)
    if event is not None:
        raise EventAssertionError(
            message or (
                f"Expected event {event_name} to not be emitted, "
                f"but it was (block {event.block_number})"
            )
        )


def expect_events(events: Sequence[ContractEvent], matchers: Sequence[EventMatcher]) -> None:
    """
    Assert that every matcher is satisfied by some event.

    A matcher without data only checks the name. A matcher with data
    requires the first event of that name to carry exactly that payload.

    Raises:
        EventAssertionError: On the first unsatisfied matcher
    """
    for matcher in matchers:
        found = find_event(events, matcher.event_name)

        if found is None:
            raise EventAssertionError(
                f"Expected event {matcher.event_name} not found. Events: {_describe(events)}"
            )

        if not matcher.matches(found):
            raise EventAssertionError(
                f"Event {matcher.event_name} data mismatch.\n"
                f"Expected: {json.dumps(matcher.data, default=str)}\n"
                f"Received: {json.dumps(found.data, default=str)}"
            )


async def collect_events(
    address: str,
    network: str,
    event: Optional[str] = None,
    limit: Optional[int] = None,
    from_block: Optional[int] = None,
    client: Optional[BridgeClient] = None,
    config: Optional[BridgeConfig] = None,
) -> list[ContractEvent]:
    """Run a historical watch and return the events in bridge order."""
    collected: list[ContractEvent] = []
    await watch_events(
        address=address,
        network=network,
        on_event=collected.append,
        event=event,
        follow=False,
        limit=limit,
        from_block=from_block,
        client=client,
        config=config,
    )
    return collected
