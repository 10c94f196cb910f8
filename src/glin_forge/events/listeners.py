"""
Listener registry for contract events.

Maps an event name (or the "*" wildcard) to an ordered list of callbacks.
Dispatch runs specific-name listeners first, then wildcard listeners, each
group in registration order. A failing listener is logged and skipped; it
never stops the remaining listeners or the poll loop that drives dispatch.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

from .models import ContractEvent

logger = logging.getLogger(__name__)

WILDCARD = "*"

# Supports both sync and async callbacks
EventCallback = Callable[[ContractEvent], Any]  # Returns None or Awaitable[None]
ListenerErrorHook = Callable[[ContractEvent, BaseException], None]


class ListenerRegistry:
    """
    Ordered registry of event callbacks.

    Usage:
        registry = ListenerRegistry()
        registry.on("Transfer", handle_transfer)
        registry.on("*", log_everything)

        await registry.dispatch(event)

        registry.off("Transfer", handle_transfer)
        registry.remove_all()
    """

    def __init__(self, on_error: Optional[ListenerErrorHook] = None):
        """
        Args:
            on_error: Optional hook called with (event, exception) whenever a
                listener raises
        """
        self._listeners: dict[str, list[EventCallback]] = {}
        self._on_error = on_error
        self._error_count = 0

    @property
    def error_count(self) -> int:
        """Number of listener invocations that raised."""
        return self._error_count

    def on(self, event_name: str, callback: EventCallback) -> None:
        """
        Register a listener.

        Registering the same callback twice yields two registrations.

        Args:
            event_name: Event name to listen for, or "*" for all events
            callback: Function (or coroutine function) taking a ContractEvent
        """
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {type(callback).__name__}")
        self._listeners.setdefault(event_name, []).append(callback)

    def off(self, event_name: str, callback: Optional[EventCallback] = None) -> None:
        """
        Remove a listener.

        Args:
            event_name: Event name
            callback: Callback to remove (if not provided, removes all
                callbacks for this event)
        """
        callbacks = self._listeners.get(event_name)
        if callbacks is None:
            return

        if callback is None:
            del self._listeners[event_name]
            return

        try:
            callbacks.remove(callback)
        except ValueError:
            pass

        if not callbacks:
            del self._listeners[event_name]

    def remove_all(self) -> None:
        """Remove every registered listener."""
        self._listeners.clear()

    def listener_count(self, event_name: Optional[str] = None) -> int:
        """Number of registrations for one event name, or in total."""
        if event_name is not None:
            return len(self._listeners.get(event_name, ()))
        return sum(len(callbacks) for callbacks in self._listeners.values())

    def event_names(self) -> list[str]:
        """Event names that currently have listeners."""
        return list(self._listeners)

    async def dispatch(self, event: ContractEvent) -> int:
        """
        Deliver an event to its specific-name listeners, then to wildcard
        listeners.

        Both groups are snapshotted before any listener runs. Listeners may
        add or remove registrations (including their own) mid-dispatch; the
        change takes effect from the next event.

        Args:
            event: Event to deliver

        Returns:
            Number of listeners that completed without raising
        """
        specific = list(self._listeners.get(event.event_name, ()))
        wildcard = []
        if event.event_name != WILDCARD:
            wildcard = list(self._listeners.get(WILDCARD, ()))

        delivered = 0
        for callback in specific:
            if await self._invoke(callback, event, wildcard=event.event_name == WILDCARD):
                delivered += 1
        for callback in wildcard:
            if await self._invoke(callback, event, wildcard=True):
                delivered += 1

        return delivered

    async def _invoke(self, callback: EventCallback, event: ContractEvent, wildcard: bool) -> bool:
        try:
            result = callback(event)
            # Await if the callback returns any awaitable (coroutine, Task, Future)
            if inspect.isawaitable(result):
                await result
            return True
        except Exception as e:
            self._error_count += 1
            kind = "wildcard event listener" if wildcard else "event listener"
            logger.error(
                f"Error in {kind} for {event.event_name} "
                f"(block {event.block_number}): {e}"
            )
            if self._on_error:
                try:
                    self._on_error(event, e)
                except Exception as hook_error:
                    logger.error(f"Error in listener error hook: {hook_error}")
            return False
