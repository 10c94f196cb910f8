"""
Metrics collection for event watchers.

Tracks poll outcomes, event throughput and recent errors for a single
EventWatcher. MetricsCollector is mutated only by the watcher's own loop;
callers read immutable WatcherMetrics snapshots.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .models import ErrorRecord


@dataclass(frozen=True)
class WatcherMetrics:
    """
    Snapshot of watcher activity.

    This is an immutable snapshot - use MetricsCollector to track
    metrics over time.
    """
    # Polling
    polls: int = 0
    failed_polls: int = 0
    consecutive_failures: int = 0
    last_poll_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None

    # Data flow
    events_received: int = 0
    events_dispatched: int = 0
    events_discarded: int = 0
    last_event_block: Optional[int] = None

    # Errors
    listener_errors: int = 0
    recent_errors: tuple[ErrorRecord, ...] = field(default_factory=tuple)

    @property
    def last_poll_age_seconds(self) -> Optional[float]:
        """Seconds since the last poll finished."""
        if self.last_poll_at is None:
            return None
        now = datetime.now(timezone.utc)
        return (now - self.last_poll_at).total_seconds()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "polls": self.polls,
            "failed_polls": self.failed_polls,
            "consecutive_failures": self.consecutive_failures,
            "last_poll_at": self.last_poll_at.isoformat() if self.last_poll_at else None,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "events_received": self.events_received,
            "events_dispatched": self.events_dispatched,
            "events_discarded": self.events_discarded,
            "last_event_block": self.last_event_block,
            "listener_errors": self.listener_errors,
            "recent_errors": [e.to_dict() for e in self.recent_errors],
        }


class MetricsCollector:
    """
    Counters for one watcher.

    Usage:
        collector = MetricsCollector()
        collector.record_poll_success(events_received=3)
        collector.record_event_dispatched(block_number=101)
        snapshot = collector.get_metrics()
    """

    def __init__(self, max_errors: int = 50):
        self._polls = 0
        self._failed_polls = 0
        self._consecutive_failures = 0
        self._last_poll_at: Optional[datetime] = None
        self._last_success_at: Optional[datetime] = None

        self._events_received = 0
        self._events_dispatched = 0
        self._events_discarded = 0
        self._last_event_block: Optional[int] = None

        self._listener_errors = 0
        self._errors: deque[ErrorRecord] = deque(maxlen=max_errors)

    def record_poll_success(self, events_received: int) -> None:
        now = datetime.now(timezone.utc)
        self._polls += 1
        self._consecutive_failures = 0
        self._last_poll_at = now
        self._last_success_at = now
        self._events_received += events_received

    def record_poll_failure(self, error: BaseException) -> None:
        self._polls += 1
        self._failed_polls += 1
        self._consecutive_failures += 1
        self._last_poll_at = datetime.now(timezone.utc)
        self._record_error(error, component="bridge")

    def record_event_dispatched(self, block_number: int) -> None:
        self._events_dispatched += 1
        self._last_event_block = block_number

    def record_events_discarded(self, count: int) -> None:
        self._events_discarded += count

    def record_listener_error(self, error: BaseException, event_name: str) -> None:
        self._listener_errors += 1
        self._record_error(error, component="listener", event_name=event_name)

    def _record_error(
        self,
        error: BaseException,
        component: str,
        event_name: Optional[str] = None,
    ) -> None:
        self._errors.append(ErrorRecord(
            timestamp=datetime.now(timezone.utc),
            error_type=type(error).__name__,
            message=str(error),
            component=component,
            event_name=event_name,
        ))

    def get_metrics(self) -> WatcherMetrics:
        """Get a snapshot of the current counters."""
        return WatcherMetrics(
            polls=self._polls,
            failed_polls=self._failed_polls,
            consecutive_failures=self._consecutive_failures,
            last_poll_at=self._last_poll_at,
            last_success_at=self._last_success_at,
            events_received=self._events_received,
            events_dispatched=self._events_dispatched,
            events_discarded=self._events_discarded,
            last_event_block=self._last_event_block,
            listener_errors=self._listener_errors,
            recent_errors=tuple(self._errors),
        )
