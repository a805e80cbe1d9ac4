"""Event log — queryable, thread-safe event store.

Stores a bounded ring buffer of events for inspection.  Supports querying
by event type, time range, and path.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  Safe for
    concurrent reads and writes from the watcher thread and request
    handlers.

"""

import threading
from collections import deque
from typing import Any


class EventLog:
    """Bounded event store with query support.

    Events are stored in a ring buffer (deque with maxlen).  When the
    buffer is full, the oldest events are discarded automatically.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[Any] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: Any) -> None:
        """Record an event in the log."""
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[Any]:
        """Query events with optional filters.

        Args:
            event_type: Only return events of this type.
            since_ns: Only return events after this timestamp (nanoseconds).
            path: Only return events mentioning this path (substring match
                against ``repository``, ``trigger`` or ``paths``).
            limit: Maximum number of events to return.

        Returns:
            List of matching events, most recent first.

        """
        with self._lock:
            results: list[Any] = []
            for event in reversed(self._events):
                if len(results) >= limit:
                    break

                if event_type is not None and not isinstance(event, event_type):
                    continue

                ts = getattr(event, "timestamp_ns", 0)
                if since_ns and ts < since_ns:
                    continue

                if path is not None and not _mentions(event, path):
                    continue

                results.append(event)

            return results

    def recent(self, n: int = 20) -> list[Any]:
        """Return the N most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Return summary statistics about stored events."""
        with self._lock:
            events = list(self._events)

        type_counts: dict[str, int] = {}
        for event in events:
            name = type(event).__name__
            type_counts[name] = type_counts.get(name, 0) + 1

        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": type_counts,
        }


def _mentions(event: Any, path: str) -> bool:
    for attr in ("repository", "trigger"):
        value = getattr(event, attr, None)
        if value and path in value:
            return True
    return any(path in p for p in getattr(event, "paths", ()))
