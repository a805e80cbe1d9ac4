"""Observability — structured events for rebuilds and Git requests.

Quick Start:
    >>> from tabby.observability import EventCollector, EventLog
    >>> log = EventLog()
    >>> collector = EventCollector(log)
    >>> # Pass collector to SiteServer and to Pounce as lifecycle_collector

"""

from tabby.observability.collector import EventCollector
from tabby.observability.events import (
    ChangeDetected,
    GitRequestServed,
    RebuildFailed,
    SiteRebuilt,
    TabbyEvent,
    now_ns,
)
from tabby.observability.log import EventLog

__all__ = [
    "ChangeDetected",
    "EventCollector",
    "EventLog",
    "GitRequestServed",
    "RebuildFailed",
    "SiteRebuilt",
    "TabbyEvent",
    "now_ns",
]
