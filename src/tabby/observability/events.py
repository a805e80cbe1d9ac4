"""Event model for tabby's observability.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Site lifecycle events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChangeDetected:
    """The watcher reported a batch of filesystem changes.

    Attributes:
        paths: Changed paths in the batch.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    paths: tuple[str, ...]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SiteRebuilt:
    """A new snapshot was built and installed.

    Attributes:
        generation: Build counter of the installed snapshot.
        trigger: What caused the rebuild ("startup" or a changed path).
        templates: Number of template routes.
        assets: Number of asset routes.
        repositories: Number of Git passthrough prefixes.
        duration_ms: Time to index and build.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    generation: int
    trigger: str
    templates: int
    assets: int
    repositories: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class RebuildFailed:
    """A rebuild or watcher setup failed; the previous snapshot stays live.

    Attributes:
        stage: Where it failed.
        error_type: Exception class name.
        message: Exception message.
        trigger: What caused the attempt.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    stage: Literal["build", "watch"]
    error_type: str
    message: str
    trigger: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Git bridge events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GitRequestServed:
    """A Git Smart HTTP request completed (successfully or not).

    Attributes:
        service: ``advertise`` or ``upload-pack``.
        repository: Repository directory.
        outcome: ``ok`` or ``failed``.
        detail: Error message when failed.
        bytes_sent: Payload bytes written to the client.
        duration_ms: Wall time of the exchange.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    service: str
    repository: str
    outcome: Literal["ok", "failed"]
    detail: str
    bytes_sent: int
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type TabbyEvent = ChangeDetected | SiteRebuilt | RebuildFailed | GitRequestServed


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
