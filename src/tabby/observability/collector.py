"""Event collector — records tabby events and Pounce lifecycle events.

Implements Pounce's ``LifecycleCollector`` protocol (``record(event)``) so it
can be handed to the Pounce server, and provides explicit ``record_*``
methods for the watcher, the rebuild loop and the Git bridge.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any, Literal

from tabby.observability.events import (
    ChangeDetected,
    GitRequestServed,
    RebuildFailed,
    SiteRebuilt,
    now_ns,
)
from tabby.observability.log import EventLog


class EventCollector:
    """Unified event collector.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Pounce LifecycleCollector protocol -----

    def record(self, event: Any) -> None:
        """Record a Pounce lifecycle event as-is."""
        self._log.append(event)

    # ----- Site lifecycle -----

    def record_change(self, paths: Iterable[Path]) -> None:
        self._log.append(
            ChangeDetected(paths=tuple(str(p) for p in paths), timestamp_ns=now_ns())
        )

    def record_rebuild(
        self,
        *,
        generation: int,
        trigger: str,
        summary: dict[str, int],
        duration_ms: float,
    ) -> None:
        """Record an installed snapshot."""
        self._log.append(
            SiteRebuilt(
                generation=generation,
                trigger=trigger,
                templates=summary.get("templates", 0),
                assets=summary.get("assets", 0),
                repositories=summary.get("repositories", 0),
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_failure(
        self, stage: Literal["build", "watch"], exc: BaseException, trigger: str,
    ) -> None:
        self._log.append(
            RebuildFailed(
                stage=stage,
                error_type=type(exc).__name__,
                message=str(exc),
                trigger=trigger,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Git bridge -----

    def record_git(
        self,
        *,
        service: str,
        repository: str,
        outcome: str,
        detail: str = "",
        bytes_sent: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        self._log.append(
            GitRequestServed(
                service=service,
                repository=repository,
                outcome="ok" if outcome == "ok" else "failed",
                detail=detail,
                bytes_sent=bytes_sent,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )
