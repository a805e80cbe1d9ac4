"""Site server — owns the live snapshot and keeps it in sync with the disk.

The server holds exactly one current SiteSnapshot.  Requests read that
reference once and use it for the whole exchange; rebuilds construct a new
snapshot off to the side and install it with a single assignment, so a
request sees either the old site or the new one, never a mix.

Lifecycle::

    idle --start()--> serving --(rebuild or watch failure)--> failed
                         |
                         +--stop()--> stopped

A background thread runs the watch loop: wait for a change, re-subscribe
if directories appeared or vanished, and rebuild.  The subscription is never
dropped, so edits made during a rebuild trigger the next one.  When a rebuild
or the watcher fails, the error is pushed on ``errors`` and the channel is
closed.  The last good snapshot keeps serving, but content is stale from
then on and the process should be restarted.
"""

from __future__ import annotations

import json
import queue
import sys
import threading
import time
from collections.abc import Iterator
from contextlib import closing
from dataclasses import asdict, is_dataclass
from typing import TYPE_CHECKING, Any, Literal

from tabby._errors import ContentError, ServerStateError, TabbyError, WatchSetupError
from tabby._types import ServerState
from tabby.content.builder import (
    BridgeToGit,
    ExecuteTemplate,
    ServeAsset,
    SiteSnapshot,
    build_site,
)
from tabby.content.indexer import index_tree
from tabby.content.watcher import ChangeEvent, ChangeWatcher
from tabby.git.bridge import GitBridge
from tabby.observability.events import RebuildFailed, SiteRebuilt
from tabby.server.http import (
    STATS_ENDPOINT,
    SiteRequest,
    SiteResponse,
    method_not_allowed,
    not_found,
    text_response,
)

if TYPE_CHECKING:
    from tabby.config import TabbyConfig
    from tabby.observability.collector import EventCollector

_SITE_METHODS = ("GET", "HEAD")
_CLOSED = object()


class ErrorChannel:
    """Thread-safe error queue that can be closed.

    A closed channel means the server stopped updating its content.
    """

    __slots__ = ("_closed", "_lock", "_queue")

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, error: BaseException) -> None:
        with self._lock:
            if self._closed:
                return
            self._queue.put(error)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def get(self, timeout: float | None = None) -> BaseException | None:
        """Next error, or None once the channel is closed and drained.

        Raises:
            queue.Empty: If ``timeout`` elapses first.

        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for other readers.
            self._queue.put(_CLOSED)
            return None
        assert isinstance(item, BaseException)
        return item

    def __iter__(self) -> Iterator[BaseException]:
        while (error := self.get()) is not None:
            yield error


class SiteServer:
    """Serves the content tree under ``config.root``.

    Args:
        config: Server configuration.
        collector: Optional EventCollector for rebuild and Git events.
        bridge: Git bridge; built from ``config.git_command`` when omitted.

    """

    def __init__(
        self,
        config: TabbyConfig,
        *,
        collector: EventCollector | None = None,
        bridge: GitBridge | None = None,
    ) -> None:
        self._config = config
        self._collector = collector
        self._bridge = bridge or GitBridge(config.git_command, collector=collector)
        self._snapshot: SiteSnapshot | None = None
        self._state: ServerState = "idle"
        self._generation = 0
        self._rebuild_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.errors = ErrorChannel()

    @property
    def config(self) -> TabbyConfig:
        return self._config

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def snapshot(self) -> SiteSnapshot:
        """The snapshot currently served.

        Raises:
            ServerStateError: If no snapshot was ever built.

        """
        snapshot = self._snapshot
        if snapshot is None:
            msg = "no site snapshot yet; call start() first"
            raise ServerStateError(msg)
        return snapshot

    @property
    def is_watching(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    # ----- lifecycle -----

    def start(self, *, watch: bool = True) -> SiteSnapshot:
        """Build the initial snapshot and start watching.

        Raises:
            ContentError: If the initial build fails (state becomes ``failed``).
            ServerStateError: If the server was already started.

        """
        if self._state != "idle":
            msg = f"cannot start a server in state {self._state!r}"
            raise ServerStateError(msg)

        # Subscribe before the first index so no edit falls between the two.
        watcher: ChangeWatcher | None = None
        watch_error: WatchSetupError | None = None
        if watch:
            self._stop_event.clear()
            watcher = self._new_watcher()
            try:
                watcher.open()
            except WatchSetupError as exc:
                watcher.close()
                watcher, watch_error = None, exc

        try:
            snapshot = self.rebuild(trigger="startup")
        except ContentError:
            self._state = "failed"
            if watcher is not None:
                watcher.close()
            raise
        self._state = "serving"

        if watch_error is not None:
            self._fail("watch", watch_error, trigger="startup")
        elif watcher is not None:
            self._thread = threading.Thread(
                target=self._watch_loop,
                args=(watcher,),
                name="tabby-watcher",
                daemon=True,
            )
            self._thread.start()
        return snapshot

    def stop(self) -> None:
        """Stop watching and close the error channel."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        if self._state != "failed":
            self._state = "stopped"
        self.errors.close()

    def rebuild(self, trigger: str = "manual") -> SiteSnapshot:
        """Index and build from scratch, then install the new snapshot.

        On failure the exception propagates and the current snapshot is
        left untouched.

        Raises:
            ContentError: If indexing or building fails.

        """
        config = self._config
        with self._rebuild_lock:
            t0 = time.perf_counter()
            index = index_tree(
                config.root,
                template_ext=config.template_ext,
                asset_exts=config.asset_extensions,
                passthrough_names=config.passthrough_dirs,
            )
            snapshot = build_site(
                index,
                asset_types=config.asset_types,
                strict_routes=config.strict_routes,
                generation=self._generation + 1,
            )
            self._generation = snapshot.generation
            self._snapshot = snapshot
            duration_ms = (time.perf_counter() - t0) * 1000

        if self._collector is not None:
            self._collector.record_rebuild(
                generation=snapshot.generation,
                trigger=trigger,
                summary=snapshot.summary(),
                duration_ms=duration_ms,
            )
        return snapshot

    # ----- watch loop -----

    def _new_watcher(self) -> ChangeWatcher:
        config = self._config
        return ChangeWatcher(
            config.root,
            passthrough_names=config.passthrough_dirs,
            stop_event=self._stop_event,
            debounce_ms=config.debounce_ms,
            force_polling=config.force_polling,
        )

    def _watch_loop(self, watcher: ChangeWatcher) -> None:
        """Background thread: wait for a change, re-subscribe, rebuild.

        The watcher stays subscribed while the rebuild runs, so edits made
        meanwhile come back as the next event.
        """
        with closing(watcher):
            while not self._stop_event.is_set():
                try:
                    event = watcher.next_change()
                    if event is None:
                        return
                    # New directories are watched before they are indexed.
                    watcher.refresh()
                except WatchSetupError as exc:
                    self._fail("watch", exc, trigger="watch")
                    return

                self._on_change(event)
                trigger = str(event.paths[0])
                t0 = time.perf_counter()
                try:
                    snapshot = self.rebuild(trigger=trigger)
                except ContentError as exc:
                    self._fail("build", exc, trigger=trigger)
                    return
                self._log_rebuild(event, snapshot, (time.perf_counter() - t0) * 1000)

    def _on_change(self, event: ChangeEvent) -> None:
        if self._collector is not None:
            self._collector.record_change(event.paths)

    def _fail(self, stage: Literal["build", "watch"], exc: TabbyError, trigger: str) -> None:
        self._state = "failed"
        print(f"  {stage} error: {exc}", file=sys.stderr)
        print("  Content is no longer updated; restart to recover.", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_failure(stage, exc, trigger)
        self.errors.push(exc)
        self.errors.close()

    def _log_rebuild(self, event: ChangeEvent, snapshot: SiteSnapshot, ms: float) -> None:
        routes = len(snapshot.routes)
        label = "route" if routes == 1 else "routes"
        print(
            f"  {event.describe()} changed, rebuilt {routes} {label} in {ms:.0f}ms",
            file=sys.stderr,
        )

    # ----- requests -----

    async def handle(self, request: SiteRequest) -> SiteResponse:
        """Route a request against the current snapshot."""
        if request.path == STATS_ENDPOINT and self._collector is not None:
            return self._stats_response(request)

        snapshot = self.snapshot
        resolved = snapshot.lookup(request.path)
        if resolved is None:
            return not_found()

        route, sub_path = resolved
        match route:
            case BridgeToGit(directory=directory):
                return await self._bridge.handle(request, directory, sub_path)
            case ServeAsset(body=body, content_type=content_type):
                if request.method not in _SITE_METHODS:
                    return method_not_allowed(*_SITE_METHODS)
                return SiteResponse(status=200, content_type=content_type, body=body)
            case ExecuteTemplate(name=name):
                if request.method not in _SITE_METHODS:
                    return method_not_allowed(*_SITE_METHODS)
                return self._render(snapshot, name, request)
        return not_found()

    def stats(self, *, path: str | None = None, limit: int = 20) -> dict[str, Any]:
        """Server state plus a summary of the event log.

        Args:
            path: Only list recent events mentioning this path.
            limit: Maximum number of recent events.

        """
        snapshot = self._snapshot
        payload: dict[str, Any] = {
            "state": self._state,
            "generation": snapshot.generation if snapshot is not None else 0,
            "routes": snapshot.summary() if snapshot is not None else {},
        }
        collector = self._collector
        if collector is None:
            return payload

        log = collector.log
        rebuilt = log.query(event_type=SiteRebuilt, limit=1)
        failed = log.query(event_type=RebuildFailed, limit=1)
        if path is None:
            recent = log.recent(limit)
        else:
            recent = list(reversed(log.query(path=path, limit=limit)))
        payload["last_rebuild"] = _event_dict(rebuilt[0]) if rebuilt else None
        payload["last_failure"] = _event_dict(failed[0]) if failed else None
        payload["recent"] = [_event_dict(event) for event in recent]
        payload["event_log"] = log.stats()
        return payload

    def _stats_response(self, request: SiteRequest) -> SiteResponse:
        if request.method not in _SITE_METHODS:
            return method_not_allowed(*_SITE_METHODS)
        body = json.dumps(self.stats(path=request.query.get("path")), indent=2)
        return SiteResponse(
            status=200,
            content_type="application/json",
            body=body.encode("utf-8"),
        )

    def _render(self, snapshot: SiteSnapshot, name: str, request: SiteRequest) -> SiteResponse:
        try:
            html = snapshot.render(name, path=request.path, query=dict(request.query))
        except Exception as exc:
            print(f"  render error in {name}: {exc}", file=sys.stderr)
            return text_response(500, "internal server error")
        return SiteResponse(
            status=200,
            content_type="text/html; charset=utf-8",
            body=html.encode("utf-8"),
        )


def _event_dict(event: object) -> dict[str, Any]:
    """JSON-ready view of a logged event; Pounce events keep only their type."""
    data: dict[str, Any] = {"type": type(event).__name__}
    if is_dataclass(event) and not isinstance(event, type):
        data.update(asdict(event))
    return data
