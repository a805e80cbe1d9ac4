"""Tabby application — the public entry points.

``serve`` builds the site, starts the watcher and runs Pounce.  ``routes``
builds once and prints what would be served.
"""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING

from tabby.config_loader import load_config

if TYPE_CHECKING:
    from tabby.content.builder import SiteSnapshot
    from tabby.server.site import SiteServer


def _start_error_monitor(server: SiteServer) -> threading.Thread:
    """Print every error the server reports until its channel closes."""

    def _monitor() -> None:
        for error in server.errors:
            print(f"  tabby: {type(error).__name__}: {error}", file=sys.stderr)
        if server.state == "failed":
            print("  tabby: content updates stopped; serving the last good site", file=sys.stderr)

    thread = threading.Thread(target=_monitor, name="tabby-errors", daemon=True)
    thread.start()
    return thread


def _describe_route(route: object) -> str:
    from tabby.content.builder import BridgeToGit, ExecuteTemplate, ServeAsset

    match route:
        case ExecuteTemplate(name=name):
            return f"template {name}"
        case ServeAsset(content_type=content_type, body=body):
            return f"asset {content_type} ({len(body)} bytes)"
        case BridgeToGit(directory=directory):
            return f"git {directory}"
    return repr(route)


def print_route_table(snapshot: SiteSnapshot) -> None:
    """Print the snapshot's routes, one per line, sorted by URL."""
    width = max((len(path) for path in snapshot.routes), default=0)
    for path in sorted(snapshot.routes):
        print(f"  {path.ljust(width)}  {_describe_route(snapshot.routes[path])}")


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def routes(root: str | Path = ".", **kwargs: object) -> SiteSnapshot:
    """Build the site once and print its route table.

    Args:
        root: Path to the content root.
        **kwargs: Override TabbyConfig fields.

    Raises:
        ContentError: If the tree cannot be indexed or built.

    """
    from tabby.banner import print_banner
    from tabby.server.site import SiteServer

    config = load_config(Path(root), **kwargs)
    t0 = time.perf_counter()
    server = SiteServer(config)
    snapshot = server.start(watch=False)
    load_ms = (time.perf_counter() - t0) * 1000

    print_banner(config, snapshot, mode="routes", load_ms=load_ms)
    print_route_table(snapshot)
    server.stop()
    return snapshot


def serve(root: str | Path = ".", **kwargs: object) -> None:
    """Serve the content root with hot reload.

    Builds the initial snapshot, starts the watcher thread, and runs the
    site as an ASGI app on Pounce.  Errors from later rebuilds are printed
    by a monitor thread; the last good site keeps serving.

    Args:
        root: Path to the content root.
        **kwargs: Override TabbyConfig fields.

    Raises:
        ContentError: If the initial build fails.

    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    from tabby.banner import print_banner
    from tabby.observability import EventCollector, EventLog
    from tabby.server.asgi import SiteApp
    from tabby.server.site import SiteServer

    config = load_config(Path(root), **kwargs)
    collector = EventCollector(EventLog())
    t0 = time.perf_counter()

    server = SiteServer(config, collector=collector)
    snapshot = server.start(watch=True)
    load_ms = (time.perf_counter() - t0) * 1000

    print_banner(config, snapshot, mode="serve", watching=True, load_ms=load_ms)
    _start_error_monitor(server)

    server_config = ServerConfig(
        host=config.host,
        port=config.port,
        workers=config.workers,  # 0 = auto-detect via Pounce
    )
    try:
        Server(server_config, SiteApp(server), lifecycle_collector=collector).run()
    finally:
        server.stop()
