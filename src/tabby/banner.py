"""Startup banner — mode-aware status output.

Prints a branded startup banner with timing and what was found in the
content tree.  Detects ``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from tabby.server.http import STATS_ENDPOINT

if TYPE_CHECKING:
    from tabby.config import TabbyConfig
    from tabby.content.builder import SiteSnapshot


# ---------------------------------------------------------------------------
# ANSI helpers, respecting NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""
_ORANGE = "\033[38;5;214m" if _COLOR else ""


_MODE_STYLES: dict[str, tuple[str, str]] = {
    "serve": (_CYAN, "serve"),
    "routes": (_YELLOW, "routes"),
}


def _mode_badge(mode: str) -> str:
    """Return a styled [mode] badge."""
    color, label = _MODE_STYLES.get(mode, (_DIM, mode))
    return f"{color}[{label}]{_RESET}"


def _plural(count: int, word: str, plural: str | None = None) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {plural or word + 's'}"


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not _COLOR:
        return url
    return f"\033]8;;{url}\033\\{_BOLD}{_CYAN}{url}{_RESET}\033]8;;\033\\"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def print_banner(
    config: TabbyConfig,
    snapshot: SiteSnapshot,
    mode: str,
    *,
    watching: bool = False,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the Tabby startup banner to stderr.

    Args:
        config: Resolved TabbyConfig.
        snapshot: The initial site snapshot.
        mode: ``"serve"`` or ``"routes"``.
        watching: Whether the watcher is active.
        load_ms: Time spent building the site in milliseconds.
        warnings: Optional list of warning messages to display.

    """
    from tabby import __version__

    summary = snapshot.summary()
    cat = "\u14DA\u1618\u14E2"  # ᓚᘏᗢ
    header = f"  {_ORANGE}{_BOLD}{cat}{_RESET}  Tabby {_DIM}v{__version__}{_RESET}  {_mode_badge(mode)}"

    lines: list[str] = [
        "",
        header,
        f"  {_DIM}{'─' * 43}{_RESET}",
    ]

    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines.append(f"  {_DIM}├─{_RESET} {_plural(summary['templates'], 'page')} compiled{timing}")
    lines.append(f"  {_DIM}├─{_RESET} {_plural(summary['assets'], 'asset')} in memory")
    if summary["repositories"]:
        lines.append(
            f"  {_DIM}├─{_RESET} {_plural(summary['repositories'], 'repository', 'repositories')} over Git HTTP"
        )
    lines.append(f"  {_DIM}├─{_RESET} root: {_DIM}{config.root}{_RESET}")

    if mode == "serve":
        workers_label = str(config.workers) if config.workers > 0 else "auto"
        lines.append(f"  {_DIM}└─{_RESET} workers: {workers_label}")
        url = f"http://{config.host}:{config.port}"
        lines.append("")
        lines.append(f"  {_clickable_url(url)}")
        lines.append(f"  {_DIM}stats: {url}{STATS_ENDPOINT}{_RESET}")

    if watching:
        lines.append("")
        lines.append(f"  {_GREEN}Watching for changes...{_RESET}")

    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)

    lines.append("")

    print("\n".join(lines), file=sys.stderr)
