"""File watcher — signals that the content tree needs a rebuild.

Every directory under the root (except passthrough directories) gets its own
non-recursive subscription.  All kinds of change are coalesced into a single
"rebuild needed" event; tabby never diffs.

One watcher lives for the whole server lifetime.  The notification backend
keeps collecting while the caller rebuilds, so a burst of edits during a
rebuild comes back as the next event.  ``refresh()`` re-subscribes when
directories appeared or vanished; the new subscription is live before the
old one is released.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from watchfiles import Change, watch

from tabby._errors import WatchSetupError
from tabby.content.classifier import matches_passthrough

type ChangeKind = Literal["created", "modified", "deleted"]
type RawChange = tuple[Change, str]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A batch of filesystem changes, coalesced.

    Attributes:
        paths: Absolute paths that changed, sorted.
        kinds: Kinds of change seen in the batch.

    """

    paths: tuple[Path, ...]
    kinds: frozenset[ChangeKind]

    def describe(self) -> str:
        """Short human description for log lines."""
        if len(self.paths) == 1:
            return self.paths[0].name
        return f"{len(self.paths)} files"


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def is_excluded(path: Path, exclude: Collection[Path]) -> bool:
    """True if ``path`` is an excluded directory or lies inside one."""
    return any(path == root or path.is_relative_to(root) for root in exclude)


def coalesce_changes(
    raw_changes: Iterable[RawChange],
    exclude: Collection[Path] = (),
) -> ChangeEvent | None:
    """Fold raw watchfiles changes into a ChangeEvent.

    Returns None if every change was inside an excluded directory.
    """
    paths: set[Path] = set()
    kinds: set[ChangeKind] = set()
    for change_type, path_str in raw_changes:
        path = Path(path_str)
        if is_excluded(path, exclude):
            continue
        paths.add(path)
        kinds.add(_CHANGE_KIND_MAP.get(change_type, "modified"))
    if not paths:
        return None
    return ChangeEvent(paths=tuple(sorted(paths)), kinds=frozenset(kinds))


class ChangeWatcher:
    """Watches a content tree and returns coalesced change events.

    Use as a context manager, or call ``open()`` and ``close()``.

    Args:
        root: Content root.
        exclude: Directories never to subscribe to.
        passthrough_names: Directory names (or suffixes) that mark passthrough
            roots; matching directories are pruned like ``exclude``.
        stop_event: Set from another thread to end ``next_change()``.
        debounce_ms: Grouping window handed to watchfiles.
        step_ms: Polling step handed to watchfiles.
        timeout_ms: How long one backend wait lasts before it reports a
            quiet period.  Bounds the cost of ``open()`` and ``refresh()``.
        force_polling: Force the polling backend (None = auto).

    """

    def __init__(
        self,
        root: Path,
        exclude: Iterable[Path] = (),
        *,
        passthrough_names: Collection[str] = (),
        stop_event: threading.Event | None = None,
        debounce_ms: int = 0,
        step_ms: int = 50,
        timeout_ms: int = 250,
        force_polling: bool | None = None,
    ) -> None:
        self._root = root
        self._fixed_exclude = tuple(exclude)
        self._passthrough_names = tuple(passthrough_names)
        self._stop_event = stop_event or threading.Event()
        self._debounce_ms = debounce_ms
        self._step_ms = step_ms
        self._timeout_ms = timeout_ms
        self._force_polling = force_polling

        self._exclude: tuple[Path, ...] = self._fixed_exclude
        self._directories: tuple[Path, ...] = ()
        self._batches: Iterator[set[RawChange]] | None = None
        self._pending: set[RawChange] = set()

    def directories(self) -> list[Path]:
        """Every directory to subscribe to, root first.

        Passthrough roots met on the way are remembered so their changes
        are dropped too.

        Raises:
            WatchSetupError: If the root is missing or a directory cannot be listed.

        """
        if not self._root.is_dir():
            msg = f"Cannot watch {self._root}: not a directory"
            raise WatchSetupError(msg)

        def _fail(exc: OSError) -> None:
            msg = f"Cannot watch {exc.filename}: {exc.strerror or exc}"
            raise WatchSetupError(msg) from exc

        found: list[Path] = []
        pruned: list[Path] = []
        for dirpath, dirnames, _ in os.walk(self._root, onerror=_fail):
            current = Path(dirpath)
            found.append(current)
            keep: list[str] = []
            for name in sorted(dirnames):
                child = current / name
                if is_excluded(child, self._fixed_exclude):
                    continue
                if matches_passthrough(name, self._passthrough_names):
                    pruned.append(child)
                    continue
                keep.append(name)
            dirnames[:] = keep
        self._exclude = (*self._fixed_exclude, *pruned)
        return found

    # ----- subscription -----

    def open(self) -> None:
        """Subscribe to the current watch set.

        The subscription is live when this returns.

        Raises:
            WatchSetupError: If the directories cannot be listed or the
                notification backend cannot start.

        """
        if self._batches is not None:
            return
        directories = self.directories()
        self._batches = self._subscribe(directories)
        self._directories = tuple(directories)

    def refresh(self) -> bool:
        """Re-subscribe if the directory set changed since the last subscription.

        Changes the old subscription collected are carried over to the next
        ``next_change()``.  Returns True when it re-subscribed.

        Raises:
            WatchSetupError: If the new subscription cannot be set up.

        """
        directories = self.directories()
        old = self._batches
        if old is not None and tuple(directories) == self._directories:
            return False
        self._batches = self._subscribe(directories)
        self._directories = tuple(directories)
        if old is not None:
            try:
                self._pull(old)
            finally:
                old.close()
        return True

    def close(self) -> None:
        """Release the subscription.  Safe to call more than once."""
        batches, self._batches = self._batches, None
        self._directories = ()
        self._pending.clear()
        if batches is not None:
            batches.close()

    def __enter__(self) -> ChangeWatcher:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ----- events -----

    def next_change(self) -> ChangeEvent | None:
        """Block until something changed; None once the watcher is stopped.

        Changes that piled up since the last call come back at once,
        coalesced into one event.

        Raises:
            WatchSetupError: If the notification backend fails.

        """
        self.open()
        assert self._batches is not None
        while True:
            event = coalesce_changes(self._pending, self._exclude)
            self._pending.clear()
            if event is not None:
                return event
            if not self._pull(self._batches):
                return None

    def changes(self) -> Iterator[ChangeEvent]:
        """Yield change events until the stop event is set."""
        with self:
            while (event := self.next_change()) is not None:
                yield event

    def _subscribe(self, directories: list[Path]) -> Iterator[set[RawChange]]:
        batches = watch(
            *directories,
            watch_filter=None,
            debounce=self._debounce_ms,
            step=self._step_ms,
            stop_event=self._stop_event,
            rust_timeout=self._timeout_ms,
            yield_on_timeout=True,
            recursive=False,
            force_polling=self._force_polling,
            raise_interrupt=False,
        )
        # watchfiles starts the backend on the first step; a quiet period
        # comes back as an empty set.
        try:
            self._pull(batches)
        except WatchSetupError:
            batches.close()
            raise
        return batches

    def _pull(self, batches: Iterator[set[RawChange]]) -> bool:
        """Add one backend batch to the pending set; False once stopped."""
        try:
            raw_changes = next(batches, None)
        except (OSError, RuntimeError) as exc:
            msg = f"File watcher failed for {self._root}: {exc}"
            raise WatchSetupError(msg) from exc
        if raw_changes is None:
            return False
        self._pending.update(raw_changes)
        return True
