"""Site builder — compiles a TreeIndex into an immutable SiteSnapshot.

A snapshot bundles everything a request needs: the route table, the
compiled Kida environment and the passthrough (Git) prefixes.  The server
swaps whole snapshots, so routes and templates always come from the same
build.

Route rules:

- ``blog/post.tmpl``  -> ``/blog/post``  executes template ``blog/post``
- ``blog/#.tmpl``     -> ``/blog``       executes template ``blog/#``
- ``#.tmpl``          -> ``/``           executes template ``#``
- ``css/site.css``    -> ``/css/site.css`` serves the bytes read at index time
- ``repo/.git/``      -> prefix ``/repo/.git/`` bridged to Git

Templates under dot-directories (``.partials/header.tmpl``) are compiled
first and never routed; public templates include them by name
(``{% include ".partials/header" %}``).
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from types import MappingProxyType
from typing import Any

from kida import DictLoader, Environment

from tabby._errors import IndexingError, RouteConflictError, TemplateCompileError
from tabby._types import MimeTable, RoutePath, TemplateName
from tabby.content.indexer import TreeIndex

ROOT_TEMPLATE = "#"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ServeAsset:
    """Serve bytes captured at index time."""

    body: bytes
    content_type: str
    source: Path


@dataclass(frozen=True, slots=True)
class ExecuteTemplate:
    """Render a compiled template from the snapshot's environment."""

    name: TemplateName
    source: Path


@dataclass(frozen=True, slots=True)
class BridgeToGit:
    """Hand the request to the Git bridge for ``directory``."""

    directory: Path


type Route = ServeAsset | ExecuteTemplate | BridgeToGit


class SnapshotLoader(DictLoader):
    """DictLoader over template sources captured during the build.

    Sources keep the file they were read from so Kida errors name it.  The
    snapshot never reads the disk after it is built, so edits made while it
    is live only show up in the next snapshot.  Unknown names raise Kida's
    own ``TemplateNotFoundError``.
    """

    __slots__ = ("_filenames",)

    def __init__(self, sources: Mapping[TemplateName, tuple[str, str]]) -> None:
        super().__init__({name: source for name, (source, _) in sources.items()})
        self._filenames = {name: filename for name, (_, filename) in sources.items()}

    def get_source(self, name: str) -> tuple[str, str]:  # type: ignore[override]
        source, _ = super().get_source(name)
        return source, self._filenames[name]


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SiteSnapshot:
    """One fully built view of the served site.

    Attributes:
        root: Content root the snapshot was built from.
        routes: URL path to Route.  Passthrough prefixes are included as
            ``BridgeToGit`` entries keyed by their prefix.
        templates: Compiled Kida environment.
        template_names: Every compiled template, hidden ones first.
        passthrough_prefixes: URL prefixes (ending in ``/``) bridged to Git.
        generation: Build counter assigned by the server.

    """

    root: Path
    routes: Mapping[RoutePath, Route]
    templates: Any
    template_names: tuple[TemplateName, ...] = ()
    passthrough_prefixes: frozenset[RoutePath] = field(default_factory=frozenset)
    generation: int = 0

    def lookup(self, path: RoutePath) -> tuple[Route, str] | None:
        """Resolve a request path to ``(route, sub_path)``.

        Exact routes win.  Otherwise the longest passthrough prefix that
        ``path`` starts with is used and the remainder is the sub-path.
        """
        route = self.routes.get(path)
        if route is not None:
            return route, ""

        best: str | None = None
        for prefix in self.passthrough_prefixes:
            if path.startswith(prefix) and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return None
        return self.routes[best], path[len(best):]

    @property
    def passthrough_roots(self) -> tuple[Path, ...]:
        """Directories bridged to Git, in route-table order."""
        return tuple(
            route.directory for route in self.routes.values() if isinstance(route, BridgeToGit)
        )

    def render(self, name: TemplateName, **context: Any) -> str:
        """Render a compiled template."""
        return self.templates.get_template(name).render(**context)

    def summary(self) -> dict[str, int]:
        """Route counts by kind."""
        counts = {"templates": 0, "assets": 0, "repositories": 0}
        for route in self.routes.values():
            match route:
                case ExecuteTemplate():
                    counts["templates"] += 1
                case ServeAsset():
                    counts["assets"] += 1
                case BridgeToGit():
                    counts["repositories"] += 1
        return counts


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def route_for_template(relative: PurePath) -> tuple[RoutePath, TemplateName]:
    """Derive the URL path and template name for a public template.

    The template name is the relative path without its extension.  A
    template named ``#`` serves the URL of its containing directory.
    """
    name = relative.with_suffix("").as_posix()
    if relative.stem == ROOT_TEMPLATE:
        parent = relative.parent.as_posix()
        return ("/" if parent == "." else f"/{parent}"), name
    return f"/{name}", name


def template_name(relative: PurePath) -> TemplateName:
    """Name under which a template is compiled."""
    return relative.with_suffix("").as_posix()


def build_site(
    index: TreeIndex,
    *,
    asset_types: MimeTable,
    strict_routes: bool = True,
    generation: int = 0,
) -> SiteSnapshot:
    """Compile ``index`` into a SiteSnapshot.

    Raises:
        IndexingError: If a template file cannot be read.
        TemplateCompileError: If any template fails to parse.
        RouteConflictError: If two files map to one URL and ``strict_routes``.

    """
    root = index.root
    sources: dict[TemplateName, tuple[str, str]] = {}
    ordered: list[tuple[TemplateName, Path]] = []

    # Hidden first so public templates can include them.
    for path in (*index.hidden_templates, *index.templates):
        name = template_name(PurePath(path.relative_to(root)))
        sources[name] = (_read_template(path), str(path))
        ordered.append((name, path))

    env = Environment(loader=SnapshotLoader(sources), auto_reload=False)
    for name, path in ordered:
        try:
            env.get_template(name)
        except Exception as exc:
            raise TemplateCompileError(path, str(exc)) from exc

    routes: dict[RoutePath, Route] = {}
    origins: dict[RoutePath, Path] = {}

    def register(url: RoutePath, route: Route, source: Path) -> None:
        previous = origins.get(url)
        if previous is not None:
            if strict_routes:
                raise RouteConflictError(url, previous, source)
            print(
                f"  warning: route {url} from {source} replaces {previous}",
                file=sys.stderr,
            )
        routes[url] = route
        origins[url] = source

    for path in index.templates:
        url, name = route_for_template(PurePath(path.relative_to(root)))
        register(url, ExecuteTemplate(name=name, source=path), path)

    for relative, body in index.assets.items():
        extension = PurePath(relative).suffix
        content_type = asset_types.get(extension, DEFAULT_CONTENT_TYPE)
        source = root / relative
        register(f"/{relative}", ServeAsset(body=body, content_type=content_type, source=source), source)

    prefixes: set[RoutePath] = set()
    for directory in index.passthrough_roots:
        prefix = f"/{PurePath(directory.relative_to(root)).as_posix()}/"
        register(prefix, BridgeToGit(directory=directory), directory)
        prefixes.add(prefix)

    return SiteSnapshot(
        root=root,
        routes=MappingProxyType(routes),
        templates=env,
        template_names=tuple(name for name, _ in ordered),
        passthrough_prefixes=frozenset(prefixes),
        generation=generation,
    )


def _read_template(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read template {path}: {exc}"
        raise IndexingError(msg) from exc
