"""Tabby configuration.

TabbyConfig is the central configuration object, frozen after creation.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from tabby._errors import ConfigError

DEFAULT_ASSET_TYPES: Mapping[str, str] = MappingProxyType({
    ".css": "text/css",
    ".js": "text/javascript",
    ".json": "application/json",
    ".html": "text/html; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
    ".xml": "application/xml",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".pdf": "application/pdf",
})


DEFAULT_TEMPLATE_EXT = ".tmpl"


def default_asset_types(template_ext: str = DEFAULT_TEMPLATE_EXT) -> dict[str, str]:
    """The built-in asset table without the template extension."""
    return {ext: mime for ext, mime in DEFAULT_ASSET_TYPES.items() if ext != template_ext}


@dataclass(frozen=True, slots=True)
class TabbyConfig:
    """Configuration for a Tabby server.

    Attributes:
        root: Content root directory. Always resolved to an absolute path on
              construction.
        host: Bind address.
        port: Bind port.
        workers: Number of Pounce workers (0 = auto-detect).
        template_ext: Extension of template files (with leading dot).
        asset_types: Asset extension to MIME type. Only files with one of
            these extensions are served as assets.  None means the built-in
            table minus ``template_ext``.
        passthrough_dirs: Directory names (or name suffixes) exposed as Git
            repositories instead of being indexed.
        git_command: Executable used to answer Git requests.
        strict_routes: Fail a build when two files map to the same URL.
            When False the later file wins and a warning is printed.
        debounce_ms: Grouping window for filesystem events (0 = none).
        force_polling: Force the polling watcher backend (None = auto).

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 3000
    workers: int = 0
    template_ext: str = DEFAULT_TEMPLATE_EXT
    asset_types: Mapping[str, str] | None = None
    passthrough_dirs: tuple[str, ...] = (".git",)
    git_command: str = "git"
    strict_routes: bool = True
    debounce_ms: int = 0
    force_polling: bool | None = None

    def __post_init__(self) -> None:
        # Resolve root to absolute so that watchfiles (which returns
        # absolute paths) can be compared via Path.relative_to().
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        table = (
            default_asset_types(self.template_ext) if self.asset_types is None
            else dict(self.asset_types)
        )
        object.__setattr__(self, "asset_types", MappingProxyType(table))
        object.__setattr__(self, "passthrough_dirs", tuple(self.passthrough_dirs))

        if not self.template_ext.startswith("."):
            msg = f"template_ext must start with '.', got {self.template_ext!r}"
            raise ConfigError(msg)
        bad = [ext for ext in self.asset_types if not ext.startswith(".")]
        if bad:
            msg = f"asset extensions must start with '.', got {bad!r}"
            raise ConfigError(msg)
        if any(not name for name in self.passthrough_dirs):
            msg = f"passthrough_dirs entries must be non-empty, got {self.passthrough_dirs!r}"
            raise ConfigError(msg)
        if self.template_ext in self.asset_types:
            msg = f"{self.template_ext!r} cannot be both the template extension and an asset"
            raise ConfigError(msg)
        if not 0 <= self.port <= 65535:
            msg = f"port out of range: {self.port}"
            raise ConfigError(msg)
        if self.debounce_ms < 0:
            msg = f"debounce_ms must be >= 0, got {self.debounce_ms}"
            raise ConfigError(msg)

    @property
    def asset_extensions(self) -> frozenset[str]:
        """Extensions recognized as assets."""
        return frozenset(self.asset_types)
