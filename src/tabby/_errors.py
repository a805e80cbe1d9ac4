"""Tabby error hierarchy.

All tabby-specific errors inherit from TabbyError for easy catching.
"""

from __future__ import annotations

from pathlib import Path


class TabbyError(Exception):
    """Base error for all tabby operations."""


class ConfigError(TabbyError):
    """Invalid or missing configuration."""


class ContentError(TabbyError):
    """A rebuild attempt failed (indexing, compiling, routing)."""


class IndexingError(ContentError, OSError):
    """The content tree could not be traversed or a file could not be read."""


class TemplateCompileError(ContentError):
    """A template failed to parse.

    Attributes:
        path: The offending template file.
        message: The parser's message.

    """

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class RouteConflictError(ContentError):
    """Two source files map to the same URL path."""

    def __init__(self, route: str, first: Path, second: Path) -> None:
        self.route = route
        self.first = first
        self.second = second
        super().__init__(f"route {route!r} is produced by both {first} and {second}")


class WatchSetupError(TabbyError):
    """The filesystem notification backend could not be initialized."""


class ServerStateError(TabbyError):
    """The server was used in a state that does not allow the operation."""


class GitError(TabbyError):
    """A single Git request failed."""


class GitProcessError(GitError):
    """The git subprocess failed to start or exited non-zero."""


class ProtocolDecodeError(GitError):
    """A request body or pkt-line stream could not be decoded."""
