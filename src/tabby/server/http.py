"""Framework-neutral request and response values.

The ASGI adapter builds a SiteRequest per request and writes the returned
SiteResponse back.  Handlers never touch the transport directly, which keeps
routing and the Git bridge testable without a server.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from tabby._types import ByteStream

NEVER_EXPIRES = "Fri, 01 Jan 1980 00:00:00 GMT"

NO_CACHE_HEADERS: tuple[tuple[str, str], ...] = (
    ("Expires", NEVER_EXPIRES),
    ("Pragma", "no-cache"),
    ("Cache-Control", "no-cache, max-age=0, must-revalidate"),
)

TEXT_PLAIN = "text/plain; charset=utf-8"

# JSON view of server state and the event log.
STATS_ENDPOINT = "/__tabby/stats"


async def _empty_body() -> AsyncIterator[bytes]:
    return
    yield b""


@dataclass(frozen=True, slots=True)
class SiteRequest:
    """An inbound request.

    Attributes:
        method: Upper-case HTTP method.
        path: Decoded URL path (always starts with ``/``).
        query: First value of each query parameter.
        headers: Header values keyed by lower-case name.
        body: Request body chunks.

    """

    method: str = "GET"
    path: str = "/"
    query: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: ByteStream = field(default_factory=_empty_body)

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)


@dataclass(frozen=True, slots=True)
class SiteResponse:
    """An outbound response.

    Either ``body`` holds the full payload or ``stream`` yields it in chunks.

    """

    status: int = 200
    content_type: str = TEXT_PLAIN
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""
    stream: ByteStream | None = None

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None

    def header(self, name: str) -> str | None:
        """First value of header ``name`` (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


def text_response(status: int, text: str, *headers: tuple[str, str]) -> SiteResponse:
    return SiteResponse(status=status, body=text.encode("utf-8"), headers=headers)


def not_found() -> SiteResponse:
    return text_response(404, "not found")


def method_not_allowed(*allowed: str) -> SiteResponse:
    return text_response(405, "method not allowed", ("Allow", ", ".join(allowed)))
