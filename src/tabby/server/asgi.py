"""ASGI adapter — exposes a SiteServer to Pounce (or any ASGI server).

The route table is data owned by the current snapshot, so a single ASGI
callable dispatches every request; nothing is registered per file.
Streaming responses (Git pack negotiation) are written chunk by chunk and
always closed, which tears down the git subprocess on client disconnect.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, MutableMapping
from contextlib import aclosing
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

from tabby.server.http import SiteRequest, SiteResponse

if TYPE_CHECKING:
    from tabby.server.site import SiteServer

type Scope = MutableMapping[str, Any]
type Message = MutableMapping[str, Any]
type Receive = Callable[[], Awaitable[Message]]
type Send = Callable[[Message], Awaitable[None]]


async def receive_body(receive: Receive) -> AsyncIterator[bytes]:
    """Yield request body chunks until the body ends or the client leaves."""
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return
        chunk = message.get("body", b"")
        if chunk:
            yield chunk
        if not message.get("more_body", False):
            return


def to_site_request(scope: Scope, receive: Receive) -> SiteRequest:
    """Build a SiteRequest from an ASGI ``http`` scope."""
    query: dict[str, str] = {}
    for key, value in parse_qsl(scope.get("query_string", b"").decode("latin-1"), keep_blank_values=True):
        query.setdefault(key, value)
    headers: dict[str, str] = {}
    for raw_name, raw_value in scope.get("headers", ()):
        headers.setdefault(raw_name.decode("latin-1").lower(), raw_value.decode("latin-1"))
    return SiteRequest(
        method=scope.get("method", "GET").upper(),
        path=scope.get("path", "/") or "/",
        query=MappingProxyType(query),
        headers=MappingProxyType(headers),
        body=receive_body(receive),
    )


def _encode_headers(response: SiteResponse) -> list[tuple[bytes, bytes]]:
    headers = [(b"content-type", response.content_type.encode("latin-1"))]
    headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers
    )
    if not response.is_streaming and response.header("content-length") is None:
        headers.append((b"content-length", str(len(response.body)).encode("latin-1")))
    return headers


async def send_response(send: Send, response: SiteResponse, *, head: bool = False) -> None:
    """Write ``response`` to the ASGI ``send`` channel."""
    await send({
        "type": "http.response.start",
        "status": response.status,
        "headers": _encode_headers(response),
    })

    if response.stream is None:
        await send({
            "type": "http.response.body",
            "body": b"" if head else response.body,
            "more_body": False,
        })
        return

    async with aclosing(response.stream) as chunks:
        if not head:
            async for chunk in chunks:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
    await send({"type": "http.response.body", "body": b"", "more_body": False})


class SiteApp:
    """ASGI application serving a started SiteServer.

    Lifespan shutdown stops the server (watcher thread, error channel).
    """

    __slots__ = ("_server",)

    def __init__(self, server: SiteServer) -> None:
        self._server = server

    @property
    def server(self) -> SiteServer:
        return self._server

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = to_site_request(scope, receive)
        response = await self._server.handle(request)
        await send_response(send, response, head=request.method == "HEAD")

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                self._server.stop()
                await send({"type": "lifespan.shutdown.complete"})
                return
