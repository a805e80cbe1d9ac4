"""Server layer — live snapshot ownership, request routing, ASGI adapter."""

from tabby.server.asgi import SiteApp
from tabby.server.http import SiteRequest, SiteResponse
from tabby.server.site import ErrorChannel, SiteServer

__all__ = [
    "ErrorChannel",
    "SiteApp",
    "SiteRequest",
    "SiteResponse",
    "SiteServer",
]
