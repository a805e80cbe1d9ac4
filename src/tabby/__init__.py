"""Tabby — a self-updating static content host with a Git Smart HTTP bridge.

Point it at a directory: ``.tmpl`` files become pages, known asset types are
served from memory, and ``.git`` directories become clonable repositories.
Edits on disk are picked up and swapped in without a restart.

Quick start::

    import tabby

    tabby.serve("my-site/")

Two entry points::

    tabby.serve("my-site/")       # Live server with hot reload
    tabby.routes("my-site/")      # Build once and print the route table

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0.dev0"
__all__ = [
    "SiteServer",
    "TabbyConfig",
    "__version__",
    "routes",
    "serve",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import tabby`` fast; Kida and watchfiles load on first use.
    """
    if name == "TabbyConfig":
        from tabby.config import TabbyConfig

        return TabbyConfig

    if name == "SiteServer":
        from tabby.server.site import SiteServer

        return SiteServer

    if name == "serve":
        from tabby.app import serve

        return serve

    if name == "routes":
        from tabby.app import routes

        return routes

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
