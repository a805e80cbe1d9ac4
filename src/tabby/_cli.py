"""Tabby CLI — tabby serve / tabby routes.

Entry point for the ``tabby`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the tabby CLI."""
    parser = argparse.ArgumentParser(
        prog="tabby",
        description="Self-updating static content host with a Git Smart HTTP bridge.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # tabby serve
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve a content tree with hot reload",
    )
    serve_parser.add_argument("root", nargs="?", default=".", help="Content root directory")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument("--workers", type=int, default=None, help="Worker count (0=auto)")
    serve_parser.add_argument(
        "--lenient-routes",
        action="store_true",
        help="Let later files win route conflicts instead of failing the build",
    )

    # tabby routes
    routes_parser = subparsers.add_parser(
        "routes",
        help="Build once and print the route table",
    )
    routes_parser.add_argument("root", nargs="?", default=".", help="Content root directory")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from tabby import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from tabby._errors import TabbyError
    from tabby.app import routes, serve

    try:
        if args.command == "serve":
            serve(
                root=args.root,
                host=args.host,
                port=args.port,
                workers=args.workers,
                strict_routes=False if args.lenient_routes else None,
            )
        elif args.command == "routes":
            routes(root=args.root)
    except TabbyError as exc:
        print(f"tabby: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
