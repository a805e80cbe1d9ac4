"""Tests for tabby._cli — argument parsing and command dispatch."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from tabby._cli import _build_parser, main


class TestBuildParser:
    """_build_parser — CLI argument parsing."""

    def test_serve_default_args(self) -> None:
        args = _build_parser().parse_args(["serve"])
        assert args.command == "serve"
        assert args.root == "."
        assert args.host is None
        assert args.port is None
        assert args.workers is None
        assert args.lenient_routes is False

    def test_serve_all_flags(self) -> None:
        args = _build_parser().parse_args([
            "serve", "my-site/",
            "--host", "0.0.0.0",
            "--port", "8080",
            "--workers", "4",
            "--lenient-routes",
        ])
        assert args.root == "my-site/"
        assert args.host == "0.0.0.0"
        assert args.port == 8080
        assert args.workers == 4
        assert args.lenient_routes is True

    def test_routes_args(self) -> None:
        args = _build_parser().parse_args(["routes", "my-site/"])
        assert args.command == "routes"
        assert args.root == "my-site/"

    def test_no_command_returns_none(self) -> None:
        args = _build_parser().parse_args([])
        assert args.command is None

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as info:
            _build_parser().parse_args(["--version"])
        assert info.value.code == 0
        assert "tabby" in capsys.readouterr().out


class TestMain:
    """main() — dispatch to tabby.app."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as info:
            main([])
        assert info.value.code == 0
        assert "usage" in capsys.readouterr().out

    def test_serve_dispatch(self) -> None:
        with patch("tabby.app.serve") as serve:
            main(["serve", "site/", "--port", "9000"])
        serve.assert_called_once_with(
            root="site/", host=None, port=9000, workers=None, strict_routes=None,
        )

    def test_serve_lenient(self) -> None:
        with patch("tabby.app.serve") as serve:
            main(["serve", "--lenient-routes"])
        assert serve.call_args.kwargs["strict_routes"] is False

    def test_routes_dispatch(self) -> None:
        with patch("tabby.app.routes") as routes:
            main(["routes", "site/"])
        routes.assert_called_once_with(root="site/")

    def test_tabby_error_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as info:
            main(["routes", str(tmp_path / "missing")])
        assert info.value.code == 1
        assert "tabby:" in capsys.readouterr().err
