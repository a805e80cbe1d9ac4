"""Tests for tabby.app — the routes and serve entry points."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from tabby._errors import RouteConflictError, TemplateCompileError
from tabby.app import print_route_table, routes, serve


class TestRoutes:
    """routes() — one-shot build and route table."""

    def test_prints_table(self, tmp_site: Path, capsys: pytest.CaptureFixture[str]) -> None:
        snapshot = routes(tmp_site)
        out = capsys.readouterr().out
        assert "/blog/post" in out
        assert "template blog/post" in out
        assert "asset text/css" in out
        assert snapshot.summary()["templates"] == 4

    def test_config_overrides(self, tmp_site: Path) -> None:
        (tmp_site / "a.tmpl").write_text("file")
        (tmp_site / "a").mkdir()
        (tmp_site / "a" / "#.tmpl").write_text("dir")
        with pytest.raises(RouteConflictError):
            routes(tmp_site)
        snapshot = routes(tmp_site, strict_routes=False)
        assert "/a" in snapshot.routes

    def test_table_sorted(self, tmp_site: Path, capsys: pytest.CaptureFixture[str]) -> None:
        snapshot = routes(tmp_site)
        capsys.readouterr()
        print_route_table(snapshot)
        lines = [line.split()[0] for line in capsys.readouterr().out.splitlines()]
        assert lines == sorted(lines)

    def test_git_route_described(self, tmp_site: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (tmp_site / "project" / ".git").mkdir(parents=True)
        routes(tmp_site)
        out = capsys.readouterr().out
        assert "/project/.git/" in out
        assert f"git {tmp_site / 'project' / '.git'}" in out


class TestServe:
    """serve() with Pounce patched out."""

    def test_runs_pounce_and_stops_server(self, tmp_site: Path) -> None:
        with patch("pounce.server.Server") as server_cls:
            serve(tmp_site, port=4321)

        server_config = server_cls.call_args.args[0]
        app = server_cls.call_args.args[1]
        assert server_config.port == 4321
        assert server_config.host == "127.0.0.1"
        assert "lifecycle_collector" in server_cls.call_args.kwargs
        server_cls.return_value.run.assert_called_once()
        assert app.server.state == "stopped"
        assert not app.server.is_watching

    def test_initial_build_failure_raises(self, tmp_site: Path) -> None:
        (tmp_site / "broken.tmpl").write_text("{% if %}")
        with patch("pounce.server.Server") as server_cls, pytest.raises(TemplateCompileError):
            serve(tmp_site)
        server_cls.assert_not_called()
