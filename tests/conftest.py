"""Shared test fixtures for tabby."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from tabby.config import TabbyConfig


@pytest.fixture
def tmp_site(tmp_path: Path) -> Path:
    """Create a small content tree.

    Layout::

        #.tmpl                  -> /
        about.tmpl              -> /about
        blog/#.tmpl             -> /blog
        blog/post.tmpl          -> /blog/post
        .partials/header.tmpl   (hidden, include-only)
        style.css               -> /style.css
        img/logo.png            -> /img/logo.png
        notes.md                (ignored: unknown extension)
        .env                    (ignored: dotfile)

    """
    site = tmp_path / "site"
    site.mkdir()

    partials = site / ".partials"
    partials.mkdir()
    (partials / "header.tmpl").write_text("<header>Tabby</header>")

    (site / "#.tmpl").write_text('{% include ".partials/header" %}<h1>Home</h1>')
    (site / "about.tmpl").write_text("<h1>About</h1><p>{{ path }}</p>")

    blog = site / "blog"
    blog.mkdir()
    (blog / "#.tmpl").write_text("<h1>Blog</h1>")
    (blog / "post.tmpl").write_text("<h1>Post</h1>")

    (site / "style.css").write_text("body { margin: 0; }\n")
    img = site / "img"
    img.mkdir()
    (img / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")

    (site / "notes.md").write_text("# not served\n")
    (site / ".env").write_text("SECRET=1\n")
    return site


@pytest.fixture
def config(tmp_site: Path) -> TabbyConfig:
    """A TabbyConfig rooted at tmp_site."""
    return TabbyConfig(root=tmp_site)


def _git(*args: str, cwd: Path) -> None:
    subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        env={
            "GIT_AUTHOR_NAME": "Tabby",
            "GIT_AUTHOR_EMAIL": "tabby@example.com",
            "GIT_COMMITTER_NAME": "Tabby",
            "GIT_COMMITTER_EMAIL": "tabby@example.com",
            "GIT_CONFIG_NOSYSTEM": "1",
            "HOME": str(cwd),
            "PATH": os.environ.get("PATH", ""),
        },
    )


@pytest.fixture
def site_with_repo(tmp_site: Path) -> Path:
    """tmp_site plus ``project/.git``, a repository with one commit on main."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    project = tmp_site / "project"
    project.mkdir()
    _git("init", "--quiet", "--initial-branch=main", ".", cwd=project)
    (project / "README.txt").write_text("hello\n")
    _git("add", "README.txt", cwd=project)
    _git("commit", "--quiet", "-m", "initial", cwd=project)
    return tmp_site
