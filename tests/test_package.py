"""Tests for tabby package exports and metadata."""

import tomllib
from pathlib import Path

import tabby


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(tabby.__version__, str)
        assert "0.1.0" in tabby.__version__

    def test_version_matches_pyproject(self) -> None:
        pyproject = Path(__file__).parents[1] / "pyproject.toml"
        with pyproject.open("rb") as f:
            assert tabby.__version__ == tomllib.load(f)["project"]["version"]

    def test_free_threading_declaration(self) -> None:
        assert tabby._Py_mod_gil == 0

    def test_all_exports_resolvable(self) -> None:
        for name in tabby.__all__:
            getattr(tabby, name)

    def test_invalid_attribute_raises(self) -> None:
        import pytest

        with pytest.raises(AttributeError, match="no attribute"):
            tabby.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
