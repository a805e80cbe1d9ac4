"""Tests for tabby.config and tabby.config_loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from tabby._errors import ConfigError
from tabby.config import DEFAULT_ASSET_TYPES, TabbyConfig
from tabby.config_loader import config_file, load_config


class TestTabbyConfig:
    """TabbyConfig — defaults, validation, immutability."""

    def test_defaults(self, tmp_path: Path) -> None:
        config = TabbyConfig(root=tmp_path)
        assert config.host == "127.0.0.1"
        assert config.port == 3000
        assert config.workers == 0
        assert config.template_ext == ".tmpl"
        assert config.passthrough_dirs == (".git",)
        assert config.git_command == "git"
        assert config.strict_routes is True
        assert config.debounce_ms == 0
        assert config.asset_types[".css"] == "text/css"

    def test_root_resolved(self) -> None:
        assert TabbyConfig(root=Path("some/where")).root.is_absolute()

    def test_frozen(self, tmp_path: Path) -> None:
        config = TabbyConfig(root=tmp_path)
        with pytest.raises(AttributeError):
            config.port = 1  # type: ignore[misc]

    def test_asset_types_read_only(self, tmp_path: Path) -> None:
        config = TabbyConfig(root=tmp_path, asset_types={".css": "text/css"})
        with pytest.raises(TypeError):
            config.asset_types[".js"] = "text/javascript"  # type: ignore[index]

    def test_asset_extensions(self, tmp_path: Path) -> None:
        config = TabbyConfig(root=tmp_path, asset_types={".css": "text/css", ".png": "image/png"})
        assert config.asset_extensions == frozenset({".css", ".png"})

    def test_passthrough_list_becomes_tuple(self, tmp_path: Path) -> None:
        config = TabbyConfig(root=tmp_path, passthrough_dirs=[".git", ".hg"])  # type: ignore[arg-type]
        assert config.passthrough_dirs == (".git", ".hg")

    def test_template_ext_dropped_from_default_assets(self, tmp_path: Path) -> None:
        config = TabbyConfig(root=tmp_path, template_ext=".html")
        assert ".html" not in config.asset_types
        assert config.asset_types[".css"] == "text/css"

    def test_default_assets_keep_html_for_tmpl(self, tmp_path: Path) -> None:
        assert ".html" in TabbyConfig(root=tmp_path).asset_types

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"template_ext": "tmpl"}, "template_ext"),
            ({"asset_types": {"css": "text/css"}}, "asset extensions"),
            ({"template_ext": ".css", "asset_types": {".css": "text/css"}}, "both"),
            ({"passthrough_dirs": ("",)}, "passthrough_dirs"),
            ({"passthrough_dirs": (".git", "")}, "non-empty"),
            ({"port": 70000}, "port"),
            ({"debounce_ms": -1}, "debounce_ms"),
        ],
    )
    def test_invalid(self, tmp_path: Path, kwargs: dict[str, object], match: str) -> None:
        with pytest.raises(ConfigError, match=match):
            TabbyConfig(root=tmp_path, **kwargs)  # type: ignore[arg-type]


class TestLoadConfig:
    """load_config() — file discovery and override precedence."""

    def test_no_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)
        assert config.root == tmp_path
        assert config.port == 3000
        assert config_file(tmp_path) is None

    def test_yaml_top_level(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("port: 4000\nstrict_routes: false\n")
        config = load_config(tmp_path)
        assert config.port == 4000
        assert config.strict_routes is False

    def test_yaml_section(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yml").write_text("tabby:\n  host: 0.0.0.0\n  workers: 2\n")
        config = load_config(tmp_path)
        assert config.host == "0.0.0.0"
        assert config.workers == 2

    def test_toml(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.toml").write_text(
            '[tabby]\ntemplate_ext = ".html.tmpl"\npassthrough_dirs = [".git", ".hg"]\n'
        )
        config = load_config(tmp_path)
        assert config.template_ext == ".html.tmpl"
        assert config.passthrough_dirs == (".git", ".hg")

    def test_yaml_preferred_over_toml(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("port: 4001\n")
        (tmp_path / "tabby.toml").write_text("port = 4002\n")
        assert config_file(tmp_path) == tmp_path / "tabby.yaml"
        assert load_config(tmp_path).port == 4001

    def test_asset_types_merged_with_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("asset_types:\n  .wasm: application/wasm\n")
        config = load_config(tmp_path)
        assert config.asset_types[".wasm"] == "application/wasm"
        assert config.asset_types[".css"] == DEFAULT_ASSET_TYPES[".css"]

    def test_asset_types_merged_without_template_ext(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("template_ext: .html\nasset_types:\n  .wasm: application/wasm\n")
        config = load_config(tmp_path)
        assert config.template_ext == ".html"
        assert ".html" not in config.asset_types
        assert config.asset_types[".wasm"] == "application/wasm"

    def test_single_passthrough_string(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("passthrough_dirs: .git\n")
        assert load_config(tmp_path).passthrough_dirs == (".git",)

    def test_overrides_win(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("port: 4000\nhost: 0.0.0.0\n")
        config = load_config(tmp_path, port=5000, host=None)
        assert config.port == 5000
        assert config.host == "0.0.0.0"

    def test_empty_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("")
        assert load_config(tmp_path).port == 3000

    def test_unknown_key(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("prot: 4000\n")
        with pytest.raises(ConfigError, match="unknown config keys prot"):
            load_config(tmp_path)

    def test_root_key_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("root: /elsewhere\n")
        with pytest.raises(ConfigError, match="unknown"):
            load_config(tmp_path)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("port: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to read"):
            load_config(tmp_path)

    def test_malformed_toml(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.toml").write_text("port = \n")
        with pytest.raises(ConfigError, match="Failed to read"):
            load_config(tmp_path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path)

    def test_asset_types_must_be_mapping(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("asset_types: [.css]\n")
        with pytest.raises(ConfigError, match="asset_types"):
            load_config(tmp_path)

    def test_invalid_value_surfaces_as_config_error(self, tmp_path: Path) -> None:
        (tmp_path / "tabby.yaml").write_text("port: 99999\n")
        with pytest.raises(ConfigError, match="port"):
            load_config(tmp_path)
