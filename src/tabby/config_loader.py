"""Load TabbyConfig from tabby.yaml / tabby.toml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from dataclasses import fields
from pathlib import Path

import yaml

from tabby._errors import ConfigError
from tabby.config import DEFAULT_TEMPLATE_EXT, TabbyConfig, default_asset_types

CONFIG_FILENAMES = ("tabby.yaml", "tabby.yml", "tabby.toml")

_KNOWN_KEYS = frozenset(f.name for f in fields(TabbyConfig)) - {"root"}


def load_config(root: Path, **overrides: object) -> TabbyConfig:
    """Load TabbyConfig from root, optionally merging tabby.yaml.

    Looks for tabby.yaml, tabby.yml, or tabby.toml in root. If found, loads
    and merges with overrides. Overrides take precedence.

    Raises:
        ConfigError: If the config file is malformed or has unknown keys.

    """
    file_config = _read_tabby_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    if "asset_types" in file_config and "asset_types" not in overrides:
        template_ext = str(merged.get("template_ext", DEFAULT_TEMPLATE_EXT))
        merged["asset_types"] = {**default_asset_types(template_ext), **file_config["asset_types"]}  # type: ignore[dict-item]
    if "passthrough_dirs" in merged:
        value = merged["passthrough_dirs"]
        merged["passthrough_dirs"] = (value,) if isinstance(value, str) else tuple(value)  # type: ignore[arg-type]
    return TabbyConfig(root=root, **merged)  # type: ignore[arg-type]


def config_file(root: Path) -> Path | None:
    """Return the config file tabby would read from root, if any."""
    for name in CONFIG_FILENAMES:
        path = root / name
        if path.is_file():
            return path
    return None


def _read_tabby_config(root: Path) -> dict[str, object]:
    """Read tabby config from yaml/toml if present. Returns empty dict otherwise."""
    path = config_file(root)
    if path is None:
        return {}
    if path.suffix == ".toml":
        return _parse_toml(path)
    return _parse_yaml(path)


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Failed to read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_tabby_section(path, data)


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Failed to read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_tabby_section(path, data)


def _flatten_tabby_section(path: Path, data: object) -> dict[str, object]:
    """Extract tabby.* keys into top-level config."""
    if not isinstance(data, dict):
        msg = f"{path}: expected a mapping at top level"
        raise ConfigError(msg)

    result: dict[str, object] = {}
    for k, v in data.items():
        if k == "tabby":
            continue
        result[k] = v
    section = data.get("tabby")
    if isinstance(section, dict):
        result.update(section)
    elif section is not None:
        msg = f"{path}: 'tabby' section must be a mapping"
        raise ConfigError(msg)

    unknown = sorted(set(result) - _KNOWN_KEYS)
    if unknown:
        msg = f"{path}: unknown config keys {', '.join(unknown)}"
        raise ConfigError(msg)
    if "asset_types" in result and not isinstance(result["asset_types"], dict):
        msg = f"{path}: asset_types must map extensions to MIME types"
        raise ConfigError(msg)
    return result
