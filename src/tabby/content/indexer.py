"""Tree indexer — one full walk of the content root.

``walk_tree`` lazily yields a ClassifiedPath for every file (and every
passthrough directory) in lexical directory-walk order.  ``index_tree``
folds that sequence into an immutable TreeIndex, reading asset bytes into
memory on the way.
"""

from __future__ import annotations

import os
from collections.abc import Collection, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from tabby._errors import IndexingError
from tabby._types import AssetPath
from tabby.content.classifier import ClassifiedPath, classify, matches_passthrough


@dataclass(frozen=True, slots=True)
class TreeIndex:
    """Result of one indexing pass.

    Attributes:
        root: The content root that was walked.
        templates: Public template files, in walk order.
        hidden_templates: Templates under dot-directories, in walk order.
        assets: Relative POSIX path to file contents.
        passthrough_roots: Passthrough directories, each recorded once.

    """

    root: Path
    templates: tuple[Path, ...] = ()
    hidden_templates: tuple[Path, ...] = ()
    assets: Mapping[AssetPath, bytes] = field(default_factory=lambda: MappingProxyType({}))
    passthrough_roots: tuple[Path, ...] = ()


def _raise_indexing_error(exc: OSError) -> None:
    msg = f"Cannot traverse {exc.filename}: {exc.strerror or exc}"
    raise IndexingError(msg) from exc


def walk_tree(
    root: Path,
    *,
    template_ext: str,
    asset_exts: Collection[str],
    passthrough_names: Collection[str] = (),
) -> Iterator[ClassifiedPath]:
    """Yield a ClassifiedPath for every entry of interest under ``root``.

    Passthrough directories are yielded once and not descended into.

    Raises:
        IndexingError: If ``root`` is missing or any directory cannot be read.

    """
    if not root.is_dir():
        msg = f"Content root is not a directory: {root}"
        raise IndexingError(msg)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_indexing_error):
        current = Path(dirpath)
        dirnames.sort()
        kept: list[str] = []
        for name in dirnames:
            if matches_passthrough(name, passthrough_names):
                yield classify(
                    current / name, root,
                    template_ext=template_ext,
                    asset_exts=asset_exts,
                    passthrough_names=passthrough_names,
                    is_dir=True,
                )
            else:
                kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            yield classify(
                current / name, root,
                template_ext=template_ext,
                asset_exts=asset_exts,
                passthrough_names=passthrough_names,
            )


def index_tree(
    root: Path,
    *,
    template_ext: str,
    asset_exts: Collection[str],
    passthrough_names: Collection[str] = (),
) -> TreeIndex:
    """Walk ``root`` once and collect templates, assets and passthrough roots.

    Raises:
        IndexingError: If the tree cannot be traversed or an asset cannot be read.

    """
    templates: list[Path] = []
    hidden_templates: list[Path] = []
    assets: dict[AssetPath, bytes] = {}
    passthrough_roots: dict[Path, None] = {}

    for entry in walk_tree(
        root,
        template_ext=template_ext,
        asset_exts=asset_exts,
        passthrough_names=passthrough_names,
    ):
        match entry.bucket:
            case "template":
                (hidden_templates if entry.is_hidden else templates).append(entry.path)
            case "asset":
                if entry.is_hidden:
                    continue
                assets[entry.relative.as_posix()] = _read_asset(entry.path)
            case "passthrough":
                assert entry.passthrough_root is not None
                passthrough_roots.setdefault(entry.passthrough_root)

    return TreeIndex(
        root=root,
        templates=tuple(templates),
        hidden_templates=tuple(hidden_templates),
        assets=MappingProxyType(assets),
        passthrough_roots=tuple(passthrough_roots),
    )


def _read_asset(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        msg = f"Cannot read asset {path}: {exc.strerror or exc}"
        raise IndexingError(msg) from exc
