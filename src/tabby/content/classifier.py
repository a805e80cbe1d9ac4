"""Path classifier — maps a path in the content tree to a semantic bucket.

Every file under the content root is one of:

- ``template``: has the template extension; compiled into the site.
- ``asset``: has a recognized asset extension; served verbatim.
- ``passthrough``: lives under a passthrough directory (a Git repository);
  served by the Git bridge, never indexed.
- ``ignored``: anything else, including every dotfile.

Visibility is ``hidden`` when any directory between the root and the file
starts with ``.``.  Hidden templates are compiled but never routed.

Classification is a pure function of path strings and the caller's
extension/name sets.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from pathlib import Path, PurePath

from tabby._types import Bucket, Visibility


@dataclass(frozen=True, slots=True)
class ClassifiedPath:
    """A path in the content tree and what it means to the site.

    Attributes:
        path: Absolute path.
        relative: Path relative to the content root.
        extension: File extension including the leading dot ("" if none).
        bucket: Semantic bucket.
        visibility: ``hidden`` if under a dot-directory.
        passthrough_root: The passthrough directory containing the path
            (only set for the ``passthrough`` bucket).

    """

    path: Path
    relative: PurePath
    extension: str
    bucket: Bucket
    visibility: Visibility
    passthrough_root: Path | None = None

    @property
    def is_hidden(self) -> bool:
        return self.visibility == "hidden"


def matches_passthrough(name: str, passthrough_names: Collection[str]) -> bool:
    """Return True if a directory name equals or ends with a passthrough name."""
    return any(name == p or name.endswith(p) for p in passthrough_names)


def passthrough_index(
    relative: PurePath, passthrough_names: Collection[str], *, is_dir: bool = False,
) -> int | None:
    """Index of the first passthrough segment in ``relative``, or None.

    For files only ancestor directories are considered; a directory may be
    a passthrough root itself.
    """
    parts = relative.parts if is_dir else relative.parts[:-1]
    for i, part in enumerate(parts):
        if matches_passthrough(part, passthrough_names):
            return i
    return None


def is_hidden(relative: PurePath) -> bool:
    """True if any directory segment of ``relative`` starts with a dot."""
    return any(part.startswith(".") for part in relative.parts[:-1])


def classify(
    path: Path,
    root: Path,
    *,
    template_ext: str,
    asset_exts: Collection[str],
    passthrough_names: Collection[str] = (),
    is_dir: bool = False,
) -> ClassifiedPath:
    """Classify ``path`` (absolute, under ``root``).

    Passthrough wins over every other bucket.  Dotfiles are always ignored.
    Directories are ignored unless they are passthrough roots.

    Raises:
        ValueError: If ``path`` is not under ``root``.

    """
    relative = PurePath(path.relative_to(root))
    extension = "" if is_dir else PurePath(relative.name).suffix
    visibility: Visibility = "hidden" if is_hidden(relative) else "public"

    index = passthrough_index(relative, passthrough_names, is_dir=is_dir)
    if index is not None:
        return ClassifiedPath(
            path=path,
            relative=relative,
            extension=extension,
            bucket="passthrough",
            visibility=visibility,
            passthrough_root=root.joinpath(*relative.parts[: index + 1]),
        )

    bucket: Bucket
    if is_dir or relative.name.startswith("."):
        bucket = "ignored"
    elif extension == template_ext:
        bucket = "template"
    elif extension in asset_exts:
        bucket = "asset"
    else:
        bucket = "ignored"

    return ClassifiedPath(
        path=path,
        relative=relative,
        extension=extension,
        bucket=bucket,
        visibility=visibility,
    )
