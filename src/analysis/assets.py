"""Asset selector: pick the files a package contributes to a target framework."""
from __future__ import annotations

import ntpath
from dataclasses import dataclass
from typing import Sequence, Tuple

from registry.base import FrameworkSpecificGroup, PackageContents
from versioning.frameworks import TargetFramework, get_nearest

BINARY_EXTENSIONS = (".dll",)


@dataclass(frozen=True)
class AssetSelection:
    """Library file names and framework assembly names selected for a target."""
    library_items: Tuple[str, ...] = ()
    framework_items: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.library_items and not self.framework_items


def select_group_items(groups: Sequence[FrameworkSpecificGroup], framework: TargetFramework) -> Tuple[str, ...]:
    """Items of the group nearest to ``framework``; empty when none is compatible."""
    nearest = get_nearest(framework, (g.framework for g in groups))
    if nearest is None:
        return ()
    items = []
    for group in groups:
        if group.framework == nearest:
            items.extend(group.items)
    return tuple(items)


def is_binary(path: str) -> bool:
    return path.lower().endswith(BINARY_EXTENSIONS)


def select_assets(contents: PackageContents, framework: TargetFramework) -> AssetSelection:
    """Select library and framework items for ``framework``.

    Library items are reduced to binary file names, which also drops the
    ``_._`` placeholder entries.
    """
    library = []
    for path in select_group_items(contents.library_items, framework):
        if not is_binary(path):
            continue
        name = ntpath.basename(path)
        if name not in library:
            library.append(name)
    framework_items = []
    for name in select_group_items(contents.framework_items, framework):
        if name not in framework_items:
            framework_items.append(name)
    return AssetSelection(tuple(library), tuple(framework_items))
