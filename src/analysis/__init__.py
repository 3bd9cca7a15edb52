"""Resolution, pruning, asset selection and graph assembly."""

from .assets import AssetSelection, select_assets  # noqa: F401
from .pruner import find_removable, prune  # noqa: F401
from .resolver import resolve  # noqa: F401
from .analyzer import DependencyAnalyzer  # noqa: F401

__all__ = [
    "AssetSelection",
    "DependencyAnalyzer",
    "find_removable",
    "prune",
    "resolve",
    "select_assets",
]
