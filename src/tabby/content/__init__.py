"""Content layer — classify, index, build and watch the content tree."""

from tabby.content.builder import (
    BridgeToGit,
    ExecuteTemplate,
    Route,
    ServeAsset,
    SiteSnapshot,
    build_site,
    route_for_template,
)
from tabby.content.classifier import ClassifiedPath, classify
from tabby.content.indexer import TreeIndex, index_tree, walk_tree
from tabby.content.watcher import ChangeEvent, ChangeWatcher

__all__ = [
    "BridgeToGit",
    "ChangeEvent",
    "ChangeWatcher",
    "ClassifiedPath",
    "ExecuteTemplate",
    "Route",
    "ServeAsset",
    "SiteSnapshot",
    "TreeIndex",
    "build_site",
    "classify",
    "index_tree",
    "route_for_template",
    "walk_tree",
]
