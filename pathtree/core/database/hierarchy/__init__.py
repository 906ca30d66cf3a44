"""Materialized-path tree support.

Provides:
- path: pure path codec and the MaterializedPath value class
- worker: bounded-concurrency stream worker for cascading rewrites
- engine: path maintenance and subtree removal
- reconstruct: flat path-sorted rows to nested forest
- store: TreeStore protocol and its SQLAlchemy implementation
- mixins: MaterializedPathMixin for models
- service: MaterializedPathTree, the caller-facing API

Example:
    from pathtree.core.database.hierarchy import MaterializedPathTree, TreeOptions

    tree = MaterializedPathTree(session, Category)
    await tree.save(Category(id="laptops", name="Laptops", parent="computers"))
    forest = await tree.get_children_tree(options=TreeOptions(min_level=1))
"""

from pathtree.core.database.hierarchy.engine import (
    assign_path,
    normalize_parent,
    prepare_removal,
    promote_children,
    remove_subtree,
    rewrite_descendant_paths,
)
from pathtree.core.database.hierarchy.mixins import MaterializedPathMixin
from pathtree.core.database.hierarchy.path import (
    DEFAULT_SEPARATOR,
    MaterializedPath,
    ancestor_ids,
    compose,
    depth,
    descendant_prefix,
    is_descendant_path,
    rebase,
)
from pathtree.core.database.hierarchy.reconstruct import TreeNode, build_forest, build_node_forest
from pathtree.core.database.hierarchy.service import MaterializedPathTree, TreeOptions
from pathtree.core.database.hierarchy.store import SQLAlchemyTreeStore, TreeStore
from pathtree.core.database.hierarchy.worker import StreamStats, stream_worker

__all__ = [
    "DEFAULT_SEPARATOR",
    "MaterializedPath",
    "MaterializedPathMixin",
    "MaterializedPathTree",
    "SQLAlchemyTreeStore",
    "StreamStats",
    "TreeNode",
    "TreeOptions",
    "TreeStore",
    "ancestor_ids",
    "assign_path",
    "build_forest",
    "build_node_forest",
    "compose",
    "depth",
    "descendant_prefix",
    "is_descendant_path",
    "normalize_parent",
    "prepare_removal",
    "promote_children",
    "rebase",
    "remove_subtree",
    "rewrite_descendant_paths",
    "stream_worker",
]
