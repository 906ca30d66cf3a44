"""Core database package: declarative base, errors and the tree engine.

Base Classes and Mixins:
    - Base: Declarative base with naming convention and auto table naming
    - IntegerPKMixin: Database-assigned integer primary key
    - MaterializedPathMixin: ``parent``/``path`` columns for tree models

Tree:
    - MaterializedPathTree: save/delete/query nodes of one tree model
    - TreeOptions: options for MaterializedPathTree.get_children_tree
    - DeletePolicy: what happens to descendants when a node is deleted

Exceptions:
    - TreeError, TreeReferenceError, NodeNotFoundError, StoreError,
      ConfigurationError
"""

from pathtree.core.database.base import NAMING_CONVENTION, Base, IntegerPKMixin
from pathtree.core.database.enums import DeletePolicy
from pathtree.core.database.exceptions import (
    ConfigurationError,
    NodeNotFoundError,
    StoreError,
    TreeError,
    TreeReferenceError,
)
from pathtree.core.database.hierarchy import (
    MaterializedPath,
    MaterializedPathMixin,
    MaterializedPathTree,
    TreeNode,
    TreeOptions,
)

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "ConfigurationError",
    "DeletePolicy",
    "IntegerPKMixin",
    "MaterializedPath",
    "MaterializedPathMixin",
    "MaterializedPathTree",
    "NodeNotFoundError",
    "StoreError",
    "TreeError",
    "TreeNode",
    "TreeOptions",
    "TreeReferenceError",
]
