"""Rebuild a nested forest from a flat, path-sorted result list.

Sorting by path puts every parent before its children (a parent's path is
a strict prefix of theirs), so the forest can be assembled in one linear
pass: each record is appended under the most recently appended node one
level up, found by walking the chain of last-appended children.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pathtree.core.database.hierarchy.path import DEFAULT_SEPARATOR, depth, is_descendant_path

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass
class TreeNode:
    """A record wrapped with its direct children.

    Used for non-lean tree results, where records are model instances
    that should not be mutated.
    """

    record: Any
    children: list[TreeNode] | None = field(default_factory=list)

    @property
    def path(self) -> str | None:
        return getattr(self.record, "path", None)


def _dict_path(node: dict[str, Any]) -> str | None:
    return node.get("path")


def _dict_children(node: dict[str, Any]) -> list[Any] | None:
    return node.get("children")


def _dict_attach(node: dict[str, Any], children: list[Any]) -> None:
    node["children"] = children


def build_forest(
    records: Iterable[Any],
    *,
    separator: str = DEFAULT_SEPARATOR,
    min_level: int = 1,
    root_path: str | None = None,
    allow_empty_children: bool = True,
    get_path: Callable[[Any], str | None] = _dict_path,
    get_children: Callable[[Any], list[Any] | None] = _dict_children,
    attach: Callable[[Any, list[Any]], None] = _dict_attach,
) -> list[Any]:
    """Assemble path-sorted records into a forest.

    Args:
        records: Records sorted ascending by path
        separator: Path separator
        min_level: Level of the top-level entries (default 1)
        root_path: Path of the node the tree is scoped to; raises
            min_level to at least the root's level + 1
        allow_empty_children: Give every placed node an empty children
            list up front; when False, a children list only appears once
            a child is attached
        get_path: Reads a record's path
        get_children: Reads a placed record's children list (None if absent)
        attach: Sets a placed record's children list

    Returns:
        List of top-level records, each carrying its children

    Note:
        A record whose parent slot is missing (the parent was filtered out
        of the result set) is dropped, and so are descendants that would
        have hung below it. This is not an error.
    """
    if root_path:
        min_level = max(min_level, depth(root_path, separator) + 1)

    forest: list[Any] = []
    for record in records:
        path = get_path(record)
        level = depth(path, separator)
        if level < min_level:
            logger.debug("Tree record above min_level skipped: %s", path)
            continue

        siblings: list[Any] | None = forest
        for _ in range(level - min_level):
            if not siblings or not is_descendant_path(path, get_path(siblings[-1]), separator):
                siblings = None
                break
            last = siblings[-1]
            children = get_children(last)
            if children is None:
                children = []
                attach(last, children)
            siblings = children

        if siblings is None:
            logger.debug("Tree record filtered out (missing parent): %s", path)
            continue

        if allow_empty_children:
            attach(record, [])
        siblings.append(record)

    return forest


def build_node_forest(
    records: Iterable[Any],
    *,
    separator: str = DEFAULT_SEPARATOR,
    min_level: int = 1,
    root_path: str | None = None,
    allow_empty_children: bool = True,
) -> list[TreeNode]:
    """Like build_forest, but wraps each record in a TreeNode."""

    def attach(node: TreeNode, children: list[Any]) -> None:
        node.children = children

    return build_forest(
        (TreeNode(record, None) for record in records),
        separator=separator,
        min_level=min_level,
        root_path=root_path,
        allow_empty_children=allow_empty_children,
        get_path=lambda node: node.path,
        get_children=lambda node: node.children,
        attach=attach,
    )


__all__ = [
    "TreeNode",
    "build_forest",
    "build_node_forest",
]
