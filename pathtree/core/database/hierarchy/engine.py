"""Path maintenance and subtree removal engines.

These functions keep ``path`` consistent across a flat table when a node is
created, moved or deleted. The tree never exists in memory: every cascade
is a prefix scan through the store, piped through the bounded stream
worker, emitting one field update per affected row.

None of the functions persist the node being saved or deleted; that is
left to MaterializedPathTree.save/delete, which run them as pre-save and
pre-delete steps.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pathtree.core.database.enums import DeletePolicy
from pathtree.core.database.exceptions import TreeReferenceError
from pathtree.core.database.hierarchy.path import (
    DEFAULT_SEPARATOR,
    compose,
    descendant_prefix,
    rebase,
)
from pathtree.core.database.hierarchy.worker import DEFAULT_CONCURRENCY, stream_worker
from pathtree.infra.logging import get_lazy_logger, log_context

if TYPE_CHECKING:
    from pathtree.core.database.hierarchy.store import TreeStore

logger = logging.getLogger(__name__)
_lazy = get_lazy_logger(__name__)


def normalize_parent(value: Any) -> Any:
    """Reduce a parent reference to a bare id.

    Model instances (anything exposing ``id``) are replaced by their id;
    plain ids and None pass through.

    Raises:
        TreeReferenceError: If an instance is given whose id has not been
            assigned yet (e.g. a parent that was never flushed)
    """
    if value is None or isinstance(value, (str, int, bytes)):
        return value
    if not hasattr(value, "id"):
        return value
    if value.id is None:
        raise TreeReferenceError(type(value).__name__, {"parent": None})
    return value.id


async def assign_path(store: TreeStore, node: Any, *, separator: str = DEFAULT_SEPARATOR) -> str | None:
    """Compute ``node.path`` from its parent and return the previous path.

    Args:
        store: Tree store used to look up the parent
        node: Node being created or moved (must already have an id)
        separator: Path separator

    Returns:
        The path the node had before, or None for a new node

    Raises:
        TreeReferenceError: If node.parent does not resolve to a row
    """
    node.parent = normalize_parent(node.parent)
    previous_path = node.path

    if node.parent is None:
        node.path = str(node.id)
        return previous_path

    parent = await store.find_by_id(node.parent)
    if parent is None:
        raise TreeReferenceError(store.model_name, {"parent": node.parent})

    node.path = compose(parent.path, node.id, separator)
    return previous_path


async def rewrite_descendant_paths(
    store: TreeStore,
    previous_path: str | None,
    new_path: str,
    *,
    separator: str = DEFAULT_SEPARATOR,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> int:
    """Move every strict descendant of ``previous_path`` under ``new_path``.

    Each descendant keeps its relative sub-path: ``A#B#C`` moved from
    ``A#B`` to ``D#B`` becomes ``D#B#C``.

    Returns:
        Number of rows rewritten (0 when nothing moved)
    """
    if not previous_path or previous_path == new_path:
        return 0

    old_prefix = descendant_prefix(previous_path, separator)
    new_prefix = descendant_prefix(new_path, separator)

    async def rewrite(row: Any) -> None:
        await store.update_field(row.id, "path", rebase(row.path, old_prefix, new_prefix))

    with log_context(tree_operation="reparent"):
        try:
            count = await stream_worker(
                store.find(store.path_startswith(old_prefix)),
                rewrite,
                concurrency=concurrency,
            )
        except Exception:
            logger.warning(
                "Descendant path rewrite failed; subtree may be partially rewritten",
                extra={"model": store.model_name, "previous_path": previous_path, "new_path": new_path},
            )
            raise

        logger.info(
            "Descendant paths rewritten",
            extra={"model": store.model_name, "new_path": new_path, "rewritten": count},
        )
    return count


async def remove_subtree(store: TreeStore, path: str, *, separator: str = DEFAULT_SEPARATOR) -> int:
    """Delete every strict descendant of ``path`` in one bulk statement."""
    removed = await store.remove(store.path_startswith(descendant_prefix(path, separator)))
    logger.info(
        "Subtree removed",
        extra={"model": store.model_name, "path": path, "removed": removed},
    )
    return removed


async def promote_children(
    store: TreeStore,
    node: Any,
    *,
    separator: str = DEFAULT_SEPARATOR,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> tuple[int, int]:
    """Attach the children of ``node`` to its own parent.

    Runs two sequential streams. The first re-points ``parent`` on direct
    children; the second splices the removed node's segment out of every
    descendant path. The second stream starts only after the first one has
    fully drained, and is skipped if the first one fails.

    The splice only ever replaces the leading ``node.path + separator``
    prefix, so an id that happens to occur elsewhere inside a path (or
    that is a substring of another id) is never touched.

    Returns:
        Tuple of (children re-pointed, descendant paths rewritten)
    """
    new_parent = normalize_parent(node.parent)
    old_prefix = descendant_prefix(node.path, separator)
    parent_path = node.path[: -len(str(node.id))]

    async def repoint(row: Any) -> None:
        await store.update_field(row.id, "parent", new_parent)

    async def splice(row: Any) -> None:
        await store.update_field(row.id, "path", rebase(row.path, old_prefix, parent_path))

    with log_context(tree_operation="reparent_on_delete"):
        children = await stream_worker(
            store.find(store.parent_equals(node.id)),
            repoint,
            concurrency=concurrency,
        )
        _lazy.debug(lambda: f"tree.promote: {children} children of {node.id} re-pointed to {new_parent}")

        rewritten = await stream_worker(
            store.find(store.path_startswith(old_prefix)),
            splice,
            concurrency=concurrency,
        )
        logger.info(
            "Children promoted to grandparent",
            extra={
                "model": store.model_name,
                "node_id": str(node.id),
                "children": children,
                "rewritten": rewritten,
            },
        )
    return children, rewritten


async def prepare_removal(
    store: TreeStore,
    node: Any,
    *,
    policy: DeletePolicy = DeletePolicy.DELETE,
    separator: str = DEFAULT_SEPARATOR,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> None:
    """Handle the dependents of ``node`` before it is deleted.

    Nodes without a path were never placed in the tree and have no
    dependents to handle.
    """
    if not node.path:
        return

    with log_context(node_id=str(node.id)):
        if policy == DeletePolicy.DELETE:
            await remove_subtree(store, node.path, separator=separator)
        else:
            await promote_children(store, node, separator=separator, concurrency=concurrency)


__all__ = [
    "DeletePolicy",
    "assign_path",
    "normalize_parent",
    "prepare_removal",
    "promote_children",
    "remove_subtree",
    "rewrite_descendant_paths",
]
