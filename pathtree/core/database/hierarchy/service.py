"""Caller-facing API for one materialized-path tree.

MaterializedPathTree binds a session, a model using MaterializedPathMixin
and a TreeSettings value. Several trees with different settings can be used
side by side; nothing here reads process-wide state except the default
settings loader.

Example:
    tree = MaterializedPathTree(session, Category, TreeSettings(on_delete="REPARENT"))

    electronics = await tree.save(Category(id="electronics", name="Electronics"))
    laptops = await tree.save(Category(id="laptops", name="Laptops", parent=electronics))

    await tree.get_ancestors(laptops)       # [electronics]
    await tree.get_children_tree()          # [{"id": "electronics", ..., "children": [...]}]
    await tree.delete(electronics)          # laptops becomes a root
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pathtree.core.database.exceptions import ConfigurationError, StoreError, TreeReferenceError
from pathtree.core.database.hierarchy.engine import (
    assign_path,
    normalize_parent,
    prepare_removal,
    rewrite_descendant_paths,
)
from pathtree.core.database.hierarchy.path import (
    DEFAULT_SEPARATOR,
    ancestor_ids,
    depth,
    descendant_prefix,
)
from pathtree.core.database.hierarchy.reconstruct import build_forest, build_node_forest
from pathtree.core.database.hierarchy.store import SQLAlchemyTreeStore
from pathtree.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pathtree.core.settings import TreeSettings

logger = logging.getLogger(__name__)
_lazy = get_lazy_logger(__name__)

ModelT = TypeVar("ModelT")

_REQUIRED_FIELDS = ("id", "parent", "path")


@dataclass(frozen=True)
class TreeOptions:
    """Options for MaterializedPathTree.get_children_tree.

    Attributes:
        filters: Extra SQLAlchemy criteria ANDed into the query
        fields: Column names to load for lean results; id, parent and path
            are always added. None loads every column.
        min_level: Level of the top-level entries
        recursive: Load the whole subtree; False loads only direct children
            of the root (or the roots when no root is given)
        allow_empty_children: Give leaves an empty ``children`` list
        lean: Return plain dicts; False returns TreeNode wrappers around
            model instances
    """

    filters: Sequence[Any] = ()
    fields: Sequence[str] | None = None
    min_level: int = 1
    recursive: bool = True
    allow_empty_children: bool = True
    lean: bool = True


class MaterializedPathTree(Generic[ModelT]):
    """Tree operations for a model using MaterializedPathMixin.

    Mutations run the cascade first and then flush the node itself, all in
    the caller's transaction. Committing is left to the caller.
    """

    def __init__(
        self,
        session: AsyncSession,
        model: type[ModelT],
        settings: TreeSettings | None = None,
    ) -> None:
        """Initialize tree.

        Args:
            session: Async database session
            model: Model class using MaterializedPathMixin
            settings: Tree settings; defaults to get_tree_settings()

        Raises:
            ConfigurationError: If the settings separator differs from the
                model's __path_separator__
        """
        if settings is None:
            from pathtree.core.settings import get_tree_settings

            settings = get_tree_settings()

        model_separator = getattr(model, "__path_separator__", DEFAULT_SEPARATOR)
        if settings.path_separator != model_separator:
            raise ConfigurationError(
                f"{model.__name__} uses path separator {model_separator!r}, "
                f"settings use {settings.path_separator!r}",
                setting="path_separator",
            )

        self.session = session
        self.model = model
        self.settings = settings
        self.separator = settings.path_separator
        self.store = SQLAlchemyTreeStore(session, model, batch_size=settings.cursor_batch_size)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def save(self, node: ModelT) -> ModelT:
        """Create a node or move it under a new parent.

        The path is (re)computed when the node is new or its ``parent``
        changed; in the latter case every descendant path is rewritten
        before the node itself is flushed.

        Raises:
            TreeReferenceError: If ``parent`` does not resolve to a row; the
                node is not persisted
            StoreError: If a store operation fails (the cascade may be
                partially applied)
        """
        state = sa_inspect(node)
        try:
            node.parent = normalize_parent(node.parent)
            is_new = state.transient or state.pending or not node.path
            parent_changed = not is_new and state.attrs.parent.history.has_changes()

            if node.id is None:
                # The id is part of the path, so let the store assign it first
                if node.parent is not None and await self.store.find_by_id(node.parent) is None:
                    raise TreeReferenceError(self.store.model_name, {"parent": node.parent})
                self.session.add(node)
                await self._flush("save")

            previous_path = None
            if is_new or parent_changed:
                previous_path = await assign_path(self.store, node, separator=self.separator)
        except TreeReferenceError:
            self._discard_unresolved(node)
            raise

        if is_new or parent_changed:
            await rewrite_descendant_paths(
                self.store,
                previous_path,
                node.path,
                separator=self.separator,
                concurrency=self.settings.num_workers,
            )

        self.session.add(node)
        await self._flush("save")
        _lazy.debug(lambda: f"tree.save: {self.store.model_name}({node.id}) at {node.path}")
        return node

    async def delete(self, node: ModelT) -> None:
        """Delete a node, handling its descendants per ``on_delete``.

        DELETE removes the whole subtree; REPARENT attaches the node's
        children to its own parent and splices it out of their paths.
        """
        await prepare_removal(
            self.store,
            node,
            policy=self.settings.on_delete,
            separator=self.separator,
            concurrency=self.settings.num_workers,
        )
        await self.session.delete(node)
        await self._flush("delete")
        logger.info(
            "Tree node deleted",
            extra={"model": self.store.model_name, "node_id": str(node.id), "policy": str(self.settings.on_delete)},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_children(
        self,
        node: ModelT,
        *,
        filters: Sequence[Any] = (),
        recursive: bool = False,
        order_by: Any = None,
    ) -> list[ModelT]:
        """Get direct children, or every descendant when ``recursive``.

        Results are ordered by path unless ``order_by`` is given.
        """
        if recursive:
            criterion = self.store.path_startswith(descendant_prefix(node.path, self.separator))
        else:
            criterion = self.store.parent_equals(node.id)

        stmt = select(self.model).where(criterion, *filters)
        stmt = stmt.order_by(order_by if order_by is not None else self.model.path)
        return await self._scalars(stmt)

    async def get_parent(self, node: ModelT) -> ModelT | None:
        """Get the parent node (None for roots)."""
        parent_id = normalize_parent(node.parent)
        if parent_id is None:
            return None
        try:
            return await self.session.get(self.model, parent_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"{self.store.model_name} get_parent failed: {exc}", operation="get_parent") from exc

    async def get_ancestors(self, node: ModelT, *, filters: Sequence[Any] = ()) -> list[ModelT]:
        """Get ancestors root-most first, as listed in the node's path."""
        ids = [self._coerce_id(id_) for id_ in ancestor_ids(node.path, self.separator)]
        if not ids:
            return []
        stmt = (
            select(self.model)
            .where(self.model.id.in_(ids), *filters)
            .order_by(self.model.path)
        )
        return await self._scalars(stmt)

    async def get_children_tree(
        self,
        root: ModelT | None = None,
        options: TreeOptions | None = None,
    ) -> list[Any]:
        """Load a subtree (or the whole forest) as nested nodes.

        Lean results are dicts with a ``children`` key; otherwise TreeNode
        wrappers. Rows whose parent is excluded by ``options.filters`` are
        left out together with their descendants.

        Example:
            >>> await tree.get_children_tree()
            [{'id': 'A', 'parent': None, 'path': 'A', 'children': [
                {'id': 'B', 'parent': 'A', 'path': 'A#B', 'children': []}]},
             {'id': 'X', 'parent': None, 'path': 'X', 'children': []}]
        """
        options = options or TreeOptions()
        criteria = list(options.filters)
        if options.recursive:
            if root is not None:
                criteria.append(self.store.path_startswith(descendant_prefix(root.path, self.separator)))
        else:
            criteria.append(self.store.parent_equals(root.id if root is not None else None))

        root_path = root.path if root is not None else None

        if not options.lean:
            stmt = select(self.model).where(*criteria).order_by(self.model.path)
            return build_node_forest(
                await self._scalars(stmt),
                separator=self.separator,
                min_level=options.min_level,
                root_path=root_path,
                allow_empty_children=options.allow_empty_children,
            )

        stmt = select(*self._lean_columns(options.fields)).where(*criteria).order_by(self.model.path)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(f"{self.store.model_name} get_children_tree failed: {exc}", operation="find") from exc
        return build_forest(
            (row._asdict() for row in result),
            separator=self.separator,
            min_level=options.min_level,
            root_path=root_path,
            allow_empty_children=options.allow_empty_children,
        )

    def level(self, node: ModelT) -> int:
        """Depth of the node (1 for roots). Does not query the database."""
        return depth(node.path, self.separator)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lean_columns(self, fields: Sequence[str] | None) -> list[Any]:
        mapper = sa_inspect(self.model)
        if fields is None:
            names = [attr.key for attr in mapper.column_attrs]
        else:
            names = list(fields) + [name for name in _REQUIRED_FIELDS if name not in fields]
        unknown = [name for name in names if name not in mapper.column_attrs]
        if unknown:
            raise ConfigurationError(
                f"{self.store.model_name} has no column(s) {', '.join(unknown)}",
                setting="fields",
            )
        return [getattr(self.model, name).label(name) for name in names]

    def _discard_unresolved(self, node: ModelT) -> None:
        """Undo the parent assignment of a save that failed to resolve it.

        A pending node is expunged; a persistent one gets its loaded parent
        back, so a later flush cannot write a parent that disagrees with the
        stored path.
        """
        state = sa_inspect(node)
        if state.pending:
            self.session.expunge(node)
            return
        if not state.persistent:
            return
        history = state.attrs.parent.history
        if history.deleted:
            node.parent = history.deleted[0]
        elif history.added:
            self.session.expire(node, ["parent"])

    def _coerce_id(self, raw: str) -> Any:
        """Convert a path segment back to the primary key's Python type."""
        python_type = sa_inspect(self.model).primary_key[0].type.python_type
        return raw if python_type is str else python_type(raw)

    async def _scalars(self, stmt: Any) -> list[ModelT]:
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(f"{self.store.model_name} query failed: {exc}", operation="find") from exc
        return list(result.scalars().all())

    async def _flush(self, operation: str) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreError(f"{self.store.model_name} {operation} failed: {exc}", operation=operation) from exc


__all__ = [
    "MaterializedPathTree",
    "TreeOptions",
]
