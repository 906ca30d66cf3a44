"""Mixin for models stored as a materialized-path tree.

Adds the ``parent`` and ``path`` columns plus query-free navigation
properties. Mutations and queries that touch other rows live on
MaterializedPathTree, which carries the per-tree configuration.
"""

from __future__ import annotations

from typing import Any, ClassVar

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from pathtree.core.database.hierarchy.path import DEFAULT_SEPARATOR, MaterializedPath


class MaterializedPathMixin:
    """Mixin adding ``parent`` and ``path`` columns to a model.

    ``parent`` holds the parent's id (None for roots); its column type is
    taken from ``__parent_type__`` so it can match the model's primary key.
    ``path`` is derived and owned by MaterializedPathTree; never assign it
    directly.

    Example:
        >>> from pathtree.core.database import Base
        >>>
        >>> class Category(Base, MaterializedPathMixin):
        ...     __tablename__ = "categories"
        ...     id: Mapped[str] = mapped_column(String(64), primary_key=True)
        ...     name: Mapped[str] = mapped_column(String(255))
        >>>
        >>> tree = MaterializedPathTree(session, Category)
        >>> laptops = await tree.save(Category(id="laptops", name="Laptops", parent="computers"))
        >>> laptops.path
        'electronics#computers#laptops'
        >>> laptops.level
        3

    Note:
        - Index ``path`` for prefix scans (done by default)
        - Override __path_separator__ to use another separator; it must
          never occur inside an id
    """

    __allow_unmapped__ = True

    __path_separator__: ClassVar[str] = DEFAULT_SEPARATOR
    __parent_type__: ClassVar[Any] = String(64)

    @declared_attr
    def parent(cls) -> Mapped[Any]:
        return mapped_column(
            cls.__parent_type__,
            nullable=True,
            index=True,
            comment="Id of the parent node (NULL for roots)",
        )

    @declared_attr
    def path(cls) -> Mapped[str | None]:
        return mapped_column(
            Text,
            nullable=True,
            index=True,
            comment="Ancestor ids joined by the path separator, ending with own id",
        )

    @property
    def materialized_path(self) -> MaterializedPath:
        return MaterializedPath(self.path, self.__path_separator__)

    @property
    def level(self) -> int:
        """Depth of this node (1 for roots, 0 if never saved).

        This property does NOT query the database.

        Example:
            >>> category.path = "electronics#computers#laptops"
            >>> category.level
            3
        """
        return self.materialized_path.depth

    @property
    def is_root(self) -> bool:
        return self.level == 1

    @property
    def ancestor_ids(self) -> list[str]:
        """Ancestor ids from root to parent, as stored in the path."""
        return self.materialized_path.ancestor_ids


__all__ = [
    "MaterializedPathMixin",
]
