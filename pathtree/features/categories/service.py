"""Category tree operations used by the CLI."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from pathtree.core.database import DeletePolicy, MaterializedPathTree, NodeNotFoundError, TreeOptions
from pathtree.features.categories.models import Category

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pathtree.core.settings import TreeSettings

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Derive a category id from its name ("Home Office" -> "home-office")."""
    return _SLUG_RE.sub("-", name.lower()).strip("-")


class CategoryService:
    """Create, move, remove and list categories in one session.

    Committing is done here, one transaction per operation.
    """

    def __init__(self, session: AsyncSession, settings: TreeSettings | None = None) -> None:
        self.session = session
        self.tree = MaterializedPathTree(session, Category, settings)

    async def get(self, category_id: str) -> Category:
        category = await self.session.get(Category, category_id)
        if category is None:
            raise NodeNotFoundError("Category", {"id": category_id})
        return category

    async def add(self, name: str, *, category_id: str | None = None, parent: str | None = None) -> Category:
        category = Category(id=category_id or slugify(name), name=name, parent=parent)
        await self.tree.save(category)
        await self.session.commit()
        logger.info("Category created", extra={"node_id": category.id, "path": category.path})
        return category

    async def move(self, category_id: str, parent: str | None) -> Category:
        category = await self.get(category_id)
        category.parent = parent
        await self.tree.save(category)
        await self.session.commit()
        return category

    async def remove(self, category_id: str, *, reparent: bool = False) -> None:
        category = await self.get(category_id)
        if reparent:
            tree = MaterializedPathTree(
                self.session,
                Category,
                self.tree.settings.model_copy(update={"on_delete": DeletePolicy.REPARENT}),
            )
        else:
            tree = self.tree
        await tree.delete(category)
        await self.session.commit()

    async def ancestors(self, category_id: str) -> list[Category]:
        return await self.tree.get_ancestors(await self.get(category_id))

    async def forest(self, *, root: str | None = None, min_level: int = 1) -> list[dict[str, Any]]:
        root_node = await self.get(root) if root else None
        return await self.tree.get_children_tree(
            root_node,
            TreeOptions(fields=("name",), min_level=min_level),
        )


__all__ = [
    "CategoryService",
    "slugify",
]
