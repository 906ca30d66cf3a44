"""Category tree commands.

This module provides CLI commands for working with the demo category tree:
- Create the schema
- Add, move and remove categories
- Show the tree or the ancestors of a category
"""

import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import click

from pathtree.cli.utils import coro, error, header, info, success, tree_lines
from pathtree.core.database import TreeError
from pathtree.features.categories import CategoryService
from pathtree.infra.database import close_database, get_async_session, init_database


@asynccontextmanager
async def category_service() -> AsyncIterator[CategoryService]:
    """Open a session for one command and dispose the engine afterwards."""
    try:
        async with get_async_session() as session:
            yield CategoryService(session)
    finally:
        await close_database()


@click.group(name="tree")
def tree() -> None:
    """Category tree commands."""


@tree.command(name="init")
@coro
async def init() -> None:
    """Create the database tables."""
    try:
        await init_database()
    finally:
        await close_database()
    success("Database initialized")


@tree.command(name="add")
@click.argument("name")
@click.option("--id", "category_id", default=None, help="Category id (default: slug of NAME)")
@click.option("--parent", default=None, help="Parent category id")
@coro
async def add(name: str, category_id: str | None, parent: str | None) -> None:
    """Add a category NAME, optionally under a parent."""
    try:
        async with category_service() as service:
            category = await service.add(name, category_id=category_id, parent=parent)
    except TreeError as e:
        error(f"Failed to add category: {e}")
        sys.exit(1)
    success(f"Added {category.id} at {category.path}")


@tree.command(name="move")
@click.argument("category_id", metavar="ID")
@click.option("--parent", default=None, help="New parent id (omit to make ID a root)")
@coro
async def move(category_id: str, parent: str | None) -> None:
    """Move category ID (and its subtree) under a new parent."""
    try:
        async with category_service() as service:
            category = await service.move(category_id, parent)
    except TreeError as e:
        error(f"Failed to move category: {e}")
        sys.exit(1)
    success(f"Moved {category.id} to {category.path}")


@tree.command(name="remove")
@click.argument("category_id", metavar="ID")
@click.option(
    "--reparent",
    is_flag=True,
    default=False,
    help="Attach the children of ID to its parent instead of deleting them",
)
@coro
async def remove(category_id: str, reparent: bool) -> None:
    """Remove category ID and, unless --reparent, its whole subtree."""
    try:
        async with category_service() as service:
            await service.remove(category_id, reparent=reparent)
    except TreeError as e:
        error(f"Failed to remove category: {e}")
        sys.exit(1)
    success(f"Removed {category_id}")


@tree.command(name="show")
@click.option("--root", default=None, help="Only show the subtree below this id")
@click.option("--min-level", default=1, type=int, help="Level of the top-level entries (default: 1)")
@coro
async def show(root: str | None, min_level: int) -> None:
    """Print the category tree."""
    try:
        async with category_service() as service:
            forest = await service.forest(root=root, min_level=min_level)
    except TreeError as e:
        error(f"Failed to load tree: {e}")
        sys.exit(1)

    if not forest:
        info("No categories found")
        return
    for line in tree_lines(forest):
        click.echo(line)


@tree.command(name="ancestors")
@click.argument("category_id", metavar="ID")
@coro
async def ancestors(category_id: str) -> None:
    """List the ancestors of ID, root first."""
    try:
        async with category_service() as service:
            nodes = await service.ancestors(category_id)
    except TreeError as e:
        error(f"Failed to load ancestors: {e}")
        sys.exit(1)

    header(f"Ancestors of {category_id}")
    if not nodes:
        info("None (root category)")
        return
    for node in nodes:
        click.echo(f"{node.id}  {node.name}")
