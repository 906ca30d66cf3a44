"""Store interface consumed by the path maintenance engines.

The engines never build SQL themselves. They talk to a TreeStore, which
offers point lookup, prefix/equality criteria, a resumable cursor, per-row
field updates and bulk removal. SQLAlchemyTreeStore implements it on top
of an AsyncSession and a model using MaterializedPathMixin.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from pathtree.core.database.exceptions import StoreError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


@runtime_checkable
class TreeStore(Protocol):
    """Minimum store surface needed by the maintenance engines.

    Rows yielded by ``find`` expose ``id``, ``parent`` and ``path``
    attributes. Criteria objects are opaque to the engines and only ever
    come from ``path_startswith`` and ``parent_equals``.
    """

    model_name: str

    def path_startswith(self, prefix: str) -> Any: ...

    def parent_equals(self, parent_id: Any) -> Any: ...

    async def find_by_id(self, id_: Any) -> Any | None: ...

    def find(self, *criteria: Any) -> AsyncIterator[Any]: ...

    async def update_field(self, id_: Any, field: str, value: Any) -> None: ...

    async def remove(self, *criteria: Any) -> int: ...


class SQLAlchemyTreeStore:
    """TreeStore backed by an async SQLAlchemy session.

    An AsyncSession cannot run statements concurrently, so statement
    execution is serialized with a lock; callers may still dispatch many
    updates at once. Autoflush is suspended around every statement so
    pending changes on the node being saved are not written before the
    save itself.

    The cursor returned by ``find`` is keyset-paginated on the primary key
    (``batch_size`` rows per round trip). Each page is a separate query, so
    rows rewritten while the stream is running neither block it nor show
    up twice.

    Example:
        store = SQLAlchemyTreeStore(session, Category)
        async for row in store.find(store.path_startswith("A#")):
            print(row.id, row.path)
    """

    def __init__(self, session: AsyncSession, model: type[Any], *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        """Initialize store.

        Args:
            session: Async database session
            model: Model class using MaterializedPathMixin
            batch_size: Rows fetched per cursor page
        """
        self.session = session
        self.model = model
        self.model_name = model.__name__
        self.batch_size = batch_size
        self._id_column = model.id
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        async with self._lock:
            try:
                with self.session.sync_session.no_autoflush:
                    yield
            except SQLAlchemyError as exc:
                raise StoreError(
                    f"{self.model_name} store {operation} failed: {exc}",
                    operation=operation,
                ) from exc

    def path_startswith(self, prefix: str) -> Any:
        return self.model.path.startswith(prefix, autoescape=True)

    def parent_equals(self, parent_id: Any) -> Any:
        if parent_id is None:
            return self.model.parent.is_(None)
        return self.model.parent == parent_id

    async def find_by_id(self, id_: Any) -> Any | None:
        async with self._guard("find_by_id"):
            return await self.session.get(self.model, id_)

    async def find(self, *criteria: Any) -> AsyncIterator[Any]:
        """Stream ``(id, parent, path)`` rows matching all criteria."""
        last_id: Any = None
        while True:
            stmt = (
                select(
                    self._id_column.label("id"),
                    self.model.parent.label("parent"),
                    self.model.path.label("path"),
                )
                .where(*criteria)
                .order_by(self._id_column)
                .limit(self.batch_size)
            )
            if last_id is not None:
                stmt = stmt.where(self._id_column > last_id)

            async with self._guard("find"):
                result = await self.session.execute(stmt)
                rows = result.all()

            for row in rows:
                yield row

            if len(rows) < self.batch_size:
                return
            last_id = rows[-1].id

    async def update_field(self, id_: Any, field: str, value: Any) -> None:
        stmt = (
            update(self.model)
            .where(self._id_column == id_)
            .values({getattr(self.model, field): value})
        )
        async with self._guard("update_field"):
            await self.session.execute(stmt)

    async def remove(self, *criteria: Any) -> int:
        stmt = delete(self.model).where(*criteria).execution_options(synchronize_session="fetch")
        async with self._guard("remove"):
            result = await self.session.execute(stmt)
        return result.rowcount or 0


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "SQLAlchemyTreeStore",
    "TreeStore",
]
