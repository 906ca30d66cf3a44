"""Bounded-concurrency consumer for store cursors.

Pulls items from an async cursor and applies an async update to each one,
keeping at most ``concurrency`` updates in flight. Used by every cascading
rewrite (reparent, reparent-on-delete) so a subtree of any size is walked
without loading it into memory and without an unbounded fan-out.

Error policy is first-error-wins: once an update (or the cursor itself)
fails, no further items are pulled, updates already dispatched run to
completion, and the first error is raised after they drain. Nothing is
rolled back.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from pathtree.core.database.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5

T = TypeVar("T")


@dataclass
class StreamStats:
    """Counters for one stream run."""

    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for log extras."""
        return {
            "dispatched": self.dispatched,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_seconds": round(self.duration_seconds, 3),
        }


async def stream_worker(
    cursor: AsyncIterable[T],
    update: Callable[[T], Awaitable[Any]],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_complete: Callable[[BaseException | None], Any] | None = None,
) -> int:
    """Apply ``update`` to every item of ``cursor`` with bounded concurrency.

    Args:
        cursor: Async iterable of items (e.g. a store cursor)
        update: Coroutine function called once per item
        concurrency: Maximum number of updates in flight (>= 1)
        on_complete: Optional callback invoked exactly once with the first
            error, or None on success, before this coroutine returns or raises

    Returns:
        Number of updates that completed successfully

    Raises:
        ConfigurationError: If concurrency < 1 or update is not callable
            (raised before the cursor is touched)
        Exception: The first error raised by the cursor or by an update

    Example:
        async def set_parent(row):
            await store.update_field(row.id, "parent", None)

        count = await stream_worker(store.find(parent_equals(node.id)), set_parent)
    """
    if not callable(update):
        raise ConfigurationError("stream update function must be callable", setting="update")
    if concurrency < 1:
        raise ConfigurationError(
            f"concurrency must be >= 1, got {concurrency}", setting="concurrency"
        )

    stats = StreamStats()
    start_time = time.perf_counter()
    first_error: BaseException | None = None
    pending: set[asyncio.Future[Any]] = set()
    iterator = aiter(cursor)
    exhausted = False

    while True:
        while not exhausted and first_error is None and len(pending) < concurrency:
            try:
                item = await anext(iterator)
            except StopAsyncIteration:
                exhausted = True
                break
            except Exception as exc:
                first_error = exc
                break
            stats.dispatched += 1
            try:
                pending.add(asyncio.ensure_future(update(item)))
            except Exception as exc:
                # update raised synchronously or returned a non-awaitable
                stats.failed += 1
                first_error = exc
                break

        if not pending:
            break

        done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is None:
                stats.succeeded += 1
                continue
            stats.failed += 1
            if first_error is None:
                first_error = exc
            else:
                logger.debug("Ignoring secondary stream error: %r", exc)

    if not exhausted and hasattr(iterator, "aclose"):
        await iterator.aclose()

    stats.duration_seconds = time.perf_counter() - start_time
    logger.debug("Stream finished", extra={"operation": "tree.stream", **stats.to_dict()})

    if on_complete is not None:
        on_complete(first_error)
    if first_error is not None:
        raise first_error
    return stats.succeeded


__all__ = [
    "DEFAULT_CONCURRENCY",
    "StreamStats",
    "stream_worker",
]
