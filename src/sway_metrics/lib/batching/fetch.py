"""Batched fetch primitive for stores with a bounded IN-list size.

Splits an arbitrarily long identifier list into contiguous windows,
issues one lookup per window, and concatenates the rows.  Dispatch stops
at the first window that fails; rows gathered before the failure are
returned alongside the error so callers can decide whether a partial
answer is usable.
"""

import asyncio
from collections.abc import Awaitable, Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from loguru import logger

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class FetchError(Exception):
    """Raised by a data source when a lookup against its backing store fails.

    Args:
        source_name: Name of the failing data source (e.g. "relational").
        message: Human-readable error description.
        table: Table or entity being read when the failure happened.
    """

    def __init__(self, source_name: str, message: str, table: str | None = None) -> None:
        self.source_name = source_name
        self.message = message
        self.table = table
        where = f" [{table}]" if table else ""
        super().__init__(f"{source_name}{where}: {message}")


@dataclass
class FetchResult(Generic[T]):
    """Rows returned by a fetch, plus the error that stopped it (if any).

    When ``error`` is set, ``rows`` holds whatever was collected before the
    failure and must not be treated as complete.
    """

    rows: list[T] = field(default_factory=list)
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def unique_ids(ids: Iterable[K | None]) -> list[K]:
    """Drop ``None`` and duplicate identifiers, keeping first-seen order."""
    return list(dict.fromkeys(i for i in ids if i is not None))


def chunked(items: Sequence[K], size: int) -> list[list[K]]:
    """Split ``items`` into contiguous windows of at most ``size`` elements."""
    if size <= 0:
        msg = f"chunk size must be positive, got {size}"
        raise ValueError(msg)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def fetch_by_ids(
    ids: Iterable[K | None],
    fetch_chunk: Callable[[list[K]], Awaitable[list[T]]],
    *,
    batch_size: int,
    concurrency: int = 1,
) -> FetchResult[T]:
    """Fetch rows for an unbounded identifier list in bounded windows.

    Args:
        ids: Identifiers to look up.  ``None`` and duplicates are dropped.
        fetch_chunk: Coroutine function issuing one lookup for one window.
            It signals a store failure by raising FetchError.
        batch_size: Maximum identifiers per window.
        concurrency: Maximum windows in flight at once.  With 1, windows
            are issued strictly one after another.

    Returns:
        FetchResult with the concatenated rows of every successful window
        and the first error encountered, if any.
    """
    keys = unique_ids(ids)
    if not keys:
        return FetchResult()

    windows = chunked(keys, batch_size)

    if concurrency <= 1 or len(windows) == 1:
        rows: list[T] = []
        for index, window in enumerate(windows):
            try:
                rows.extend(await fetch_chunk(window))
            except FetchError as exc:
                logger.error(
                    "Batched fetch stopped at window {}/{} ({} ids): {}",
                    index + 1,
                    len(windows),
                    len(window),
                    exc,
                )
                return FetchResult(rows=rows, error=exc)
        return FetchResult(rows=rows)

    return await _fetch_concurrently(windows, fetch_chunk, concurrency)


async def _fetch_concurrently(
    windows: list[list[K]],
    fetch_chunk: Callable[[list[K]], Awaitable[list[T]]],
    concurrency: int,
) -> FetchResult[T]:
    """Dispatch windows through a bounded pool; no new window starts after a failure.

    A window raising anything other than FetchError cancels its siblings
    and the exception is re-raised once they have all finished.
    """
    semaphore = asyncio.Semaphore(concurrency)
    results: list[list[T] | None] = [None] * len(windows)
    errors: list[FetchError] = []

    async def _run(index: int, window: list[K]) -> None:
        async with semaphore:
            if errors:
                return
            try:
                results[index] = await fetch_chunk(window)
            except FetchError as exc:
                logger.error(
                    "Batched fetch window {}/{} ({} ids) failed: {}",
                    index + 1,
                    len(windows),
                    len(window),
                    exc,
                )
                errors.append(exc)

    try:
        async with asyncio.TaskGroup() as group:
            for index, window in enumerate(windows):
                group.create_task(_run(index, window))
    except ExceptionGroup as failed:
        raise failed.exceptions[0] from None

    rows = [row for chunk_rows in results if chunk_rows is not None for row in chunk_rows]
    return FetchResult(rows=rows, error=errors[0] if errors else None)
