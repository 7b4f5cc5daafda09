"""In-memory join helpers keyed by entity id."""

from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


def build_index(rows: Iterable[T], key_fn: Callable[[T], K | None]) -> dict[K, T]:
    """Map each row's key to the row.

    Rows whose key is ``None`` are skipped.  When two rows share a key the
    later one wins.
    """
    index: dict[K, T] = {}
    for row in rows:
        key = key_fn(row)
        if key is not None:
            index[key] = row
    return index


def group_rows(rows: Iterable[T], key_fn: Callable[[T], K | None]) -> dict[K, list[T]]:
    """Group rows by key, preserving discovery order within each group."""
    groups: dict[K, list[T]] = {}
    for row in rows:
        key = key_fn(row)
        if key is not None:
            groups.setdefault(key, []).append(row)
    return groups
