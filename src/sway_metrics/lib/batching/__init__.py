"""Batching library — bounded IN-list fetches and in-memory joins.

Public API:
    - fetch_by_ids: Chunked lookup over an unbounded id list
    - FetchResult: Rows plus the error that stopped a fetch
    - FetchError: Store-level error raised by data sources
    - build_index / group_rows: Id-keyed lookup maps
"""

from sway_metrics.lib.batching.fetch import FetchError, FetchResult, chunked, fetch_by_ids, unique_ids
from sway_metrics.lib.batching.index import build_index, group_rows

__all__ = [
    "FetchError",
    "FetchResult",
    "build_index",
    "chunked",
    "fetch_by_ids",
    "group_rows",
    "unique_ids",
]
