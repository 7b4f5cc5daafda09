"""Data source library — pluggable backends for the metric pipelines.

Public API:
    - BaseDataSource: Abstract row-level backend interface
    - RelationalDataSource: SQLAlchemy-backed relational store
    - GraphDataSource: Sway graph API
    - DataSourceKind / parse_data_source: Backend selector and its parser
    - get_data_source / register_data_source: Backend registry
"""

import enum
from typing import Any

from loguru import logger

from sway_metrics.lib.data_source.base import BaseDataSource
from sway_metrics.lib.data_source.graph import GraphDataSource
from sway_metrics.lib.data_source.records import (
    BallotItemRecord,
    ElectionRecord,
    GroupRecord,
    JurisdictionRecord,
    MembershipRecord,
    OfficeRecord,
    OfficeTermRecord,
    ProfileRecord,
    RaceRecord,
    RegistrationRecord,
    SupporterSummary,
    VerificationRecord,
)
from sway_metrics.lib.data_source.relational import RelationalDataSource


class DataSourceKind(enum.StrEnum):
    """Which backend a metric call reads from."""

    RELATIONAL = "relational"
    GRAPH = "graph"


# Legacy selector spellings still accepted from callers and the environment
_ALIASES: dict[str, DataSourceKind] = {
    "relational": DataSourceKind.RELATIONAL,
    "supabase": DataSourceKind.RELATIONAL,
    "graph": DataSourceKind.GRAPH,
    "sway_api": DataSourceKind.GRAPH,
}


def parse_data_source(
    value: str | DataSourceKind | None,
    default: DataSourceKind = DataSourceKind.RELATIONAL,
) -> DataSourceKind:
    """Resolve a backend selector string.

    Args:
        value: Selector such as "relational", "graph", "supabase", or
            "SWAY_API" (case-insensitive).  None selects ``default``.
        default: Backend used when ``value`` is None or blank.

    Returns:
        The selected DataSourceKind.

    Raises:
        ValueError: If the selector is not recognized.
    """
    if value is None:
        return default
    if isinstance(value, DataSourceKind):
        return value
    key = value.strip().lower()
    if not key:
        return default
    kind = _ALIASES.get(key)
    if kind is None:
        msg = f"Unknown data source: {value!r}. Available: {sorted(_ALIASES)}"
        raise ValueError(msg)
    return kind


_SOURCES: dict[DataSourceKind, type[BaseDataSource]] = {}


def register_data_source(kind: DataSourceKind, cls: type[BaseDataSource]) -> None:
    """Register a data source class for a backend kind.

    Args:
        kind: Backend kind the class serves.
        cls: Data source class (must subclass BaseDataSource).
    """
    if kind in _SOURCES:
        logger.warning(f"Overwriting existing data source {kind.value!r}")
    _SOURCES[kind] = cls


def get_data_source(kind: DataSourceKind, **kwargs: Any) -> BaseDataSource:
    """Instantiate the data source registered for ``kind``.

    Args:
        kind: Backend kind.
        **kwargs: Arguments forwarded to the data source constructor.

    Raises:
        ValueError: If no data source is registered for ``kind``.
    """
    cls = _SOURCES.get(kind)
    if cls is None:
        msg = f"No data source registered for {kind.value!r}. Available: {[k.value for k in _SOURCES]}"
        raise ValueError(msg)
    return cls(**kwargs)


register_data_source(DataSourceKind.RELATIONAL, RelationalDataSource)
register_data_source(DataSourceKind.GRAPH, GraphDataSource)

__all__ = [
    "BallotItemRecord",
    "BaseDataSource",
    "DataSourceKind",
    "ElectionRecord",
    "GraphDataSource",
    "GroupRecord",
    "JurisdictionRecord",
    "MembershipRecord",
    "OfficeRecord",
    "OfficeTermRecord",
    "ProfileRecord",
    "RaceRecord",
    "RegistrationRecord",
    "RelationalDataSource",
    "SupporterSummary",
    "VerificationRecord",
    "get_data_source",
    "parse_data_source",
    "register_data_source",
]
