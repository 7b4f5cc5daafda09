"""Async database engine and session factory for the relational store.

The store is owned by upstream ingestion; this service only reads it.  On
PostgreSQL every connection is opened read-only and, when a schema is
configured, with that schema first on the search path.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the current session factory.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


def engine_options(database_url: str, schema: str | None = None) -> dict[str, Any]:
    """Build create_async_engine keyword arguments for a connection URL.

    PostgreSQL connections get a bounded pool, liveness checks, and
    asyncpg server settings making each session read-only.  SQLite (used
    in tests) gets no pool or server options.
    """
    if make_url(database_url).get_backend_name() != "postgresql":
        return {}

    server_settings = {"default_transaction_read_only": "on"}
    if schema is not None:
        server_settings["search_path"] = f"{schema},public"
    return {
        "pool_size": 10,
        "max_overflow": 5,
        "pool_pre_ping": True,
        "connect_args": {"server_settings": server_settings},
    }


def init_engine(database_url: str, *, schema: str | None = None, echo: bool = False) -> AsyncEngine:
    """Create and store the async engine and session factory.

    Args:
        database_url: Async connection string (postgresql+asyncpg or sqlite+aiosqlite).
        schema: Optional PostgreSQL schema for isolated environments.
        echo: Log every SQL statement.

    Returns:
        The created async engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(database_url, echo=echo, **engine_options(database_url, schema))
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def dispose_engine() -> None:
    """Dispose of the async engine and release connections."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
