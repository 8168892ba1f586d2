"""
Connection Engine (SQLAlchemy asyncio)

Purpose
-------
Centralizes engine construction for the data-access layer:
- Builds the SQLAlchemy connection URL from environment-backed settings.
- Creates the `AsyncEngine` (connection pool + SQL execution entry point)
  that a `DataContext` runs its statements on.

Notes
-----
- In-memory SQLite databases live only as long as their connection, so they
  are created with a `StaticPool` (one shared connection for the engine).
- Engine settings can be tuned per call through keyword overrides.
"""

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from generic_dao.config.config import settings


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_connection_engine(url: str | URL | None = None, **overrides) -> AsyncEngine:
    """
    Create an `AsyncEngine`.

    Parameters
    ----------
    url : str | URL | None
        Connection URL; defaults to `settings.DB_URL`.
    **overrides
        Extra keyword arguments forwarded to `create_async_engine`.

    Returns
    -------
    AsyncEngine
        The engine. No connection is opened until first use.
    """
    connection_url = make_url(url or settings.DB_URL)

    options = {"echo": settings.DB_ECHO}
    if _is_memory_sqlite(connection_url):
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = settings.DB_POOL_PRE_PING
    options.update(overrides)

    return create_async_engine(connection_url, **options)
