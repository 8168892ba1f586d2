"""
The `config` package provides the two building blocks for establishing database connections.

Contents:
    - config: Configuration layer - strongly typed settings loaded from environment variables (with .env support), exposed through a singleton Settings object, plus `configure_logging`
    - connection_engine: Database layer - SQLAlchemy asyncio bootstrap that builds a connection URL from those settings and creates the AsyncEngine

Together they provide environment-driven configuration for the DataContext.
"""

from generic_dao.config.config import Settings, configure_logging, settings
from generic_dao.config.connection_engine import create_connection_engine

__all__ = ["Settings", "settings", "configure_logging", "create_connection_engine"]
