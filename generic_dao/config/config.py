"""
Configuration — Pydantic v2 Settings (env / .env)
=================================================

Purpose
-------
Centralized, strongly-typed configuration for the data-access layer using:
- Pydantic v2 `BaseSettings` for environment-driven values
- `pydantic-settings` v2 for `.env` loading and model config

Load Order & Behavior
---------------------
- Values are read from the environment; if not present, `.env` is used.
- Every field has a default so the package imports without a `.env` file;
  the defaults target an in-memory SQLite database (useful for tests).
- `extra="ignore"`: unknown env vars are ignored (not an error).

Usage
-----
from generic_dao.config.config import settings

# Example
db_url = settings.DB_URL
"""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Data-access configuration loaded from environment variables or a `.env`
    file. Provides strongly typed access to environment values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DB_URL: str = Field(
        "sqlite+aiosqlite:///:memory:",
        description="SQLAlchemy async connection URL (e.g., `postgresql+asyncpg://user:pw@host/db`).",
    )
    DB_ECHO: bool = Field(False, description="Echo every SQL statement through the `sqlalchemy.engine` logger.")
    DB_POOL_PRE_PING: bool = Field(True, description="Test pooled connections for liveness before use.")
    LOG_LEVEL: str = Field("WARNING", description="Level applied to the `generic_dao` logger (e.g., `DEBUG`, `INFO`).")


# Singleton instance of Settings, ready to be imported across the package
settings = Settings()
"""Defines a Settings object that contains the contents of the environment / .env file"""


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Apply a log level to the package logger.

    Parameters
    ----------
    level : str | None
        Level name; defaults to `settings.LOG_LEVEL`.

    Returns
    -------
    logging.Logger
        The `generic_dao` logger.
    """
    logger = logging.getLogger("generic_dao")
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    return logger
