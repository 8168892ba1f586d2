"""
The `generic_dao` package is a schema-driven data-access layer: it maps
CRUD operations (and a bulk "replace children" operation) onto relational
tables given only a table name and a SQLAlchemy schema description.

Contents:
    - config:
        Settings (environment / .env) and AsyncEngine construction.

    - schema:
        Schema catalog: table, column, primary key, and foreign key lookups.

    - query:
        Where conditions and the DataContext that builds and runs statements.

    - validation:
        Insert, update, delete, and parameter validators.

    - daos:
        GenericDao, the CRUD operations themselves.

    - helpers:
        Transaction management across coroutine calls.

    - errors:
        ValidationErrorList, NotFoundError, DuplicateError, ConfigurationError.
"""

from generic_dao.daos.generic_dao import GenericDao
from generic_dao.errors import (
    ConditionError,
    ConfigurationError,
    DataAccessError,
    DuplicateError,
    NotFoundError,
    ValidationError,
    ValidationErrorList,
)
from generic_dao.query.data_context import DataContext
from generic_dao.schema.catalog import Database

__all__ = [
    "ConditionError",
    "ConfigurationError",
    "DataAccessError",
    "DataContext",
    "Database",
    "DuplicateError",
    "GenericDao",
    "NotFoundError",
    "ValidationError",
    "ValidationErrorList",
]
