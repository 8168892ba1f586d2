"""
The `schema` package is the Schema Catalog of the data-access layer.

Contents:
    - catalog: read-only descriptors (Database, TableDescriptor, ColumnDescriptor,
      ForeignKeyDescriptor) resolved from a SQLAlchemy Core MetaData, including
      column/table mappings and foreign-key lookups between two named tables.
"""

from generic_dao.schema.catalog import (
    ColumnDescriptor,
    Database,
    ForeignKeyDescriptor,
    TableDescriptor,
    UnknownTableError,
)

__all__ = [
    "ColumnDescriptor",
    "Database",
    "ForeignKeyDescriptor",
    "TableDescriptor",
    "UnknownTableError",
]
