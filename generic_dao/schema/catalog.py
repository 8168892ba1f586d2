"""
Schema Catalog
==============

Purpose
-------
Read-only view over a SQLAlchemy Core ``MetaData`` that answers the lookups
the data-access layer needs:

- table by name or by alias (external mapping name),
- ordered columns with internal name, external mapping, data type,
  nullability, length, and primary-key flag,
- primary-key column set,
- foreign-key relationships between two named tables.

Mapping conventions
-------------------
- A column's internal name is ``Column.name``; its external (mapped) name is
  ``Column.key``. Declare a mapping with SQLAlchemy's ``key=`` argument::

      Column("userID", Integer, key="ID", primary_key=True)

- A table's alias is read from ``Table.info["alias"]`` and defaults to the
  table name::

      Table("phone_numbers", metadata, ..., info={"alias": "phoneNumbers"})

Descriptors are built once, when the ``Database`` is constructed, and are
never mutated afterwards, so a catalog can be shared freely.
"""

import datetime
import decimal
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlalchemy import MetaData, Table
from sqlalchemy import Column as SAColumn
from sqlalchemy import types as satypes


class UnknownTableError(KeyError):
    """Raised when a table name or alias is not part of the catalog."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


def _python_type(column: SAColumn) -> type:
    col_type = column.type
    if isinstance(col_type, satypes.Boolean):
        return bool
    if isinstance(col_type, satypes.Integer):
        return int
    if isinstance(col_type, satypes.Numeric):
        return float if getattr(col_type, "asdecimal", False) is False else decimal.Decimal
    if isinstance(col_type, satypes.DateTime):
        return datetime.datetime
    if isinstance(col_type, satypes.Date):
        return datetime.date
    if isinstance(col_type, satypes.Time):
        return datetime.time
    if isinstance(col_type, satypes.Uuid):
        return uuid.UUID
    if isinstance(col_type, satypes.String):
        return str
    try:
        return col_type.python_type
    except NotImplementedError:
        return object


def _has_default(column: SAColumn) -> bool:
    if column.default is not None or column.server_default is not None:
        return True
    # Single-column integer primary keys autoincrement unless disabled.
    return (
        column.primary_key
        and column.autoincrement in (True, "auto")
        and isinstance(column.type, satypes.Integer)
        and len(column.table.primary_key.columns) == 1
        and not column.foreign_keys
    )


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    Immutable description of a single column.

    Attributes
    ----------
    name : str
        Internal (database) column name.
    mapping : str
        External name used as the key in resources.
    tableAlias : str
        Alias of the owning table.
    dataType : str
        SQL type name (e.g. ``"INTEGER"``, ``"VARCHAR"``).
    pythonType : type
        Python type resources must carry for this column.
    maxLength : int | None
        Maximum length for string columns.
    isNullable : bool
    isPrimary : bool
    hasDefault : bool
        True when the store can supply the value on insert.
    """

    name: str
    mapping: str
    tableAlias: str
    dataType: str
    pythonType: type
    maxLength: Optional[int]
    isNullable: bool
    isPrimary: bool
    hasDefault: bool
    sa_column: SAColumn = field(repr=False, compare=False)

    @property
    def fqName(self) -> str:
        """Fully-qualified reference, ``"{alias}.{mapping}"``."""
        return f"{self.tableAlias}.{self.mapping}"

    @classmethod
    def fromColumn(cls, column: SAColumn, table_alias: str) -> "ColumnDescriptor":
        return cls(
            name=column.name,
            mapping=column.key,
            tableAlias=table_alias,
            dataType=type(column.type).__visit_name__.upper(),
            pythonType=_python_type(column),
            maxLength=getattr(column.type, "length", None),
            isNullable=bool(column.nullable),
            isPrimary=bool(column.primary_key),
            hasDefault=_has_default(column),
            sa_column=column,
        )


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    """A single-column relationship from ``table.column`` to ``referencedTable.referencedColumn``."""

    name: Optional[str]
    table: str
    column: ColumnDescriptor
    referencedTable: str
    referencedColumn: str


class TableDescriptor:
    """
    Immutable description of a table, resolved from a SQLAlchemy ``Table``.
    """

    def __init__(self, sa_table: Table):
        self.sa_table = sa_table
        self.name: str = sa_table.name
        self.alias: str = sa_table.info.get("alias", sa_table.name)

        self.columns: Tuple[ColumnDescriptor, ...] = tuple(
            ColumnDescriptor.fromColumn(c, self.alias) for c in sa_table.columns
        )
        self._by_mapping: Dict[str, ColumnDescriptor] = {c.mapping: c for c in self.columns}
        self._by_name: Dict[str, ColumnDescriptor] = {c.name: c for c in self.columns}

        self.primaryKey: Tuple[ColumnDescriptor, ...] = tuple(
            self._by_name[c.name] for c in sa_table.primary_key.columns
        )

        fks: List[ForeignKeyDescriptor] = []
        for constraint in sa_table.foreign_key_constraints:
            for element in constraint.elements:
                fks.append(
                    ForeignKeyDescriptor(
                        name=constraint.name,
                        table=self.name,
                        column=self._by_name[element.parent.name],
                        referencedTable=element.column.table.name,
                        referencedColumn=element.column.name,
                    )
                )
        self.foreignKeys: Tuple[ForeignKeyDescriptor, ...] = tuple(fks)

    def getName(self) -> str:
        return self.name

    def getAlias(self) -> str:
        return self.alias

    def getPrimaryKey(self) -> Tuple[ColumnDescriptor, ...]:
        return self.primaryKey

    def isColumnMapping(self, mapping: str) -> bool:
        return mapping in self._by_mapping

    def getColumnByMapping(self, mapping: str) -> ColumnDescriptor:
        try:
            return self._by_mapping[mapping]
        except KeyError:
            raise KeyError(f"Column mapping {mapping} does not exist in table {self.name}.") from None

    def getColumnByName(self, name: str) -> ColumnDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Column {name} does not exist in table {self.name}.") from None

    def __repr__(self) -> str:
        return f"TableDescriptor(name={self.name!r}, alias={self.alias!r})"


class Database:
    """
    Schema catalog over a SQLAlchemy ``MetaData``.

    Parameters
    ----------
    metadata : MetaData
        Metadata holding every table the DAOs operate on.
    name : str | None
        Optional database name (informational).
    """

    def __init__(self, metadata: MetaData, name: Optional[str] = None):
        self.metadata = metadata
        self.name = name
        self.tables: Tuple[TableDescriptor, ...] = tuple(
            TableDescriptor(t) for t in metadata.tables.values()
        )
        self._by_name = {t.name: t for t in self.tables}
        self._by_alias = {t.alias: t for t in self.tables}

    def getTableByName(self, name: str) -> TableDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownTableError(f"Table {name} does not exist in database {self.name}.") from None

    def getTableByAlias(self, alias: str) -> TableDescriptor:
        try:
            return self._by_alias[alias]
        except KeyError:
            raise UnknownTableError(f"Table alias {alias} does not exist in database {self.name}.") from None

    def isTableAlias(self, alias: str) -> bool:
        return alias in self._by_alias

    def getForeignKeys(self, table_name: str, referenced_table_name: str) -> List[ForeignKeyDescriptor]:
        """
        Relationships from `table_name` (child) to `referenced_table_name` (parent).

        Returns
        -------
        list[ForeignKeyDescriptor]
            Possibly empty; self-references are included when both names match.
        """
        table = self.getTableByName(table_name)
        self.getTableByName(referenced_table_name)
        return [fk for fk in table.foreignKeys if fk.referencedTable == referenced_table_name]

