"""
Data Context — Query Builder / Executor (SQLAlchemy asyncio)
============================================================

Purpose
-------
Turns builder calls into executed statements on an ``AsyncEngine``:

- ``from_(table).where(cond, params).orderBy(...).select()``
      executes to ``{alias: [resource, ...]}``
- ``insert({alias: resource})``
      executes to the identifier of the inserted row
- ``insert({alias: [resource, ...]})``
      bulk insert (executemany with RETURNING); executes to the inserted
      resources, each carrying its identifier
- ``update({alias: resource})``
      update by primary key; executes to the affected-row count
- ``delete({alias: resource})``
      delete by primary key; executes to the affected-row count
- ``deleteFrom(table).where(cond, params)``
      filtered delete; executes to the affected-row count

Resources are plain dictionaries keyed by column mappings (``Column.key``).

Design
------
- Statements run on the connection of the active transaction (see
  ``helpers.transactionManagement``) or, if none, in their own
  ``engine.begin()`` block.
- Storage errors (``sqlalchemy.exc.SQLAlchemyError``) propagate unchanged.

Usage
-----
.. code-block:: python

    dc = DataContext(Database(metadata), create_connection_engine())
    res = await dc.from_("users").where(eq("users.ID", Param("ID")), {"ID": 4}).select().execute()
    users = res["users"]
"""

import logging
from itertools import groupby
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import and_ as sa_and
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from generic_dao.errors import ConfigurationError
from generic_dao.helpers.transactionManagement import active_connection, transaction_scope
from generic_dao.query.conditions import Condition, compileCondition, resolveColumn, toCondition
from generic_dao.schema.catalog import Database, TableDescriptor

logger = logging.getLogger(__name__)

Resource = Dict[str, Any]
OrderSpec = Union[str, Tuple[str, str]]


class Query:
    """Base class for executable statements built by a `DataContext`."""

    def __init__(self, dc: "DataContext", table: TableDescriptor):
        self.dc = dc
        self.table = table

    async def execute(self):
        return await self.dc.run(self._run)

    async def _run(self, connection: AsyncConnection):
        raise NotImplementedError


class FilteredQuery(Query):
    def __init__(self, dc: "DataContext", table: TableDescriptor):
        super().__init__(dc, table)
        self.condition: Optional[Condition] = None
        self.params: Dict[str, Any] = {}

    def where(self, condition, params: Optional[Mapping[str, Any]] = None):
        self.condition = toCondition(condition)
        self.params = dict(params or {})
        return self

    def _whereClause(self):
        if self.condition is None:
            return None
        return compileCondition(self.condition, self.table, self.params)


class From(FilteredQuery):
    """Select builder: ``from_(table).where(...).orderBy(...).select()``."""

    def __init__(self, dc: "DataContext", table: TableDescriptor):
        super().__init__(dc, table)
        self.order: List[OrderSpec] = []

    def orderBy(self, *columns: OrderSpec) -> "From":
        """
        Order the results.

        Parameters
        ----------
        *columns : str | tuple[str, str]
            ``"alias.mapping"`` (ascending) or ``("alias.mapping", "DESC")``.
        """
        self.order.extend(columns)
        return self

    def select(self) -> "From":
        return self

    def _orderClauses(self):
        clauses = []
        for spec in self.order:
            reference, direction = (spec, "ASC") if isinstance(spec, str) else spec
            column = resolveColumn(self.table, reference)
            clauses.append(column.desc() if direction.upper() == "DESC" else column.asc())
        return clauses

    async def _run(self, connection: AsyncConnection) -> Dict[str, List[Resource]]:
        stmt = select(self.table.sa_table)
        clause = self._whereClause()
        if clause is not None:
            stmt = stmt.where(clause)
        if self.order:
            stmt = stmt.order_by(*self._orderClauses())

        logger.debug("Executing select on %s.", self.table.name)
        result = await connection.execute(stmt)
        rows = [
            {c.mapping: row._mapping[c.sa_column] for c in self.table.columns}
            for row in result.all()
        ]
        return {self.table.alias: rows}


class DeleteFrom(FilteredQuery):
    """Filtered delete builder: ``deleteFrom(table).where(...)``."""

    async def _run(self, connection: AsyncConnection) -> int:
        stmt = delete(self.table.sa_table)
        clause = self._whereClause()
        if clause is not None:
            stmt = stmt.where(clause)

        logger.debug("Executing filtered delete on %s.", self.table.name)
        result = await connection.execute(stmt)
        return result.rowcount


class ModelQuery(Query):
    """Statements driven by a ``{alias: resource(s)}`` model."""

    def __init__(self, dc: "DataContext", table: TableDescriptor, payload):
        super().__init__(dc, table)
        self.payload = payload

    def _values(self, resource: Mapping[str, Any], include_pk: bool = True) -> Resource:
        return {
            mapping: value
            for mapping, value in resource.items()
            if self.table.isColumnMapping(mapping)
            and (include_pk or not self.table.getColumnByMapping(mapping).isPrimary)
        }

    def _pkClause(self, resource: Mapping[str, Any]):
        return sa_and(
            *(self.table.sa_table.c[pk.mapping] == resource.get(pk.mapping) for pk in self.table.primaryKey)
        )


class Insert(ModelQuery):
    """
    Single or bulk insert.

    A bulk insert runs one executemany ``INSERT ... RETURNING`` per run of
    consecutive resources sharing the same column set, so omitted columns
    keep their defaults. Dialects that cannot return primary keys in
    parameter order from an executemany fall back to one statement per row.
    """

    async def _insertOne(self, connection: AsyncConnection, resource: Resource):
        stmt = insert(self.table.sa_table)
        values = self._values(resource)
        if values:
            stmt = stmt.values(values)

        result = await connection.execute(stmt)
        inserted = result.inserted_primary_key
        return inserted[0] if inserted else None

    def _supportsBulkReturning(self, connection: AsyncConnection) -> bool:
        return bool(self.table.primaryKey) and connection.dialect.insert_executemany_returning_sort_by_parameter_order

    async def _insertRowByRow(self, connection: AsyncConnection, resources: Sequence[Resource]) -> None:
        pk = self.table.primaryKey[0] if self.table.primaryKey else None
        for resource in resources:
            new_id = await self._insertOne(connection, resource)
            if pk is not None and new_id is not None:
                resource[pk.mapping] = new_id

    async def _insertMany(self, connection: AsyncConnection, resources: Sequence[Resource]) -> None:
        pk_columns = [self.table.sa_table.c[pk.mapping] for pk in self.table.primaryKey]
        stmt = insert(self.table.sa_table).returning(*pk_columns, sort_by_parameter_order=True)

        for keys, run in groupby(resources, key=lambda r: frozenset(self._values(r))):
            run = list(run)
            if not keys:
                await self._insertRowByRow(connection, run)
                continue

            result = await connection.execute(stmt, [self._values(r) for r in run])
            for resource, row in zip(run, result.all()):
                for pk, value in zip(self.table.primaryKey, row):
                    resource[pk.mapping] = value

    async def _run(self, connection: AsyncConnection):
        if isinstance(self.payload, (list, tuple)):
            logger.debug("Executing bulk insert of %d rows into %s.", len(self.payload), self.table.name)
            if self.payload:
                if self._supportsBulkReturning(connection):
                    await self._insertMany(connection, self.payload)
                else:
                    await self._insertRowByRow(connection, self.payload)
            return list(self.payload)

        logger.debug("Executing insert into %s.", self.table.name)
        return await self._insertOne(connection, self.payload)


class Update(ModelQuery):
    async def _run(self, connection: AsyncConnection) -> int:
        values = self._values(self.payload, include_pk=False)

        if not values:
            # Nothing to set; report whether the targeted row exists.
            stmt = select(func.count()).select_from(self.table.sa_table).where(self._pkClause(self.payload))
            return (await connection.execute(stmt)).scalar_one()

        stmt = update(self.table.sa_table).where(self._pkClause(self.payload)).values(values)
        logger.debug("Executing update on %s.", self.table.name)
        result = await connection.execute(stmt)
        return result.rowcount


class Delete(ModelQuery):
    async def _run(self, connection: AsyncConnection) -> int:
        stmt = delete(self.table.sa_table).where(self._pkClause(self.payload))
        logger.debug("Executing delete on %s.", self.table.name)
        result = await connection.execute(stmt)
        return result.rowcount


class DataContext:
    """
    Query-execution context for one schema catalog and one engine.

    Parameters
    ----------
    database : Database
        Schema catalog the statements are built against.
    engine : AsyncEngine
        Engine the statements execute on.
    """

    def __init__(self, database: Database, engine: AsyncEngine):
        self.database = database
        self.engine = engine

    def getDatabase(self) -> Database:
        return self.database

    def transaction(self):
        """Async context manager; see `helpers.transactionManagement.transaction_scope`."""
        return transaction_scope(self.engine)

    async def run(self, statement: Callable[[AsyncConnection], Awaitable[Any]]):
        connection = active_connection(self.engine)
        if connection is not None:
            return await statement(connection)

        async with self.engine.begin() as connection:
            return await statement(connection)

    def from_(self, table_name: str) -> From:
        return From(self, self.database.getTableByName(table_name))

    def deleteFrom(self, table_name: str) -> DeleteFrom:
        return DeleteFrom(self, self.database.getTableByName(table_name))

    def _model(self, model: Mapping[str, Any]) -> Tuple[TableDescriptor, Any]:
        if len(model) != 1:
            raise ConfigurationError("A model must be keyed by exactly one table alias.")
        alias, payload = next(iter(model.items()))
        return self.database.getTableByAlias(alias), payload

    def insert(self, model: Mapping[str, Union[Resource, Sequence[Resource]]]) -> Insert:
        return Insert(self, *self._model(model))

    def update(self, model: Mapping[str, Resource]) -> Update:
        return Update(self, *self._model(model))

    def delete(self, model: Mapping[str, Resource]) -> Delete:
        return Delete(self, *self._model(model))
