"""
Generic DAO

Purpose
-------
Schema-driven data-access object for simple CRUD operations on one table.
Given a `DataContext` and a table name it provides:
- retrieve / retrieveSingle / retrieveByID / isUnique
- createIf / create
- updateIf / update
- delete
- replace (delete-then-recreate a parent's complete child-row set)

Design
------
- Every operation follows the same protocol: validate -> (condition) ->
  execute -> interpret the result -> raise a typed error.
- Validation strictly precedes execution. A `ValidationErrorList` means no
  statement was issued.
- Collaborators (data context, validator classes) are injected through the
  constructor. The DAO holds only the immutable table descriptor and is
  safe to share across concurrent coroutines.
- Resources are plain dicts keyed by column mappings. `createIf` mutates the
  caller's resource in place to attach the generated identifier. Validation
  also converts values in place to the column types (e.g. an ISO string to
  a `datetime`).
- The DAO never opens transactions. Wrap `replace` in
  `data_context.transaction()` to make its delete and insert atomic.

Usage
-----
.. code-block:: python

    dc = DataContext(Database(metadata), create_connection_engine())
    users = GenericDao(dc, "users")

    user = await users.create({"first": "Jane", "last": "Doe"})
    same = await users.retrieveByID(user["ID"])

    phones = GenericDao(dc, "phone_numbers")
    async with dc.transaction():
        await phones.replace("users", user["ID"], [{"phoneNumber": "555-1234"}])

Error Handling
--------------
- `ValidationErrorList`: invalid resource or query parameters.
- `NotFoundError`: lookups or by-identity mutations that match no row.
- `DuplicateError`: `isUnique` found a matching row.
- `ConfigurationError`: schema defects (e.g. `replace` between tables not
  related by exactly one foreign key, or a primary-key predicate that
  affected several rows).
- Storage errors from SQLAlchemy and errors raised by conditions propagate
  unchanged.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Type

from generic_dao.errors import (
    ConfigurationError,
    DataAccessError,
    DuplicateError,
    NotFoundError,
    ValidationError,
    ValidationErrorList,
)
from generic_dao.query.conditions import Param, eq, toCondition
from generic_dao.query.data_context import DataContext
from generic_dao.validation.validators import (
    DeleteValidator,
    InsertValidator,
    ModelValidator,
    UpdateValidator,
)

logger = logging.getLogger(__name__)

Resource = Dict[str, Any]
ErrorProducer = Callable[[DataAccessError], BaseException]


async def _always(resource: Resource) -> bool:
    return True


class GenericDao:
    """
    Generic data-access object for simple CRUD operations.

    Parameters
    ----------
    data_context : DataContext
        Context used to build and run statements. Its engine does not need to
        be connected until the first operation.
    table_name : str
        Name of the table this DAO operates on.
    model_validator, insert_validator, update_validator, delete_validator : type
        Validator classes; each is constructed with
        ``(payload, table_alias, database)`` and exposes ``await validate()``,
        which writes converted values back into the payload. The model
        validator also receives the where condition as ``condition=``.
    """

    def __init__(
        self,
        data_context: DataContext,
        table_name: str,
        model_validator: Type[ModelValidator] = ModelValidator,
        insert_validator: Type[ModelValidator] = InsertValidator,
        update_validator: Type[ModelValidator] = UpdateValidator,
        delete_validator: Type[ModelValidator] = DeleteValidator,
    ):
        self.dc = data_context
        self.table = self.dc.getDatabase().getTableByName(table_name)
        self.model_validator = model_validator
        self.insert_validator = insert_validator
        self.update_validator = update_validator
        self.delete_validator = delete_validator

    def _primaryKey(self):
        if not self.table.primaryKey:
            raise ConfigurationError(f"Table {self.table.name} has no primary key.")
        return self.table.primaryKey[0]

    async def retrieve(self, where=None, params: Optional[Mapping[str, Any]] = None) -> List[Resource]:
        """
        Retrieve a list of resources.

        Parameters
        ----------
        where : Condition | dict | None
            Optional where condition (condition tree or declarative dict).
        params : Mapping[str, Any] | None
            Values for the condition's placeholders.

        Returns
        -------
        list[dict]
            Matching resources (possibly empty).

        Raises
        ------
        ValidationErrorList
            If a parameter does not fit the column its placeholder is compared
            to, or a placeholder has no parameter. No query is issued.
        """
        tbl_alias = self.table.alias
        params = dict(params or {})
        condition = toCondition(where)

        errors: List[ValidationError] = []
        try:
            await self.model_validator(params, tbl_alias, self.dc.getDatabase(), condition=condition).validate()
        except ValidationErrorList as err:
            errors.extend(err.errors)

        if condition is not None:
            for name in dict.fromkeys(condition.placeholders()):
                if name not in params:
                    errors.append(ValidationError(f"{name} is required.", name))

        if errors:
            raise ValidationErrorList(errors)

        logger.debug("Retrieving from %s.", self.table.name)
        query = self.dc.from_(self.table.name)
        if condition is not None:
            query.where(condition, params)

        res = await query.select().execute()
        return res[tbl_alias]

    async def retrieveSingle(
        self,
        where=None,
        params: Optional[Mapping[str, Any]] = None,
        on_not_found: Optional[ErrorProducer] = None,
    ) -> Resource:
        """
        Retrieve the first matching resource.

        Parameters
        ----------
        on_not_found : callable | None
            Receives the default `NotFoundError` and returns the error to raise instead.

        Raises
        ------
        NotFoundError
            "Resource not found." when nothing matches (or the error produced
            by `on_not_found`).
        """
        res = await self.retrieve(where, params)

        if len(res) == 0:
            err = NotFoundError("Resource not found.")
            if on_not_found:
                raise on_not_found(err)
            raise err

        return res[0]

    async def retrieveByID(self, id) -> Resource:
        """Retrieve a single resource by its primary key ("Invalid {pk}." when not found)."""
        pk = self._primaryKey()
        where = eq(pk.fqName, Param(pk.mapping))
        params = {pk.mapping: id}

        return await self.retrieveSingle(where, params, lambda err: NotFoundError(f"Invalid {pk.mapping}."))

    async def isUnique(
        self,
        where,
        params: Optional[Mapping[str, Any]] = None,
        on_dupe: Optional[ErrorProducer] = None,
    ) -> bool:
        """
        Check that no record matches a condition; useful before create or update.

        Returns
        -------
        bool
            True if no records match.

        Raises
        ------
        DuplicateError
            Carrying the primary-key value of the first match (or the error
            produced by `on_dupe`).
        """
        dupe = await self.retrieve(where, params)

        if len(dupe) == 0:
            return True

        # This is the id of the duplicate record.
        pk = self._primaryKey()
        err = DuplicateError("Duplicate resource", None, dupe[0][pk.mapping])
        if on_dupe:
            raise on_dupe(err)
        raise err

    async def _satisfy(self, condition: Callable[[Resource], Any], resource: Resource) -> None:
        result = condition(resource)
        if inspect.isawaitable(result):
            await result

    def _expectOneRow(self, affected: int, resource: Resource) -> Resource:
        if affected == 1:
            return resource
        if affected == 0:
            raise NotFoundError("Resource not found.")
        raise ConfigurationError(
            f"Primary-key statement on {self.table.name} affected {affected} rows."
        )

    async def createIf(self, resource: Resource, condition: Callable[[Resource], Any]) -> Resource:
        """
        Create a resource if a condition succeeds. The resource is validated
        with the insert validator before the condition is invoked.

        Parameters
        ----------
        resource : dict
            Resource to create. Updated in place with the new identifier.
        condition : callable
            Receives `resource`; may return an awaitable. Raising (or an
            awaitable that raises) prevents the insert.

        Raises
        ------
        ValidationErrorList
            If the resource is invalid (condition never called).
        Exception
            Whatever the condition raises, unchanged.
        """
        tbl_alias = self.table.alias

        await self.insert_validator(resource, tbl_alias, self.dc.getDatabase()).validate()
        await self._satisfy(condition, resource)

        logger.debug("Creating resource in %s.", self.table.name)
        new_id = await self.dc.insert({tbl_alias: resource}).execute()
        if new_id is not None and self.table.primaryKey:
            resource[self.table.primaryKey[0].mapping] = new_id

        return resource

    async def create(self, resource: Resource) -> Resource:
        """Validate a resource with the insert validator, then insert it."""
        return await self.createIf(resource, _always)

    async def updateIf(self, resource: Resource, condition: Callable[[Resource], Any]) -> Resource:
        """
        Update a resource by primary key if a condition succeeds. The resource
        is validated with the update validator before the condition is invoked.

        Raises
        ------
        ValidationErrorList
            If the resource is invalid (condition never called).
        NotFoundError
            If no row has the resource's primary key.
        Exception
            Whatever the condition raises, unchanged.
        """
        tbl_alias = self.table.alias

        await self.update_validator(resource, tbl_alias, self.dc.getDatabase()).validate()
        await self._satisfy(condition, resource)

        logger.debug("Updating resource in %s.", self.table.name)
        affected = await self.dc.update({tbl_alias: resource}).execute()
        return self._expectOneRow(affected, resource)

    async def update(self, resource: Resource) -> Resource:
        """Validate a resource with the update validator, then update it by primary key."""
        return await self.updateIf(resource, _always)

    async def delete(self, resource: Resource) -> Resource:
        """
        Delete a resource by primary key.

        Raises
        ------
        ValidationErrorList
            If the primary key is missing or invalid.
        NotFoundError
            If no row has the resource's primary key.
        """
        tbl_alias = self.table.alias

        await self.delete_validator(resource, tbl_alias, self.dc.getDatabase()).validate()

        logger.debug("Deleting resource from %s.", self.table.name)
        affected = await self.dc.delete({tbl_alias: resource}).execute()
        return self._expectOneRow(affected, resource)

    async def replace(self, parent_table_name: str, parent_id, resources: List[Resource]) -> List[Resource]:
        """
        Replace all child rows of a parent with a new set.

        Steps: validate `parent_id` against the parent's primary key; point
        every resource at the parent and drop its own identifier; validate all
        resources (errors from every item are aggregated); delete the existing
        children; bulk insert the new ones.

        Parameters
        ----------
        parent_table_name : str
            Name of the parent table.
        parent_id : Any
            Primary-key value of the parent row.
        resources : list[dict]
            New child resources; modified in place.

        Returns
        -------
        list[dict]
            The inserted resources, carrying their new identifiers.

        Raises
        ------
        ValidationErrorList
            If `parent_id` or any resource is invalid. Existing children are
            left untouched.
        ConfigurationError
            If this table does not reference the parent by exactly one foreign key.
        """
        db = self.dc.getDatabase()
        tbl_alias = self.table.alias

        parent = db.getTableByName(parent_table_name)
        if not parent.primaryKey:
            raise ConfigurationError(f"Table {parent.name} has no primary key.")
        parent_pk = parent.primaryKey[0]
        parent_key = {parent_pk.mapping: parent_id}
        await self.delete_validator(parent_key, parent.alias, db).validate()
        parent_id = parent_key[parent_pk.mapping]

        fks = db.getForeignKeys(self.table.name, parent.name)
        if len(fks) != 1:
            raise ConfigurationError(
                f"Expected exactly one foreign key from {self.table.name} to {parent.name}, found {len(fks)}."
            )
        fk_column = fks[0].column
        pk = self._primaryKey()

        for resource in resources:
            resource[fk_column.mapping] = parent_id
            resource.pop(pk.mapping, None)

        # Every item is validated, even after a failure, so all errors are reported.
        results = await asyncio.gather(
            *(self.insert_validator(r, tbl_alias, db).validate() for r in resources),
            return_exceptions=True,
        )
        errors: List[ValidationError] = []
        for result in results:
            if isinstance(result, ValidationErrorList):
                errors.extend(result.errors)
            elif isinstance(result, BaseException):
                raise result
        if errors:
            raise ValidationErrorList(errors)

        logger.debug("Replacing %s children of %s %s.", self.table.name, parent.name, parent_id)
        await (
            self.dc.deleteFrom(self.table.name)
            .where(eq(fk_column.fqName, Param(fk_column.mapping)), {fk_column.mapping: parent_id})
            .execute()
        )

        if not resources:
            return []
        return await self.dc.insert({tbl_alias: resources}).execute()
