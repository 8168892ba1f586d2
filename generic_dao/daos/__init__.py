"""
DAOs Package — Generic Data Access Layer (SQLAlchemy 2.0 asyncio)
=================================================================

The `daos` package provides the schema-driven Data Access Object. Instead of
one hand-written DAO per entity, a `GenericDao` is constructed per
(data context, table) pair and derives its behavior from the schema catalog.

Conventions
-----------
- Resources are plain dicts keyed by column mappings
- Every operation is a coroutine
- Validation runs before any statement executes
- Transaction boundaries belong to callers (`DataContext.transaction()`)
- DAOs surface exceptions so upper layers decide error policy

Contents
--------
- GenericDao
    * retrieve / retrieveSingle / retrieveByID / isUnique
    * createIf / create, updateIf / update, delete
    * replace: delete-then-recreate a parent's child rows
"""

from generic_dao.daos.generic_dao import GenericDao

__all__ = ["GenericDao"]
