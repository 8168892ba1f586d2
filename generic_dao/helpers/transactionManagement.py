"""
Database Transaction Management
===============================

This module provides utilities for managing SQLAlchemy asyncio connections
using Python context variables and a decorator-based transaction wrapper.

It allows seamless propagation of a transactional connection across
coroutine calls without explicitly threading it through arguments. Every
statement a `DataContext` executes while a transaction is active runs on
that transaction's connection; outside a transaction each statement runs
in its own short `engine.begin()` block.

Key features
~~~~~~~~~~~~
- Context variable to store the active connection
- Implicit reuse of an existing transaction (per engine)
- Automatic commit and rollback handling
- Decorator pattern for coroutine-level transaction management
"""

import contextvars
from contextlib import asynccontextmanager
from functools import wraps
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

# --------------------------------------------------------------------
# Context variable to store the current transactional connection.
# asyncio tasks copy the context on creation, so concurrent tasks
# spawned inside a transaction share its connection.
# --------------------------------------------------------------------
db_connection_context: contextvars.ContextVar[Optional[AsyncConnection]] = contextvars.ContextVar(
    "db_connection_context", default=None
)
"""Context variable storing the active SQLAlchemy AsyncConnection."""


def active_connection(engine: AsyncEngine) -> Optional[AsyncConnection]:
    """
    Return the connection of the active transaction if it belongs to `engine`.

    Parameters
    ----------
    engine : AsyncEngine
        Engine the caller is about to run a statement on.

    Returns
    -------
    AsyncConnection | None
        The contextual connection, or None when no transaction on `engine` is active.
    """
    connection = db_connection_context.get()
    if connection is not None and connection.engine is engine:
        return connection
    return None


@asynccontextmanager
async def transaction_scope(engine: AsyncEngine) -> AsyncIterator[AsyncConnection]:
    """
    Async context manager yielding a transactional connection.

    - If a transaction on `engine` is already active in context, it is reused
      (commit/rollback stay with the outermost scope).
    - Otherwise a new transaction is begun, committed on success, and rolled
      back if the body raises.
    """
    connection = active_connection(engine)
    if connection is not None:
        yield connection
        return

    async with engine.begin() as connection:
        token = db_connection_context.set(connection)
        try:
            yield connection
        finally:
            db_connection_context.reset(token)


def transactional(data_context):
    """
    Decorator to wrap coroutine functions in a managed transaction.

    Parameters
    ----------
    data_context : DataContext
        The data context whose engine the transaction is opened on.

    Returns
    -------
    callable
        Decorator producing the wrapped coroutine function.

    Example
    -------
    >>> @transactional(dc)
    ... async def replace_numbers(user_id, numbers):
    ...     return await phone_dao.replace("users", user_id, numbers)
    """
    def decorator(func):
        @wraps(func)
        async def wrap_func(*args, **kwargs):
            async with transaction_scope(data_context.engine):
                return await func(*args, **kwargs)

        return wrap_func

    return decorator
