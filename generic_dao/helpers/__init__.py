"""
The `helpers` package provides utility functions and decorators
that support database operations and cross-cutting concerns.

Contents
--------
- transactionManagement
    Provides tools for database transaction management:
        - Context variable (`db_connection_context`) for propagating the active connection across coroutine calls without explicit passing
        - `transaction_scope(engine)` async context manager that reuses an active transaction or begins, commits, and rolls back a new one
        - `@transactional(data_context)` decorator for wrapping coroutine functions in a managed transaction
"""
