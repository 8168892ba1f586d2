"""
Error Taxonomy
==============

Purpose
-------
Defines the kinds of failures surfaced by the data-access layer so that
upstream code (API routers, services) can translate them generically,
without per-entity logic:

- ``ValidationErrorList``: one or more field-level ``ValidationError`` items,
  raised before any mutation takes place.
- ``NotFoundError``: a lookup or a by-identity mutation matched zero rows.
- ``DuplicateError``: a uniqueness check matched an existing row.
- ``ConfigurationError``: a schema or wiring defect (not a data condition).
- ``ConditionError``: a malformed declarative where-condition.

Storage errors raised by SQLAlchemy are never wrapped; they reach the caller
unchanged.

Usage
-----
.. code-block:: python

    try:
        await dao.update(resource)
    except ValidationErrorList as err:
        return 400, [e.asDict() for e in err.errors]
    except NotFoundError as err:
        return 404, err.message
"""

from typing import List, Optional


class DataAccessError(Exception):
    """
    Base class for the errors produced by the data-access layer.

    Attributes
    ----------
    message : str
        Human-readable description.
    name : str
        Class name of the error (e.g. ``"NotFoundError"``).
    code : str
        Machine-readable error code (e.g. ``"NOT_FOUND_ERROR"``).
    """

    code = "DATA_ACCESS_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def name(self) -> str:
        return type(self).__name__


class ValidationError(DataAccessError):
    """A single field-level validation failure."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def asDict(self) -> dict:
        return {"code": self.code, "field": self.field, "message": self.message}

    def __repr__(self) -> str:
        return f"ValidationError(field={self.field!r}, message={self.message!r})"


class ValidationErrorList(DataAccessError):
    """
    Ordered collection of ``ValidationError`` instances.

    Raised by the validators and by the DAO before any statement executes.
    """

    code = "VAL_ERROR_LIST"

    def __init__(self, errors: Optional[List[ValidationError]] = None):
        super().__init__("Validation errors occurred.")
        self.errors: List[ValidationError] = list(errors or [])

    def addError(self, error: ValidationError) -> "ValidationErrorList":
        self.errors.append(error)
        return self

    def hasErrors(self) -> bool:
        return len(self.errors) > 0

    def __str__(self) -> str:
        details = "; ".join(e.message for e in self.errors)
        return f"{self.message} {details}".strip()


class NotFoundError(DataAccessError):
    """Raised when a resource cannot be found (zero matching rows)."""

    code = "NOT_FOUND_ERROR"


class DuplicateError(DataAccessError):
    """
    Raised when a uniqueness check matches an existing row.

    Parameters
    ----------
    message : str
        Human-readable description.
    field : str | None
        Optional name of the field that is not unique.
    id : Any
        Primary-key value of the conflicting row.
    """

    code = "DUPLICATE_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, id=None):
        super().__init__(message)
        self.field = field
        self.id = id


class ConfigurationError(AssertionError):
    """
    Schema or wiring defect, e.g. a ``replace`` between two tables that are
    not related by exactly one foreign key. Not meant to be caught and
    translated like the ``DataAccessError`` family.
    """

    code = "CONFIGURATION_ERROR"


class ConditionError(ValueError):
    """A declarative where-condition dictionary could not be parsed."""

    code = "CONDITION_ERROR"
