"""
The `validation` package checks resources and query parameters against the
schema catalog before the data-access layer executes anything.

Contents:
    - validators: ModelValidator (parameters), InsertValidator, UpdateValidator,
      DeleteValidator, built on pydantic TypeAdapters per column type.
"""

from generic_dao.validation.validators import (
    DeleteValidator,
    InsertValidator,
    ModelValidator,
    UpdateValidator,
)

__all__ = ["DeleteValidator", "InsertValidator", "ModelValidator", "UpdateValidator"]
