"""
Validators
==========

Purpose
-------
Schema-driven validation of resources and query parameters, run before any
statement executes. Each validator is constructed with a candidate payload,
a table alias, and the schema catalog, and exposes one coroutine,
``validate()``, that either returns True or raises a ``ValidationErrorList``
whose errors follow the table's column order.

Validators
----------
- ``ModelValidator``: parameter mode. A parameter bound to a placeholder of
  the where condition is checked against the column that placeholder is
  compared to; any other key naming a column mapping is checked against
  that column. List/tuple values are checked element-wise (``$in``);
  remaining keys are ignored.
- ``InsertValidator``: required columns (non-nullable, no default) must be
  present; keys that are not columns are rejected.
- ``UpdateValidator``: the primary key is required; keys that are not
  columns are rejected.
- ``DeleteValidator``: only the primary key is required and checked.

Type checks use pydantic ``TypeAdapter`` instances derived from each column's
Python type. Lax mode accepts ``"42"`` for an integer column and an ISO
string for a date-time column; on success the converted values are written
back into the payload, so statements only ever bind native values.
"""

import datetime
import decimal
import uuid
from typing import Annotated, Any, Dict, List, Mapping, Optional, Tuple

from pydantic import StringConstraints, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from generic_dao.errors import ValidationError, ValidationErrorList
from generic_dao.query.conditions import Condition, resolveColumn
from generic_dao.schema.catalog import ColumnDescriptor, Database

_TYPE_MESSAGES = {
    int: "is not a valid integer.",
    float: "is not a valid number.",
    decimal.Decimal: "is not a valid number.",
    bool: "is not a valid boolean.",
    str: "is not a valid string.",
    datetime.date: "is not a valid date.",
    datetime.datetime: "is not a valid date-time.",
    datetime.time: "is not a valid time.",
    uuid.UUID: "is not a valid UUID.",
}

_adapters: Dict[tuple, Optional[TypeAdapter]] = {}


def _adapter(column: ColumnDescriptor) -> Optional[TypeAdapter]:
    key = (column.pythonType, column.maxLength)
    if key not in _adapters:
        if column.pythonType is object:
            _adapters[key] = None
        elif column.pythonType is str and column.maxLength:
            _adapters[key] = TypeAdapter(Annotated[str, StringConstraints(max_length=column.maxLength)])
        else:
            _adapters[key] = TypeAdapter(column.pythonType)
    return _adapters[key]


def convertValue(
    column: ColumnDescriptor, value: Any, field: Optional[str] = None
) -> Tuple[Any, Optional[ValidationError]]:
    """
    Convert one value to the column's Python type.

    Parameters
    ----------
    column : ColumnDescriptor
        Target column.
    value : Any
        Candidate value.
    field : str | None
        Name used in error messages; defaults to the column mapping.

    Returns
    -------
    tuple[Any, ValidationError | None]
        The converted value and None, or the original value and the failure.
    """
    field = field or column.mapping
    if value is None:
        error = None if column.isNullable else ValidationError(f"{field} cannot be null.", field)
        return None, error

    adapter = _adapter(column)
    if adapter is None:
        return value, None
    try:
        return adapter.validate_python(value), None
    except PydanticValidationError as err:
        details = err.errors()[0]
        if details["type"] == "string_too_long":
            limit = details.get("ctx", {}).get("max_length", column.maxLength)
            return value, ValidationError(f"{field} must be at most {limit} characters.", field)
        message = _TYPE_MESSAGES.get(column.pythonType, "is not valid.")
        return value, ValidationError(f"{field} {message}", field)


def checkValue(column: ColumnDescriptor, value: Any, field: Optional[str] = None) -> Optional[ValidationError]:
    """Return the failure for `value` against `column`, or None if it is acceptable."""
    return convertValue(column, value, field)[1]


class ModelValidator:
    """
    Parameter-mode validator.

    Parameters
    ----------
    model : Mapping[str, Any] | None
        Candidate payload keyed by column mappings (or, for parameters, by
        placeholder names). Converted values are written back on success.
    table_alias : str
        Alias of the table the payload belongs to.
    database : Database
        Schema catalog.
    condition : Condition | None
        Where condition whose placeholders the parameters are bound to.

    Raises
    ------
    ConfigurationError
        From ``validate()``, if the condition references a column outside
        the table.
    """

    rejectUnknown = False
    expandLists = True

    def __init__(
        self,
        model: Optional[Mapping[str, Any]],
        table_alias: str,
        database: Database,
        condition: Optional[Condition] = None,
    ):
        self.model = model if model is not None else {}
        self.table = database.getTableByAlias(table_alias)
        self.condition = condition
        self.converted: Dict[str, Any] = {}

    def isRequired(self, column: ColumnDescriptor) -> bool:
        return False

    def shouldCheck(self, column: ColumnDescriptor) -> bool:
        return True

    def checkColumn(self, column: ColumnDescriptor, value: Any, field: Optional[str] = None) -> List[ValidationError]:
        field = field or column.mapping
        if self.expandLists and isinstance(value, (list, tuple)):
            items = []
            for item in value:
                converted, error = convertValue(column, item, field)
                if error is not None:
                    return [error]
                items.append(converted)
            self.converted.setdefault(field, type(value)(items))
            return []

        converted, error = convertValue(column, value, field)
        if error is not None:
            return [error]
        self.converted.setdefault(field, converted)
        return []

    def boundParameters(self) -> Dict[str, List[str]]:
        """Map each column mapping to the placeholder names compared against it."""
        bound: Dict[str, List[str]] = {}
        if self.condition is None:
            return bound
        for name, reference in self.condition.bindings():
            mapping = resolveColumn(self.table, reference).key
            names = bound.setdefault(mapping, [])
            if name not in names:
                names.append(name)
        return bound

    def collectErrors(self) -> List[ValidationError]:
        errors: List[ValidationError] = []
        bound = self.boundParameters()
        referenced = {name for names in bound.values() for name in names}
        failed = set()

        for column in self.table.columns:
            for name in bound.get(column.mapping, ()):
                if name in self.model and name not in failed:
                    column_errors = self.checkColumn(column, self.model[name], name)
                    if column_errors:
                        failed.add(name)
                        errors.extend(column_errors)

            if column.mapping not in self.model:
                if self.isRequired(column):
                    errors.append(ValidationError(f"{column.mapping} is required.", column.mapping))
            elif column.mapping not in referenced and self.shouldCheck(column):
                errors.extend(self.checkColumn(column, self.model[column.mapping]))

        if self.rejectUnknown:
            for key in self.model:
                if not self.table.isColumnMapping(key):
                    errors.append(ValidationError(f"{key} is not a valid property.", key))

        return errors

    async def validate(self) -> bool:
        errors = self.collectErrors()
        if errors:
            raise ValidationErrorList(errors)
        self.model.update(self.converted)
        return True


class InsertValidator(ModelValidator):
    """Validates a resource for insertion."""

    rejectUnknown = True
    expandLists = False

    def isRequired(self, column: ColumnDescriptor) -> bool:
        return not column.isNullable and not column.hasDefault


class UpdateValidator(InsertValidator):
    """Validates a resource for an update by primary key."""

    def isRequired(self, column: ColumnDescriptor) -> bool:
        return column.isPrimary


class DeleteValidator(ModelValidator):
    """Validates a resource for a delete by primary key."""

    expandLists = False

    def isRequired(self, column: ColumnDescriptor) -> bool:
        return column.isPrimary

    def shouldCheck(self, column: ColumnDescriptor) -> bool:
        return column.isPrimary
