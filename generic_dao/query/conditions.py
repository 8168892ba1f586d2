"""
Where Conditions
================

Purpose
-------
Structured predicates used to filter rows for select and delete statements.
A condition is a small tagged union:

- ``Comparison(operator, column, value)``: one operator applied to a
  fully-qualified column reference (``"alias.mapping"``) and a literal value
  or a ``Param`` placeholder.
- ``And(conditions)`` / ``Or(conditions)``: logical composition.

Placeholders are bound from a separate parameter mapping when the condition
is compiled, so the mapping can be validated against the schema before any
statement runs.

Usage
-----
.. code-block:: python

    from generic_dao.query.conditions import eq, is_, and_, Param, parseCondition

    cond = and_(eq("users.first", Param("first")), is_("users.last", None))

    # Equivalent declarative form; strings starting with ":" are placeholders.
    cond = parseCondition({
        "$and": [
            {"$eq": {"users.first": ":first"}},
            {"$is": {"users.last": None}},
        ]
    })
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from sqlalchemy import and_ as sa_and
from sqlalchemy import or_ as sa_or
from sqlalchemy.sql.elements import ColumnElement

from generic_dao.errors import ConditionError, ConfigurationError
from generic_dao.schema.catalog import TableDescriptor


class Operator(str, Enum):
    """Comparison operators, named after their declarative keys."""

    EQ = "$eq"
    NEQ = "$neq"
    LT = "$lt"
    LTE = "$lte"
    GT = "$gt"
    GTE = "$gte"
    LIKE = "$like"
    NOT_LIKE = "$notLike"
    IN = "$in"
    NOT_IN = "$notIn"
    IS = "$is"
    ISNT = "$isnt"


@dataclass(frozen=True)
class Param:
    """Placeholder for a value bound from the parameter mapping."""

    name: str


@dataclass(frozen=True)
class Comparison:
    operator: Operator
    column: str
    value: Any

    def placeholders(self) -> Iterator[str]:
        values = self.value if isinstance(self.value, (list, tuple)) else (self.value,)
        for value in values:
            if isinstance(value, Param):
                yield value.name

    def bindings(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(placeholder name, column reference)`` pairs."""
        for name in self.placeholders():
            yield name, self.column


@dataclass(frozen=True)
class And:
    conditions: Tuple["Condition", ...]

    def placeholders(self) -> Iterator[str]:
        for cond in self.conditions:
            yield from cond.placeholders()

    def bindings(self) -> Iterator[Tuple[str, str]]:
        for cond in self.conditions:
            yield from cond.bindings()


@dataclass(frozen=True)
class Or:
    conditions: Tuple["Condition", ...]

    def placeholders(self) -> Iterator[str]:
        for cond in self.conditions:
            yield from cond.placeholders()

    def bindings(self) -> Iterator[Tuple[str, str]]:
        for cond in self.conditions:
            yield from cond.bindings()


Condition = Union[Comparison, And, Or]


def eq(column: str, value: Any) -> Comparison:
    return Comparison(Operator.EQ, column, value)


def neq(column: str, value: Any) -> Comparison:
    return Comparison(Operator.NEQ, column, value)


def lt(column: str, value: Any) -> Comparison:
    return Comparison(Operator.LT, column, value)


def lte(column: str, value: Any) -> Comparison:
    return Comparison(Operator.LTE, column, value)


def gt(column: str, value: Any) -> Comparison:
    return Comparison(Operator.GT, column, value)


def gte(column: str, value: Any) -> Comparison:
    return Comparison(Operator.GTE, column, value)


def like(column: str, value: Any) -> Comparison:
    return Comparison(Operator.LIKE, column, value)


def notLike(column: str, value: Any) -> Comparison:
    return Comparison(Operator.NOT_LIKE, column, value)


def in_(column: str, values: Any) -> Comparison:
    return Comparison(Operator.IN, column, tuple(values) if isinstance(values, list) else values)


def notIn(column: str, values: Any) -> Comparison:
    return Comparison(Operator.NOT_IN, column, tuple(values) if isinstance(values, list) else values)


def is_(column: str, value: Any = None) -> Comparison:
    return Comparison(Operator.IS, column, value)


def isnt(column: str, value: Any = None) -> Comparison:
    return Comparison(Operator.ISNT, column, value)


def and_(*conditions: Condition) -> And:
    return And(tuple(conditions))


def or_(*conditions: Condition) -> Or:
    return Or(tuple(conditions))


# ----------------------------------------------------------------------
# Declarative (dictionary) form
# ----------------------------------------------------------------------

_OPERATORS = {op.value: op for op in Operator}


def _parseValue(value: Any) -> Any:
    if isinstance(value, str) and value.startswith(":") and len(value) > 1:
        return Param(value[1:])
    if isinstance(value, list):
        return tuple(_parseValue(v) for v in value)
    return value


def parseCondition(where: Mapping[str, Any]) -> Condition:
    """
    Convert the declarative dictionary form into a condition tree.

    Parameters
    ----------
    where : Mapping[str, Any]
        e.g. ``{"$eq": {"users.ID": ":ID"}}`` or ``{"$or": [{...}, {...}]}``.
        Several keys (or several columns under one operator) are combined
        with AND.

    Raises
    ------
    ConditionError
        If an operator is unknown or an operand has the wrong shape.
    """
    if not isinstance(where, Mapping) or not where:
        raise ConditionError(f"Invalid where condition: {where!r}.")

    parts = []
    for key, operand in where.items():
        if key in ("$and", "$or"):
            if not isinstance(operand, (list, tuple)) or not operand:
                raise ConditionError(f"{key} requires a non-empty list of conditions.")
            children = tuple(parseCondition(child) for child in operand)
            parts.append(And(children) if key == "$and" else Or(children))
        elif key in _OPERATORS:
            if not isinstance(operand, Mapping) or not operand:
                raise ConditionError(f"{key} requires a mapping of column to value.")
            for column, value in operand.items():
                parts.append(Comparison(_OPERATORS[key], column, _parseValue(value)))
        else:
            raise ConditionError(f"Unknown operator {key}.")

    return parts[0] if len(parts) == 1 else And(tuple(parts))


def toCondition(where: Union[Condition, Mapping[str, Any], None]) -> Optional[Condition]:
    """Normalize either accepted form (or None) to a condition tree."""
    if where is None or isinstance(where, (Comparison, And, Or)):
        return where
    return parseCondition(where)


# ----------------------------------------------------------------------
# Compilation to SQLAlchemy
# ----------------------------------------------------------------------

def resolveColumn(table: TableDescriptor, reference: str):
    alias, _, mapping = reference.rpartition(".")
    if (alias and alias != table.alias) or not table.isColumnMapping(mapping):
        raise ConfigurationError(f"Column {reference} is not part of table {table.alias}.")
    return table.sa_table.c[mapping]


def _bind(value: Any, params: Dict[str, Any]) -> Any:
    if isinstance(value, Param):
        return params[value.name]
    if isinstance(value, tuple):
        return [_bind(v, params) for v in value]
    return value


def compileCondition(condition: Condition, table: TableDescriptor, params: Dict[str, Any]) -> ColumnElement:
    """
    Build a SQLAlchemy clause for `condition` against `table`.

    Every placeholder must have an entry in `params`; the DAO checks this
    before compiling.
    """
    if isinstance(condition, And):
        return sa_and(*(compileCondition(c, table, params) for c in condition.conditions))
    if isinstance(condition, Or):
        return sa_or(*(compileCondition(c, table, params) for c in condition.conditions))

    column = resolveColumn(table, condition.column)
    value = _bind(condition.value, params)
    op = condition.operator

    if op is Operator.EQ:
        return column == value
    if op is Operator.NEQ:
        return column != value
    if op is Operator.LT:
        return column < value
    if op is Operator.LTE:
        return column <= value
    if op is Operator.GT:
        return column > value
    if op is Operator.GTE:
        return column >= value
    if op is Operator.LIKE:
        return column.like(value)
    if op is Operator.NOT_LIKE:
        return column.not_like(value)
    if op is Operator.IN:
        return column.in_(value)
    if op is Operator.NOT_IN:
        return column.not_in(value)
    if op is Operator.IS:
        return column.is_(value)
    return column.is_not(value)
