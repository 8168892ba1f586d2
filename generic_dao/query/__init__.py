"""
The `query` package builds and executes statements for the DAOs.

Contents:
    - conditions: the where-condition tree (Comparison / And / Or over Param
      placeholders), its declarative dict parser, and compilation to SQLAlchemy
    - data_context: DataContext, the query builder/executor running on an
      AsyncEngine (select, insert, bulk insert, update, delete, filtered delete)
"""

from generic_dao.query.conditions import (
    And,
    Comparison,
    Operator,
    Or,
    Param,
    and_,
    eq,
    gt,
    gte,
    in_,
    is_,
    isnt,
    like,
    lt,
    lte,
    neq,
    notIn,
    notLike,
    or_,
    parseCondition,
)
from generic_dao.query.data_context import DataContext

__all__ = [
    "And",
    "Comparison",
    "DataContext",
    "Operator",
    "Or",
    "Param",
    "and_",
    "eq",
    "gt",
    "gte",
    "in_",
    "is_",
    "isnt",
    "like",
    "lt",
    "lte",
    "neq",
    "notIn",
    "notLike",
    "or_",
    "parseCondition",
]
