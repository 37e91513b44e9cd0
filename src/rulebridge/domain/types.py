"""Field types, operators, and the operator/type compatibility table.

``FieldType`` is the admin-side tag that decides whether a field is a rule
field at all. ``RuleFieldType`` and ``Operator`` describe the clauses a
rule-builder field can carry.
"""

from __future__ import annotations

from enum import StrEnum


class FieldType(StrEnum):
    """Admin field-type tags. Only the two RULE_* members are rule fields."""

    RULE_SIMPLE = "RULE_SIMPLE"
    RULE_WITH_QUANTITY = "RULE_WITH_QUANTITY"
    STRING = "STRING"
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    ID = "ID"


RULE_FIELD_TYPES = frozenset({FieldType.RULE_SIMPLE, FieldType.RULE_WITH_QUANTITY})


class RuleFieldType(StrEnum):
    """Value type of a field exposed by a field service."""

    STRING = "STRING"
    INTEGER = "INTEGER"
    DECIMAL = "DECIMAL"
    MONEY = "MONEY"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    ENUMERATION = "ENUMERATION"


NUMERIC_TYPES = frozenset({RuleFieldType.INTEGER, RuleFieldType.DECIMAL, RuleFieldType.MONEY})


class GroupOperator(StrEnum):
    """Boolean combinator joining the clauses of one group."""

    AND = "AND"
    OR = "OR"


DEFAULT_GROUP_OPERATOR = GroupOperator.AND


class Operator(StrEnum):
    """Clause operators the rule builder can emit."""

    EQUALS = "EQUALS"
    NOT_EQUAL = "NOT_EQUAL"
    IEQUALS = "IEQUALS"
    INOT_EQUAL = "INOT_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_OR_EQUAL = "GREATER_OR_EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_OR_EQUAL = "LESS_OR_EQUAL"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    ICONTAINS = "ICONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ISTARTS_WITH = "ISTARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    IENDS_WITH = "IENDS_WITH"
    BETWEEN = "BETWEEN"
    BETWEEN_INCLUSIVE = "BETWEEN_INCLUSIVE"
    IS_NULL = "IS_NULL"
    NOT_NULL = "NOT_NULL"
    IS_EMPTY = "IS_EMPTY"
    NOT_EMPTY = "NOT_EMPTY"
    IN = "IN"
    NOT_IN = "NOT_IN"


# --- Operator groupings ---

COMPARISON_SYMBOLS: dict[Operator, str] = {
    Operator.EQUALS: "==",
    Operator.NOT_EQUAL: "!=",
    Operator.GREATER_THAN: ">",
    Operator.GREATER_OR_EQUAL: ">=",
    Operator.LESS_THAN: "<",
    Operator.LESS_OR_EQUAL: "<=",
}

# Function-style operators: (function name, negated)
FUNCTION_FORMS: dict[Operator, tuple[str, bool]] = {
    Operator.IEQUALS: ("iequals", False),
    Operator.INOT_EQUAL: ("iequals", True),
    Operator.CONTAINS: ("contains", False),
    Operator.NOT_CONTAINS: ("contains", True),
    Operator.ICONTAINS: ("icontains", False),
    Operator.STARTS_WITH: ("startsWith", False),
    Operator.ISTARTS_WITH: ("istartsWith", False),
    Operator.ENDS_WITH: ("endsWith", False),
    Operator.IENDS_WITH: ("iendsWith", False),
    Operator.BETWEEN: ("between", False),
    Operator.BETWEEN_INCLUSIVE: ("betweenInclusive", False),
    Operator.IS_EMPTY: ("isEmpty", False),
    Operator.NOT_EMPTY: ("isEmpty", True),
    Operator.IN: ("in", False),
    Operator.NOT_IN: ("in", True),
}

RANGE_OPERATORS = frozenset({Operator.BETWEEN, Operator.BETWEEN_INCLUSIVE})
LIST_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})
NULLARY_OPERATORS = frozenset(
    {Operator.IS_NULL, Operator.NOT_NULL, Operator.IS_EMPTY, Operator.NOT_EMPTY}
)

_NULL_CHECKS = {Operator.IS_NULL, Operator.NOT_NULL}
_ORDERING = {
    Operator.EQUALS,
    Operator.NOT_EQUAL,
    Operator.GREATER_THAN,
    Operator.GREATER_OR_EQUAL,
    Operator.LESS_THAN,
    Operator.LESS_OR_EQUAL,
    Operator.BETWEEN,
    Operator.BETWEEN_INCLUSIVE,
}

ALLOWED_OPERATORS: dict[RuleFieldType, frozenset[Operator]] = {
    RuleFieldType.STRING: frozenset(
        {
            Operator.EQUALS,
            Operator.NOT_EQUAL,
            Operator.IEQUALS,
            Operator.INOT_EQUAL,
            Operator.CONTAINS,
            Operator.NOT_CONTAINS,
            Operator.ICONTAINS,
            Operator.STARTS_WITH,
            Operator.ISTARTS_WITH,
            Operator.ENDS_WITH,
            Operator.IENDS_WITH,
            Operator.IS_EMPTY,
            Operator.NOT_EMPTY,
            Operator.IN,
            Operator.NOT_IN,
            *_NULL_CHECKS,
        }
    ),
    RuleFieldType.INTEGER: frozenset({*_ORDERING, *_NULL_CHECKS, *LIST_OPERATORS}),
    RuleFieldType.DECIMAL: frozenset({*_ORDERING, *_NULL_CHECKS, *LIST_OPERATORS}),
    RuleFieldType.MONEY: frozenset({*_ORDERING, *_NULL_CHECKS}),
    RuleFieldType.DATE: frozenset({*_ORDERING, *_NULL_CHECKS}),
    RuleFieldType.BOOLEAN: frozenset({Operator.EQUALS, Operator.NOT_EQUAL, *_NULL_CHECKS}),
    RuleFieldType.ENUMERATION: frozenset(
        {Operator.EQUALS, Operator.NOT_EQUAL, *LIST_OPERATORS, *_NULL_CHECKS}
    ),
}


def is_operator_allowed(field_type: RuleFieldType, operator: Operator) -> bool:
    """Check whether *operator* can be applied to a field of *field_type*."""
    return operator in ALLOWED_OPERATORS.get(field_type, frozenset())
