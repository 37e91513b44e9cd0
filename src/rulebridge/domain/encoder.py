"""Forward codec: rule DTO tree -> expression text.

Pure functions, no infrastructure dependencies. The output grammar is the
one :mod:`rulebridge.domain.decoder` reads back:

- ``order.subTotal >= 100`` for comparisons, ``== null`` / ``!= null`` for
  null checks
- ``contains(customer.firstName, "bo")`` style calls for string, range,
  emptiness and membership operators, prefixed with ``!`` when negated
- ``&&`` / ``||`` between clauses, parentheses around nested groups
"""

from __future__ import annotations

import json
import re
from datetime import datetime

from rulebridge.domain.dto import ExpressionEntry, RuleEntry
from rulebridge.domain.errors import TranslationError
from rulebridge.domain.fields import FieldDefinition, FieldService
from rulebridge.domain.types import (
    COMPARISON_SYMBOLS,
    FUNCTION_FORMS,
    LIST_OPERATORS,
    NULLARY_OPERATORS,
    NUMERIC_TYPES,
    RANGE_OPERATORS,
    GroupOperator,
    Operator,
    RuleFieldType,
    is_operator_allowed,
)

_JOINERS = {GroupOperator.AND: " && ", GroupOperator.OR: " || "}
_INTEGER_PATTERN = re.compile(r"^-?\d+$")
_DECIMAL_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


def encode(entity_key: str, entry: RuleEntry, field_service: FieldService) -> str | None:
    """Translate one rule entry into expression text.

    Returns None when the entry holds no clauses ("no rule configured").

    Raises:
        TranslationError: If a clause references an unknown field, uses an
            operator the field's type does not support, or carries operands
            that are not valid for the field's type.
    """
    text = _encode_group(entity_key, entry, field_service, nested=False)
    return text or None


def encode_clause(entity_key: str, clause: ExpressionEntry, field_service: FieldService) -> str:
    """Translate a single clause into expression text."""
    field = field_service.get_field(clause.name)
    if field is None:
        msg = (
            f"Unknown field {clause.name!r} for rule context "
            f"{field_service.identifier} ({entity_key})"
        )
        raise TranslationError(msg)
    operator = clause.operator
    if not is_operator_allowed(field.type, operator):
        msg = f"Operator {operator} is not supported for {field.type} field {clause.name!r}"
        raise TranslationError(msg)

    ref = f"{entity_key}.{clause.name}"
    if operator is Operator.IS_NULL:
        return f"{ref} == null"
    if operator is Operator.NOT_NULL:
        return f"{ref} != null"
    if operator in COMPARISON_SYMBOLS:
        return f"{ref} {COMPARISON_SYMBOLS[operator]} {_literal(field, clause.value, operator)}"

    function, negated = FUNCTION_FORMS[operator]
    if operator in NULLARY_OPERATORS:
        args = [ref]
    elif operator in RANGE_OPERATORS:
        args = [
            ref,
            _literal(field, clause.start, operator),
            _literal(field, clause.end, operator),
        ]
    elif operator in LIST_OPERATORS:
        args = [ref, _list_literal(field, clause.value, operator)]
    else:
        args = [ref, _literal(field, clause.value, operator)]
    call = f"{function}({', '.join(args)})"
    return f"!{call}" if negated else call


def quote(text: str) -> str:
    """Render *text* as a double-quoted string literal."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _encode_group(
    entity_key: str,
    group: RuleEntry,
    field_service: FieldService,
    *,
    nested: bool,
) -> str:
    parts: list[str] = []
    for node in group.groups:
        if isinstance(node, RuleEntry):
            sub = _encode_group(entity_key, node, field_service, nested=True)
            if sub:
                parts.append(sub)
        else:
            parts.append(encode_clause(entity_key, node, field_service))
    if not parts:
        return ""
    text = _JOINERS[group.group_operator].join(parts)
    if nested and len(parts) > 1:
        return f"({text})"
    return text


def _literal(field: FieldDefinition, value: str | list[str] | None, operator: Operator) -> str:
    """Render one operand as a literal of the field's type."""
    if value is None or isinstance(value, list):
        msg = f"Operator {operator} on field {field.name!r} requires a single value"
        raise TranslationError(msg)

    if field.type in (RuleFieldType.STRING, RuleFieldType.ENUMERATION):
        if field.type is RuleFieldType.ENUMERATION and field.options and value not in field.options:
            msg = f"Value {value!r} is not one of {field.options} for field {field.name!r}"
            raise TranslationError(msg)
        return quote(value)

    text = value.strip()
    if field.type in NUMERIC_TYPES:
        pattern = _INTEGER_PATTERN if field.type is RuleFieldType.INTEGER else _DECIMAL_PATTERN
        if not pattern.match(text):
            msg = f"Value {value!r} is not a valid {field.type} for field {field.name!r}"
            raise TranslationError(msg)
        return text
    if field.type is RuleFieldType.BOOLEAN:
        lowered = text.lower()
        if lowered not in ("true", "false"):
            msg = f"Value {value!r} is not a boolean for field {field.name!r}"
            raise TranslationError(msg)
        return lowered
    # DATE
    try:
        datetime.fromisoformat(text)
    except ValueError as exc:
        msg = f"Value {value!r} is not an ISO date for field {field.name!r}"
        raise TranslationError(msg) from exc
    return f"date({quote(text)})"


def _list_literal(
    field: FieldDefinition, value: str | list[str] | None, operator: Operator
) -> str:
    items: list[str]
    if isinstance(value, list):
        items = value
    elif value is None or not value.strip():
        items = []
    else:
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = [value]
        items = [str(item) for item in parsed] if isinstance(parsed, list) else [value]
    if not items:
        msg = f"Operator {operator} on field {field.name!r} requires at least one value"
        raise TranslationError(msg)
    return "[" + ", ".join(_literal(field, item, operator) for item in items) + "]"
