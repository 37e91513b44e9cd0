"""Rule-builder DTOs exchanged with the admin UI.

A :class:`RuleSnapshot` is the transport envelope (``{"data": [...]}``).
Each top-level :class:`RuleEntry` is one rule: a group of clauses plus the
quantity/id bookkeeping used by quantity-based rules. Groups nest; leaves
are :class:`ExpressionEntry` clauses.

Wire keys are camelCase (``groupOperator``, ``rawExpression``); Python
attributes are snake_case. Both spellings are accepted on input.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator
from pydantic.alias_generators import to_camel

from rulebridge.domain.types import DEFAULT_GROUP_OPERATOR, GroupOperator, Operator

_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _stringify(value: Any) -> Any:
    """Normalize scalar operands to the string form the UI sends."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class ExpressionEntry(BaseModel):
    """One clause: ``<field> <operator> <operand(s)>``."""

    model_config = _WIRE_CONFIG

    name: str
    operator: Operator
    value: str | list[str] | None = None
    start: str | None = None
    end: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [_stringify(item) for item in value]
        return _stringify(value)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_bound(cls, value: Any) -> Any:
        return _stringify(value)


def _node_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "clause" if "name" in value or "operator" in value else "group"
    return "clause" if isinstance(value, ExpressionEntry) else "group"


class RuleEntry(BaseModel):
    """A group of clauses; top-level entries also carry ``id``/``quantity``.

    ``id`` is set only when the entry mirrors a persisted rule instance.
    """

    model_config = _WIRE_CONFIG

    id: int | str | None = None
    quantity: int | None = None
    group_operator: GroupOperator = DEFAULT_GROUP_OPERATOR
    groups: list[RuleNode] = Field(default_factory=list)

    def clause_count(self) -> int:
        """Number of leaf clauses in this group, recursively."""
        total = 0
        for node in self.groups:
            total += node.clause_count() if isinstance(node, RuleEntry) else 1
        return total

    def clauses(self) -> list[ExpressionEntry]:
        """All leaf clauses in display order, flattened."""
        result: list[ExpressionEntry] = []
        for node in self.groups:
            if isinstance(node, RuleEntry):
                result.extend(node.clauses())
            else:
                result.append(node)
        return result


RuleNode = Annotated[
    Annotated[RuleEntry, Tag("group")] | Annotated[ExpressionEntry, Tag("clause")],
    Discriminator(_node_kind),
]

RuleEntry.model_rebuild()


class RuleSnapshot(BaseModel):
    """Transport envelope holding an ordered sequence of rule entries.

    Attributes:
        data: Rule entries in display order (matching is by id, never position).
        error: Set on extraction when a stored expression could not be decoded.
        raw_expression: The undecodable stored expression, shown raw in the UI.
    """

    model_config = _WIRE_CONFIG

    data: list[RuleEntry] = Field(default_factory=list)
    error: str | None = None
    raw_expression: str | None = None

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def is_empty(self) -> bool:
        return not self.data
