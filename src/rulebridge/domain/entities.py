"""Persisted rule entities.

Hosts subclass these to give each rule field its own concrete runtime type
(e.g. ``OfferItemCriteria(QuantityBasedRule)``). Equality is identity:
reconciliation matches snapshot entries to entities by ``id`` and removes
entities by identity, never by value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class SimpleRule:
    """A rule holding a single match expression."""

    match_rule: str | None = None
    id: Any = None


@dataclass(eq=False)
class QuantityBasedRule:
    """A match expression paired with a quantity threshold."""

    match_rule: str | None = None
    quantity: int | None = None
    id: Any = None


def same_id(left: Any, right: Any) -> bool:
    """Compare two rule ids across wire types (``7`` matches ``"7"``).

    ``None`` never matches anything, including another ``None``.
    """
    if left is None or right is None:
        return False
    return str(left) == str(right)
