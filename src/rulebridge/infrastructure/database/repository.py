"""RuleRepository — load and store rule entities with SQLAlchemy Core.

The provider only needs :class:`RulePersister` (persist a freshly created
simple rule). Hosts that keep their quantity rule collections in the same
database use :meth:`RuleRepository.load_quantity_rules` before a populate
call and :meth:`RuleRepository.save_quantity_rules` after it, both inside
the caller's transaction boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import delete, insert, select, update

from rulebridge.domain.entities import QuantityBasedRule, SimpleRule
from rulebridge.infrastructure.database.schema import quantity_rules, simple_rules

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class RulePersister(Protocol):
    """Persistence capability the provider needs for new simple rules."""

    def persist(self, rule: SimpleRule) -> None: ...


class RuleRepository:
    """SQLite-backed store for simple and quantity-based rules."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Simple rules
    # ------------------------------------------------------------------

    def persist(self, rule: SimpleRule) -> None:
        """Insert *rule* (assigning its id) or update it if it has one."""
        with self._engine.begin() as conn:
            if rule.id is None:
                result = conn.execute(insert(simple_rules).values(match_rule=rule.match_rule))
                rule.id = result.inserted_primary_key[0]
                logger.debug("Persisted simple rule %s", rule.id)
            else:
                conn.execute(
                    update(simple_rules)
                    .where(simple_rules.c.id == rule.id)
                    .values(match_rule=rule.match_rule)
                )

    def get_simple_rule(
        self,
        rule_id: int,
        factory: Callable[[], SimpleRule] = SimpleRule,
    ) -> SimpleRule | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(simple_rules).where(simple_rules.c.id == rule_id)).first()
        if row is None:
            return None
        rule = factory()
        rule.id = row.id
        rule.match_rule = row.match_rule
        return rule

    # ------------------------------------------------------------------
    # Quantity rules
    # ------------------------------------------------------------------

    def load_quantity_rules(
        self,
        owner_id: str,
        field_name: str,
        factory: Callable[[], QuantityBasedRule] = QuantityBasedRule,
    ) -> list[QuantityBasedRule]:
        """Load the rule collection of one owner field, ordered by id."""
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(quantity_rules)
                .where(quantity_rules.c.owner_id == owner_id)
                .where(quantity_rules.c.field_name == field_name)
                .order_by(quantity_rules.c.id)
            ).all()
        result: list[QuantityBasedRule] = []
        for row in rows:
            rule = factory()
            rule.id = row.id
            rule.match_rule = row.match_rule
            rule.quantity = row.quantity
            result.append(rule)
        return result

    def save_quantity_rules(
        self,
        owner_id: str,
        field_name: str,
        rules: Iterable[QuantityBasedRule],
    ) -> dict[str, int]:
        """Make the stored collection equal to *rules* in one transaction.

        New rules (no id) are inserted; stored rows whose id is not among
        *rules* are deleted; the rest are updated only when a value differs.
        A missing quantity is stored as 1. New ids are assigned to the
        entities only once the transaction has committed.

        Returns:
            Counts keyed by ``inserted``, ``updated``, ``deleted``.

        Raises:
            ValueError: A rule carries an id stored under another owner field.
                Nothing is written.
        """
        rules = list(rules)
        counts = {"inserted": 0, "updated": 0, "deleted": 0}
        created: list[tuple[QuantityBasedRule, Any]] = []
        with self._engine.begin() as conn:
            stored = self._stored_rows(conn, owner_id, field_name)
            foreign = [rule.id for rule in rules if rule.id is not None and rule.id not in stored]
            if foreign:
                msg = f"Quantity rule {foreign[0]} does not belong to {owner_id}/{field_name}"
                raise ValueError(msg)

            kept: set[Any] = set()
            for rule in rules:
                values = {"match_rule": rule.match_rule, "quantity": _stored_quantity(rule)}
                if rule.id is None:
                    result = conn.execute(
                        insert(quantity_rules).values(
                            owner_id=owner_id, field_name=field_name, **values
                        )
                    )
                    created.append((rule, result.inserted_primary_key[0]))
                    counts["inserted"] += 1
                    continue
                kept.add(rule.id)
                if stored[rule.id] != (values["match_rule"], values["quantity"]):
                    conn.execute(
                        update(quantity_rules).where(quantity_rules.c.id == rule.id).values(**values)
                    )
                    counts["updated"] += 1
            stale = [rule_id for rule_id in stored if rule_id not in kept]
            if stale:
                conn.execute(delete(quantity_rules).where(quantity_rules.c.id.in_(stale)))
                counts["deleted"] = len(stale)
        for rule, new_id in created:
            rule.id = new_id
        logger.debug("Saved quantity rules for %s/%s: %s", owner_id, field_name, counts)
        return counts

    @staticmethod
    def _stored_rows(
        conn: Connection, owner_id: str, field_name: str
    ) -> dict[Any, tuple[str | None, int]]:
        rows = conn.execute(
            select(quantity_rules.c.id, quantity_rules.c.match_rule, quantity_rules.c.quantity)
            .where(quantity_rules.c.owner_id == owner_id)
            .where(quantity_rules.c.field_name == field_name)
        ).all()
        return {row.id: (row.match_rule, row.quantity) for row in rows}


def _stored_quantity(rule: QuantityBasedRule) -> int:
    return rule.quantity if rule.quantity is not None else 1
