"""Quantity rule reconciliation — full-replace-by-diff.

Clients always submit the complete list of rules they currently show, so
an entity missing from the submission was deleted by the user:

- entries with an id update the matching entity in place, writing only
  fields that actually changed
- entries without an id create new entities
- entities whose id was not submitted are removed

The whole plan (matches, encoded expressions, creations) is computed
before the collection is touched, so a stale id or an untranslatable entry
fails without mutating anything.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableSequence, MutableSet
from dataclasses import dataclass, field

from rulebridge.domain.dto import RuleEntry, RuleSnapshot
from rulebridge.domain.encoder import encode
from rulebridge.domain.entities import QuantityBasedRule, same_id
from rulebridge.domain.errors import DuplicateReferenceError, StaleReferenceError
from rulebridge.domain.fields import FieldService

logger = logging.getLogger(__name__)

RuleCollection = MutableSequence[QuantityBasedRule] | MutableSet[QuantityBasedRule]


@dataclass(slots=True)
class PlannedUpdate:
    """An existing entity and the values the snapshot wants it to hold."""

    rule: QuantityBasedRule
    quantity: int | None
    match_rule: str | None

    @property
    def changes(self) -> list[str]:
        changed: list[str] = []
        if self.rule.quantity != self.quantity:
            changed.append("quantity")
        if self.rule.match_rule != self.match_rule:
            changed.append("match_rule")
        return changed


@dataclass(slots=True)
class PlannedCreate:
    quantity: int | None
    match_rule: str | None


@dataclass(slots=True)
class ReconcilePlan:
    """Target membership computed before any mutation."""

    updates: list[PlannedUpdate] = field(default_factory=list)
    creations: list[PlannedCreate] = field(default_factory=list)
    removals: list[QuantityBasedRule] = field(default_factory=list)


@dataclass(slots=True)
class ReconcileResult:
    """Summary of the mutations applied to the collection."""

    updated: int = 0
    unchanged: int = 0
    created: list[QuantityBasedRule] = field(default_factory=list)
    removed: list[QuantityBasedRule] = field(default_factory=list)


def plan_reconciliation(
    existing: RuleCollection,
    snapshot: RuleSnapshot | None,
    entity_key: str,
    field_service: FieldService,
    *,
    target_type: str = QuantityBasedRule.__name__,
) -> ReconcilePlan | None:
    """Compute the update/create/remove plan for *snapshot*.

    Returns None when the snapshot is absent or empty: no snapshot is not
    "delete everything".

    Raises:
        StaleReferenceError: An entry's id matches no entity in *existing*.
        DuplicateReferenceError: Two entries carry the same id.
        TranslationError: An entry cannot be encoded.
    """
    if snapshot is None or snapshot.is_empty:
        return None

    plan = ReconcilePlan()
    claimed: set[int] = set()
    for entry in snapshot.data:
        match_rule = encode(entity_key, entry, field_service)
        if entry.id is None:
            plan.creations.append(PlannedCreate(quantity=entry.quantity, match_rule=match_rule))
            continue
        rule = _find_by_id(existing, entry)
        if rule is None:
            raise StaleReferenceError(entry.id, target_type)
        if id(rule) in claimed:
            raise DuplicateReferenceError(entry.id)
        claimed.add(id(rule))
        plan.updates.append(PlannedUpdate(rule=rule, quantity=entry.quantity, match_rule=match_rule))

    plan.removals = [rule for rule in existing if id(rule) not in claimed]
    return plan


def apply_plan(
    existing: RuleCollection,
    plan: ReconcilePlan,
    new_instance: Callable[[], QuantityBasedRule],
) -> ReconcileResult:
    """Apply *plan* to *existing* in place."""
    result = ReconcileResult()
    for update in plan.updates:
        changes = update.changes
        if not changes:
            result.unchanged += 1
            continue
        # Only write what differs; unchanged fields stay untouched.
        if "quantity" in changes:
            update.rule.quantity = update.quantity
        if "match_rule" in changes:
            update.rule.match_rule = update.match_rule
        result.updated += 1

    for create in plan.creations:
        rule = new_instance()
        rule.quantity = create.quantity
        rule.match_rule = create.match_rule
        result.created.append(rule)

    removed_ids = {id(rule) for rule in plan.removals}
    if isinstance(existing, MutableSet):
        for rule in plan.removals:
            existing.discard(rule)
        for rule in result.created:
            existing.add(rule)
    else:
        existing[:] = [rule for rule in existing if id(rule) not in removed_ids]
        existing.extend(result.created)
    result.removed = list(plan.removals)
    return result


def reconcile(
    existing: RuleCollection,
    snapshot: RuleSnapshot | None,
    entity_key: str,
    field_service: FieldService,
    new_instance: Callable[[], QuantityBasedRule],
) -> RuleCollection:
    """Reconcile *existing* against a full snapshot and return the collection.

    The collection is mutated in place and returned. See
    :func:`plan_reconciliation` for the failure modes.
    """
    target_type = getattr(new_instance, "__name__", QuantityBasedRule.__name__)
    plan = plan_reconciliation(
        existing, snapshot, entity_key, field_service, target_type=target_type
    )
    if plan is None:
        return existing
    result = apply_plan(existing, plan, new_instance)
    logger.debug(
        "Reconciled %s rules: %d updated, %d unchanged, %d created, %d removed",
        target_type,
        result.updated,
        result.unchanged,
        len(result.created),
        len(result.removed),
    )
    return existing


def _find_by_id(existing: RuleCollection, entry: RuleEntry) -> QuantityBasedRule | None:
    for rule in existing:
        if same_id(rule.id, entry.id):
            return rule
    return None
