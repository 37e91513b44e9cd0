"""Rule snapshot serializer — JSON text <-> :class:`RuleSnapshot`.

The public transport shape is ``{"data": [...]}``. A literal empty array,
an empty ``data`` list, or no text at all all mean "no rule" and yield None;
only text that is not valid JSON, or JSON of the wrong shape, is an error.

:func:`create_rule_data` builds the snapshot the UI displays from stored
rows (expression text plus optional quantity/id under named keys).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from rulebridge.domain.decoder import decode_entry
from rulebridge.domain.dto import RuleEntry, RuleSnapshot
from rulebridge.domain.entities import QuantityBasedRule, SimpleRule
from rulebridge.domain.errors import TranslationError
from rulebridge.domain.fields import FieldService

logger = logging.getLogger(__name__)

MATCH_RULE_KEY = "matchRule"
QUANTITY_KEY = "quantity"
ID_KEY = "id"

_DISPLAY_FIELDS = ("error", "raw_expression")


def deserialize(raw: str | None) -> RuleSnapshot | None:
    """Parse snapshot JSON. Returns None when no rule is configured.

    Accepts either the envelope object or a bare list of entries.

    Raises:
        TranslationError: If *raw* is not JSON or not a snapshot shape.
    """
    if raw is None or not raw.strip() or raw.strip() == "[]":
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Rule snapshot is not valid JSON: {exc.msg}"
        raise TranslationError(msg, position=exc.pos) from exc
    if isinstance(payload, list):
        payload = {"data": payload}
    try:
        snapshot = RuleSnapshot.model_validate(payload)
    except ValidationError as exc:
        msg = f"Rule snapshot has an invalid shape: {exc.error_count()} error(s)"
        raise TranslationError(msg) from exc
    if snapshot.is_empty:
        return None
    return snapshot


def serialize(snapshot: RuleSnapshot) -> str:
    """Render *snapshot* as wire JSON (camelCase keys).

    Entry ids are always written (``null`` for new entries); the display-only
    ``error``/``rawExpression`` keys are omitted unless set.
    """
    exclude = {name for name in _DISPLAY_FIELDS if getattr(snapshot, name) is None}
    return snapshot.model_dump_json(by_alias=True, exclude=exclude)


def create_rule_data(
    rows: Iterable[Mapping[str, Any]],
    field_service: FieldService,
    *,
    match_rule_key: str = MATCH_RULE_KEY,
    quantity_key: str | None = None,
    id_key: str | None = None,
) -> RuleSnapshot:
    """Decode stored rows into the snapshot the rule builder displays.

    Each row yields one entry; quantity and id are copied across from the
    keys named by *quantity_key* and *id_key* when given. If any expression
    fails to decode, the snapshot carries no entries but reports the error
    and the raw text so the stored rule can still be shown.
    """
    entries: list[RuleEntry] = []
    for row in rows:
        expression = row.get(match_rule_key)
        try:
            entry = decode_entry(expression, field_service)
        except TranslationError as exc:
            logger.warning(
                "Stored rule expression could not be decoded for %s: %s",
                field_service.identifier,
                exc,
            )
            return RuleSnapshot(data=[], error=str(exc), raw_expression=expression)
        if entry is None:
            entry = RuleEntry()
        updates: dict[str, Any] = {}
        if quantity_key is not None and row.get(quantity_key) is not None:
            updates["quantity"] = int(row[quantity_key])
        if id_key is not None:
            updates["id"] = row.get(id_key)
        entries.append(entry.model_copy(update=updates) if updates else entry)
    return RuleSnapshot(data=entries)


def simple_rule_rows(match_rule: str | None) -> list[dict[str, Any]]:
    """Rows for a simple rule field: one row, empty text when unset."""
    return [{MATCH_RULE_KEY: match_rule or ""}]


def quantity_rule_rows(rules: Iterable[QuantityBasedRule]) -> list[dict[str, Any]]:
    """Rows for a quantity rule collection, one per entity."""
    return [
        {MATCH_RULE_KEY: rule.match_rule, QUANTITY_KEY: rule.quantity, ID_KEY: rule.id}
        for rule in rules
    ]


def match_rule_of(value: Any) -> str | None:
    """Expression text held by a simple rule field value (text or entity)."""
    if isinstance(value, SimpleRule):
        return value.match_rule
    if isinstance(value, str):
        return value
    return None
