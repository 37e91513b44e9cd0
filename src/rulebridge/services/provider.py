"""RuleFieldProvider — populate, extract, and filter rule fields.

Dispatches on the field-type tag:

- ``RULE_SIMPLE``: the snapshot's single entry is encoded and stored either
  as plain text or on a :class:`SimpleRule` entity (created lazily, mutated
  thereafter).
- ``RULE_WITH_QUANTITY``: the snapshot is reconciled against the field's
  collection of :class:`QuantityBasedRule` entities.

On the way out every rule field gains a synthetic ``<name>Json`` property
carrying the snapshot; :meth:`RuleFieldProvider.filter_properties` folds
those back onto the canonical property names.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rulebridge.domain.encoder import encode
from rulebridge.domain.entities import QuantityBasedRule, SimpleRule
from rulebridge.domain.errors import RulePersistenceError, UnsupportedFieldError
from rulebridge.domain.fields import JSON_SUFFIX, MAP_FIELD_SEPARATOR, FieldMetadata
from rulebridge.domain.properties import Entity, Property
from rulebridge.domain.reconcile import apply_plan, plan_reconciliation
from rulebridge.domain.snapshot import (
    ID_KEY,
    QUANTITY_KEY,
    create_rule_data,
    deserialize,
    match_rule_of,
    quantity_rule_rows,
    serialize,
    simple_rule_rows,
)
from rulebridge.domain.types import FieldType

if TYPE_CHECKING:
    from rulebridge.domain.fields import FieldService
    from rulebridge.infrastructure.accessors import FieldAccessor
    from rulebridge.infrastructure.database.repository import RulePersister
    from rulebridge.services.field_services import FieldServiceResolver

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass
class PopulateValueRequest:
    """Incoming value for one field of the requested instance.

    Attributes:
        metadata: Admin metadata for the field.
        instance: The object being populated.
        requested_value: Snapshot JSON from the client (or None/empty).
        accessor: Field access on *instance*.
        return_type: Declared type of the field, when the caller knows it.
    """

    metadata: FieldMetadata
    instance: Any
    requested_value: str | None
    accessor: FieldAccessor
    return_type: type | None = None


@dataclass
class ExtractValueRequest:
    """Current value of one field being rendered for the admin UI."""

    metadata: FieldMetadata
    requested_value: Any
    requested_property: Property
    props: list[Property] = field(default_factory=list)
    display_value: str | None = None


@dataclass
class FilterPropertiesRequest:
    """Outgoing entity plus the metadata of every requested property."""

    entity: Entity
    requested_properties: Mapping[str, FieldMetadata]


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class RuleFieldProvider:
    """Translates rule fields between snapshot JSON and stored rules."""

    def __init__(
        self,
        field_services: FieldServiceResolver,
        persister: RulePersister | None = None,
    ) -> None:
        self._field_services = field_services
        self._persister = persister

    @staticmethod
    def can_handle(metadata: FieldMetadata) -> bool:
        return metadata.is_rule

    # ------------------------------------------------------------------
    # Populate
    # ------------------------------------------------------------------

    def populate_value(self, request: PopulateValueRequest) -> bool:
        """Store the incoming snapshot on the requested instance.

        Returns False when the field is not a rule field.

        Raises:
            RulePersistenceError: Wrapping whatever failed (translation,
                stale ids, unsupported field shapes, missing fields).
        """
        metadata = request.metadata
        if not self.can_handle(metadata):
            return False
        try:
            match metadata.field_type:
                case FieldType.RULE_WITH_QUANTITY:
                    self._populate_quantity_rules(request)
                case FieldType.RULE_SIMPLE:
                    self._populate_simple_rule(request)
        except Exception as exc:
            logger.warning("Failed to populate rule field %s: %s", metadata.name, exc)
            raise RulePersistenceError(metadata.name, exc) from exc
        return True

    def _populate_quantity_rules(self, request: PopulateValueRequest) -> None:
        name = request.metadata.name
        service = self._field_service(request.metadata)
        value_type = request.accessor.resolve_element_type(request.instance, name)
        if not issubclass(value_type, QuantityBasedRule):
            raise UnsupportedFieldError(
                name, f"{value_type.__name__} is not a quantity-based rule type"
            )

        rules = request.accessor.get(request.instance, name)
        if rules is None:
            rules = []
            request.accessor.set(request.instance, name, rules)
        if not isinstance(rules, Collection) or isinstance(rules, str):
            raise UnsupportedFieldError(name, "quantity rules require a collection value")

        snapshot = deserialize(request.requested_value)
        plan = plan_reconciliation(
            rules,
            snapshot,
            service.entity_key,
            service,
            target_type=value_type.__name__,
        )
        if plan is None:
            return
        result = apply_plan(rules, plan, value_type)
        logger.debug(
            "Reconciled %s: %d updated, %d unchanged, %d created, %d removed",
            name,
            result.updated,
            result.unchanged,
            len(result.created),
            len(result.removed),
        )

    def _populate_simple_rule(self, request: PopulateValueRequest) -> None:
        name = request.metadata.name
        service = self._field_service(request.metadata)
        expression = self._simple_expression(request.requested_value, service)

        value_type = self._simple_value_type(request)
        if value_type is None:
            raise UnsupportedFieldError(name, "unable to determine the value type")
        if issubclass(value_type, str):
            request.accessor.set(request.instance, name, expression)
            return
        if not issubclass(value_type, SimpleRule):
            raise UnsupportedFieldError(name, f"{value_type.__name__} cannot hold a simple rule")

        rule = request.accessor.get(request.instance, name)
        if rule is not None:
            if rule.match_rule != expression:
                rule.match_rule = expression
            return
        if expression is None:
            return
        rule = value_type()
        rule.match_rule = expression
        if self._persister is not None:
            self._persister.persist(rule)
        request.accessor.set(request.instance, name, rule)
        logger.debug("Created %s for %s", value_type.__name__, name)

    def _simple_expression(self, raw: str | None, service: FieldService) -> str | None:
        snapshot = deserialize(raw)
        # A simple rule field holds exactly one rule entry.
        if snapshot is None or len(snapshot.data) != 1:
            return None
        return encode(service.entity_key, snapshot.data[0], service)

    @staticmethod
    def _simple_value_type(request: PopulateValueRequest) -> type | None:
        name = request.metadata.name
        if MAP_FIELD_SEPARATOR in name and request.metadata.map_value_type is not None:
            return request.metadata.map_value_type
        if request.return_type is not None:
            return request.return_type
        return request.accessor.resolve_value_type(request.instance, name)

    # ------------------------------------------------------------------
    # Extract
    # ------------------------------------------------------------------

    def extract_value(self, request: ExtractValueRequest) -> bool:
        """Append the ``<name>Json`` display property for a rule field.

        Returns False when the field is not a rule field.

        Raises:
            UnsupportedFieldError: A quantity rule field holds a single value.
        """
        metadata = request.metadata
        if not self.can_handle(metadata):
            return False
        service = self._field_service(metadata)
        value = request.requested_value

        match metadata.field_type:
            case FieldType.RULE_SIMPLE:
                expression = match_rule_of(value)
                if isinstance(value, (str, SimpleRule)):
                    request.requested_property.value = expression
                    request.requested_property.display_value = request.display_value
                snapshot = create_rule_data(simple_rule_rows(expression), service)
            case FieldType.RULE_WITH_QUANTITY:
                if value is None:
                    value = []
                if not isinstance(value, Collection) or isinstance(value, (str, Mapping)):
                    raise UnsupportedFieldError(
                        metadata.name,
                        "RULE_WITH_QUANTITY is only supported on collection fields; "
                        "a single field with this type is not supported",
                    )
                snapshot = create_rule_data(
                    quantity_rule_rows(value),
                    service,
                    quantity_key=QUANTITY_KEY,
                    id_key=ID_KEY,
                )
        request.props.append(Property(name=metadata.json_name, value=serialize(snapshot)))
        return True

    # ------------------------------------------------------------------
    # Filter
    # ------------------------------------------------------------------

    def filter_properties(self, request: FilterPropertiesRequest) -> bool:
        """Fold every ``<name>Json`` property onto its canonical rule property."""
        kept: list[Property] = []
        additional: list[Property] = []
        entity = request.entity
        for prop in entity.properties:
            metadata = self._rule_metadata_for(prop.name, request.requested_properties)
            if metadata is None:
                kept.append(prop)
                continue
            canonical = entity.find_property(metadata.name)
            if canonical is None:
                canonical = next((p for p in additional if p.name == metadata.name), None)
            if canonical is None:
                canonical = Property(name=metadata.name)
                additional.append(canonical)
            canonical.value = prop.value
        entity.properties = [*kept, *additional]
        return True

    @staticmethod
    def _rule_metadata_for(
        name: str, requested: Mapping[str, FieldMetadata]
    ) -> FieldMetadata | None:
        if not name.endswith(JSON_SUFFIX):
            return None
        metadata = requested.get(name[: -len(JSON_SUFFIX)])
        if metadata is None or not metadata.is_rule:
            return None
        return metadata

    # ------------------------------------------------------------------

    def _field_service(self, metadata: FieldMetadata) -> FieldService:
        if not metadata.rule_identifier:
            raise UnsupportedFieldError(metadata.name, "no rule identifier configured")
        return self._field_services.create_instance(metadata.rule_identifier)
