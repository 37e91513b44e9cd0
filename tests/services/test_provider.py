"""Tests for RuleFieldProvider — populate, extract, and filter."""

import json

import pytest
from sqlalchemy.engine import Engine

from rulebridge.domain.entities import SimpleRule
from rulebridge.domain.errors import (
    RulePersistenceError,
    StaleReferenceError,
    TranslationError,
    UnknownRuleIdentifierError,
    UnsupportedFieldError,
)
from rulebridge.domain.fields import FieldMetadata
from rulebridge.domain.properties import Entity, Property
from rulebridge.domain.types import FieldType
from rulebridge.infrastructure.accessors import AttributeFieldAccessor
from rulebridge.infrastructure.database import RuleRepository
from rulebridge.services.field_services import FieldServiceResolver
from rulebridge.services.provider import (
    ExtractValueRequest,
    FilterPropertiesRequest,
    PopulateValueRequest,
    RuleFieldProvider,
)
from tests.conftest import CustomerRule, Offer, OfferItemCriteria

_CUSTOMER = FieldMetadata("applies_to_customer", FieldType.RULE_SIMPLE, "CUSTOMER_FIELDS")
_ORDER_TEXT = FieldMetadata("applies_to_order_rules", FieldType.RULE_SIMPLE, "ORDER_FIELDS")
_TARGETS = FieldMetadata("target_item_criteria", FieldType.RULE_WITH_QUANTITY, "ORDER_ITEM_FIELDS")


class RecordingPersister:
    def __init__(self) -> None:
        self.persisted: list[SimpleRule] = []

    def persist(self, rule: SimpleRule) -> None:
        rule.id = len(self.persisted) + 1
        self.persisted.append(rule)


def _rule_json(*clauses: dict, **extra: object) -> str:
    return json.dumps({"data": [{"groupOperator": "AND", "groups": list(clauses), **extra}]})


def _clause(name: str, operator: str, value: object = None) -> dict:
    return {"name": name, "operator": operator, "value": value}


@pytest.fixture
def persister() -> RecordingPersister:
    return RecordingPersister()


@pytest.fixture
def provider(resolver: FieldServiceResolver, persister: RecordingPersister) -> RuleFieldProvider:
    return RuleFieldProvider(resolver, persister)


def _populate(
    provider: RuleFieldProvider, metadata: FieldMetadata, instance: object, value: str | None
) -> bool:
    return provider.populate_value(
        PopulateValueRequest(
            metadata=metadata,
            instance=instance,
            requested_value=value,
            accessor=AttributeFieldAccessor(),
        )
    )


class TestPopulateSimpleRule:
    def test_creates_persists_and_assigns(
        self, provider: RuleFieldProvider, persister: RecordingPersister
    ) -> None:
        offer = Offer()
        handled = _populate(
            provider, _CUSTOMER, offer, _rule_json(_clause("registered", "EQUALS", "true"))
        )
        assert handled is True
        assert isinstance(offer.applies_to_customer, CustomerRule)
        assert offer.applies_to_customer.match_rule == "customer.registered == true"
        assert persister.persisted == [offer.applies_to_customer]

    def test_existing_rule_is_mutated_not_replaced(
        self, provider: RuleFieldProvider, persister: RecordingPersister
    ) -> None:
        offer = Offer()
        _populate(provider, _CUSTOMER, offer, _rule_json(_clause("registered", "EQUALS", "true")))
        created = offer.applies_to_customer
        _populate(
            provider, _CUSTOMER, offer, _rule_json(_clause("firstName", "EQUALS", "Bob"))
        )
        assert offer.applies_to_customer is created
        assert created.match_rule == 'customer.firstName == "Bob"'
        assert len(persister.persisted) == 1

    def test_repeat_with_same_text_keeps_single_rule(
        self, provider: RuleFieldProvider, persister: RecordingPersister
    ) -> None:
        offer = Offer()
        snapshot = _rule_json(_clause("registered", "EQUALS", "true"))
        _populate(provider, _CUSTOMER, offer, snapshot)
        created = offer.applies_to_customer
        _populate(provider, _CUSTOMER, offer, snapshot)
        assert offer.applies_to_customer is created
        assert created.match_rule == "customer.registered == true"
        assert persister.persisted == [created]

    def test_empty_snapshot_creates_nothing(
        self, provider: RuleFieldProvider, persister: RecordingPersister
    ) -> None:
        offer = Offer()
        assert _populate(provider, _CUSTOMER, offer, "[]") is True
        assert offer.applies_to_customer is None
        assert persister.persisted == []

    def test_empty_snapshot_clears_existing_rule(self, provider: RuleFieldProvider) -> None:
        offer = Offer(applies_to_customer=CustomerRule(match_rule="customer.registered == true"))
        _populate(provider, _CUSTOMER, offer, None)
        assert offer.applies_to_customer.match_rule is None

    def test_text_field_stores_expression(self, provider: RuleFieldProvider) -> None:
        offer = Offer()
        _populate(provider, _ORDER_TEXT, offer, _rule_json(_clause("subTotal", "GREATER_THAN", 50)))
        assert offer.applies_to_order_rules == "order.subTotal > 50"

    def test_multiple_entries_yield_no_expression(self, provider: RuleFieldProvider) -> None:
        offer = Offer(applies_to_order_rules="order.subTotal > 50")
        two = json.dumps(
            {
                "data": [
                    {"groups": [_clause("itemCount", "EQUALS", 1)]},
                    {"groups": [_clause("itemCount", "EQUALS", 2)]},
                ]
            }
        )
        _populate(provider, _ORDER_TEXT, offer, two)
        assert offer.applies_to_order_rules is None

    def test_map_field_uses_map_value_type(
        self, provider: RuleFieldProvider, persister: RecordingPersister
    ) -> None:
        metadata = FieldMetadata(
            "criteria_map.vip",
            FieldType.RULE_SIMPLE,
            "CUSTOMER_FIELDS",
            map_value_type=CustomerRule,
        )
        offer = Offer()
        _populate(
            provider, metadata, offer, _rule_json(_clause("customerGroup", "EQUALS", "VIP"))
        )
        rule = offer.criteria_map["vip"]
        assert isinstance(rule, CustomerRule)
        assert rule.match_rule == 'customer.customerGroup == "VIP"'
        assert persister.persisted == [rule]

    def test_explicit_return_type_wins(self, provider: RuleFieldProvider) -> None:
        offer = Offer()
        provider.populate_value(
            PopulateValueRequest(
                metadata=_CUSTOMER,
                instance=offer,
                requested_value=_rule_json(_clause("registered", "EQUALS", "false")),
                accessor=AttributeFieldAccessor(),
                return_type=str,
            )
        )
        assert offer.applies_to_customer == "customer.registered == false"

    def test_unsupported_value_type(self, provider: RuleFieldProvider) -> None:
        metadata = FieldMetadata("id", FieldType.RULE_SIMPLE, "ORDER_FIELDS")
        with pytest.raises(RulePersistenceError):
            provider.populate_value(
                PopulateValueRequest(
                    metadata=metadata,
                    instance=Offer(),
                    requested_value="[]",
                    accessor=AttributeFieldAccessor(),
                    return_type=int,
                )
            )

    def test_lazy_creation_without_persister(self, resolver: FieldServiceResolver) -> None:
        offer = Offer()
        _populate(
            RuleFieldProvider(resolver),
            _CUSTOMER,
            offer,
            _rule_json(_clause("registered", "EQUALS", "true")),
        )
        assert offer.applies_to_customer.id is None


class TestPopulateQuantityRules:
    def test_creates_entities_of_element_type(self, provider: RuleFieldProvider) -> None:
        offer = Offer()
        value = _rule_json(_clause("quantity", "GREATER_OR_EQUAL", 2), quantity=3)
        assert _populate(provider, _TARGETS, offer, value) is True
        (created,) = offer.target_item_criteria
        assert isinstance(created, OfferItemCriteria)
        assert created.quantity == 3
        assert created.match_rule == "discreteOrderItem.quantity >= 2"

    def test_reconciles_against_existing(self, provider: RuleFieldProvider) -> None:
        keep = OfferItemCriteria(match_rule="discreteOrderItem.quantity >= 2", quantity=1, id=1)
        drop = OfferItemCriteria(match_rule="discreteOrderItem.quantity >= 9", quantity=1, id=2)
        offer = Offer(target_item_criteria=[keep, drop])
        value = _rule_json(_clause("quantity", "GREATER_OR_EQUAL", 2), quantity=4, id="1")
        _populate(provider, _TARGETS, offer, value)
        assert offer.target_item_criteria == [keep]
        assert keep.quantity == 4

    def test_set_field(self, provider: RuleFieldProvider) -> None:
        metadata = FieldMetadata(
            "qualifying_item_criteria", FieldType.RULE_WITH_QUANTITY, "ORDER_ITEM_FIELDS"
        )
        offer = Offer()
        _populate(provider, metadata, offer, _rule_json(_clause("isOnSale", "EQUALS", True)))
        assert len(offer.qualifying_item_criteria) == 1

    def test_empty_value_is_noop(self, provider: RuleFieldProvider) -> None:
        existing = OfferItemCriteria(match_rule="discreteOrderItem.quantity >= 2", id=1)
        offer = Offer(target_item_criteria=[existing])
        _populate(provider, _TARGETS, offer, "")
        assert offer.target_item_criteria == [existing]

    def test_stale_id_is_wrapped(self, provider: RuleFieldProvider) -> None:
        offer = Offer()
        value = _rule_json(_clause("quantity", "EQUALS", 1), id=99)
        with pytest.raises(RulePersistenceError) as exc_info:
            _populate(provider, _TARGETS, offer, value)
        assert isinstance(exc_info.value.cause, StaleReferenceError)
        assert isinstance(exc_info.value.__cause__, StaleReferenceError)
        assert offer.target_item_criteria == []

    def test_scalar_field_is_unsupported(self, provider: RuleFieldProvider) -> None:
        metadata = FieldMetadata("single_criteria", FieldType.RULE_WITH_QUANTITY, "ORDER_ITEM_FIELDS")
        with pytest.raises(RulePersistenceError) as exc_info:
            _populate(provider, metadata, Offer(), _rule_json(_clause("quantity", "EQUALS", 1)))
        assert isinstance(exc_info.value.cause, UnsupportedFieldError)

    def test_translation_failure_is_wrapped(self, provider: RuleFieldProvider) -> None:
        with pytest.raises(RulePersistenceError) as exc_info:
            _populate(provider, _TARGETS, Offer(), "{not json")
        assert isinstance(exc_info.value.cause, TranslationError)


class TestPopulateDispatch:
    def test_non_rule_field_not_handled(self, provider: RuleFieldProvider) -> None:
        metadata = FieldMetadata("id", FieldType.STRING)
        assert _populate(provider, metadata, Offer(), "x") is False

    def test_unknown_identifier_is_wrapped(self, provider: RuleFieldProvider) -> None:
        metadata = FieldMetadata("applies_to_customer", FieldType.RULE_SIMPLE, "NOPE")
        with pytest.raises(RulePersistenceError) as exc_info:
            _populate(provider, metadata, Offer(), "[]")
        assert isinstance(exc_info.value.cause, UnknownRuleIdentifierError)

    def test_persists_through_repository(
        self, resolver: FieldServiceResolver, db_engine: Engine
    ) -> None:
        repo = RuleRepository(db_engine)
        offer = Offer()
        _populate(
            RuleFieldProvider(resolver, repo),
            _CUSTOMER,
            offer,
            _rule_json(_clause("registered", "EQUALS", "true")),
        )
        stored = repo.get_simple_rule(offer.applies_to_customer.id)
        assert stored is not None
        assert stored.match_rule == "customer.registered == true"


def _extract(
    provider: RuleFieldProvider, metadata: FieldMetadata, value: object
) -> tuple[Property, list[Property]]:
    prop = Property(name=metadata.name)
    props: list[Property] = []
    request = ExtractValueRequest(
        metadata=metadata,
        requested_value=value,
        requested_property=prop,
        props=props,
        display_value="shown",
    )
    assert provider.extract_value(request) is True
    return prop, props


class TestExtractValue:
    def test_simple_rule_entity(self, provider: RuleFieldProvider) -> None:
        rule = CustomerRule(match_rule="customer.registered == true")
        prop, props = _extract(provider, _CUSTOMER, rule)
        assert prop.value == "customer.registered == true"
        assert prop.display_value == "shown"
        (synthetic,) = props
        assert synthetic.name == "applies_to_customerJson"
        payload = json.loads(synthetic.value)
        assert payload["data"][0]["groups"][0]["name"] == "registered"

    def test_unset_simple_rule(self, provider: RuleFieldProvider) -> None:
        prop, props = _extract(provider, _CUSTOMER, None)
        assert prop.value is None
        payload = json.loads(props[0].value)
        assert payload["data"][0]["groups"] == []

    def test_quantity_rules_carry_ids(self, provider: RuleFieldProvider) -> None:
        rules = [
            OfferItemCriteria(match_rule="discreteOrderItem.quantity >= 2", quantity=3, id=5),
        ]
        _, props = _extract(provider, _TARGETS, rules)
        rule = json.loads(props[0].value)["data"][0]
        assert (rule["id"], rule["quantity"]) == (5, 3)

    def test_quantity_rules_on_scalar_value(self, provider: RuleFieldProvider) -> None:
        with pytest.raises(UnsupportedFieldError, match="only supported on collection fields"):
            _extract(provider, _TARGETS, OfferItemCriteria(quantity=1))

    def test_undecodable_stored_rule(self, provider: RuleFieldProvider) -> None:
        _, props = _extract(provider, _CUSTOMER, "customer.registered ==")
        payload = json.loads(props[0].value)
        assert payload["data"] == []
        assert payload["rawExpression"] == "customer.registered =="
        assert payload["error"]

    def test_non_rule_field_not_handled(self, provider: RuleFieldProvider) -> None:
        request = ExtractValueRequest(
            metadata=FieldMetadata("id", FieldType.STRING),
            requested_value="x",
            requested_property=Property(name="id"),
        )
        assert provider.extract_value(request) is False
        assert request.props == []


class TestFilterProperties:
    def test_json_value_moves_onto_canonical_property(self, provider: RuleFieldProvider) -> None:
        entity = Entity([Property("foo", "old"), Property("fooJson", '{"data": []}')])
        request = FilterPropertiesRequest(
            entity=entity,
            requested_properties={"foo": FieldMetadata("foo", FieldType.RULE_SIMPLE, "ORDER_FIELDS")},
        )
        assert provider.filter_properties(request) is True
        assert entity.property_names() == ["foo"]
        assert entity.properties[0].value == '{"data": []}'

    def test_missing_canonical_property_is_created(self, provider: RuleFieldProvider) -> None:
        entity = Entity([Property("name", "x"), Property("barJson", "v")])
        metadata = FieldMetadata("bar", FieldType.RULE_WITH_QUANTITY, "ORDER_ITEM_FIELDS")
        provider.filter_properties(FilterPropertiesRequest(entity, {"bar": metadata}))
        assert entity.property_names() == ["name", "bar"]
        assert entity.find_property("bar").value == "v"

    def test_non_rule_json_property_kept(self, provider: RuleFieldProvider) -> None:
        entity = Entity([Property("bazJson", "v")])
        metadata = FieldMetadata("baz", FieldType.STRING)
        provider.filter_properties(FilterPropertiesRequest(entity, {"baz": metadata}))
        assert entity.property_names() == ["bazJson"]

    def test_prefix_of_longer_name_does_not_match(self, provider: RuleFieldProvider) -> None:
        entity = Entity([Property("fooBarJson", "v")])
        metadata = FieldMetadata("foo", FieldType.RULE_SIMPLE, "ORDER_FIELDS")
        provider.filter_properties(FilterPropertiesRequest(entity, {"foo": metadata}))
        assert entity.property_names() == ["fooBarJson"]
