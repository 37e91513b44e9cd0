"""Field services and field metadata.

A field service enumerates the fields a rule context exposes (the
``order`` context offers ``subTotal``, the ``customer`` context offers
``emailAddress``, ...). The codec only accepts field references that the
active field service knows about.

Field metadata is supplied by the host's admin metadata system and only
read here.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field

from rulebridge.domain.types import FieldType, RuleFieldType

MAP_FIELD_SEPARATOR = "."
JSON_SUFFIX = "Json"


class FieldDefinition(BaseModel):
    """One field a rule context exposes to the rule builder."""

    model_config = {"frozen": True}

    name: str
    label: str = ""
    type: RuleFieldType = RuleFieldType.STRING
    options: list[str] = Field(default_factory=list)


class FieldService(BaseModel):
    """Fields available to one rule context, keyed by rule identifier."""

    model_config = {"frozen": True}

    identifier: str
    entity_key: str
    fields: list[FieldDefinition] = Field(default_factory=list)

    def get_field(self, name: str) -> FieldDefinition | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def field_names(self) -> list[str]:
        return [field.name for field in self.fields]


@dataclass(frozen=True)
class FieldMetadata:
    """Admin metadata for one property of the requested instance.

    Attributes:
        name: Property name; ``container.key`` addresses a map entry.
        field_type: Admin field-type tag.
        rule_identifier: Selects the field service (e.g. ``ORDER_FIELDS``).
        map_value_type: Runtime type of values inside a map field, if known.
    """

    name: str
    field_type: FieldType
    rule_identifier: str | None = None
    map_value_type: type | None = None

    @property
    def is_rule(self) -> bool:
        return self.field_type in (FieldType.RULE_SIMPLE, FieldType.RULE_WITH_QUANTITY)

    @property
    def json_name(self) -> str:
        """Name of the synthetic display property carrying the snapshot JSON."""
        return f"{self.name}{JSON_SUFFIX}"


def _f(name: str, label: str, type_: RuleFieldType, *options: str) -> FieldDefinition:
    return FieldDefinition(name=name, label=label, type=type_, options=list(options))


_S = RuleFieldType.STRING
_I = RuleFieldType.INTEGER
_D = RuleFieldType.DECIMAL
_M = RuleFieldType.MONEY
_B = RuleFieldType.BOOLEAN
_T = RuleFieldType.DATE
_E = RuleFieldType.ENUMERATION

# Built-in rule contexts. Config can add services or replace these by identifier.
DEFAULT_FIELD_SERVICES: tuple[FieldService, ...] = (
    FieldService(
        identifier="ORDER_FIELDS",
        entity_key="order",
        fields=[
            _f("subTotal", "Order Subtotal", _M),
            _f("total", "Order Total", _M),
            _f("currency.currencyCode", "Currency Code", _S),
            _f("locale.localeCode", "Locale Code", _S),
            _f("itemCount", "Item Count", _I),
            _f("status", "Order Status", _E, "IN_PROCESS", "SUBMITTED", "CANCELLED"),
            _f("submitDate", "Submit Date", _T),
        ],
    ),
    FieldService(
        identifier="CUSTOMER_FIELDS",
        entity_key="customer",
        fields=[
            _f("emailAddress", "Email Address", _S),
            _f("firstName", "First Name", _S),
            _f("lastName", "Last Name", _S),
            _f("registered", "Is Registered", _B),
            _f("deactivated", "Is Deactivated", _B),
            _f("customerGroup", "Customer Group", _E, "RETAIL", "WHOLESALE", "VIP"),
        ],
    ),
    FieldService(
        identifier="ORDER_ITEM_FIELDS",
        entity_key="discreteOrderItem",
        fields=[
            _f("name", "Item Name", _S),
            _f("sku.name", "SKU Name", _S),
            _f("product.manufacturer", "Manufacturer", _S),
            _f("product.id", "Product Id", _I),
            _f("category.name", "Category Name", _S),
            _f("price", "Item Price", _M),
            _f("quantity", "Item Quantity", _I),
            _f("isOnSale", "Is On Sale", _B),
        ],
    ),
    FieldService(
        identifier="FULFILLMENT_GROUP_FIELDS",
        entity_key="fulfillmentGroup",
        fields=[
            _f("address.city", "City", _S),
            _f("address.postalCode", "Postal Code", _S),
            _f("address.country.abbreviation", "Country", _S),
            _f("retailFulfillmentPrice", "Retail Fulfillment Price", _M),
            _f("type", "Fulfillment Type", _E, "PHYSICAL_SHIP", "PHYSICAL_PICKUP", "DIGITAL"),
        ],
    ),
    FieldService(
        identifier="PRODUCT_FIELDS",
        entity_key="product",
        fields=[
            _f("name", "Product Name", _S),
            _f("manufacturer", "Manufacturer", _S),
            _f("model", "Model", _S),
            _f("id", "Product Id", _I),
            _f("defaultSku.retailPrice", "Retail Price", _M),
            _f("weight", "Weight", _D),
        ],
    ),
    FieldService(
        identifier="TIME_FIELDS",
        entity_key="time",
        fields=[
            _f("hour", "Hour of Day", _I),
            _f("dayOfWeek", "Day of Week", _I),
            _f("dayOfMonth", "Day of Month", _I),
            _f("month", "Month", _I),
            _f("date", "Date", _T),
        ],
    ),
    FieldService(
        identifier="REQUEST_FIELDS",
        entity_key="request",
        fields=[
            _f("requestURI", "Request URI", _S),
            _f("fullUrl", "Full URL", _S),
            _f("secure", "Is Secure", _B),
        ],
    ),
)
