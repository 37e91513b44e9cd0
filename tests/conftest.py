"""Shared pytest fixtures and test helpers for rulebridge tests."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from rulebridge.domain.dto import ExpressionEntry, RuleEntry
from rulebridge.domain.entities import QuantityBasedRule, SimpleRule
from rulebridge.domain.fields import FieldService
from rulebridge.infrastructure.database.engine import init_database
from rulebridge.services.field_services import FieldServiceResolver


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "rules.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def resolver() -> FieldServiceResolver:
    """Resolver holding only the built-in field services."""
    return FieldServiceResolver()


@pytest.fixture
def order_fields(resolver: FieldServiceResolver) -> FieldService:
    return resolver.create_instance("ORDER_FIELDS")


@pytest.fixture
def customer_fields(resolver: FieldServiceResolver) -> FieldService:
    return resolver.create_instance("CUSTOMER_FIELDS")


@pytest.fixture
def item_fields(resolver: FieldServiceResolver) -> FieldService:
    return resolver.create_instance("ORDER_ITEM_FIELDS")


@pytest.fixture
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run in an empty directory so no rulebridge.toml is discovered."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RULEBRIDGE_CONFIG", raising=False)


# ---------------------------------------------------------------------------
# Host entity types used by provider and repository tests
# ---------------------------------------------------------------------------


class OfferItemCriteria(QuantityBasedRule):
    """Host subclass so created entities carry a concrete runtime type."""


class CustomerRule(SimpleRule):
    pass


@dataclass
class Offer:
    """A host object with one field of every supported rule shape."""

    id: str = "offer-1"
    target_item_criteria: list[OfferItemCriteria] = field(default_factory=list)
    qualifying_item_criteria: set[OfferItemCriteria] = field(default_factory=set)
    applies_to_customer: CustomerRule | None = None
    applies_to_order_rules: str | None = None
    criteria_map: dict[str, CustomerRule] = field(default_factory=dict)
    single_criteria: OfferItemCriteria | None = None


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def clause(name: str, operator: str, value: Any = None, **bounds: Any) -> ExpressionEntry:
    """Build a clause the way the UI sends it."""
    return ExpressionEntry(name=name, operator=operator, value=value, **bounds)


def entry(*clauses: ExpressionEntry | RuleEntry, **kwargs: Any) -> RuleEntry:
    return RuleEntry(groups=list(clauses), **kwargs)
