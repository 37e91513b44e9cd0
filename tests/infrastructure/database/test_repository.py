"""Tests for RuleRepository (SQLAlchemy Core)."""

from pathlib import Path

import pytest
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from rulebridge.domain.entities import SimpleRule
from rulebridge.infrastructure.database import RuleRepository, create_db_engine, init_database
from tests.conftest import CustomerRule, OfferItemCriteria


class TestSchema:
    def test_tables_created(self, db_engine: Engine) -> None:
        names = set(inspect(db_engine).get_table_names())
        assert {"simple_rules", "quantity_rules"} <= names

    def test_in_memory_engine(self) -> None:
        engine = init_database()
        try:
            assert "simple_rules" in inspect(engine).get_table_names()
        finally:
            engine.dispose()

    def test_create_engine_url(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "x.db")
        assert str(engine.url).endswith("x.db")
        engine.dispose()


class TestSimpleRules:
    def test_persist_assigns_id(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        rule = SimpleRule(match_rule="customer.registered == true")
        repo.persist(rule)
        assert rule.id is not None
        loaded = repo.get_simple_rule(rule.id, CustomerRule)
        assert isinstance(loaded, CustomerRule)
        assert loaded.match_rule == "customer.registered == true"

    def test_persist_updates_existing(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        rule = SimpleRule(match_rule="a")
        repo.persist(rule)
        rule.match_rule = "b"
        repo.persist(rule)
        loaded = repo.get_simple_rule(rule.id)
        assert loaded is not None
        assert loaded.match_rule == "b"

    def test_missing(self, db_engine: Engine) -> None:
        assert RuleRepository(db_engine).get_simple_rule(404) is None


class TestQuantityRules:
    def test_save_and_load(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        rules = [OfferItemCriteria(match_rule="m1", quantity=2), OfferItemCriteria(match_rule="m2")]
        counts = repo.save_quantity_rules("offer-1", "targets", rules)
        assert counts == {"inserted": 2, "updated": 0, "deleted": 0}
        assert all(rule.id is not None for rule in rules)

        loaded = repo.load_quantity_rules("offer-1", "targets", OfferItemCriteria)
        assert [(r.match_rule, r.quantity) for r in loaded] == [("m1", 2), ("m2", 1)]
        assert all(isinstance(r, OfferItemCriteria) for r in loaded)

    def test_save_diffs_against_stored(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        first = OfferItemCriteria(match_rule="m1", quantity=1)
        second = OfferItemCriteria(match_rule="m2", quantity=1)
        repo.save_quantity_rules("offer-1", "targets", [first, second])

        first.quantity = 5
        third = OfferItemCriteria(match_rule="m3", quantity=1)
        counts = repo.save_quantity_rules("offer-1", "targets", [first, third])
        assert counts == {"inserted": 1, "updated": 1, "deleted": 1}
        loaded = repo.load_quantity_rules("offer-1", "targets")
        assert [(r.match_rule, r.quantity) for r in loaded] == [("m1", 5), ("m3", 1)]

    def test_collections_are_scoped_by_owner_and_field(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        repo.save_quantity_rules("offer-1", "targets", [OfferItemCriteria(match_rule="a")])
        repo.save_quantity_rules("offer-2", "targets", [OfferItemCriteria(match_rule="b")])
        assert [r.match_rule for r in repo.load_quantity_rules("offer-2", "targets")] == ["b"]
        assert repo.load_quantity_rules("offer-1", "qualifiers") == []

    def test_foreign_id_rejected(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        rule = OfferItemCriteria(match_rule="a")
        repo.save_quantity_rules("offer-1", "targets", [rule])
        with pytest.raises(ValueError, match="does not belong"):
            repo.save_quantity_rules("offer-2", "targets", [rule])

    def test_missing_quantity_on_update_stored_as_one(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        rule = OfferItemCriteria(match_rule='discreteOrderItem.name == "a"', quantity=2)
        repo.save_quantity_rules("offer-1", "targets", [rule])

        rule.quantity = None
        counts = repo.save_quantity_rules("offer-1", "targets", [rule])
        assert counts == {"inserted": 0, "updated": 1, "deleted": 0}
        loaded = repo.load_quantity_rules("offer-1", "targets")
        assert [(r.id, r.quantity) for r in loaded] == [(rule.id, 1)]

    def test_missing_quantity_matching_default_is_unchanged(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        rule = OfferItemCriteria(match_rule="a")
        repo.save_quantity_rules("offer-1", "targets", [rule])
        counts = repo.save_quantity_rules("offer-1", "targets", [rule])
        assert counts == {"inserted": 0, "updated": 0, "deleted": 0}

    def test_failed_save_leaves_new_rules_without_ids(self, db_engine: Engine) -> None:
        repo = RuleRepository(db_engine)
        new = OfferItemCriteria(match_rule="a", quantity=1)
        foreign = OfferItemCriteria(id=999, match_rule="b", quantity=1)
        with pytest.raises(ValueError, match="does not belong"):
            repo.save_quantity_rules("offer-1", "targets", [new, foreign])
        assert new.id is None
        assert repo.load_quantity_rules("offer-1", "targets") == []

        counts = repo.save_quantity_rules("offer-1", "targets", [new])
        assert counts == {"inserted": 1, "updated": 0, "deleted": 0}
        assert [r.id for r in repo.load_quantity_rules("offer-1", "targets")] == [new.id]
