"""Rule persistence via SQLAlchemy Core."""

from rulebridge.infrastructure.database.engine import create_db_engine, init_database
from rulebridge.infrastructure.database.repository import RulePersister, RuleRepository
from rulebridge.infrastructure.database.schema import metadata, quantity_rules, simple_rules

__all__ = [
    "RulePersister",
    "RuleRepository",
    "create_db_engine",
    "init_database",
    "metadata",
    "quantity_rules",
    "simple_rules",
]
