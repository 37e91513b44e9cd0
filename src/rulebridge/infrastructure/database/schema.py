"""SQLAlchemy Core table definitions for persisted rule entities.

Simple rules are standalone rows referenced by their owner. Quantity rules
belong to one owner field: ``(owner_id, field_name)`` identifies the
collection a row is a member of.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, Integer, MetaData, Table, Text

metadata = MetaData()

simple_rules = Table(
    "simple_rules",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("match_rule", Text),
)

quantity_rules = Table(
    "quantity_rules",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Text, nullable=False),
    Column("field_name", Text, nullable=False),
    Column("match_rule", Text),
    Column("quantity", Integer, nullable=False, default=1, server_default="1"),
)

Index("ix_quantity_rules_owner", quantity_rules.c.owner_id, quantity_rules.c.field_name)
