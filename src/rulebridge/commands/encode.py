"""Command: encode a rule snapshot into expression text."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from rulebridge.commands._base import RuleCommand

if TYPE_CHECKING:
    from rulebridge.commands._context import AppContext


@click.command(
    cls=RuleCommand,
    examples="""\
  rulebridge encode ORDER_FIELDS '{"data": [{"groupOperator": "AND", "groups": [{"name": "subTotal", "operator": "GREATER_THAN", "value": "100"}]}]}'
  cat snapshot.json | rulebridge encode CUSTOMER_FIELDS -
  rulebridge --json encode ORDER_ITEM_FIELDS - < rules.json""",
)
@click.argument("identifier")
@click.argument("snapshot", default="-")
@click.pass_obj
def encode(app: AppContext, identifier: str, snapshot: str) -> None:
    """Encode SNAPSHOT (JSON, or - for stdin) using the IDENTIFIER field service."""
    from rulebridge.services.translation import TranslationService

    if snapshot == "-":
        snapshot = click.get_text_stream("stdin").read()
    app.emit(TranslationService(app.field_services).encode(identifier, snapshot))
