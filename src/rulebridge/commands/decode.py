"""Command: decode expression text into a rule snapshot."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from rulebridge.commands._base import RuleCommand

if TYPE_CHECKING:
    from rulebridge.commands._context import AppContext


@click.command(
    cls=RuleCommand,
    examples="""\
  rulebridge decode ORDER_FIELDS 'order.subTotal > 100 && order.itemCount >= 2'
  rulebridge decode CUSTOMER_FIELDS 'iendsWith(customer.emailAddress, "@example.com")'
  echo 'between(time.hour, 9, 17)' | rulebridge --json decode TIME_FIELDS -""",
)
@click.argument("identifier")
@click.argument("expression", default="-")
@click.pass_obj
def decode(app: AppContext, identifier: str, expression: str) -> None:
    """Decode EXPRESSION (or - for stdin) using the IDENTIFIER field service."""
    from rulebridge.services.translation import TranslationService

    if expression == "-":
        expression = click.get_text_stream("stdin").read()
    app.emit(TranslationService(app.field_services).decode(identifier, expression))
