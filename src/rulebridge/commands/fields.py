"""Command: list the fields each rule context exposes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from rulebridge.commands._base import RuleCommand

if TYPE_CHECKING:
    from rulebridge.commands._context import AppContext


@click.command(
    cls=RuleCommand,
    examples="""\
  rulebridge fields
  rulebridge fields ORDER_FIELDS
  rulebridge --json fields CUSTOMER_FIELDS""",
)
@click.argument("identifier", required=False)
@click.pass_obj
def fields(app: AppContext, identifier: str | None) -> None:
    """List field services, or the fields of IDENTIFIER."""
    from rulebridge.services.translation import TranslationService

    app.emit(TranslationService(app.field_services).list_fields(identifier))
