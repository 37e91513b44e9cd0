"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Builds the field service resolver from settings and
centralizes result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from rulebridge.output.formatters import format_result

if TYPE_CHECKING:
    from rulebridge.config.settings import RuleSettings
    from rulebridge.services.field_services import FieldServiceResolver
    from rulebridge.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The resolver is built lazily so ``--help`` and ``--version`` never
    validate configured field services.
    """

    def __init__(self, settings: RuleSettings) -> None:
        self.settings = settings
        self._field_services: FieldServiceResolver | None = None

        from rulebridge.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def field_services(self) -> FieldServiceResolver:
        """Resolver with built-in and configured field services."""
        if self._field_services is None:
            from rulebridge.services.field_services import FieldServiceResolver

            try:
                self._field_services = FieldServiceResolver.from_settings(self.settings)
            except ValueError as exc:
                raise click.ClickException(str(exc)) from exc
        return self._field_services

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        json_output = self.settings.json_output
        output = format_result(result, json_output=json_output)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
