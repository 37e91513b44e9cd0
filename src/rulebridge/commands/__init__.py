"""Subcommand modules for rulebridge.

Provides register_commands() which uses deferred imports to keep
``rulebridge --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from rulebridge.commands.decode import decode
    from rulebridge.commands.encode import encode
    from rulebridge.commands.fields import fields

    cli.add_command(encode)
    cli.add_command(decode)
    cli.add_command(fields)
