"""Subcommand modules for buckal.

register_commands() imports lazily so ``buckal --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach every group and standalone command to the root group."""
    from buckal.commands.bundles import bundles
    from buckal.commands.cells import cells

    cli.add_command(cells)
    cli.add_command(bundles)

    from buckal.commands.flush import diff, flush

    cli.add_command(flush)
    cli.add_command(diff)
