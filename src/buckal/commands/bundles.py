"""Command group: manage the buckal bundle cell."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buckal.commands._base import BuckalGroup

if TYPE_CHECKING:
    from buckal.commands._context import AppContext


@click.group(
    cls=BuckalGroup,
    examples="""\
  buckal bundles init
  buckal bundles init --no-package
  buckal bundles update""",
)
def bundles() -> None:
    """Register or re-pin the external cell with the rule macros."""


@bundles.command()
@click.option("--no-package", is_flag=True, help="Do not write the root PACKAGE file.")
@click.pass_obj
def init(app: AppContext, no_package: bool) -> None:
    """Declare the buckal cell in .buckconfig."""
    from buckal.services.bundles import BundleService

    app.emit(BundleService(app.workspace).init(write_package=not no_package))


@bundles.command()
@click.pass_obj
def update(app: AppContext) -> None:
    """Pin the buckal cell to the latest bundle revision."""
    from buckal.services.bundles import BundleService

    app.emit(BundleService(app.workspace).update())
