"""Commands: flush generated rules, preview pending changes."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from buckal.commands._base import BuckalCommand

if TYPE_CHECKING:
    from buckal.commands._context import AppContext

_metadata_option = click.option(
    "--metadata",
    "metadata_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read `cargo metadata` JSON from a file instead of running cargo.",
)


@click.command(
    cls=BuckalCommand,
    examples="""\
  buckal flush
  buckal flush --no-merge
  buckal flush --separate
  buckal --json flush --metadata metadata.json""",
)
@click.option("--no-merge", is_flag=True, help="Discard manual edits in existing BUCK files.")
@click.option("--separate", is_flag=True, help="Leave other first-party packages untouched.")
@_metadata_option
@click.pass_obj
def flush(app: AppContext, no_merge: bool, separate: bool, metadata_path: Path | None) -> None:
    """Regenerate BUCK rules for every package that changed since the last flush."""
    from buckal.services.flush import FlushService

    app.override(metadata_path=metadata_path)
    app.emit(FlushService(app.workspace).flush(separate=separate, merge=not no_merge))


@click.command(
    cls=BuckalCommand,
    examples="""\
  buckal diff
  buckal --json diff""",
)
@_metadata_option
@click.pass_obj
def diff(app: AppContext, metadata_path: Path | None) -> None:
    """Show which packages the next flush would add, change or remove."""
    from buckal.services.flush import FlushService

    app.override(metadata_path=metadata_path)
    app.emit(FlushService(app.workspace).diff())
