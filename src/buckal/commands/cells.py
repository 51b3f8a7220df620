"""Command group: inspect cells and rewrite labels."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from buckal.commands._base import BuckalGroup

if TYPE_CHECKING:
    from buckal.commands._context import AppContext


@click.group(
    cls=BuckalGroup,
    examples="""\
  buckal cells list
  buckal cells resolve third-party/rust/crates/foo/1.0.0
  buckal cells rewrite //third-party/rust/crates/foo/1.0.0:foo --from app""",
)
def cells() -> None:
    """Inspect the cells declared in .buckconfig."""


@cells.command("list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List cells and their aliases."""
    from buckal.services.cells import CellService

    app.emit(CellService(app.workspace).list_cells())


@cells.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_obj
def resolve(app: AppContext, path: Path) -> None:
    """Print the cell owning PATH."""
    from buckal.services.cells import CellService

    app.emit(CellService(app.workspace).resolve(path))


@cells.command()
@click.argument("label")
@click.option(
    "--from",
    "from_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Directory of the BUCK file the label appears in.",
)
@click.pass_obj
def rewrite(app: AppContext, label: str, from_dir: Path) -> None:
    """Rewrite LABEL into its cell-relative form."""
    from buckal.services.cells import CellService

    app.emit(CellService(app.workspace).rewrite(label, from_dir=from_dir))
