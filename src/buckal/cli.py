"""Root CLI group for buckal with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from buckal import __version__
from buckal.commands import register_commands
from buckal.commands._context import AppContext
from buckal.config.settings import BuckalSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="buckal")
@click.option("--json", "json_output", is_flag=True, help="Print the ServiceResult as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Only print errors and requested values.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and error details.")
@click.option("--log-json", is_flag=True, help="Emit stderr logs as JSON lines.")
@click.option(
    "-c", "--config", "config_path", default=None, help="Use this buckal.toml instead of searching."
)
@click.option(
    "--manifest-dir",
    "workspace_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory of the workspace Cargo.toml (default: current directory).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    workspace_dir: Path | None,
) -> None:
    """buckal — generate Buck2 rules from a Cargo dependency graph."""
    flags = {"json_output": json_output, "quiet": quiet, "verbose": verbose, "log_json": log_json}
    ctx.obj = AppContext(
        BuckalSettings.from_cli(config_path=config_path, workspace_dir=workspace_dir, **flags)
    )
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
