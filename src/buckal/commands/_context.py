"""AppContext — shared Click context for all commands.

Created once by the root group and passed to subcommands with
``@click.pass_obj``. The workspace is built lazily so ``--help`` and
``--version`` never probe cargo or buck2.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from buckal.config.logging import configure_logging
from buckal.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from buckal.config.settings import BuckalSettings
    from buckal.infrastructure.workspace import Workspace
    from buckal.services.result import ServiceResult


class AppContext:
    """Settings, the lazily created Workspace, and result emission."""

    def __init__(self, settings: BuckalSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    def override(self, **fields: Any) -> None:
        """Apply command-level settings (``--metadata`` etc.).

        Must run before the workspace is first used. ``None`` values are
        skipped so unset options keep the configured value.
        """
        updates = {key: value for key, value in fields.items() if value is not None}
        if updates:
            self.settings = self.settings.model_copy(update=updates)
            self._workspace = None

    @property
    def workspace(self) -> Workspace:
        if self._workspace is None:
            from buckal.infrastructure.workspace import Workspace

            self._workspace = Workspace(self.settings)
        return self._workspace

    def emit(self, result: ServiceResult) -> None:
        """Print a ServiceResult and set the exit status.

        Success goes to stdout with warnings on stderr; failure goes to
        stderr and exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            if output:
                click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
            click.echo(output, err=True)
            raise SystemExit(1)
