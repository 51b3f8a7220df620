"""TranslationContext — read-only inputs shared by one translation pass."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from buckal.config.models import RepoConfig
from buckal.domain.cargo import Package, ResolvedGraph
from buckal.domain.cells import CellMap
from buckal.domain.errors import BuckalError
from buckal.domain.platform import Cfg
from buckal.infrastructure.filesystem import vendor_dir

if TYPE_CHECKING:
    from buckal.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class TranslationContext:
    """Everything the translator and classifier read during a run.

    ``load_cells`` is called at most once, the first time a label needs
    rewriting; its result (or failure) is cached for the rest of the run.
    """

    graph: ResolvedGraph
    project_root: Path
    checksums: Mapping[str, str]
    target: str
    cfgs: frozenset[Cfg]
    repo: RepoConfig = field(default_factory=RepoConfig)
    platforms: Mapping[str, list[str]] = field(default_factory=dict)
    load_cells: Callable[[], CellMap] | None = None
    warnings: list[str] = field(default_factory=list)
    _cells: CellMap | None = field(default=None, init=False, repr=False)
    _cells_error: Exception | None = field(default=None, init=False, repr=False)

    @property
    def root_id(self) -> str:
        return self.graph.root_id

    def declaring_dir(self, package: Package) -> PurePath:
        """Directory of the BUCK file generated for *package*."""
        if package.is_first_party:
            return package.manifest_dir
        return vendor_dir(self.project_root, package.name, package.version)

    def warn(self, message: str) -> None:
        logger.warning(message)
        if message not in self.warnings:
            self.warnings.append(message)

    def _cell_map(self) -> CellMap:
        if self._cells_error is not None:
            raise self._cells_error
        if self._cells is None:
            if self.load_cells is None:
                self._cells = CellMap()
            else:
                try:
                    self._cells = self.load_cells()
                except (OSError, UnicodeDecodeError, BuckalError) as exc:
                    self._cells_error = exc
                    raise
        return self._cells

    def rewrite(self, label: str, declaring_dir: PurePath) -> str:
        """Cell-align *label* for a BUCK file in *declaring_dir*.

        Returns *label* unchanged when ``align_cells`` is off. A failure to
        load the cell map is a warning and also yields *label* unchanged.
        """
        if not self.repo.align_cells:
            return label
        try:
            cells = self._cell_map()
        except (OSError, UnicodeDecodeError, BuckalError) as exc:
            self.warn(f"Failed to rewrite target label '{label}': {exc}")
            return label
        at_root = PurePath(declaring_dir) == PurePath(self.project_root)
        return cells.rewrite(label, at_root=at_root)


def context_for(workspace: Workspace) -> TranslationContext:
    """Build a TranslationContext from a workspace's inputs and settings."""
    settings = workspace.settings
    return TranslationContext(
        graph=workspace.graph,
        project_root=workspace.project_root,
        checksums=workspace.checksums,
        target=workspace.target,
        cfgs=workspace.cfgs,
        repo=settings.repo,
        platforms=settings.platforms,
        load_cells=lambda: workspace.cell_config().cell_map(),
    )
