"""Workspace — the per-invocation view of the cargo workspace and Buck2 project.

The Workspace is the single dependency injected into every service. It
owns the lazily-loaded inputs of a run (cargo metadata, the resolved
graph, the checksum table, probed toolchain facts, the cell config) and
the :meth:`transaction` context manager used for rule-file writes:

- **Files**: each write is atomic on its own. Inside a transaction every
  written path is tracked; if the block raises, files that existed before
  are restored and newly created ones are deleted.
- **Inputs**: read once per Workspace and never mutated.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from buckal.domain.cargo import CargoMetadata, ResolvedGraph
from buckal.domain.errors import BuckalError
from buckal.domain.platform import Cfg
from buckal.infrastructure import toolchain
from buckal.infrastructure.buckconfig import BUCKCONFIG_FILENAME, CellConfig
from buckal.infrastructure.filesystem import remove_vendor_dir, write_rule_file
from buckal.infrastructure.graph.engine import DependencyGraph
from buckal.infrastructure.lockfile import load_checksums
from buckal.infrastructure.snapshot import SNAPSHOT_FILENAME

if TYPE_CHECKING:
    from collections.abc import Iterator

    from buckal.config.settings import BuckalSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# File operation tracking for compensation-based rollback
# ---------------------------------------------------------------------------


@dataclass
class _FileOp:
    path: Path
    backup: str | None  # previous content, None if the file was created

    def rollback(self) -> None:
        """Undo this write (best-effort)."""
        try:
            if self.backup is not None:
                write_rule_file(self.path, self.backup)
            else:
                self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to roll back write to %s", self.path)


@dataclass
class WorkspaceTransaction:
    """Tracks rule-file writes so a failed run can undo them."""

    workspace: Workspace
    _file_ops: list[_FileOp] = field(default_factory=list, repr=False)

    def write_file(self, path: Path, content: str) -> None:
        backup = path.read_text(encoding="utf-8") if path.exists() else None
        write_rule_file(path, content)
        self._file_ops.append(_FileOp(path=path, backup=backup))

    def remove_vendor(self, name: str, version: str) -> list[Path]:
        """Delete a vendored crate directory. Not undone on rollback."""
        return remove_vendor_dir(self.workspace.project_root, name, version)

    @property
    def written(self) -> list[Path]:
        return [op.path for op in self._file_ops]


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class Workspace:
    """Inputs and project layout for one run.

    Constructed once per CLI invocation from :class:`BuckalSettings` and
    stored on the click context. Every property is computed on first
    access, so commands that never touch cargo never run it.
    """

    def __init__(self, settings: BuckalSettings) -> None:
        self._settings = settings

    @property
    def settings(self) -> BuckalSettings:
        return self._settings

    @property
    def workspace_dir(self) -> Path:
        return self._settings.workspace_dir

    # ------------------------------------------------------------------
    # Probed environment
    # ------------------------------------------------------------------

    @cached_property
    def project_root(self) -> Path:
        """The Buck2 project root (``[toolchain] buck2_root`` or ``buck2 root``)."""
        override = self._settings.toolchain.buck2_root
        if override:
            return (self.workspace_dir / override).resolve()
        return toolchain.project_root(self._settings.toolchain.buck2, cwd=self.workspace_dir)

    @cached_property
    def target(self) -> str:
        override = self._settings.toolchain.target
        if override:
            return override
        return toolchain.host_target(self._settings.toolchain.rustc)

    @cached_property
    def cfgs(self) -> frozenset[Cfg]:
        override = self._settings.toolchain.cfgs
        if override is not None:
            return frozenset(Cfg.parse(line) for line in override)
        return toolchain.active_cfgs(self._settings.toolchain.rustc, self.target)

    # ------------------------------------------------------------------
    # Cargo inputs
    # ------------------------------------------------------------------

    @cached_property
    def metadata(self) -> CargoMetadata:
        """``cargo metadata`` from ``--metadata`` or a cargo subprocess."""
        raw: dict[str, Any]
        path = self._settings.metadata_path
        if path is not None:
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                msg = f"Invalid cargo metadata JSON in {path}: {exc}"
                raise BuckalError("INVALID_METADATA", msg, path=str(path)) from exc
        else:
            raw = toolchain.cargo_metadata(self._settings.toolchain.cargo, self.workspace_dir)
        try:
            return CargoMetadata.model_validate(raw)
        except ValidationError as exc:
            msg = f"Unexpected cargo metadata layout: {exc.error_count()} validation error(s)"
            raise BuckalError("INVALID_METADATA", msg) from exc

    @cached_property
    def graph(self) -> ResolvedGraph:
        """The resolved graph, checked for dependency cycles."""
        resolved = ResolvedGraph.from_metadata(self.metadata)
        DependencyGraph(resolved).validate()
        return resolved

    @cached_property
    def checksums(self) -> dict[str, str]:
        return load_checksums(Path(self.graph.workspace_root))

    # ------------------------------------------------------------------
    # Buck2 project files
    # ------------------------------------------------------------------

    @property
    def buckconfig_path(self) -> Path:
        return self.project_root / BUCKCONFIG_FILENAME

    def cell_config(self) -> CellConfig:
        """Parse ``.buckconfig`` fresh (it may be edited during a run)."""
        return CellConfig.load(self.buckconfig_path)

    @property
    def snapshot_path(self) -> Path:
        return self.project_root / SNAPSHOT_FILENAME

    @contextmanager
    def transaction(self) -> Iterator[WorkspaceTransaction]:
        """Group rule-file writes so they are undone together on failure.

        Usage::

            with workspace.transaction() as txn:
                txn.write_file(path, content)
        """
        txn = WorkspaceTransaction(workspace=self)
        try:
            yield txn
        except BaseException:
            for op in reversed(txn._file_ops):
                op.rollback()
            raise
