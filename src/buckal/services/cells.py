"""CellService — read-only views over ``.buckconfig`` cells and labels."""

from __future__ import annotations

from pathlib import Path

from buckal.domain.errors import BuckalError
from buckal.infrastructure.filesystem import relative_to_root
from buckal.services.base import BaseService
from buckal.services.result import ServiceResult


class CellService(BaseService):
    """List cells, resolve owning cells, rewrite labels."""

    def list_cells(self) -> ServiceResult:
        try:
            config = self._workspace.cell_config()
        except (BuckalError, OSError) as exc:
            return self._failure("list_cells", exc)
        cell_map = config.cell_map()
        return ServiceResult(
            ok=True,
            op="list_cells",
            data={
                "cells": dict(sorted(cell_map.cells.items())),
                "aliases": {
                    alias: cell_map.canonical(alias) for alias in sorted(cell_map.aliases)
                },
            },
        )

    def resolve(self, path: Path) -> ServiceResult:
        """Find the cell owning *path* (absolute, or relative to the cwd)."""
        try:
            root = self._workspace.project_root
            relative = relative_to_root(path.resolve(), root.resolve())
            cell = self._workspace.cell_config().cell_map().owning_cell(relative)
        except (BuckalError, OSError) as exc:
            return self._failure("resolve_cell", exc)
        return ServiceResult(
            ok=True,
            op="resolve_cell",
            data={"path": relative or ".", "cell": cell},
        )

    def rewrite(self, label: str, *, from_dir: Path) -> ServiceResult:
        """Rewrite *label* as it would appear in a BUCK file under *from_dir*."""
        try:
            root = self._workspace.project_root.resolve()
            at_root = from_dir.resolve() == root
            rewritten = self._workspace.cell_config().cell_map().rewrite(label, at_root=at_root)
        except (BuckalError, OSError) as exc:
            return self._failure("rewrite_label", exc)
        return ServiceResult(
            ok=True,
            op="rewrite_label",
            data={"label": label, "rewritten": rewritten, "at_root": at_root},
        )
