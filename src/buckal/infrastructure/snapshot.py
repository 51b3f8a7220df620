"""Snapshot cache — per-package fingerprints of the last flushed graph.

Stored as ``buckal.snap`` (JSON) at the Buck2 project root. Diffing the
stored snapshot against a fresh one yields the ChangeSet that drives the
change applier. A missing snapshot behaves like an empty one, so every
package comes out as added.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from buckal.domain.cargo import Node, Package, ResolvedGraph
from buckal.domain.changes import ChangeSet, diff_fingerprints
from buckal.domain.errors import BuckalError

SNAPSHOT_FILENAME = "buckal.snap"
SNAPSHOT_VERSION = 1


def fingerprint(package: Package, node: Node | None) -> str:
    """Stable digest of everything that affects a package's generated rules."""
    payload = {
        "version": package.version,
        "source": package.source,
        "features": sorted(node.features) if node else [],
        "deps": sorted(
            [
                dep.name,
                dep.pkg,
                sorted(f"{k.kind.value}:{k.target or ''}" for k in dep.dep_kinds),
            ]
            for dep in (node.deps if node else [])
        ),
        "targets": sorted(
            [t.name, sorted(t.kind), t.src_path, t.edition] for t in package.targets
        ),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class Snapshot(BaseModel):
    """Package id → fingerprint table."""

    version: int = SNAPSHOT_VERSION
    fingerprints: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_graph(cls, graph: ResolvedGraph) -> Snapshot:
        return cls(
            fingerprints={
                package_id: fingerprint(package, graph.nodes.get(package_id))
                for package_id, package in graph.packages.items()
            }
        )

    @classmethod
    def load(cls, path: Path) -> Snapshot:
        """Read a snapshot; a missing file is an empty snapshot."""
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            msg = f"Corrupt snapshot {path}; delete it to regenerate every package"
            raise BuckalError("INVALID_SNAPSHOT", msg, path=str(path)) from exc

    def diff(self, new: Snapshot) -> ChangeSet:
        return diff_fingerprints(self.fingerprints, new.fingerprints)
