"""FlushService — bring every generated BUCK file in line with the cargo graph.

Pipeline:

1. fingerprint the resolved graph and diff it against ``buckal.snap``;
2. apply the resulting ChangeSet (vendor, regenerate, remove);
3. regenerate the workspace root package's BUCK file;
4. with ``inherit_workspace_deps``, regenerate ``third-party/rust/BUCK``;
5. save the new snapshot.

All writes share one workspace transaction: if any step fails, rule files
written earlier in the run are restored.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path

from buckal.domain.cargo import Package, version_key
from buckal.domain.changes import ChangeSet
from buckal.domain.errors import BuckalError
from buckal.domain.rules import Alias, render_buck_file
from buckal.infrastructure.filesystem import BUCK_FILENAME, THIRD_PARTY_ALIAS_DIR
from buckal.infrastructure.snapshot import Snapshot
from buckal.infrastructure.workspace import WorkspaceTransaction
from buckal.services.base import BaseService
from buckal.services.changes import ChangeService, write_rules
from buckal.services.classifier import third_party_label
from buckal.services.context import TranslationContext, context_for
from buckal.services.result import ServiceResult
from buckal.services.translator import PUBLIC, RuleGraphTranslator

logger = logging.getLogger(__name__)


def third_party_aliases(ctx: TranslationContext) -> list[Alias]:
    """One alias per third-party crate depended on by any first-party package.

    Each alias points at the highest version present in the graph.
    """
    versions: dict[str, list[Package]] = defaultdict(list)
    for package_id, package in ctx.graph.packages.items():
        node = ctx.graph.nodes.get(package_id)
        if not package.is_first_party or node is None:
            continue
        for dep in node.deps:
            dependency = ctx.graph.packages.get(dep.pkg)
            if dependency is not None and not dependency.is_first_party:
                versions[dependency.name].append(dependency)

    alias_dir = ctx.project_root / THIRD_PARTY_ALIAS_DIR
    aliases: list[Alias] = []
    for name in sorted(versions):
        latest = max(versions[name], key=lambda p: version_key(p.version))
        aliases.append(
            Alias(
                name=name,
                actual=ctx.rewrite(third_party_label(latest), alias_dir),
                visibility={PUBLIC},
            )
        )
    return aliases


class FlushService(BaseService):
    """Synchronize generated rules with the current dependency graph."""

    def flush(self, *, separate: bool = False, merge: bool = True) -> ServiceResult:
        """Run the full pipeline.

        ``separate`` leaves first-party packages other than the root alone;
        ``merge=False`` ignores manual edits in existing BUCK files.
        """
        ctx: TranslationContext | None = None
        actions: list[dict[str, str]] = []
        try:
            ctx = context_for(self._workspace)
            previous = Snapshot.load(self._workspace.snapshot_path)
            current = Snapshot.from_graph(ctx.graph)
            changes = previous.diff(current)
            logger.debug("Snapshot diff: %s", changes.counts())

            with self._workspace.transaction() as txn:
                service = ChangeService(ctx, separate=separate, merge=merge)
                actions.extend(service.apply(changes, txn))
                actions.extend(self._flush_root(ctx, txn, merge=merge))
                if ctx.repo.inherit_workspace_deps:
                    actions.extend(self._write_aliases(ctx, txn))
                txn.write_file(
                    self._workspace.snapshot_path,
                    current.model_dump_json(indent=2) + "\n",
                )
                written = [str(p) for p in txn.written]
        except (BuckalError, OSError) as exc:
            return self._failure(
                "flush",
                exc,
                actions=actions,
                warnings=ctx.warnings if ctx is not None else [],
            )

        return ServiceResult(
            ok=True,
            op="flush",
            data={
                "counts": changes.counts(),
                "changes": {package_id: change.value for package_id, change in changes},
                "written": written,
            },
            actions=actions,
            warnings=ctx.warnings,
        )

    def diff(self) -> ServiceResult:
        """Report what a flush would change, without writing anything."""
        try:
            graph = self._workspace.graph
            previous = Snapshot.load(self._workspace.snapshot_path)
            changes: ChangeSet = previous.diff(Snapshot.from_graph(graph))
        except (BuckalError, OSError) as exc:
            return self._failure("diff", exc)
        return ServiceResult(
            ok=True,
            op="diff",
            data={
                "counts": changes.counts(),
                "changes": {package_id: change.value for package_id, change in changes},
            },
        )

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _flush_root(
        self, ctx: TranslationContext, txn: WorkspaceTransaction, *, merge: bool
    ) -> list[dict[str, str]]:
        root = ctx.graph.root
        node = ctx.graph.nodes.get(root.id)
        if node is None:
            msg = f"Root package {root.name} has no node in the resolve graph"
            raise BuckalError("INVALID_METADATA", msg, package_id=root.id)
        rules = RuleGraphTranslator(ctx).buckify_root_node(root, node)
        write_rules(
            txn,
            Path(root.manifest_dir) / BUCK_FILENAME,
            rules,
            patch_fields=ctx.repo.patch_fields,
            merge=merge,
        )
        return [{"verb": "Flushing", "subject": f"{root.name} v{root.version}"}]

    def _write_aliases(
        self, ctx: TranslationContext, txn: WorkspaceTransaction
    ) -> list[dict[str, str]]:
        path = ctx.project_root / THIRD_PARTY_ALIAS_DIR / BUCK_FILENAME
        txn.write_file(path, render_buck_file(third_party_aliases(ctx), loads=()))
        return [{"verb": "Generating", "subject": f"third-party alias rules at {path}"}]
