"""ChangeService — apply a ChangeSet to the generated BUCK files.

Per entry:

- ``added`` / ``changed``: skip the workspace root (flushed separately)
  and, in separate mode, every first-party package; vendor, translate,
  merge configured fields from an existing BUCK file, write.
- ``removed``: skip ids under the workspace's own locator; otherwise parse
  the id and delete the vendored crate directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from buckal.domain.cargo import Package, parse_package_id, workspace_locator
from buckal.domain.changes import ChangeSet, ChangeType
from buckal.domain.rules import BuildRule, patch_rules, render_buck_file
from buckal.infrastructure.buckfile import read_buck_file
from buckal.infrastructure.filesystem import BUCK_FILENAME, ensure_vendor_dir
from buckal.infrastructure.workspace import WorkspaceTransaction
from buckal.services.context import TranslationContext
from buckal.services.translator import RuleGraphTranslator

logger = logging.getLogger(__name__)


def _action(verb: str, name: str, version: str) -> dict[str, str]:
    return {"verb": verb, "subject": f"{name} v{version}"}


def write_rules(
    txn: WorkspaceTransaction,
    buck_path: Path,
    rules: list[BuildRule],
    *,
    patch_fields: list[str],
    merge: bool = True,
) -> list[str]:
    """Merge *rules* with the BUCK file at *buck_path* if wanted, then write it.

    Returns the names of rules that took values from the existing file.
    """
    patched: list[str] = []
    if buck_path.exists() and merge and patch_fields:
        patched = patch_rules(read_buck_file(buck_path), rules, patch_fields)
        if patched:
            logger.debug("Kept manual edits in %s: %s", buck_path, ", ".join(patched))
    txn.write_file(buck_path, render_buck_file(rules))
    return patched


class ChangeService:
    """Drives vendoring, rule regeneration and deletion for a ChangeSet.

    Holds a TranslationContext rather than a Workspace so it can run
    against any prepared context; :class:`FlushService` supplies one.
    """

    def __init__(self, ctx: TranslationContext, *, separate: bool = False, merge: bool = True):
        self._ctx = ctx
        self._separate = separate
        self._merge = merge
        self._translator = RuleGraphTranslator(ctx)

    def apply(self, changes: ChangeSet, txn: WorkspaceTransaction) -> list[dict[str, str]]:
        """Apply every entry in package-id order. Returns the action log.

        Raises BuckalError or OSError on the first fatal condition.
        """
        actions: list[dict[str, str]] = []
        skip_prefix = workspace_locator(self._ctx.graph.workspace_root)

        for package_id, change in changes:
            if change is ChangeType.REMOVED:
                if package_id.startswith(skip_prefix):
                    continue
                parts = parse_package_id(package_id)
                actions.append(_action("Removing", parts.name, parts.full_version))
                for path in txn.remove_vendor(parts.name, parts.full_version):
                    logger.debug("Removed %s", path)
                continue

            if package_id == self._ctx.root_id:
                continue
            package = self._ctx.graph.packages.get(package_id)
            node = self._ctx.graph.nodes.get(package_id)
            if package is None or node is None:
                continue
            if self._separate and package.is_first_party:
                continue

            verb = "Adding" if change is ChangeType.ADDED else "Flushing"
            actions.append(_action(verb, package.name, package.version))
            self._regenerate(package, txn)
        return actions

    def _regenerate(self, package: Package, txn: WorkspaceTransaction) -> None:
        if package.is_first_party:
            directory = Path(package.manifest_dir)
        else:
            directory = ensure_vendor_dir(self._ctx.project_root, package.name, package.version)
        rules = self._translator.translate(package, self._ctx.graph.nodes[package.id])
        write_rules(
            txn,
            directory / BUCK_FILENAME,
            rules,
            patch_fields=self._ctx.repo.patch_fields,
            merge=self._merge,
        )

