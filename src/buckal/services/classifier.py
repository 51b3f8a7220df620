"""Dependency classifier — which edges a compilation unit sees, and as what.

Edge selection by unit kind:

- normal edges apply to every unit except the build script,
- build edges apply only to the build script,
- dev edges apply only to tests (in addition to normal edges).

An edge also needs its platform predicate, when present, to match the
active target triple and cfg set.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePath

from buckal.domain.cargo import DepKindInfo, DependencyKind, Node, NodeDep, Package
from buckal.domain.errors import BuckalError
from buckal.domain.platform import platform_matches
from buckal.domain.rules import RustRule
from buckal.infrastructure.filesystem import RUST_CRATES_ROOT, relative_to_root
from buckal.services.context import TranslationContext


class UnitRole(StrEnum):
    """How a compile rule consumes its package's dependency edges."""

    LIBRARY = "lib"
    BINARY = "bin"
    TEST = "test"
    BUILD_SCRIPT = "custom-build"


def kind_applies(kind: DependencyKind, role: UnitRole) -> bool:
    if kind is DependencyKind.NORMAL:
        return role is not UnitRole.BUILD_SCRIPT
    if kind is DependencyKind.BUILD:
        return role is UnitRole.BUILD_SCRIPT
    return role is UnitRole.TEST


def edge_applies(info: DepKindInfo, role: UnitRole, ctx: TranslationContext) -> bool:
    return kind_applies(info.kind, role) and platform_matches(info.target, ctx.target, ctx.cfgs)


def select_edges(node: Node, role: UnitRole, ctx: TranslationContext) -> Iterator[NodeDep]:
    """Edges of *node* that apply to a unit with *role*, in resolve order."""
    for dep in node.deps:
        kinds = dep.dep_kinds or [DepKindInfo()]
        if any(edge_applies(info, role, ctx) for info in kinds):
            yield dep


# ---------------------------------------------------------------------------
# Rule naming and labels
# ---------------------------------------------------------------------------


def library_rule_name(package: Package) -> str:
    """Rule name of a first-party package's single library unit.

    Raises BuckalError (``MISSING_LIBRARY``) unless exactly one library
    unit exists. The name gains a ``lib`` prefix when a binary shares it.
    """
    libraries = package.library_targets
    if len(libraries) != 1:
        msg = (
            f"Expected exactly one library target for dependency {package.name}, "
            f"but found {len(libraries)}"
        )
        raise BuckalError(
            "MISSING_LIBRARY", msg, package=package.name, found=len(libraries)
        )
    name = libraries[0].name
    if any(b.name == name for b in package.binary_targets):
        return f"lib{name}"
    return name


def third_party_label(package: Package) -> str:
    return f"//{RUST_CRATES_ROOT}/{package.name}/{package.version}:{package.name}"


def alias_label(package: Package) -> str:
    return f"//third-party/rust:{package.name}"


def first_party_label(package: Package, ctx: TranslationContext) -> str:
    relative = relative_to_root(package.manifest_dir, ctx.project_root)
    return f"//{relative}:{library_rule_name(package)}"


def dependency_label(consumer: Package, dependency: Package, ctx: TranslationContext) -> str:
    """Un-rewritten label of *dependency* as seen from *consumer*."""
    if dependency.is_first_party:
        return first_party_label(dependency, ctx)
    if ctx.repo.inherit_workspace_deps and consumer.id == ctx.root_id:
        return alias_label(dependency)
    return third_party_label(dependency)


# ---------------------------------------------------------------------------
# Wiring deps into a rule
# ---------------------------------------------------------------------------


def set_deps(
    rule: RustRule,
    package: Package,
    node: Node,
    role: UnitRole,
    ctx: TranslationContext,
    *,
    declaring_dir: PurePath,
) -> None:
    """Add every applicable dependency of *node* to *rule*.

    Renamed dependencies (in-source name differs from the normalized
    package name) go to ``named_deps``; the rest to ``deps``.
    """
    for dep in select_edges(node, role, ctx):
        dependency = ctx.graph.packages.get(dep.pkg)
        if dependency is None:
            continue
        label = ctx.rewrite(dependency_label(package, dependency, ctx), declaring_dir)
        if dep.name != dependency.normalized_name:
            rule.named_deps[dep.name] = label
        else:
            rule.deps.add(label)
