"""Cargo metadata models — the resolved package graph consumed per run.

Models mirror the JSON emitted by ``cargo metadata --format-version 1``.
Unknown keys are ignored so newer cargo releases keep parsing.

INVARIANT: A ResolvedGraph is read-only for the duration of a run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel, Field, field_validator

from buckal.domain.errors import BuckalError


class TargetKind(StrEnum):
    """Compilation unit kinds as reported by cargo."""

    LIB = "lib"
    RLIB = "rlib"
    DYLIB = "dylib"
    CDYLIB = "cdylib"
    STATICLIB = "staticlib"
    PROC_MACRO = "proc-macro"
    BIN = "bin"
    EXAMPLE = "example"
    TEST = "test"
    BENCH = "bench"
    CUSTOM_BUILD = "custom-build"


LIBRARY_KINDS: frozenset[TargetKind] = frozenset(
    {
        TargetKind.LIB,
        TargetKind.RLIB,
        TargetKind.DYLIB,
        TargetKind.CDYLIB,
        TargetKind.STATICLIB,
        TargetKind.PROC_MACRO,
    }
)


class DependencyKind(StrEnum):
    """Dependency edge kinds. Cargo reports normal edges as ``null``."""

    NORMAL = "normal"
    DEVELOPMENT = "dev"
    BUILD = "build"


# ---------------------------------------------------------------------------
# Metadata models
# ---------------------------------------------------------------------------


class Target(BaseModel):
    """One compilation unit of a package."""

    model_config = {"frozen": True}

    name: str
    kind: list[str]
    src_path: str
    edition: str = "2015"
    test: bool = True

    def has_kind(self, kind: TargetKind) -> bool:
        return kind in self.kind

    @property
    def is_library(self) -> bool:
        return any(k in LIBRARY_KINDS for k in self.kind)

    @property
    def crate_name(self) -> str:
        return self.name.replace("-", "_")


class Package(BaseModel):
    """A package (crate) with its compilation units."""

    model_config = {"frozen": True}

    name: str
    version: str
    id: str
    source: str | None = None
    manifest_path: str
    targets: list[Target] = Field(default_factory=list)
    edition: str = "2015"
    links: str | None = None

    @property
    def is_first_party(self) -> bool:
        """First-party packages have no remote source marker."""
        return self.source is None

    @property
    def manifest_dir(self) -> PurePath:
        return PurePath(self.manifest_path).parent

    @property
    def normalized_name(self) -> str:
        return self.name.replace("-", "_")

    @property
    def library_targets(self) -> list[Target]:
        return [t for t in self.targets if t.is_library]

    @property
    def binary_targets(self) -> list[Target]:
        return [t for t in self.targets if t.has_kind(TargetKind.BIN)]

    @property
    def test_targets(self) -> list[Target]:
        return [t for t in self.targets if t.has_kind(TargetKind.TEST)]

    @property
    def build_script(self) -> Target | None:
        for target in self.targets:
            if target.has_kind(TargetKind.CUSTOM_BUILD):
                return target
        return None


class DepKindInfo(BaseModel):
    """One (kind, optional platform) pair of a dependency edge."""

    model_config = {"frozen": True}

    kind: DependencyKind = DependencyKind.NORMAL
    target: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _null_is_normal(cls, value: Any) -> Any:
        return DependencyKind.NORMAL if value is None else value


class NodeDep(BaseModel):
    """Resolved edge from a node to a dependency package."""

    model_config = {"frozen": True}

    name: str
    pkg: str
    dep_kinds: list[DepKindInfo] = Field(default_factory=list)


class Node(BaseModel):
    """Resolved dependencies and activated features of one package."""

    model_config = {"frozen": True}

    id: str
    deps: list[NodeDep] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)


class Resolve(BaseModel):
    model_config = {"frozen": True}

    nodes: list[Node] = Field(default_factory=list)
    root: str | None = None


class CargoMetadata(BaseModel):
    """Top-level ``cargo metadata`` document."""

    model_config = {"frozen": True}

    packages: list[Package]
    resolve: Resolve | None = None
    workspace_root: str
    workspace_members: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# ResolvedGraph: indexed view used by the translator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolvedGraph:
    """Packages and nodes indexed by package id, plus the workspace root."""

    packages: dict[str, Package]
    nodes: dict[str, Node]
    root_id: str
    workspace_root: PurePath

    @classmethod
    def from_metadata(cls, metadata: CargoMetadata) -> ResolvedGraph:
        if metadata.resolve is None:
            msg = "cargo metadata has no `resolve` section (was --no-deps used?)"
            raise BuckalError("INVALID_METADATA", msg)

        packages = {p.id: p for p in metadata.packages}
        nodes = {n.id: n for n in metadata.resolve.nodes}
        workspace_root = PurePath(metadata.workspace_root)

        root_id = metadata.resolve.root
        if root_id is None:
            # Virtual manifest: fall back to a member living at the workspace root.
            for member in metadata.workspace_members:
                pkg = packages.get(member)
                if pkg is not None and pkg.manifest_dir == workspace_root:
                    root_id = member
                    break
        if root_id is None or root_id not in packages:
            msg = f"No root package found in workspace {workspace_root}"
            raise BuckalError("INVALID_METADATA", msg, workspace_root=str(workspace_root))

        return cls(
            packages=packages,
            nodes=nodes,
            root_id=root_id,
            workspace_root=workspace_root,
        )

    @property
    def root(self) -> Package:
        return self.packages[self.root_id]


# ---------------------------------------------------------------------------
# Package identifiers
# ---------------------------------------------------------------------------

# <scheme>+<locator>#<name>@<version>[+<build-metadata>]
PACKAGE_ID_PATTERN = re.compile(r"^([^+#]+)\+([^#]+)#([^@]+)@([^+#]+)(?:\+(.+))?$")


@dataclass(frozen=True)
class PackageIdParts:
    """Components of a cargo package id string."""

    scheme: str
    locator: str
    name: str
    version: str
    metadata: str | None = None

    @property
    def full_version(self) -> str:
        """Version including build metadata, as used for vendor directories."""
        return f"{self.version}+{self.metadata}" if self.metadata else self.version


def parse_package_id(package_id: str) -> PackageIdParts:
    """Split a package id such as ``registry+https://...#serde@1.0.200``.

    Raises BuckalError (``INVALID_PACKAGE_ID``) when the id does not carry
    an explicit ``name@version`` fragment.
    """
    match = PACKAGE_ID_PATTERN.match(package_id)
    if match is None:
        msg = f"Failed to parse package id: {package_id}"
        raise BuckalError("INVALID_PACKAGE_ID", msg, package_id=package_id)
    scheme, locator, name, version, metadata = match.groups()
    return PackageIdParts(
        scheme=scheme,
        locator=locator,
        name=name,
        version=version,
        metadata=metadata,
    )


def workspace_locator(workspace_root: PurePath | str) -> str:
    """Id prefix shared by every package living under *workspace_root*."""
    return f"path+file://{workspace_root}"


def version_key(version: str) -> tuple[tuple[int, ...], int, tuple[tuple[int, int | str], ...]]:
    """Semver ordering key: numeric core, then pre-releases before releases.

    Build metadata is ignored, as semver precedence requires.
    """
    core, _, pre = version.partition("+")[0].partition("-")
    numbers = tuple(int(part) if part.isdigit() else 0 for part in core.split("."))
    if not pre:
        return numbers, 1, ()
    identifiers = tuple(
        (0, int(ident)) if ident.isdigit() else (1, ident) for ident in pre.split(".")
    )
    return numbers, 0, identifiers
