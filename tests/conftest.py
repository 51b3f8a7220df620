"""Shared pytest fixtures and test helpers for buckal tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from buckal.config.models import RepoConfig, ToolchainConfig
from buckal.config.settings import BuckalSettings
from buckal.domain.cargo import CargoMetadata, ResolvedGraph
from buckal.domain.platform import Cfg
from buckal.infrastructure.workspace import Workspace
from buckal.services.context import TranslationContext

REGISTRY = "registry+https://github.com/rust-lang/crates.io-index"
CARGO_REGISTRY_SRC = "/home/dev/.cargo/registry/src/index.crates.io-6f17d22bba15001f"
LINUX = "x86_64-unknown-linux-gnu"
LINUX_CFGS = ["unix", 'target_os="linux"', 'target_arch="x86_64"', "debug_assertions"]

SERDE_SHA = "6c64a2a64db52bb8a7ae2d9a1b0bd2ba8bb3f2da7f9c8a4e5b0d1c3f2e1d0c9b"


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# cargo metadata builders
# ---------------------------------------------------------------------------


def target(name: str, kind: str, src_path: str, **extra: Any) -> dict[str, Any]:
    return {"name": name, "kind": [kind], "src_path": src_path, "edition": "2021", **extra}


def registry_package(
    name: str,
    version: str,
    *,
    build_script: bool = False,
    links: str | None = None,
    kinds: tuple[str, ...] = ("lib",),
) -> dict[str, Any]:
    """A crates.io package with one library target (and optionally build.rs)."""
    src = f"{CARGO_REGISTRY_SRC}/{name}-{version}"
    lib_name = name.replace("-", "_")
    targets = [
        {"name": lib_name, "kind": list(kinds), "src_path": f"{src}/src/lib.rs", "edition": "2021"}
    ]
    if build_script:
        targets.append(target("build-script-build", "custom-build", f"{src}/build.rs"))
    return {
        "name": name,
        "version": version,
        "id": f"{REGISTRY}#{name}@{version}",
        "source": REGISTRY,
        "manifest_path": f"{src}/Cargo.toml",
        "targets": targets,
        "edition": "2021",
        "links": links,
    }


def local_package(
    root: Path,
    name: str,
    version: str = "0.1.0",
    *,
    rel: str = "",
    lib: bool = True,
    bins: tuple[str, ...] = (),
    tests: tuple[str, ...] = (),
) -> dict[str, Any]:
    """A first-party package living at ``root / rel``."""
    directory = root / rel if rel else root
    targets = [target(b, "bin", str(directory / "src" / "main.rs")) for b in bins]
    if lib:
        targets.append(target(name.replace("-", "_"), "lib", str(directory / "src" / "lib.rs")))
    targets += [target(t, "test", str(directory / "tests" / f"{t}.rs")) for t in tests]
    return {
        "name": name,
        "version": version,
        "id": f"path+file://{directory}#{name}@{version}",
        "source": None,
        "manifest_path": str(directory / "Cargo.toml"),
        "targets": targets,
        "edition": "2021",
    }


def dep(name: str, pkg: dict[str, Any], *kinds: tuple[str | None, str | None]) -> dict[str, Any]:
    """A resolve edge; *kinds* are ``(kind, platform)`` pairs (normal if omitted)."""
    dep_kinds = [{"kind": k, "target": t} for k, t in kinds] or [{"kind": None, "target": None}]
    return {"name": name, "pkg": pkg["id"], "dep_kinds": dep_kinds}


def node(pkg: dict[str, Any], *deps: dict[str, Any], features: tuple[str, ...] = ()):
    return {"id": pkg["id"], "deps": list(deps), "features": list(features)}


def metadata(
    root: Path,
    packages: list[dict[str, Any]],
    nodes: list[dict[str, Any]],
    *,
    root_pkg: dict[str, Any],
) -> dict[str, Any]:
    return {
        "packages": packages,
        "resolve": {"nodes": nodes, "root": root_pkg["id"]},
        "workspace_root": str(root),
        "workspace_members": [p["id"] for p in packages if p["source"] is None],
        "version": 1,
    }


def resolved(meta: dict[str, Any]) -> ResolvedGraph:
    return ResolvedGraph.from_metadata(CargoMetadata.model_validate(meta))


def make_context(
    meta: dict[str, Any],
    project_root: Path,
    *,
    checksums: dict[str, str] | None = None,
    repo: RepoConfig | None = None,
    **kwargs: Any,
) -> TranslationContext:
    return TranslationContext(
        graph=resolved(meta),
        project_root=project_root,
        checksums=checksums if checksums is not None else {},
        target=LINUX,
        cfgs=frozenset(Cfg.parse(line) for line in LINUX_CFGS),
        repo=repo or RepoConfig(),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# A small workspace on disk: app (bin + lib) -> serde, tests -> tempfile
# ---------------------------------------------------------------------------


def sample_metadata(root: Path) -> dict[str, Any]:
    app = local_package(root, "app", bins=("app",), tests=("smoke",))
    serde = registry_package("serde", "1.0.200", build_script=True)
    tempfile = registry_package("tempfile", "3.10.1")
    return metadata(
        root,
        [app, serde, tempfile],
        [
            node(app, dep("serde", serde), dep("tempfile", tempfile, ("dev", None))),
            node(serde, features=("default", "std")),
            node(tempfile),
        ],
        root_pkg=app,
    )


CARGO_LOCK = f"""\
version = 3

[[package]]
name = "app"
version = "0.1.0"

[[package]]
name = "serde"
version = "1.0.200"
source = "{REGISTRY}"
checksum = "{SERDE_SHA}"

[[package]]
name = "tempfile"
version = "3.10.1"
source = "{REGISTRY}"
checksum = "85b77fafb263dd9d05cbeac119526425676db3784113aa9295c88498cbf8bff1"
"""

BUCKAL_TOML = f"""\
[toolchain]
buck2_root = "."
target = "{LINUX}"
cfgs = {json.dumps(LINUX_CFGS)}
"""

BUCKCONFIG = """\
[cells]
  root = .
  prelude = prelude
  third_party = third-party

[cell_aliases]
  tp = third_party
"""


def write_metadata(root: Path, meta: dict[str, Any]) -> Path:
    path = root / "metadata.json"
    path.write_text(json.dumps(meta), encoding="utf-8")
    return path


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Buck2 project root that is also the cargo workspace root."""
    (tmp_path / "Cargo.lock").write_text(CARGO_LOCK, encoding="utf-8")
    (tmp_path / ".buckconfig").write_text(BUCKCONFIG, encoding="utf-8")
    write_metadata(tmp_path, sample_metadata(tmp_path))
    return tmp_path


def make_settings(root: Path, **overrides: Any) -> BuckalSettings:
    """Settings that never shell out: metadata file plus toolchain overrides."""
    values: dict[str, Any] = {
        "workspace_dir": root,
        "metadata_path": root / "metadata.json",
        "toolchain": ToolchainConfig(buck2_root=".", target=LINUX, cfgs=LINUX_CFGS),
        **overrides,
    }
    return BuckalSettings(**values)


@pytest.fixture
def workspace(project_root: Path) -> Workspace:
    return Workspace(make_settings(project_root))


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the CLI from the sample project with probes overridden in buckal.toml.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.chdir(project_root)
    monkeypatch.delenv("BUCKAL_CONFIG", raising=False)
    (project_root / "buckal.toml").write_text(BUCKAL_TOML, encoding="utf-8")
    monkeypatch.setenv("BUCKAL_METADATA_PATH", str(project_root / "metadata.json"))
