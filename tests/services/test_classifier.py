"""Tests for dependency edge selection and label resolution."""

from pathlib import Path

import pytest

from buckal.config.models import RepoConfig
from buckal.domain.cargo import DepKindInfo, DependencyKind
from buckal.domain.errors import BuckalError
from buckal.domain.rules import RustLibrary
from buckal.services.classifier import (
    UnitRole,
    dependency_label,
    edge_applies,
    kind_applies,
    library_rule_name,
    select_edges,
    set_deps,
)
from tests.conftest import (
    dep,
    local_package,
    make_context,
    metadata,
    node,
    registry_package,
    target,
)


class TestKindApplies:
    @pytest.mark.parametrize("role", list(UnitRole))
    def test_dev_only_in_tests(self, role: UnitRole) -> None:
        assert kind_applies(DependencyKind.DEVELOPMENT, role) is (role is UnitRole.TEST)

    @pytest.mark.parametrize("role", list(UnitRole))
    def test_build_only_in_build_script(self, role: UnitRole) -> None:
        assert kind_applies(DependencyKind.BUILD, role) is (role is UnitRole.BUILD_SCRIPT)

    @pytest.mark.parametrize("role", list(UnitRole))
    def test_normal_everywhere_but_build_script(self, role: UnitRole) -> None:
        assert kind_applies(DependencyKind.NORMAL, role) is (role is not UnitRole.BUILD_SCRIPT)


class TestSelectEdges:
    def _ctx(self, root: Path):
        app = local_package(root, "app")
        normal = registry_package("normal", "1.0.0")
        dev = registry_package("dev", "1.0.0")
        build = registry_package("build", "1.0.0")
        both = registry_package("both", "1.0.0")
        unix = registry_package("unixonly", "1.0.0")
        windows = registry_package("winonly", "1.0.0")
        app_node = node(
            app,
            dep("normal", normal),
            dep("dev", dev, ("dev", None)),
            dep("build", build, ("build", None)),
            dep("both", both, ("build", None), ("dev", None)),
            dep("unixonly", unix, (None, "cfg(unix)")),
            dep("winonly", windows, (None, "cfg(windows)")),
        )
        meta = metadata(
            root,
            [app, normal, dev, build, both, unix, windows],
            [app_node],
            root_pkg=app,
        )
        ctx = make_context(meta, root)
        return ctx, ctx.graph.nodes[app["id"]]

    def _names(self, root: Path, role: UnitRole) -> list[str]:
        ctx, app_node = self._ctx(root)
        return [d.name for d in select_edges(app_node, role, ctx)]

    def test_library(self, tmp_path: Path) -> None:
        assert self._names(tmp_path, UnitRole.LIBRARY) == ["normal", "unixonly"]

    def test_binary(self, tmp_path: Path) -> None:
        assert self._names(tmp_path, UnitRole.BINARY) == ["normal", "unixonly"]

    def test_test(self, tmp_path: Path) -> None:
        assert self._names(tmp_path, UnitRole.TEST) == ["normal", "dev", "both", "unixonly"]

    def test_build_script(self, tmp_path: Path) -> None:
        assert self._names(tmp_path, UnitRole.BUILD_SCRIPT) == ["build", "both"]

    def test_empty_dep_kinds_count_as_normal(self, tmp_path: Path) -> None:
        ctx, app_node = self._ctx(tmp_path)
        bare = app_node.deps[0].model_copy(update={"dep_kinds": []})
        patched = app_node.model_copy(update={"deps": [bare]})
        assert [d.name for d in select_edges(patched, UnitRole.LIBRARY, ctx)] == ["normal"]

    def test_platform_kind_pairs_are_conjunctive(self, tmp_path: Path) -> None:
        ctx, _ = self._ctx(tmp_path)
        info = DepKindInfo(kind=DependencyKind.DEVELOPMENT, target="cfg(unix)")
        assert edge_applies(info, UnitRole.TEST, ctx)
        assert not edge_applies(info, UnitRole.LIBRARY, ctx)


class TestLibraryRuleName:
    def test_plain(self, tmp_path: Path) -> None:
        app = local_package(tmp_path, "util")
        ctx = make_context(metadata(tmp_path, [app], [node(app)], root_pkg=app), tmp_path)
        assert library_rule_name(ctx.graph.root) == "util"

    def test_collision_with_binary(self, tmp_path: Path) -> None:
        app = local_package(tmp_path, "foo", bins=("foo",))
        ctx = make_context(metadata(tmp_path, [app], [node(app)], root_pkg=app), tmp_path)
        assert library_rule_name(ctx.graph.root) == "libfoo"

    def test_two_libraries_is_fatal(self, tmp_path: Path) -> None:
        app = local_package(tmp_path, "app")
        util = local_package(tmp_path, "util", rel="crates/util")
        util["targets"].append(target("util_c", "cdylib", str(tmp_path / "crates/util/src/c.rs")))
        meta = metadata(
            tmp_path, [app, util], [node(app, dep("util", util)), node(util)], root_pkg=app
        )
        ctx = make_context(meta, tmp_path)
        with pytest.raises(BuckalError) as exc_info:
            library_rule_name(ctx.graph.packages[util["id"]])
        assert exc_info.value.code == "MISSING_LIBRARY"
        assert exc_info.value.detail == {"package": "util", "found": 2}


class TestLabels:
    def _graph(self, root: Path, **repo: bool):
        app = local_package(root, "app")
        util = local_package(root, "util", rel="crates/util")
        serde = registry_package("serde", "1.0.200")
        meta = metadata(
            root,
            [app, util, serde],
            [
                node(app, dep("util", util), dep("serde", serde)),
                node(util, dep("serde", serde)),
                node(serde),
            ],
            root_pkg=app,
        )
        ctx = make_context(meta, root, repo=RepoConfig(**repo))
        packages = {p.name: p for p in ctx.graph.packages.values()}
        return ctx, packages

    def test_third_party_versioned(self, tmp_path: Path) -> None:
        ctx, pkgs = self._graph(tmp_path)
        label = dependency_label(pkgs["app"], pkgs["serde"], ctx)
        assert label == "//third-party/rust/crates/serde/1.0.200:serde"

    def test_first_party_relative(self, tmp_path: Path) -> None:
        ctx, pkgs = self._graph(tmp_path)
        assert dependency_label(pkgs["app"], pkgs["util"], ctx) == "//crates/util:util"

    def test_inherited_alias_only_for_root(self, tmp_path: Path) -> None:
        ctx, pkgs = self._graph(tmp_path, inherit_workspace_deps=True)
        assert dependency_label(pkgs["app"], pkgs["serde"], ctx) == "//third-party/rust:serde"
        assert dependency_label(pkgs["util"], pkgs["serde"], ctx) == (
            "//third-party/rust/crates/serde/1.0.200:serde"
        )

    def test_first_party_outside_project_is_fatal(self, tmp_path: Path) -> None:
        ctx, pkgs = self._graph(tmp_path)
        ctx.project_root = tmp_path / "elsewhere"
        with pytest.raises(BuckalError) as exc_info:
            dependency_label(pkgs["app"], pkgs["util"], ctx)
        assert exc_info.value.code == "OUTSIDE_PROJECT"


class TestSetDeps:
    def test_renamed_dependency_goes_to_named_deps(self, tmp_path: Path) -> None:
        app = local_package(tmp_path, "app")
        serde_json = registry_package("serde_json", "1.0.117")
        meta = metadata(
            tmp_path,
            [app, serde_json],
            [node(app, dep("json", serde_json)), node(serde_json)],
            root_pkg=app,
        )
        ctx = make_context(meta, tmp_path)
        rule = RustLibrary(name="app", crate_name="app", edition="2021")
        root = ctx.graph.root
        app_node = ctx.graph.nodes[root.id]
        set_deps(rule, root, app_node, UnitRole.LIBRARY, ctx, declaring_dir=tmp_path)
        label = "//third-party/rust/crates/serde_json/1.0.117:serde_json"
        assert rule.named_deps == {"json": label}
        assert rule.deps == set()

    def test_hyphenated_name_is_positional(self, tmp_path: Path) -> None:
        app = local_package(tmp_path, "app")
        dashed = registry_package("my-crate", "0.1.0")
        meta = metadata(
            tmp_path,
            [app, dashed],
            [node(app, dep("my_crate", dashed)), node(dashed)],
            root_pkg=app,
        )
        ctx = make_context(meta, tmp_path)
        rule = RustLibrary(name="app", crate_name="app", edition="2021")
        root = ctx.graph.root
        app_node = ctx.graph.nodes[root.id]
        set_deps(rule, root, app_node, UnitRole.LIBRARY, ctx, declaring_dir=tmp_path)
        assert rule.deps == {"//third-party/rust/crates/my-crate/0.1.0:my-crate"}
        assert rule.named_deps == {}
