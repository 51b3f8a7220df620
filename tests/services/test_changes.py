"""Tests for applying a ChangeSet to generated BUCK files."""

from pathlib import Path

import pytest

from buckal.config.models import RepoConfig
from buckal.domain.changes import ChangeSet, ChangeType
from buckal.domain.errors import BuckalError
from buckal.domain.rules import GENERATED_MARKER
from buckal.infrastructure.buckfile import read_buck_file
from buckal.infrastructure.workspace import Workspace
from buckal.services.changes import ChangeService
from buckal.services.context import context_for
from tests.conftest import REGISTRY, dep, local_package, make_settings, node, write_metadata

SERDE_DIR = Path("third-party/rust/crates/serde/1.0.200")


def _apply(workspace: Workspace, changes: dict[str, ChangeType], **kwargs: bool):
    ctx = context_for(workspace)
    with workspace.transaction() as txn:
        return ChangeService(ctx, **kwargs).apply(ChangeSet(changes), txn)


def _serde_id() -> str:
    return f"{REGISTRY}#serde@1.0.200"


class TestAddedAndChanged:
    def test_added_third_party_is_vendored(self, workspace: Workspace, project_root: Path) -> None:
        actions = _apply(workspace, {_serde_id(): ChangeType.ADDED})
        assert actions == [{"verb": "Adding", "subject": "serde v1.0.200"}]
        buck = project_root / SERDE_DIR / "BUCK"
        assert buck.read_text(encoding="utf-8").startswith(GENERATED_MARKER)
        names = [r.name for r in read_buck_file(buck)]
        assert names[:3] == ["serde-vendor", "serde-manifest", "serde"]

    def test_changed_uses_flushing_verb(self, workspace: Workspace) -> None:
        actions = _apply(workspace, {_serde_id(): ChangeType.CHANGED})
        assert actions == [{"verb": "Flushing", "subject": "serde v1.0.200"}]

    def test_root_is_skipped(self, workspace: Workspace, project_root: Path) -> None:
        root_id = workspace.graph.root_id
        assert _apply(workspace, {root_id: ChangeType.ADDED}) == []
        assert not (project_root / "BUCK").exists()

    def test_unknown_id_is_skipped(self, workspace: Workspace) -> None:
        assert _apply(workspace, {f"{REGISTRY}#ghost@1.0.0": ChangeType.ADDED}) == []


class TestFirstPartyMembers:
    @pytest.fixture
    def member_workspace(self, project_root: Path) -> Workspace:
        app = local_package(project_root, "app")
        util = local_package(project_root, "util", rel="crates/util")
        meta = {
            "packages": [app, util],
            "resolve": {"nodes": [node(app, dep("util", util)), node(util)], "root": app["id"]},
            "workspace_root": str(project_root),
            "workspace_members": [app["id"], util["id"]],
        }
        write_metadata(project_root, meta)
        return Workspace(make_settings(project_root))

    def test_member_written_next_to_manifest(
        self, member_workspace: Workspace, project_root: Path
    ) -> None:
        util_id = f"path+file://{project_root / 'crates' / 'util'}#util@0.1.0"
        actions = _apply(member_workspace, {util_id: ChangeType.ADDED})
        assert actions == [{"verb": "Adding", "subject": "util v0.1.0"}]
        assert (project_root / "crates" / "util" / "BUCK").exists()

    def test_separate_skips_members(
        self, member_workspace: Workspace, project_root: Path
    ) -> None:
        util_id = f"path+file://{project_root / 'crates' / 'util'}#util@0.1.0"
        assert _apply(member_workspace, {util_id: ChangeType.ADDED}, separate=True) == []
        assert not (project_root / "crates" / "util" / "BUCK").exists()


class TestRemoved:
    def test_removes_vendor_dir(self, workspace: Workspace, project_root: Path) -> None:
        crate = project_root / "third-party" / "rust" / "crates" / "rand" / "0.8.5"
        crate.mkdir(parents=True)
        (crate / "BUCK").write_text("x", encoding="utf-8")
        actions = _apply(workspace, {f"{REGISTRY}#rand@0.8.5": ChangeType.REMOVED})
        assert actions == [{"verb": "Removing", "subject": "rand v0.8.5"}]
        assert not crate.parent.exists()

    def test_build_metadata_kept_in_directory_name(
        self, workspace: Workspace, project_root: Path
    ) -> None:
        crate = project_root / "third-party" / "rust" / "crates" / "zstd-sys" / "2.0.9+zstd.1.5.5"
        crate.mkdir(parents=True)
        _apply(workspace, {f"{REGISTRY}#zstd-sys@2.0.9+zstd.1.5.5": ChangeType.REMOVED})
        assert not crate.exists()

    def test_workspace_packages_never_removed(
        self, workspace: Workspace, project_root: Path
    ) -> None:
        (project_root / "BUCK").write_text("keep\n", encoding="utf-8")
        removed_id = f"path+file://{project_root}#app@0.0.9"
        assert _apply(workspace, {removed_id: ChangeType.REMOVED}) == []
        assert (project_root / "BUCK").read_text(encoding="utf-8") == "keep\n"

    def test_unparsable_id_is_fatal(self, workspace: Workspace) -> None:
        with pytest.raises(BuckalError) as exc_info:
            _apply(workspace, {"garbage": ChangeType.REMOVED})
        assert exc_info.value.code == "INVALID_PACKAGE_ID"


class TestMerging:
    MANUAL = (
        'rust_library(\n    name = "serde",\n    deps = ["//manual:extra"],\n'
        '    edition = "2015",\n)\n'
    )

    def _seed(self, project_root: Path) -> Path:
        buck = project_root / SERDE_DIR / "BUCK"
        buck.parent.mkdir(parents=True)
        buck.write_text(self.MANUAL, encoding="utf-8")
        return buck

    def _library(self, buck: Path):
        return next(r for r in read_buck_file(buck) if r.name == "serde")

    def test_configured_fields_are_merged(self, project_root: Path) -> None:
        buck = self._seed(project_root)
        ws = Workspace(make_settings(project_root, repo=RepoConfig(patch_fields=["deps"])))
        _apply(ws, {_serde_id(): ChangeType.CHANGED})
        library = self._library(buck)
        assert library.attrs["deps"] == ["//manual:extra"]
        assert library.attrs["edition"] == "2021"

    def test_no_patch_fields_disables_merging(self, project_root: Path) -> None:
        buck = self._seed(project_root)
        _apply(Workspace(make_settings(project_root)), {_serde_id(): ChangeType.CHANGED})
        assert "deps" not in self._library(buck).attrs

    def test_merge_flag_off(self, project_root: Path) -> None:
        buck = self._seed(project_root)
        ws = Workspace(make_settings(project_root, repo=RepoConfig(patch_fields=["deps"])))
        _apply(ws, {_serde_id(): ChangeType.CHANGED}, merge=False)
        assert "deps" not in self._library(buck).attrs
