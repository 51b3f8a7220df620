"""Rule-graph translator — one package's node in, an ordered rule list out.

Two shapes of output:

- **third-party packages**: vendor fetch, manifest, the single library
  compile rule, then build-script rules if the package has a ``build.rs``;
- **first-party packages**: local vendor group, manifest, one rule per
  binary, library (plus ``-unittest``) and integration test, then
  build-script rules.

Rule names equal unit names, except that a library sharing its name with
a binary is renamed ``lib<name>`` and binaries depend on that form.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

from buckal.domain.cargo import DepKindInfo, Node, Package, Target, TargetKind
from buckal.domain.errors import BuckalError
from buckal.domain.rules import (
    BuildRule,
    BuildScriptCompile,
    BuildscriptRun,
    CargoManifest,
    FileGroup,
    HttpArchive,
    RustBinary,
    RustLibrary,
    RustRule,
    RustTest,
)
from buckal.infrastructure.filesystem import RUST_CRATES_ROOT
from buckal.infrastructure.lockfile import checksum_key
from buckal.services.classifier import UnitRole, edge_applies, set_deps
from buckal.services.context import TranslationContext

logger = logging.getLogger(__name__)

CRATES_IO_DOWNLOAD = "https://static.crates.io/crates"
PUBLIC = "PUBLIC"


def build_name(target_name: str) -> str:
    """Build-script target name without its conventional ``-build`` suffix."""
    return target_name.removesuffix("-build")


def vendor_target(package: Package) -> str:
    return f":{package.name}-vendor"


def crate_root(target: Target, package: Package) -> str:
    """Path of *target*'s source root inside the vendored tree.

    Raises BuckalError (``SOURCE_OUTSIDE_PACKAGE``) when the source file is
    not under the package's manifest directory.
    """
    try:
        relative = PurePath(target.src_path).relative_to(package.manifest_dir)
    except ValueError:
        msg = (
            f"Source root {target.src_path} of target {target.name} is outside "
            f"package {package.name} ({package.manifest_dir})"
        )
        raise BuckalError(
            "SOURCE_OUTSIDE_PACKAGE", msg, package=package.name, target=target.name
        ) from None
    return f"vendor/{relative.as_posix()}"


class RuleGraphTranslator:
    """Translates packages of one resolved graph into build rules."""

    def __init__(self, ctx: TranslationContext) -> None:
        self._ctx = ctx

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def translate(self, package: Package, node: Node) -> list[BuildRule]:
        """Dispatch on first-party vs. third-party."""
        logger.debug("Translating %s %s", package.name, package.version)
        if package.is_first_party:
            return self.buckify_root_node(package, node)
        return self.buckify_dep_node(package, node)

    def buckify_dep_node(self, package: Package, node: Node) -> list[BuildRule]:
        libraries = package.library_targets
        if not libraries:
            msg = f"No library target found in package {package.name} {package.version}"
            raise BuckalError("MISSING_LIBRARY", msg, package=package.name, found=0)

        rules: list[BuildRule] = [
            self._http_archive(package),
            self._cargo_manifest(package),
            self._compile(RustLibrary, libraries[0], package, node, package.name),
        ]
        self._add_build_script(rules, package, node)
        return rules

    def buckify_root_node(self, package: Package, node: Node) -> list[BuildRule]:
        binaries = package.binary_targets
        libraries = package.library_targets
        binary_names = {b.name for b in binaries}
        library_names = {lib.name for lib in libraries}
        ignore_tests = self._ctx.repo.ignore_tests

        rules: list[BuildRule] = [self._filegroup(package), self._cargo_manifest(package)]

        for target in binaries:
            binary = self._compile(RustBinary, target, package, node, target.name)
            if target.name in library_names:
                # A binary may use its own package's library crate by name.
                binary.deps.add(f":lib{target.name}")
            rules.append(binary)

        for target in libraries:
            name = f"lib{target.name}" if target.name in binary_names else target.name
            rules.append(self._compile(RustLibrary, target, package, node, name))
            if not ignore_tests and target.test:
                unittest = f"{target.name}-unittest"
                rules.append(self._compile(RustTest, target, package, node, unittest))

        if not ignore_tests:
            fixture = package.normalized_name
            for target in package.test_targets:
                test = self._compile(RustTest, target, package, node, target.name)
                has_binary = fixture in binary_names
                if has_binary:
                    test.env[f"CARGO_BIN_EXE_{fixture}"] = f"$(location :{fixture})"
                if fixture in library_names:
                    test.deps.add(f":lib{fixture}" if has_binary else f":{fixture}")
                rules.append(test)

        self._add_build_script(rules, package, node)
        return rules

    # ------------------------------------------------------------------
    # Emitters
    # ------------------------------------------------------------------

    def _http_archive(self, package: Package) -> HttpArchive:
        key = checksum_key(package.name, package.version)
        checksum = self._ctx.checksums.get(key)
        if checksum is None:
            msg = f"No checksum for {package.name} {package.version} in Cargo.lock"
            raise BuckalError("MISSING_CHECKSUM", msg, package=package.name, key=key)
        url = f"{CRATES_IO_DOWNLOAD}/{package.name}/{package.name}-{package.version}.crate"
        return HttpArchive(
            name=f"{package.name}-vendor",
            urls={url},
            sha256=checksum,
            strip_prefix=f"{package.name}-{package.version}",
        )

    def _filegroup(self, package: Package) -> FileGroup:
        return FileGroup(name=f"{package.name}-vendor")

    def _cargo_manifest(self, package: Package) -> CargoManifest:
        return CargoManifest(name=f"{package.name}-manifest", vendor=vendor_target(package))

    def _compile[R: RustRule](
        self,
        rule_type: type[R],
        target: Target,
        package: Package,
        node: Node,
        name: str,
    ) -> R:
        rule = rule_type(
            name=name,
            crate_name=target.crate_name,
            edition=package.edition,
            srcs={vendor_target(package)},
            crate_root=crate_root(target, package),
            features=set(node.features),
            rustc_flags={f"@$(location :{package.name}-manifest[env_flags])"},
            visibility={PUBLIC},
        )
        if isinstance(rule, RustLibrary):
            if target.has_kind(TargetKind.PROC_MACRO):
                rule.proc_macro = True
            rule.compatible_with = set(self._ctx.platforms.get(package.name, []))

        role = {
            RustLibrary: UnitRole.LIBRARY,
            RustBinary: UnitRole.BINARY,
            RustTest: UnitRole.TEST,
            BuildScriptCompile: UnitRole.BUILD_SCRIPT,
        }[rule_type]
        set_deps(
            rule,
            package,
            node,
            role,
            self._ctx,
            declaring_dir=self._ctx.declaring_dir(package),
        )
        return rule

    def _add_build_script(self, rules: list[BuildRule], package: Package, node: Node) -> None:
        """Wire every compile rule to the build script's outputs, then append it."""
        script = package.build_script
        if script is None:
            return
        run = f"{package.name}-{build_name(script.name)}-run"
        for rule in rules:
            if isinstance(rule, RustRule):
                rule.env["OUT_DIR"] = f"$(location :{run}[out_dir])"
                rule.rustc_flags.add(f"@$(location :{run}[rustc_flags])")

        compile_rule = self._compile(
            BuildScriptCompile, script, package, node, f"{package.name}-{script.name}"
        )
        compile_rule.visibility = set()
        rules.append(compile_rule)
        rules.append(self._buildscript_run(package, node, script))

    def _buildscript_run(self, package: Package, node: Node, script: Target) -> BuildscriptRun:
        run = BuildscriptRun(
            name=f"{package.name}-{build_name(script.name)}-run",
            package_name=package.name,
            buildscript_rule=f":{package.name}-{script.name}",
            version=package.version,
            manifest_dir=vendor_target(package),
            env_srcs={f":{package.name}-manifest[env_dict]"},
            features=set(node.features),
            visibility={PUBLIC},
        )
        declaring_dir = self._ctx.declaring_dir(package)
        for dep in node.deps:
            dependency = self._ctx.graph.packages.get(dep.pkg)
            if dependency is None or dependency.links is None:
                continue
            kinds = dep.dep_kinds or [DepKindInfo()]
            if not any(edge_applies(info, UnitRole.LIBRARY, self._ctx) for info in kinds):
                continue
            dep_script = dependency.build_script
            if dep_script is None:
                msg = f"Dependency {dependency.name} has links key but no build script target"
                raise BuckalError(
                    "MISSING_BUILD_SCRIPT", msg, package=dependency.name, links=dependency.links
                )
            label = (
                f"//{RUST_CRATES_ROOT}/{dependency.name}/{dependency.version}:"
                f"{dependency.name}-{build_name(dep_script.name)}-run[metadata]"
            )
            run.env_srcs.add(self._ctx.rewrite(label, declaring_dir))
        return run
