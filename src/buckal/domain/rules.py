"""Typed Buck2 rules, their Starlark rendering, and rule-set merging.

Each rule kind is its own dataclass carrying only its relevant fields.
``ATTRIBUTES`` maps the Starlark attribute name to the dataclass field, in
emission order. Rendering is a single exhaustive match over the variants.

Sets are order-irrelevant and render sorted; maps render sorted by key.
Empty collections, empty strings and ``None`` values are omitted from the
output.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, ClassVar, assert_never

GENERATED_MARKER = "# @generated by `cargo buckal`"

_INDENT = "    "


@dataclass
class Glob:
    """``glob([...], exclude = [...])`` value."""

    include: set[str] = field(default_factory=set)
    exclude: set[str] = field(default_factory=set)


@dataclass
class Load:
    """``load("<bzl>", "item", ...)`` statement."""

    bzl: str
    items: set[str] = field(default_factory=set)

    def render(self) -> str:
        args = [_render_scalar(self.bzl), *(_render_scalar(i) for i in sorted(self.items))]
        return f"load({', '.join(args)})"


# ---------------------------------------------------------------------------
# Rule variants
# ---------------------------------------------------------------------------


@dataclass
class HttpArchive:
    """Vendor fetch: remote crate archive with checksum and strip prefix."""

    ATTRIBUTES: ClassVar[dict[str, str]] = {
        "name": "name",
        "urls": "urls",
        "sha256": "sha256",
        "type": "archive_type",
        "strip_prefix": "strip_prefix",
        "out": "out",
    }

    name: str
    urls: set[str]
    sha256: str
    strip_prefix: str
    archive_type: str = "tar.gz"
    out: str | None = "vendor"


@dataclass
class FileGroup:
    """Vendor group for first-party sources."""

    ATTRIBUTES: ClassVar[dict[str, str]] = {"name": "name", "srcs": "srcs", "out": "out"}

    name: str
    srcs: Glob = field(default_factory=lambda: Glob(include={"**/**"}))
    out: str | None = "vendor"


@dataclass
class CargoManifest:
    """Manifest asset exposing ``env_flags`` / ``env_dict`` for a package."""

    ATTRIBUTES: ClassVar[dict[str, str]] = {"name": "name", "vendor": "vendor"}

    name: str
    vendor: str


@dataclass
class RustRule:
    """Fields shared by every rust compile rule."""

    ATTRIBUTES: ClassVar[dict[str, str]] = {
        "name": "name",
        "srcs": "srcs",
        "crate": "crate_name",
        "crate_root": "crate_root",
        "edition": "edition",
        "features": "features",
        "rustc_flags": "rustc_flags",
        "env": "env",
        "compatible_with": "compatible_with",
        "named_deps": "named_deps",
        "deps": "deps",
        "visibility": "visibility",
    }

    name: str
    crate_name: str
    edition: str
    srcs: set[str] = field(default_factory=set)
    crate_root: str = ""
    features: set[str] = field(default_factory=set)
    rustc_flags: set[str] = field(default_factory=set)
    env: dict[str, str] = field(default_factory=dict)
    compatible_with: set[str] = field(default_factory=set)
    named_deps: dict[str, str] = field(default_factory=dict)
    deps: set[str] = field(default_factory=set)
    visibility: set[str] = field(default_factory=set)


@dataclass
class RustLibrary(RustRule):
    ATTRIBUTES: ClassVar[dict[str, str]] = {**RustRule.ATTRIBUTES, "proc_macro": "proc_macro"}

    proc_macro: bool | None = None


@dataclass
class RustBinary(RustRule):
    pass


@dataclass
class RustTest(RustRule):
    pass


@dataclass
class BuildScriptCompile(RustRule):
    """The ``build.rs`` binary; rendered as a plain ``rust_binary``."""


@dataclass
class BuildscriptRun:
    """Runs a build script and exposes ``out_dir``/``rustc_flags``/``metadata``."""

    ATTRIBUTES: ClassVar[dict[str, str]] = {
        "name": "name",
        "package_name": "package_name",
        "buildscript_rule": "buildscript_rule",
        "env_srcs": "env_srcs",
        "features": "features",
        "version": "version",
        "manifest_dir": "manifest_dir",
        "visibility": "visibility",
    }

    name: str
    package_name: str
    buildscript_rule: str
    version: str
    manifest_dir: str
    env_srcs: set[str] = field(default_factory=set)
    features: set[str] = field(default_factory=set)
    visibility: set[str] = field(default_factory=set)


@dataclass
class Alias:
    ATTRIBUTES: ClassVar[dict[str, str]] = {
        "name": "name",
        "actual": "actual",
        "visibility": "visibility",
    }

    name: str
    actual: str
    visibility: set[str] = field(default_factory=set)


type BuildRule = (
    HttpArchive
    | FileGroup
    | CargoManifest
    | RustLibrary
    | RustBinary
    | RustTest
    | BuildScriptCompile
    | BuildscriptRun
    | Alias
)


def rule_function(rule: BuildRule) -> str:
    """Name of the Starlark macro that declares *rule*."""
    match rule:
        case HttpArchive():
            return "http_archive"
        case FileGroup():
            return "filegroup"
        case CargoManifest():
            return "cargo_manifest"
        case RustLibrary():
            return "rust_library"
        case RustBinary() | BuildScriptCompile():
            return "rust_binary"
        case RustTest():
            return "rust_test"
        case BuildscriptRun():
            return "buildscript_run"
        case Alias():
            return "alias"
        case _:
            assert_never(rule)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, int | float):
        return repr(value)
    msg = f"Cannot render {type(value).__name__} as a Starlark scalar"
    raise TypeError(msg)


def _render_list(items: list[Any], indent: str) -> str:
    if len(items) == 1:
        return f"[{_render_value(items[0], indent)}]"
    inner = indent + _INDENT
    lines = [f"{inner}{_render_value(item, inner)}," for item in items]
    return "[\n" + "\n".join(lines) + f"\n{indent}]"


def _render_value(value: Any, indent: str) -> str:
    if isinstance(value, set | frozenset):
        return _render_list(sorted(value), indent)
    if isinstance(value, list | tuple):
        return _render_list(list(value), indent)
    if isinstance(value, dict):
        inner = indent + _INDENT
        lines = [
            f"{inner}{_render_scalar(k)}: {_render_value(value[k], inner)},"
            for k in sorted(value)
        ]
        return "{\n" + "\n".join(lines) + f"\n{indent}}}"
    if isinstance(value, Glob):
        args = _render_list(sorted(value.include), indent)
        if value.exclude:
            args += f", exclude = {_render_list(sorted(value.exclude), indent)}"
        return f"glob({args})"
    return _render_scalar(value)


def _is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, set | frozenset | list | tuple | dict):
        return len(value) == 0
    return False


def rule_attrs(rule: BuildRule) -> list[tuple[str, Any]]:
    """Non-empty ``(attribute, value)`` pairs of *rule* in emission order."""
    pairs: list[tuple[str, Any]] = []
    for attr, field_name in rule.ATTRIBUTES.items():
        value = getattr(rule, field_name)
        if not _is_empty(value):
            pairs.append((attr, value))
    return pairs


def render_rule(rule: BuildRule) -> str:
    """Render one rule as a Starlark call ending with a newline."""
    lines = [f"{rule_function(rule)}("]
    for attr, value in rule_attrs(rule):
        lines.append(f"{_INDENT}{attr} = {_render_value(value, _INDENT)},")
    lines.append(")")
    return "\n".join(lines) + "\n"


DEFAULT_LOADS: tuple[Load, ...] = (
    Load(bzl="@buckal//:cargo_manifest.bzl", items={"cargo_manifest"}),
    Load(
        bzl="@buckal//:wrapper.bzl",
        items={"buildscript_run", "rust_binary", "rust_library"},
    ),
)


def render_buck_file(rules: Iterable[BuildRule], loads: Iterable[Load] = DEFAULT_LOADS) -> str:
    """Render a complete generated BUCK file: marker, loads, then rules."""
    header = f"{GENERATED_MARKER}\n\n"
    load_lines = "".join(f"{load.render()}\n" for load in loads)
    body = "\n".join(render_rule(rule) for rule in rules)
    if load_lines:
        return f"{header}{load_lines}\n{body}"
    return f"{header}{body}"


# ---------------------------------------------------------------------------
# Merging with an existing rule file
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedRule:
    """A rule read back from an existing BUCK file."""

    function: str
    name: str
    attrs: dict[str, Any]


def _merge_value(new: Any, old: Any) -> Any:
    if isinstance(new, set):
        if isinstance(old, list | tuple | set | frozenset):
            return new | {str(v) for v in old}
        return new
    if isinstance(new, dict):
        if isinstance(old, dict):
            return {**new, **{str(k): str(v) for k, v in old.items()}}
        return new
    if isinstance(new, Glob):
        if isinstance(old, Glob):
            return Glob(include=new.include | old.include, exclude=new.exclude | old.exclude)
        return new
    if new is None or isinstance(old, type(new)):
        return old
    return new


def patch_rules(
    existing: Iterable[ParsedRule],
    rules: list[BuildRule],
    fields: Iterable[str],
) -> list[str]:
    """Carry configured *fields* from *existing* rules into *rules* in place.

    Rules are matched by name. Set-valued attributes are unioned so manual
    additions survive; map attributes keep the old entries on key conflict;
    scalar attributes take the old value. Unconfigured attributes keep the
    freshly generated value. Returns the names of the rules that changed.
    """
    wanted = set(fields)
    by_name = {p.name: p for p in existing}
    patched: list[str] = []

    for rule in rules:
        old = by_name.get(rule.name)
        if old is None:
            continue
        changed = False
        for attr, field_name in rule.ATTRIBUTES.items():
            if attr not in wanted or attr == "name" or attr not in old.attrs:
                continue
            current = getattr(rule, field_name)
            merged = _merge_value(current, old.attrs[attr])
            if merged != current:
                setattr(rule, field_name, merged)
                changed = True
        if changed:
            patched.append(rule.name)
    return patched
