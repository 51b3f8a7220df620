"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`;
unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from buckal.output.console import create_console, get_output, style_for_verb

if TYPE_CHECKING:
    from rich.console import Console

    from buckal.services.result import ServiceResult

type _Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: the error line, or nothing but essentials."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    if "rewritten" in result.data:
        return str(result.data["rewritten"])
    if "cell" in result.data:
        return str(result.data["cell"] or "")
    return ""


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="buckal.ok"), Text(f"  {result.op}", style="buckal.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="buckal.key")
    if key in ("path", "written"):
        v = Text(str(value), style="buckal.path")
    elif key in ("label", "rewritten", "cell"):
        v = Text(str(value), style="buckal.label")
    elif isinstance(value, dict | list):
        v = Text(json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v)


def _render_actions(console: Console, result: ServiceResult) -> None:
    """Cargo-style progress lines: right-aligned verb, then subject."""
    for action in result.actions:
        verb = action.get("verb", "")
        console.print(
            Text(f"{verb:>12}", style=style_for_verb(verb)),
            Text(action.get("subject", "")),
        )


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _render_actions(console, result)
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="buckal.error"), Text(f"  {result.op}", style="buckal.op"), " — ", msg
    )
    if verbose and err:
        console.print(Text(f"  code: {err.code}", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Flush / diff ──────────────────────────────────────────────────────


def _counts_line(counts: dict[str, int]) -> str:
    return ", ".join(f"{counts.get(key, 0)} {key}" for key in ("added", "changed", "removed"))


def _render_flush(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _render_actions(console, result)
    _status_line(console, result)
    _field(console, "packages", _counts_line(result.data.get("counts", {})))
    if verbose:
        for path in result.data.get("written", []):
            _field(console, "written", path)


def _render_diff(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    changes: dict[str, str] = result.data.get("changes", {})
    if not changes:
        console.print("[buckal.ok]OK[/buckal.ok]  Rules are up to date.")
        return
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Change")
    table.add_column("Package", no_wrap=True)
    for package_id, change in changes.items():
        table.add_row(Text(change, style=style_for_verb(_VERB_FOR_CHANGE[change])), package_id)
    console.print(table)
    console.print(_counts_line(result.data.get("counts", {})))


_VERB_FOR_CHANGE = {"added": "Adding", "changed": "Flushing", "removed": "Removing"}


# ── Cells ─────────────────────────────────────────────────────────────


def _render_cells(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    cells: dict[str, str] = result.data.get("cells", {})
    aliases: dict[str, str] = result.data.get("aliases", {})
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Cell", style="buckal.label", no_wrap=True)
    table.add_column("Path", style="buckal.path")
    table.add_column("Aliases")
    for name, path in cells.items():
        names = sorted(alias for alias, target in aliases.items() if target == name)
        table.add_row(name, path, ", ".join(names))
    console.print(table)


def _render_label(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("path", "cell", "label", "rewritten"):
        if key in result.data:
            _field(console, key, result.data[key] if result.data[key] is not None else "-")
    if verbose and "at_root" in result.data:
        _field(console, "at_root", result.data["at_root"])


# ── Bundles ───────────────────────────────────────────────────────────


def _render_bundles(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "commit_hash", result.data.get("commit_hash", ""))
    if "previous" in result.data:
        _field(console, "previous", result.data["previous"] or "-")
    for path in result.data.get("written", []):
        _field(console, "written", path)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: actions, status line, then every data field."""
    _render_actions(console, result)
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, _Renderer] = {
    "flush": _render_flush,
    "diff": _render_diff,
    "list_cells": _render_cells,
    "resolve_cell": _render_label,
    "rewrite_label": _render_label,
    "init_bundles": _render_bundles,
    "update_bundles": _render_bundles,
}
