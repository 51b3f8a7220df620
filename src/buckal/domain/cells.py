"""Cell resolution and label rewriting.

A cell is a named sub-root of the Buck2 project, declared in the
``[cells]`` section of ``.buckconfig`` with a project-relative path.
Labels come in three forms:

- bare: ``//path:name``
- cell-qualified: ``cell//path:name``
- externally-qualified: ``@cell//path:name``

Resolution picks the most specific owning cell (most path components).
Ties between distinct cells declaring the same path go to the
lexicographically smallest cell name.

INVARIANT: rewrite(rewrite(label)) == rewrite(label).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath


def _parts(path: str) -> tuple[str, ...]:
    """Normalized components of a project-relative path (``.`` is empty)."""
    posix = PurePosixPath(path.replace("\\", "/"))
    return tuple(p for p in posix.parts if p not in ("", ".", "/"))


@dataclass(frozen=True)
class Label:
    """A parsed target label."""

    path: str
    name: str | None = None
    cell: str | None = None
    external: bool = False

    @classmethod
    def parse(cls, text: str) -> Label | None:
        """Parse *text*, returning None when it has no ``//`` separator."""
        prefix, sep, rest = text.partition("//")
        if not sep:
            return None
        external = prefix.startswith("@")
        cell = prefix[1:] if external else prefix
        if external and not cell:
            return None
        path, colon, name = rest.partition(":")
        return cls(
            path=path.strip("/"),
            name=name if colon else None,
            cell=cell or None,
            external=external,
        )

    def __str__(self) -> str:
        prefix = f"@{self.cell}" if self.external and self.cell else (self.cell or "")
        target = f":{self.name}" if self.name is not None else ""
        return f"{prefix}//{self.path}{target}"


@dataclass(frozen=True)
class CellMap:
    """Cell name → project-relative path, plus alias → canonical cell name."""

    cells: Mapping[str, str] = field(default_factory=dict)
    aliases: Mapping[str, str] = field(default_factory=dict)

    def canonical(self, name: str) -> str:
        """Follow the alias table until a non-alias name is reached."""
        seen: set[str] = set()
        while name in self.aliases and name not in seen:
            seen.add(name)
            name = self.aliases[name]
        return name

    def owning_cell(self, path: str) -> str | None:
        """Return the most specific cell whose declared path contains *path*.

        *path* is project-relative. Ties on component count resolve to the
        lexicographically smallest cell name.
        """
        target = _parts(path)
        best: tuple[int, str] | None = None
        for name, cell_path in self.cells.items():
            declared = _parts(cell_path)
            if target[: len(declared)] != declared:
                continue
            depth = len(declared)
            if best is None or depth > best[0] or (depth == best[0] and name < best[1]):
                best = (depth, name)
        return best[1] if best else None

    def _strip(self, cell: str, path: str) -> str:
        declared = _parts(self.cells.get(cell, ""))
        parts = _parts(path)
        if declared and parts[: len(declared)] == declared:
            parts = parts[len(declared) :]
        return "/".join(parts)

    def rewrite(self, text: str, *, at_root: bool) -> str:
        """Rewrite *text* into a canonical, cell-prefixed label.

        ``at_root`` tells whether the declaring BUCK file sits at the
        project root; elsewhere the result is externally qualified (``@``).
        Labels without ``//`` and bare labels outside every cell are
        returned unchanged. Cell-qualified input, with or without ``@``, is
        already cell-relative, so only its cell name is canonicalized.
        """
        label = Label.parse(text)
        if label is None:
            return text

        if label.cell is None:
            cell = self.owning_cell(label.path)
            if cell is None:
                return text
            path = self._strip(cell, label.path)
        else:
            cell = self.canonical(label.cell)
            path = label.path

        return str(Label(path=path, name=label.name, cell=cell, external=not at_root))
