"""``.buckconfig`` reader/writer.

The file is kept as ordered ``[section]`` blocks of raw lines so that a
load → edit → save cycle preserves everything it does not touch (apart
from comments and blank lines, which are dropped).
"""

from __future__ import annotations

from pathlib import Path

from buckal.domain.cells import CellMap
from buckal.infrastructure.filesystem import write_rule_file

BUCKCONFIG_FILENAME = ".buckconfig"


def parse_key_values(lines: list[str]) -> dict[str, str]:
    """Parse ``key = value`` lines, skipping comments and malformed entries."""
    result: dict[str, str] = {}
    for line in lines:
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        key, sep, value = trimmed.partition("=")
        key, value = key.strip(), value.strip()
        if sep and key and value:
            result[key] = value
    return result


class CellConfig:
    """Ordered mapping of section name → raw lines."""

    def __init__(self) -> None:
        self._order: list[str] = []
        self._sections: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> CellConfig:
        return cls.parse(path.read_text(encoding="utf-8"))

    def save(self, path: Path) -> None:
        write_rule_file(path, self.serialize())

    @classmethod
    def parse(cls, contents: str) -> CellConfig:
        config = cls()
        current: str | None = None
        for line in contents.splitlines():
            trimmed = line.strip()
            if trimmed.startswith("[") and trimmed.endswith("]"):
                current = trimmed[1:-1]
                config.section(current)
            elif trimmed.startswith("#"):
                continue
            elif trimmed and current is not None:
                config._sections[current].append(line)
        return config

    def serialize(self) -> str:
        chunks: list[str] = []
        for name in self._order:
            lines = self._sections.get(name, [])
            chunks.append("\n".join([f"[{name}]", *lines]) + "\n")
        return "\n".join(chunks)

    # ------------------------------------------------------------------
    # Section access
    # ------------------------------------------------------------------

    @property
    def sections(self) -> list[str]:
        return list(self._order)

    def get(self, name: str) -> list[str] | None:
        return self._sections.get(name)

    def section(self, name: str) -> list[str]:
        """Return the lines of *name*, appending an empty section if missing."""
        if name not in self._sections:
            self._sections[name] = []
            self._order.append(name)
        return self._sections[name]

    def new_section(self, name: str) -> list[str]:
        """Create (or reset) *name* at the end."""
        return self.new_section_after("", name)

    def new_section_after(self, after: str, name: str) -> list[str]:
        """Create (or reset) *name* directly after *after*, or at the end."""
        if name in self._sections:
            self._order.remove(name)
        self._sections[name] = []
        if after in self._order:
            self._order.insert(self._order.index(after) + 1, name)
        else:
            self._order.append(name)
        return self._sections[name]

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def cells(self) -> dict[str, str]:
        """``[cells]``: cell name → project-relative path."""
        return parse_key_values(self._sections.get("cells", []))

    @property
    def cell_aliases(self) -> dict[str, str]:
        """``[cell_aliases]``: alias → canonical cell name."""
        return parse_key_values(self._sections.get("cell_aliases", []))

    def cell_map(self) -> CellMap:
        return CellMap(cells=self.cells, aliases=self.cell_aliases)
