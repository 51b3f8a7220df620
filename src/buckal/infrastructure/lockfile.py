"""Cargo.lock checksum table."""

from __future__ import annotations

import tomllib
from pathlib import Path

from buckal.domain.errors import BuckalError

LOCKFILE_NAME = "Cargo.lock"


def checksum_key(name: str, version: str) -> str:
    return f"{name}-{version}"


def parse_checksums(text: str, *, source: str = LOCKFILE_NAME) -> dict[str, str]:
    """Map ``"<name>-<version>"`` to the sha256 of every registry package.

    Path and git packages carry no checksum and are left out. *source*
    names the lockfile in the error raised for malformed TOML.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid {source}: {exc}"
        raise BuckalError("INVALID_METADATA", msg, path=source) from exc

    table: dict[str, str] = {}
    for package in data.get("package", []):
        checksum = package.get("checksum")
        if checksum:
            table[checksum_key(package["name"], package["version"])] = checksum
    return table


def load_checksums(workspace_root: Path) -> dict[str, str]:
    """Read the checksum table from the workspace's ``Cargo.lock``.

    A workspace without a lockfile yields an empty table.
    """
    path = workspace_root / LOCKFILE_NAME
    if not path.exists():
        return {}
    return parse_checksums(path.read_text(encoding="utf-8"), source=str(path))
