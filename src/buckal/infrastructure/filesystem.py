"""Filesystem operations for vendored crates and generated rule files.

INVARIANT: Rule files are replaced whole. Content is written to a sibling
temporary file and moved into place, so a failed write never leaves a
half-written BUCK file behind.

Vendor layout: ``{project_root}/third-party/rust/crates/{name}/{version}/``
holds the generated BUCK file for a third-party crate. First-party
packages keep their BUCK file next to their ``Cargo.toml``.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path, PurePath

from buckal.domain.errors import BuckalError

RUST_CRATES_ROOT = "third-party/rust/crates"
THIRD_PARTY_ALIAS_DIR = "third-party/rust"
BUCK_FILENAME = "BUCK"


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def vendor_dir(project_root: Path, name: str, version: str) -> Path:
    """Directory holding the vendored crate ``name``/``version``."""
    return project_root / RUST_CRATES_ROOT / name / version


def relative_to_root(path: PurePath, project_root: PurePath) -> str:
    """Project-relative posix form of *path*.

    Raises BuckalError (``OUTSIDE_PROJECT``) when *path* does not live
    under *project_root*.
    """
    try:
        relative = PurePath(path).relative_to(project_root)
    except ValueError:
        msg = f"{path} is not inside the Buck2 project root {project_root}"
        raise BuckalError(
            "OUTSIDE_PROJECT", msg, path=str(path), project_root=str(project_root)
        ) from None
    return relative.as_posix() if str(relative) != "." else ""


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def ensure_vendor_dir(project_root: Path, name: str, version: str) -> Path:
    """Create the vendor directory for a crate if needed and return it."""
    path = vendor_dir(project_root, name, version)
    path.mkdir(parents=True, exist_ok=True)
    return path


def remove_vendor_dir(project_root: Path, name: str, version: str) -> list[Path]:
    """Delete a crate's version directory, then its package dir if now empty.

    Returns the directories that were removed.
    """
    removed: list[Path] = []
    path = vendor_dir(project_root, name, version)
    if path.exists():
        shutil.rmtree(path)
        removed.append(path)
    package_dir = path.parent
    if package_dir.exists() and not any(package_dir.iterdir()):
        package_dir.rmdir()
        removed.append(package_dir)
    return removed


def write_rule_file(path: Path, content: str) -> None:
    """Atomically replace *path* with *content*.

    Creates parent directories if they don't exist.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
