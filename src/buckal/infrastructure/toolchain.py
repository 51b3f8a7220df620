"""Toolchain probes — rustc, cargo and buck2 subprocess calls.

Every probe is a required prerequisite: a missing executable, a non-zero
exit status or unparsable output raises BuckalError (``PROBE_FAILED``)
naming the command.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from buckal.domain.errors import BuckalError
from buckal.domain.platform import Cfg

logger = logging.getLogger(__name__)


def _run(args: list[str], *, cwd: Path | None = None) -> str:
    """Run *args* and return stdout. Raises BuckalError on failure."""
    logger.debug("Running %s", " ".join(args))
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError:
        msg = f"Executable not found: {args[0]}"
        raise BuckalError("PROBE_FAILED", msg, command=args) from None
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        msg = f"`{' '.join(args)}` exited with status {exc.returncode}: {stderr}"
        raise BuckalError("PROBE_FAILED", msg, command=args) from exc
    return result.stdout


def host_target(rustc: str = "rustc") -> str:
    """Active target triple from the ``host:`` line of ``rustc -Vv``."""
    for line in _run([rustc, "-Vv"]).splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "host" and value.strip():
            return value.strip()
    msg = f"`{rustc} -Vv` did not report a host triple"
    raise BuckalError("PROBE_FAILED", msg, command=[rustc, "-Vv"])


def active_cfgs(rustc: str = "rustc", target: str | None = None) -> frozenset[Cfg]:
    """Configuration flags from ``rustc --print=cfg``."""
    args = [rustc, "--print=cfg"]
    if target:
        args += ["--target", target]
    lines = _run(args).splitlines()
    return frozenset(Cfg.parse(line) for line in lines if line.strip())


def project_root(buck2: str = "buck2", cwd: Path | None = None) -> Path:
    """Buck2 project root from ``buck2 root --kind project``."""
    output = _run([buck2, "root", "--kind", "project"], cwd=cwd).strip()
    if not output:
        msg = f"`{buck2} root --kind project` returned no path"
        raise BuckalError("PROBE_FAILED", msg, command=[buck2, "root"])
    return Path(output)


def cargo_metadata(cargo: str = "cargo", manifest_dir: Path | None = None) -> dict[str, Any]:
    """Raw JSON of ``cargo metadata --format-version 1``."""
    args = [cargo, "metadata", "--format-version", "1"]
    output = _run(args, cwd=manifest_dir)
    try:
        data: dict[str, Any] = json.loads(output)
    except json.JSONDecodeError as exc:
        msg = f"`{' '.join(args)}` produced invalid JSON: {exc}"
        raise BuckalError("PROBE_FAILED", msg, command=args) from exc
    return data
