"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, buckal.toml only contains
overrides. A fresh workspace needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- buckal.toml sections ---


class RepoConfig(BaseModel):
    """[repo] section."""

    model_config = {"frozen": True}

    ignore_tests: bool = False
    align_cells: bool = False
    inherit_workspace_deps: bool = False
    # Rule attributes carried over from an existing BUCK file; empty disables merging.
    patch_fields: list[str] = Field(default_factory=list)


class ToolchainConfig(BaseModel):
    """[toolchain] section.

    ``target``, ``cfgs`` and ``buck2_root`` bypass the corresponding
    subprocess probe when set.
    """

    model_config = {"frozen": True}

    rustc: str = "rustc"
    cargo: str = "cargo"
    buck2: str = "buck2"
    target: str | None = None
    cfgs: list[str] | None = None
    buck2_root: str | None = None


DEFAULT_BUNDLES_REPO = "buck2hub/buckal-bundles"
DEFAULT_BUNDLE_HASH = "3f9c2d71a84be0c5d6e2f17a90b4c3d8e5a61f27"


class BundlesConfig(BaseModel):
    """[bundles] section — the external cell holding the rule macros."""

    model_config = {"frozen": True}

    repo: str = DEFAULT_BUNDLES_REPO
    default_hash: str = DEFAULT_BUNDLE_HASH
    api_url: str = "https://api.github.com"
    timeout: float = 10.0

