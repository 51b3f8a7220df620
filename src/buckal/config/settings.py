"""BuckalSettings: one frozen object per invocation.

Sources, first match wins:

1. keyword arguments (click flags, command-level overrides);
2. ``BUCKAL_*`` environment variables, ``__`` between section and key;
3. ``buckal.toml`` (walk-up discovery, ``BUCKAL_CONFIG`` or ``--config``);
4. defaults on the section models.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from buckal.config.discovery import find_config
from buckal.config.models import BundlesConfig, RepoConfig, ToolchainConfig


def _read_toml(path: Path | None) -> dict[str, Any]:
    if path is None or not path.is_file():
        return {}
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Top-level tables of ``buckal.toml`` as settings fields."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data = _read_toml(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        present = field_name in self._data
        return self._data.get(field_name), field_name, present

    def __call__(self) -> dict[str, Any]:
        return self._data


def _resolve_config(config_path: str | None, start: Path | None) -> Path | None:
    if not config_path:
        return find_config(start)
    candidate = Path(config_path)
    return candidate if candidate.is_file() else None


# Read by settings_customise_sources while from_cli constructs an instance.
_tls = threading.local()


class BuckalSettings(BaseSettings):
    """Settings for one buckal invocation, frozen after construction.

    Attributes:
        workspace_dir: Directory holding the cargo workspace's ``Cargo.toml``
            (the current directory unless overridden).
        config_path: The ``buckal.toml`` in effect, or None.
        metadata_path: Pre-computed ``cargo metadata`` JSON; when None the
            metadata is obtained by running cargo.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "BUCKAL_",
        "env_nested_delimiter": "__",
    }

    workspace_dir: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None
    metadata_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    repo: RepoConfig = Field(default_factory=RepoConfig)
    platforms: dict[str, list[str]] = Field(default_factory=dict)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    bundles: BundlesConfig = Field(default_factory=BundlesConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment beats buckal.toml; dotenv and secret files are unused."""
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        workspace_dir: Path | None = None,
        **cli_flags: Any,
    ) -> BuckalSettings:
        """Build settings for the root click group.

        An explicit *config_path* that does not exist is ignored, matching
        the behaviour of a failed walk-up.
        """
        toml_path = _resolve_config(config_path, workspace_dir)

        overrides: dict[str, Any] = {"config_path": toml_path, **cli_flags}
        if workspace_dir is not None:
            overrides["workspace_dir"] = workspace_dir

        _tls.toml_path = toml_path
        try:
            return cls(**overrides)
        finally:
            _tls.toml_path = None
