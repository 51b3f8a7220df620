"""BundleService — manage the external ``buckal`` cell holding the rule macros.

``init`` registers the cell in ``.buckconfig`` and writes the root
``PACKAGE`` file that selects the debug/release build modes; ``update``
re-pins the cell to the latest bundle revision.

The latest revision comes from the GitHub commits API. Any failure there
(network, HTTP status, unexpected payload) is a warning, and the
configured default revision is pinned instead.
"""

from __future__ import annotations

import json
import logging
from urllib.request import Request, urlopen

from buckal import __version__
from buckal.config.models import BundlesConfig
from buckal.domain.errors import BuckalError
from buckal.domain.rules import GENERATED_MARKER
from buckal.infrastructure.buckconfig import CellConfig, parse_key_values
from buckal.infrastructure.filesystem import write_rule_file
from buckal.services.base import BaseService
from buckal.services.result import ServiceResult

logger = logging.getLogger(__name__)

BUNDLE_CELL = "buckal"
BUNDLE_SECTION = "external_cell_buckal"
PROJECT_IGNORE = ".git .buckal buck-out target"

PACKAGE_FILE = "PACKAGE"
PACKAGE_CONTENT = f"""\
{GENERATED_MARKER}

load("@prelude//cfg/modifier:set_cfg_modifiers.bzl", "set_cfg_modifiers")
load("@buckal//config:set_cfg_constructor.bzl", "set_cfg_constructor")

ALIASES = {{
    "debug": "buckal//config/mode:debug",
    "release": "buckal//config/mode:release",
}}
set_cfg_constructor(aliases = ALIASES)

set_cfg_modifiers(
    cfg_modifiers = [
        "buckal//config/mode:debug",
    ],
)
"""


def fetch_latest_commit(config: BundlesConfig) -> str:
    """SHA of the newest commit on the bundle repository's default branch.

    Raises OSError on transport failures and ValueError on an unexpected
    response body.
    """
    url = f"{config.api_url.rstrip('/')}/repos/{config.repo}/commits?per_page=1"
    request = Request(
        url,
        headers={
            "Accept": "application/vnd.github+json",
            "User-Agent": f"buckal/{__version__}",
        },
    )
    logger.info("Fetching https://github.com/%s", config.repo)
    with urlopen(request, timeout=config.timeout) as resp:
        payload = json.loads(resp.read().decode("utf-8"))
    if not isinstance(payload, list) or not payload or "sha" not in payload[0]:
        msg = f"Unexpected response from {url}"
        raise ValueError(msg)
    return str(payload[0]["sha"])


class BundleService(BaseService):
    """Initialize and update the bundle cell of a Buck2 project."""

    def _commit_hash(self, warnings: list[str]) -> str:
        config = self._workspace.settings.bundles
        try:
            return fetch_latest_commit(config)
        except (OSError, ValueError) as exc:
            message = f"Failed to fetch latest bundle hash ({exc}), using default hash instead."
            logger.warning(message)
            warnings.append(message)
            return config.default_hash

    def _pin(self, section: list[str], warnings: list[str]) -> str:
        commit = self._commit_hash(warnings)
        section.clear()
        repo = self._workspace.settings.bundles.repo
        section.append(f"  git_origin = https://github.com/{repo}")
        section.append(f"  commit_hash = {commit}")
        return commit

    def init(self, *, write_package: bool = True) -> ServiceResult:
        """Register the bundle cell and project ignores in ``.buckconfig``."""
        warnings: list[str] = []
        try:
            path = self._workspace.buckconfig_path
            config = CellConfig.load(path) if path.exists() else CellConfig()
            if BUNDLE_CELL in config.cells:
                msg = f"Cell '{BUNDLE_CELL}' is already declared in {path}"
                raise BuckalError("ALREADY_INITIALIZED", msg, path=str(path))

            config.section("cells").append(f"  {BUNDLE_CELL} = {BUNDLE_CELL}")
            config.section("external_cells").append(f"  {BUNDLE_CELL} = git")
            section = config.new_section_after("external_cells", BUNDLE_SECTION)
            commit = self._pin(section, warnings)
            config.new_section("project").append(f"  ignore = {PROJECT_IGNORE}")
            config.save(path)

            written = [str(path)]
            if write_package:
                package_path = self._workspace.project_root / PACKAGE_FILE
                write_rule_file(package_path, PACKAGE_CONTENT)
                written.append(str(package_path))
        except (BuckalError, OSError) as exc:
            return self._failure("init_bundles", exc, warnings=warnings)

        return ServiceResult(
            ok=True,
            op="init_bundles",
            data={"commit_hash": commit, "written": written},
            warnings=warnings,
        )

    def update(self) -> ServiceResult:
        """Re-pin ``[external_cell_buckal]`` to the latest bundle revision."""
        warnings: list[str] = []
        try:
            path = self._workspace.buckconfig_path
            config = CellConfig.load(path)
            section = config.get(BUNDLE_SECTION)
            if section is None:
                msg = f"No [{BUNDLE_SECTION}] section in {path}; run `buckal bundles init`"
                raise BuckalError("NOT_INITIALIZED", msg, path=str(path))
            previous = parse_key_values(section).get("commit_hash")
            commit = self._pin(section, warnings)
            config.save(path)
        except (BuckalError, OSError) as exc:
            return self._failure("update_bundles", exc, warnings=warnings)

        return ServiceResult(
            ok=True,
            op="update_bundles",
            data={"commit_hash": commit, "previous": previous, "changed": commit != previous},
            warnings=warnings,
        )
