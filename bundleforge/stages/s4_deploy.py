"""Stage 4 — Deployment Invoker.

Runs macdeployqt against the bundle with every plausible library search
path, because the deployer does not discover split package-manager kegs
on its own.

The deployer's exit status is advisory.  A non-zero status is recorded
as a warning and the run continues to the rewriter and verifier, which
do the authoritative check.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from bundleforge.core.errors import CommandTimeoutError, MissingArtifactError
from bundleforge.core.tools import Toolchain
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.config import BuildConfig
from bundleforge.models.reports import WarningKind
from bundleforge.models.toolkit import ToolkitRoot
from bundleforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


def library_search_paths(
    config: BuildConfig, toolkit: ToolkitRoot, toolchain: Toolchain
) -> list[Path]:
    """Every directory that may provide a Qt dependency, deduplicated.

    The kit's own ``lib`` comes first; when the package manager is
    present, each ``qt*/lib`` keg directory follows in sorted order.
    """
    paths: list[Path] = []
    kit_lib = toolkit.path / "lib"
    if kit_lib.is_dir():
        paths.append(kit_lib)
    if toolchain.package_manager.available() and config.package_manager_opt_dir.is_dir():
        kegs = sorted(
            p for p in config.package_manager_opt_dir.glob("qt*/lib") if p.is_dir()
        )
        paths.extend(p for p in kegs if p not in paths)
    return paths


class DeployStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s4_deploy"

    @property
    def display_name(self) -> str:
        return "Deployment Invoker"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]
        toolkit: ToolkitRoot = run_context["toolkit"]
        bundle: BundleArtifact = run_context["bundle"]

        search_paths = library_search_paths(config, toolkit, toolchain)
        logger.info("Deploying Qt frameworks/plugins with %s", toolkit.deployer)

        try:
            status = toolchain.deployer.deploy(
                toolkit.deployer, bundle.root, search_paths, config.qml_dir
            )
        except CommandTimeoutError as exc:
            status = -1
            self.warn(run_context, WarningKind.DEPLOYMENT, f"macdeployqt did not finish: {exc}")
        else:
            if status != 0:
                self.warn(
                    run_context,
                    WarningKind.DEPLOYMENT,
                    f"macdeployqt returned {status}; applying manual install-name "
                    "fixups and continuing",
                )

        if not bundle.exists():
            raise MissingArtifactError("app bundle disappeared during deployment", bundle.root)

        return {
            "exit_status": status,
            "library_paths": [str(p) for p in search_paths],
            "qml_dir": str(config.qml_dir),
        }
