"""Stage 3 — Build Orchestrator.

Configures and builds the single app bundle target with a fixed option
set.  Any configure or compile failure is fatal and not retried.  A
build that reports success without producing the bundle directory is a
distinct ``MissingArtifactError``.
"""

from __future__ import annotations

import logging
from typing import Any

from bundleforge.core.errors import BuildFailureError, CommandError, CommandTimeoutError, MissingArtifactError
from bundleforge.core.permissions import make_tree_writable
from bundleforge.core.tools import Toolchain
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.config import BuildConfig
from bundleforge.models.toolkit import ToolkitRoot
from bundleforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


def _on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"


def configure_options(config: BuildConfig, toolkit: ToolkitRoot) -> dict[str, str]:
    """The fixed CMake cache entries for an internal distributable build."""
    return {
        "CMAKE_BUILD_TYPE": "Release",
        "CMAKE_PREFIX_PATH": str(toolkit.cmake_dir),
        "CMAKE_OSX_ARCHITECTURES": config.target_arch,
        "BUILD_STANDALONE": "OFF",
        "QML_BOX2D_MODULE": "submodule",
        "SKIP_TRANSLATIONS": _on_off(not config.with_translations),
        "BUILD_SERVER": _on_off(config.build_server),
        "PACKAGE_GCOMPRIS": "OFF",
        "PACKAGE_SERVER": "OFF",
    }


class BuildStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s3_build"

    @property
    def display_name(self) -> str:
        return "Build Orchestrator"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]
        toolkit: ToolkitRoot = run_context["toolkit"]

        config.build_dir.mkdir(parents=True, exist_ok=True)
        config.dist_dir.mkdir(parents=True, exist_ok=True)

        generator = "Ninja" if toolchain.find_tool("ninja") else None
        options = configure_options(config, toolkit)

        logger.info("Configuring build directory: %s", config.build_dir)
        try:
            toolchain.build_system.configure(
                config.source_root, config.build_dir, options, generator
            )
        except (CommandError, CommandTimeoutError) as exc:
            raise BuildFailureError(f"Configuration failed: {exc}") from exc

        logger.info("Building app bundle target %s", config.app_name)
        try:
            toolchain.build_system.build(config.build_dir, config.app_name)
        except (CommandError, CommandTimeoutError) as exc:
            raise BuildFailureError(f"Build failed: {exc}") from exc

        bundle = BundleArtifact(root=config.app_path)
        if not bundle.exists():
            raise MissingArtifactError("app bundle not found", config.app_path)

        make_tree_writable(bundle.root)
        run_context["bundle"] = bundle

        return {
            "bundle": str(bundle.root),
            "generator": generator or "default",
            "options": options,
        }
