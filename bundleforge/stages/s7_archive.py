"""Stage 7 — Archiver.

Stages a copy of the verified bundle and an ``/Applications`` shortcut in
an emptied staging directory, then packs it into one disk image named
from the project version.  Any previous image of the same name is
replaced.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from bundleforge.core.errors import ArchiveError, CommandError, CommandTimeoutError, MissingArtifactError
from bundleforge.core.permissions import make_tree_writable
from bundleforge.core.tools import Toolchain
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.config import BuildConfig
from bundleforge.models.versioning import ProjectVersion
from bundleforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


def prepare_staging(config: BuildConfig, bundle: BundleArtifact) -> Path:
    """Empty the staging directory and fill it with the bundle and shortcut."""
    stage_dir = config.stage_dir
    if stage_dir.is_symlink() or stage_dir.is_file():
        stage_dir.unlink()
    elif stage_dir.exists():
        shutil.rmtree(stage_dir)
    stage_dir.mkdir(parents=True)

    staged_app = stage_dir / bundle.root.name
    shutil.copytree(bundle.root, staged_app, symlinks=True)
    make_tree_writable(staged_app)

    (stage_dir / config.install_location.name).symlink_to(config.install_location)
    return staged_app


class ArchiveStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s7_archive"

    @property
    def display_name(self) -> str:
        return "Archiver"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]
        bundle: BundleArtifact = run_context["bundle"]

        try:
            version = ProjectVersion.from_cmake(
                config.cmake_lists, config.version_variable_prefix
            )
        except (OSError, ValueError) as exc:
            raise ArchiveError(f"Cannot read project version: {exc}") from exc

        staged_app = prepare_staging(config, bundle)

        out_path = config.archive_path(version)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.unlink(missing_ok=True)

        logger.info("Creating DMG")
        try:
            toolchain.archiver.create(config.stage_dir, out_path, config.volume_name)
        except (CommandError, CommandTimeoutError) as exc:
            raise ArchiveError(f"Disk image creation failed: {exc}") from exc
        if not out_path.is_file():
            raise MissingArtifactError("disk image not produced", out_path)

        run_context["archive_path"] = out_path
        logger.info("DMG ready: %s", out_path)
        logger.info(
            "Install by opening the DMG and dragging %s to %s.",
            bundle.root.name,
            config.install_location,
        )
        logger.info(
            "For internal use, expect a Gatekeeper warning on first run because "
            "this build is ad-hoc signed."
        )
        return {
            "archive": str(out_path),
            "version": version.label,
            "staged_app": str(staged_app),
        }
