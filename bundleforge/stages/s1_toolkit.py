"""Stage 1 — Toolkit Locator.

Resolves exactly one Qt root, checks its layout, and applies the trust
gate.  A refused layout stops the run here, before any build output is
produced.
"""

from __future__ import annotations

import logging
from typing import Any

from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.locator import (
    ToolkitLocator,
    enforce_trust,
    validate_deployer,
    validate_toolkit,
)
from bundleforge.core.tools import Toolchain
from bundleforge.models.config import BuildConfig
from bundleforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


class ToolkitStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s1_toolkit"

    @property
    def display_name(self) -> str:
        return "Toolkit Locator"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]
        classifier = LayoutClassifier.from_config(config)

        root = ToolkitLocator(config, classifier, toolchain.package_manager).resolve()
        validate_toolkit(root)
        root = enforce_trust(root, config.allow_distrusted_toolkit)
        deployer = validate_deployer(root)

        run_context["toolkit"] = root
        logger.info("Using Qt root: %s (%s, %s)", root.path, root.origin.value, root.trust.value)
        return {
            "path": str(root.path),
            "origin": root.origin.value,
            "layout": root.layout.value,
            "trust": root.trust.value,
            "deployer": str(deployer),
        }
