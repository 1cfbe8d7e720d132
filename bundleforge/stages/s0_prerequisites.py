"""Stage 0 — Prerequisite tools.

Every external tool the run depends on must be on PATH before anything
else happens; a missing one aborts immediately.
"""

from __future__ import annotations

from typing import Any

from bundleforge.core.errors import MissingPrerequisiteError
from bundleforge.core.tools import Toolchain
from bundleforge.models.config import BuildConfig
from bundleforge.stages.base import BaseStage


class PrerequisiteToolsStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s0_prerequisites"

    @property
    def display_name(self) -> str:
        return "Prerequisite Tools"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]

        resolved: dict[str, str] = {}
        missing: list[str] = []
        for tool in config.required_tools:
            found = toolchain.find_tool(tool)
            if found is None:
                missing.append(tool)
            else:
                resolved[tool] = found

        if missing:
            raise MissingPrerequisiteError(
                f"missing required command: {', '.join(missing)}"
            )
        return {"tools": resolved}
