"""Stage 2 — External sources.

The physics plugin module is vendored under ``external/``.  When it is
missing or empty it is cloned from its upstream repository; this is the
only network access in the pipeline and fails as ``NetworkFetchError``,
never as a build failure.
"""

from __future__ import annotations

import logging
import shutil
from typing import Any

from bundleforge.core.errors import CommandError, CommandTimeoutError, NetworkFetchError
from bundleforge.core.tools import Toolchain
from bundleforge.models.config import BuildConfig
from bundleforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


class ExternalSourcesStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s2_sources"

    @property
    def display_name(self) -> str:
        return "External Sources"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]
        module_dir = config.external_module_dir

        if module_dir.is_dir() and any(module_dir.iterdir()):
            return {"module": config.external_module_name, "fetched": False}

        logger.info(
            "%s source missing; downloading to %s", config.external_module_name, module_dir
        )
        if module_dir.exists():
            shutil.rmtree(module_dir)
        module_dir.parent.mkdir(parents=True, exist_ok=True)

        try:
            toolchain.fetcher.fetch(config.external_module_url, module_dir)
        except (CommandError, CommandTimeoutError) as exc:
            raise NetworkFetchError(
                f"Could not fetch {config.external_module_url}: {exc}"
            ) from exc

        return {
            "module": config.external_module_name,
            "fetched": True,
            "url": config.external_module_url,
        }
