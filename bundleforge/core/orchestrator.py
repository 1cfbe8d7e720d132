"""Pipeline orchestrator — runs the stages strictly in order.

Locator -> Build -> Deployment -> Rewriter -> Verifier -> Archiver, each
consuming the bundle left by the previous stage.  Nothing runs in
parallel and nothing is retried: the first ``PipelineError`` marks its
stage FAILED and propagates.  The cancellation token is checked between
stages (and, inside the rewriter and verifier, between binaries).
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from bundleforge.core.cancellation import CancellationToken
from bundleforge.core.tools import Toolchain
from bundleforge.models.config import BuildConfig
from bundleforge.models.reports import PipelineReport, StageRecord
from bundleforge.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
)
from bundleforge.stages import STAGE_ORDER, BaseStage, get_stage

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a stage state change is not allowed."""


class Orchestrator:
    """Central pipeline orchestrator.

    Parameters
    ----------
    config:
        Frozen run configuration.
    toolchain:
        Tool implementations; the host's macOS tools if not provided.
    token:
        Cancellation token shared with long-running stages.
    stages:
        Stage instances keyed by stage_id, overriding the registry.
    """

    def __init__(
        self,
        config: BuildConfig,
        toolchain: Toolchain | None = None,
        *,
        token: CancellationToken | None = None,
        stages: dict[str, BaseStage] | None = None,
    ) -> None:
        self.config = config
        self.toolchain = toolchain or Toolchain.system(config)
        self.token = token or CancellationToken()

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = f"bf-{ts}-{uuid.uuid4().hex[:4]}"

        self._definitions: dict[str, StageDefinition] = {
            d.stage_id: d for d in DEFAULT_STAGE_DEFINITIONS
        }
        overrides = stages or {}
        self._stages: dict[str, BaseStage] = {
            sid: overrides.get(sid) or get_stage(sid) for sid in STAGE_ORDER
        }
        self.run_context: dict[str, Any] = self._new_context()

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(self) -> PipelineReport:
        """Execute every stage in order and return the report.

        Raises the first ``PipelineError``; ``report()`` still describes
        the aborted run afterwards.
        """
        ctx = self.run_context
        logger.info("Run %s starting in %s", self.run_id, self.config.source_root)

        for stage_id in STAGE_ORDER:
            self.token.raise_if_cancelled(f"before {stage_id}")
            stage = self._stages[stage_id]
            self._transition(stage_id, StageState.RUNNING)
            try:
                stage.run_stage(ctx)
            except Exception as exc:
                self._transition(stage_id, StageState.FAILED)
                ctx["error"] = str(exc)
                raise
            self._transition(stage_id, StageState.PASSED)

        report = self.report()
        for warning in report.warnings:
            logger.warning("[%s] %s", warning.kind.value, warning.message)
        return report

    def report(self) -> PipelineReport:
        """Build a report from the current run state."""
        ctx = self.run_context
        results: dict[str, dict[str, Any]] = ctx.get("stage_results", {})
        records = [
            StageRecord(
                stage_id=sid,
                display_name=self._definitions[sid].display_name,
                state=ctx["stage_states"][sid],
                output_hash=results.get(sid, {}).get("_output_hash", ""),
            )
            for sid in STAGE_ORDER
        ]
        return PipelineReport(
            run_id=self.run_id,
            stages=records,
            warnings=list(ctx.get("warnings", [])),
            verification=ctx.get("verification"),
            archive_path=ctx.get("archive_path"),
            error=ctx.get("error", ""),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _new_context(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "config": self.config,
            "toolchain": self.toolchain,
            "cancel_token": self.token,
            "stage_states": {sid: StageState.NOT_STARTED for sid in STAGE_ORDER},
            "stage_definitions": {
                sid: d.model_dump() for sid, d in self._definitions.items()
            },
            "stage_results": {},
            "warnings": [],
        }

    def _transition(self, stage_id: str, new_state: StageState) -> None:
        states: dict[str, StageState] = self.run_context["stage_states"]
        current = states[stage_id]
        if new_state not in VALID_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"{stage_id}: {current.value} -> {new_state.value} is not allowed"
            )
        states[stage_id] = new_state
