"""Report models — verifier output, non-fatal warnings, and the run summary."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from bundleforge.models.stages import StageState


class Offense(BaseModel):
    """A surviving disallowed absolute reference inside one binary."""

    model_config = ConfigDict(frozen=True)

    binary: Path
    reference: str


class VerificationResult(BaseModel):
    """Output of the static portability scan.

    Consumed only for reporting; the pipeline aborts when ``passed`` is
    False.
    """

    model_config = ConfigDict(frozen=True)

    offenses: list[Offense] = []
    binaries_scanned: int = 0
    signature_valid: bool = False
    smoke_test_passed: bool | None = None  # None when the probe did not run

    @property
    def passed(self) -> bool:
        return not self.offenses


class WarningKind(str, Enum):
    """Non-fatal conditions surfaced at the end of a run."""

    DEPLOYMENT = "deployment"
    REWRITE = "rewrite"
    SMOKE_TEST = "smoke_test"


class PipelineWarning(BaseModel):
    """A recorded non-fatal condition; never alters the exit code."""

    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    stage_id: str
    message: str


class StageRecord(BaseModel):
    """Final state of one stage in a run."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    state: StageState
    output_hash: str = ""
    detail: str = ""


class PipelineReport(BaseModel):
    """Summary of a complete (or aborted) pipeline run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    stages: list[StageRecord] = []
    warnings: list[PipelineWarning] = []
    verification: VerificationResult | None = None
    archive_path: Path | None = None
    error: str = ""
    finished_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def succeeded(self) -> bool:
        return not self.error and all(
            s.state == StageState.PASSED for s in self.stages
        )
