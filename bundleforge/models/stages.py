"""Stage state models — strictly sequential pipeline, one definition per stage."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StageState(str, Enum):
    """State of a single pipeline stage within one run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


# Terminal states have no outgoing transitions; a run is never resumed.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {StageState.RUNNING},
    StageState.RUNNING: {StageState.PASSED, StageState.FAILED},
    StageState.PASSED: set(),
    StageState.FAILED: set(),
}


class StageDefinition(BaseModel):
    """Defines a pipeline stage and the stages that must pass before it."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    ordinal: int
    prerequisites: list[str] = []


DEFAULT_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(
        stage_id="s0_prerequisites",
        display_name="Prerequisite Tools",
        ordinal=0,
        prerequisites=[],
    ),
    StageDefinition(
        stage_id="s1_toolkit",
        display_name="Toolkit Locator",
        ordinal=1,
        prerequisites=["s0_prerequisites"],
    ),
    StageDefinition(
        stage_id="s2_sources",
        display_name="External Sources",
        ordinal=2,
        prerequisites=["s1_toolkit"],
    ),
    StageDefinition(
        stage_id="s3_build",
        display_name="Build Orchestrator",
        ordinal=3,
        prerequisites=["s2_sources"],
    ),
    StageDefinition(
        stage_id="s4_deploy",
        display_name="Deployment Invoker",
        ordinal=4,
        prerequisites=["s3_build"],
    ),
    StageDefinition(
        stage_id="s5_rewrite",
        display_name="Dependency Closure Rewriter",
        ordinal=5,
        prerequisites=["s4_deploy"],
    ),
    StageDefinition(
        stage_id="s6_verify",
        display_name="Integrity Verifier",
        ordinal=6,
        prerequisites=["s5_rewrite"],
    ),
    StageDefinition(
        stage_id="s7_archive",
        display_name="Archiver",
        ordinal=7,
        prerequisites=["s6_verify"],
    ),
]
