"""Pipeline stages — registry mapping stage_id to stage class.

Usage::

    from bundleforge.stages import STAGE_ORDER, get_stage

    for stage_id in STAGE_ORDER:
        get_stage(stage_id).run_stage(run_context)
"""

from __future__ import annotations

from bundleforge.stages.base import BaseStage, StageExecutionError, StagePrerequisiteError
from bundleforge.stages.s0_prerequisites import PrerequisiteToolsStage
from bundleforge.stages.s1_toolkit import ToolkitStage
from bundleforge.stages.s2_sources import ExternalSourcesStage
from bundleforge.stages.s3_build import BuildStage
from bundleforge.stages.s4_deploy import DeployStage
from bundleforge.stages.s5_rewrite import RewriteStage
from bundleforge.stages.s6_verify import VerifyStage
from bundleforge.stages.s7_archive import ArchiveStage

STAGE_REGISTRY: dict[str, type[BaseStage]] = {
    "s0_prerequisites": PrerequisiteToolsStage,
    "s1_toolkit": ToolkitStage,
    "s2_sources": ExternalSourcesStage,
    "s3_build": BuildStage,
    "s4_deploy": DeployStage,
    "s5_rewrite": RewriteStage,
    "s6_verify": VerifyStage,
    "s7_archive": ArchiveStage,
}

# Strict execution order; each stage consumes the bundle left by the previous one.
STAGE_ORDER: list[str] = [
    "s0_prerequisites",
    "s1_toolkit",
    "s2_sources",
    "s3_build",
    "s4_deploy",
    "s5_rewrite",
    "s6_verify",
    "s7_archive",
]


def get_stage(stage_id: str) -> BaseStage:
    """Instantiate and return a stage by its ``stage_id``.

    Raises ``KeyError`` if the stage_id is not registered.
    """
    try:
        cls = STAGE_REGISTRY[stage_id]
    except KeyError:
        raise KeyError(
            f"Unknown stage_id {stage_id!r}. "
            f"Registered stages: {sorted(STAGE_REGISTRY.keys())}"
        ) from None
    return cls()


__all__ = [
    "BaseStage",
    "StageExecutionError",
    "StagePrerequisiteError",
    "STAGE_REGISTRY",
    "STAGE_ORDER",
    "get_stage",
    "PrerequisiteToolsStage",
    "ToolkitStage",
    "ExternalSourcesStage",
    "BuildStage",
    "DeployStage",
    "RewriteStage",
    "VerifyStage",
    "ArchiveStage",
]
