"""Pydantic models for configuration, toolkit roots, bundles, and reports."""

from bundleforge.models.bundle import BundleArtifact, DependencyReference, RewriteRecord
from bundleforge.models.config import BuildConfig
from bundleforge.models.reports import (
    Offense,
    PipelineReport,
    PipelineWarning,
    StageRecord,
    VerificationResult,
    WarningKind,
)
from bundleforge.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    StageDefinition,
    StageState,
)
from bundleforge.models.toolkit import LayoutClass, ToolkitOrigin, ToolkitRoot, TrustTier
from bundleforge.models.versioning import ProjectVersion

__all__ = [
    "BuildConfig",
    "BundleArtifact",
    "DependencyReference",
    "RewriteRecord",
    "Offense",
    "VerificationResult",
    "WarningKind",
    "PipelineWarning",
    "StageRecord",
    "PipelineReport",
    "StageState",
    "StageDefinition",
    "DEFAULT_STAGE_DEFINITIONS",
    "ToolkitOrigin",
    "LayoutClass",
    "TrustTier",
    "ToolkitRoot",
    "ProjectVersion",
]
