"""Stage 5 — Dependency Closure Rewriter.

Wraps ``ClosureRewriter`` and records a fingerprint of the bundle tree
after the pass.  References that could not be rewritten become warnings;
the verifier decides whether the result is acceptable.
"""

from __future__ import annotations

from typing import Any

from bundleforge.core.cancellation import CancellationToken
from bundleforge.core.hasher import fingerprint_tree
from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.rewriter import ClosureRewriter
from bundleforge.core.tools import Toolchain
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.config import BuildConfig
from bundleforge.models.reports import WarningKind
from bundleforge.stages.base import BaseStage


class RewriteStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s5_rewrite"

    @property
    def display_name(self) -> str:
        return "Dependency Closure Rewriter"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]
        bundle: BundleArtifact = run_context["bundle"]
        token: CancellationToken | None = run_context.get("cancel_token")

        rewriter = ClosureRewriter(
            toolchain.inspector,
            toolchain.rewriter,
            LayoutClassifier.from_config(config),
            config.bundle_relative_locator,
            token,
        )
        summary = rewriter.rewrite(bundle)

        for failed in summary.failures:
            self.warn(
                run_context,
                WarningKind.REWRITE,
                f"could not rewrite {failed.old_reference} in {failed.binary}",
            )

        return {
            "binaries_scanned": summary.binaries_scanned,
            "rewrites": [
                {
                    "binary": r.binary.relative_to(bundle.root).as_posix(),
                    "old": r.old_reference,
                    "new": r.new_reference,
                }
                for r in summary.rewrites
            ],
            "failures": len(summary.failures),
            "bundle_fingerprint": fingerprint_tree(bundle.root),
        }
