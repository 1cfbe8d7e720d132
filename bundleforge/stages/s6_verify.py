"""Stage 6 — Integrity Verifier.

1. Ad-hoc sign the bundle and validate the signature (fatal on failure).
2. Unless self-checks are disabled:
   a. re-scan every binary for distrusted references — any survivor is
      a ``PortabilityViolationError``;
   b. launch the main executable with ``--help``; failure is only a
      warning.
"""

from __future__ import annotations

import logging
from typing import Any

from bundleforge.core.cancellation import CancellationToken
from bundleforge.core.errors import PortabilityViolationError
from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.tools import Toolchain
from bundleforge.core.verifier import IntegrityVerifier
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.config import BuildConfig
from bundleforge.models.reports import VerificationResult, WarningKind
from bundleforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


class VerifyStage(BaseStage):
    @property
    def stage_id(self) -> str:
        return "s6_verify"

    @property
    def display_name(self) -> str:
        return "Integrity Verifier"

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        config: BuildConfig = run_context["config"]
        toolchain: Toolchain = run_context["toolchain"]
        bundle: BundleArtifact = run_context["bundle"]
        token: CancellationToken | None = run_context.get("cancel_token")

        verifier = IntegrityVerifier(
            toolchain.signer,
            toolchain.inspector,
            LayoutClassifier.from_config(config),
            toolchain.probe,
            token,
        )

        logger.info("Ad-hoc signing app for internal distribution")
        verifier.seal(bundle)

        if not config.run_self_checks:
            logger.info("Self-checks disabled; skipping reference scan and smoke test")
            result = VerificationResult(signature_valid=True)
            run_context["verification"] = result
            return {"self_checks": False, "signature_valid": True}

        logger.info("Running self-checks on app")
        offenses, scanned = verifier.scan(bundle)
        if offenses:
            run_context["verification"] = VerificationResult(
                offenses=offenses, binaries_scanned=scanned, signature_valid=True
            )
            raise PortabilityViolationError(offenses)

        launched = verifier.smoke_test(config.main_binary)
        if not launched:
            self.warn(
                run_context,
                WarningKind.SMOKE_TEST,
                f"app smoke test failed (non-fatal): {config.main_binary} --help",
            )

        result = VerificationResult(
            binaries_scanned=scanned,
            signature_valid=True,
            smoke_test_passed=launched,
        )
        run_context["verification"] = result
        return {
            "self_checks": True,
            "signature_valid": True,
            "binaries_scanned": scanned,
            "offenses": 0,
            "smoke_test_passed": launched,
        }
