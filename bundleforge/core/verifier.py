"""Integrity verifier — seal the bundle and prove it is portable.

Hard failures: the ad-hoc signature cannot be applied or validated, or a
binary still references the distrusted layout.  The launch probe is
best-effort because headless machines often cannot start a GUI process.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from bundleforge.core.cancellation import CancellationToken
from bundleforge.core.errors import (
    CommandError,
    CommandTimeoutError,
    MissingArtifactError,
    SigningError,
)
from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.tools import BinaryInspector, CodeSigner, LaunchProbe
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.reports import Offense

logger = logging.getLogger(__name__)


def scan_bundle(
    bundle: BundleArtifact,
    inspector: BinaryInspector,
    classifier: LayoutClassifier,
    token: CancellationToken | None = None,
) -> tuple[list[Offense], int]:
    """Return every surviving distrusted reference and the number of binaries scanned."""
    offenses: list[Offense] = []
    binaries = bundle.binaries()
    for binary in binaries:
        if token is not None:
            token.raise_if_cancelled(f"scanning {binary.name}")
        for reference in inspector.linked_libraries(binary):
            if classifier.is_distrusted_reference(reference):
                offenses.append(Offense(binary=binary, reference=reference))
    return offenses, len(binaries)


class IntegrityVerifier:
    def __init__(
        self,
        signer: CodeSigner,
        inspector: BinaryInspector,
        classifier: LayoutClassifier,
        probe: LaunchProbe,
        token: CancellationToken | None = None,
    ) -> None:
        self.signer = signer
        self.inspector = inspector
        self.classifier = classifier
        self.probe = probe
        self.token = token

    def seal(self, bundle: BundleArtifact) -> None:
        """Ad-hoc sign the whole tree, then validate the signature."""
        try:
            self.signer.sign(bundle.root)
        except (CommandError, CommandTimeoutError) as exc:
            raise SigningError(f"Ad-hoc signing failed for {bundle.root}: {exc}") from exc
        try:
            self.signer.validate(bundle.root)
        except (CommandError, CommandTimeoutError) as exc:
            raise SigningError(
                f"Signature validation failed for {bundle.root}: {exc}"
            ) from exc

    def scan(self, bundle: BundleArtifact) -> tuple[list[Offense], int]:
        return scan_bundle(bundle, self.inspector, self.classifier, self.token)

    def smoke_test(self, main_binary: Path) -> bool:
        """Launch *main_binary* with a no-op flag.

        A missing or non-executable main binary is fatal; a failed
        launch only returns False.
        """
        if not main_binary.is_file() or not os.access(main_binary, os.X_OK):
            raise MissingArtifactError("main executable missing or not executable", main_binary)
        return self.probe.probe(main_binary)
