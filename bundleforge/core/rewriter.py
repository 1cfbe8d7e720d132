"""Dependency closure rewriter.

The bundle deployer copies libraries into ``Contents/Frameworks`` but can
leave binaries pointing at the original absolute location of some of
them.  For every binary in the bundle, each reference that

* points into a distrusted layout, and
* names a library whose basename is present in ``Contents/Frameworks``

is rewritten to the bundle-relative locator of the in-bundle copy.
References without a bundled copy are left alone and assumed to be
provided by the system at run time.

Running the rewriter again is a no-op: a rewritten reference no longer
carries the distrusted prefix, so it never matches a second time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from bundleforge.core.cancellation import CancellationToken
from bundleforge.core.errors import CommandError, CommandTimeoutError
from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.permissions import ensure_user_writable
from bundleforge.core.tools import BinaryInspector, ReferenceRewriter
from bundleforge.models.bundle import BundleArtifact, DependencyReference, RewriteRecord

logger = logging.getLogger(__name__)


class RewriteSummary(BaseModel):
    """What one rewriter pass changed and what it could not change."""

    model_config = ConfigDict(frozen=True)

    binaries_scanned: int = 0
    rewrites: list[RewriteRecord] = []
    failures: list[RewriteRecord] = []

    @property
    def changed(self) -> bool:
        return bool(self.rewrites)


class ClosureRewriter:
    """Rewrite absolute references to libraries that are already bundled.

    Parameters
    ----------
    inspector:
        Reads each binary's linked-library references.
    rewriter:
        Replaces one reference in place.
    classifier:
        Decides which references point into a distrusted layout.
    locator:
        Maps a library basename to its bundle-relative load path.
    token:
        Polled between binaries so a long scan can be cancelled.
    """

    def __init__(
        self,
        inspector: BinaryInspector,
        rewriter: ReferenceRewriter,
        classifier: LayoutClassifier,
        locator: Callable[[str], str],
        token: CancellationToken | None = None,
    ) -> None:
        self.inspector = inspector
        self.rewriter = rewriter
        self.classifier = classifier
        self.locator = locator
        self.token = token or CancellationToken()

    def rewrite(self, bundle: BundleArtifact) -> RewriteSummary:
        rewrites: list[RewriteRecord] = []
        failures: list[RewriteRecord] = []
        binaries = bundle.binaries()

        for binary in binaries:
            self.token.raise_if_cancelled(f"rewriting {binary.name}")
            for reference in self.inspector.linked_libraries(binary):
                if not self.classifier.is_distrusted_reference(reference):
                    continue
                dep = DependencyReference(binary=binary, referenced_path=reference)
                bundled = bundle.bundled_library(dep.basename)
                if bundled is None:
                    logger.debug(
                        "%s: %s has no bundled copy, leaving it to the system loader",
                        binary.name,
                        reference,
                    )
                    continue

                record = RewriteRecord(
                    binary=binary,
                    old_reference=reference,
                    new_reference=self.locator(dep.basename),
                )
                ensure_user_writable(binary)
                ensure_user_writable(bundled)
                try:
                    self.rewriter.change(binary, record.old_reference, record.new_reference)
                except (CommandError, CommandTimeoutError) as exc:
                    logger.warning("Could not rewrite %s in %s: %s", reference, binary, exc)
                    failures.append(record)
                    continue
                logger.info(
                    "%s: %s -> %s", binary.name, reference, record.new_reference
                )
                rewrites.append(record)

        return RewriteSummary(
            binaries_scanned=len(binaries),
            rewrites=rewrites,
            failures=failures,
        )
