"""Error taxonomy for the relocation pipeline.

Every fatal condition is a ``PipelineError`` subclass carrying a one-line
remediation hint.  The CLI prints the message and hint and exits with
``exit_code``.  Non-fatal conditions (deployer exit status, smoke test)
are recorded as ``PipelineWarning`` data, never raised.

No error is retried automatically; remediation is a user-driven re-run.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bundleforge.models.reports import Offense


class PipelineError(RuntimeError):
    """Base for all fatal pipeline conditions."""

    exit_code: int = 1
    default_remediation: str = ""

    def __init__(self, message: str, *, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = (
            remediation if remediation is not None else self.default_remediation
        )


class CommandError(PipelineError):
    """An external tool exited non-zero."""

    def __init__(
        self, command: list[str], returncode: int, stderr: str = ""
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip().splitlines()[-1]}" if stderr.strip() else ""
        super().__init__(
            f"{' '.join(command)} exited with status {returncode}{detail}"
        )


class CommandTimeoutError(PipelineError):
    """An external tool did not finish within its time budget."""

    def __init__(self, command: list[str], timeout: float) -> None:
        self.command = command
        self.timeout = timeout
        super().__init__(f"{' '.join(command)} timed out after {timeout:g}s")


class MissingPrerequisiteError(PipelineError):
    default_remediation = "Install the missing tool (Xcode command line tools, CMake, git) and rerun."


class ToolkitUnresolvedError(PipelineError):
    default_remediation = (
        "Install Qt 6.5+ via the Qt Installer (~/Qt/<version>/macos) or Homebrew "
        "(`brew install qt`), then rerun, or pass --qt-root explicitly."
    )

    def __init__(self, message: str, attempted: list[str] | None = None) -> None:
        self.attempted = list(attempted or [])
        if self.attempted:
            message += "\nAttempted:\n" + "\n".join(f"  - {a}" for a in self.attempted)
        super().__init__(message)


class UntrustedLayoutError(PipelineError):
    default_remediation = (
        "Use the Qt online installer (example: ~/Qt/6.10.0/macos) and rerun with "
        "--qt-root, or set ALLOW_HOMEBREW_QT=1 to try the Homebrew layout anyway."
    )


class NetworkFetchError(PipelineError):
    default_remediation = "Check network connectivity and rerun."


class BuildFailureError(PipelineError):
    default_remediation = "Fix the configure/compile error shown above and rerun."


class MissingArtifactError(PipelineError):
    """The toolchain reported success but produced no output."""

    def __init__(self, message: str, expected_path: Path) -> None:
        self.expected_path = expected_path
        super().__init__(
            f"{message}: {expected_path}",
            remediation="Inspect the build directory; the app target produced no bundle.",
        )


class SigningError(PipelineError):
    default_remediation = "Check that `codesign` can sign the bundle (writable files, no stray extended attributes)."


class PortabilityViolationError(PipelineError):
    """Absolute references to the distrusted layout survive in the bundle."""

    default_remediation = "The bundle is not portable; rewrite the listed references or rebuild."

    def __init__(self, offenses: list["Offense"]) -> None:
        self.offenses = list(offenses)
        lines = [f"  {o.binary}: {o.reference}" for o in self.offenses]
        super().__init__(
            f"{len(self.offenses)} unresolved absolute dependencies remain\n"
            + "\n".join(lines)
        )


class ArchiveError(PipelineError):
    default_remediation = "Check free disk space and the version variables in CMakeLists.txt."


class PipelineCancelledError(PipelineError):
    exit_code = 130
    default_remediation = "Rerun when ready; the run was cancelled cooperatively."
