"""External tool capabilities consumed by the pipeline.

Each tool the pipeline shells out to is modelled as a narrow ``Protocol``
so a native Mach-O library, or an in-memory fake in tests, can stand in
for the subprocess:

* ``BinaryInspector``   — list a binary's linked-library references.
* ``ReferenceRewriter`` — replace one linked-library reference.
* ``CodeSigner``        — ad-hoc sign a bundle and validate the seal.
* ``BundleDeployer``    — copy dependencies into the bundle (macdeployqt).
* ``BuildSystem``       — configure and build the app target (CMake).
* ``SourceFetcher``     — fetch an external source module (git).
* ``ArchiveBuilder``    — pack a directory into one container (hdiutil).
* ``LaunchProbe``       — run the main executable with a no-op flag.
* ``PackageManager``    — query an installed package prefix (Homebrew).

``Toolchain`` groups one implementation of each; ``Toolchain.system``
builds the subprocess-backed set.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

from bundleforge.core.errors import CommandError, CommandTimeoutError
from bundleforge.core.runner import run_command
from bundleforge.models.config import BuildConfig

logger = logging.getLogger(__name__)

# Load commands that make the dynamic loader open another image.
_LOAD_COMMANDS: frozenset[str] = frozenset({
    "LC_LOAD_DYLIB",
    "LC_LOAD_WEAK_DYLIB",
    "LC_REEXPORT_DYLIB",
    "LC_LAZY_LOAD_DYLIB",
    "LC_LOAD_UPWARD_DYLIB",
})


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class BinaryInspector(Protocol):
    def linked_libraries(self, binary: Path) -> list[str]:
        """Return the library paths *binary* asks the loader to open.

        A file that is not a loadable image yields an empty list.
        """
        ...


@runtime_checkable
class ReferenceRewriter(Protocol):
    def change(self, binary: Path, old: str, new: str) -> None:
        """Replace reference *old* with *new* inside *binary*."""
        ...


@runtime_checkable
class CodeSigner(Protocol):
    def sign(self, bundle: Path) -> None:
        """Apply an ad-hoc signature covering the whole bundle tree."""
        ...

    def validate(self, bundle: Path) -> None:
        """Raise ``CommandError`` if the bundle's signature does not verify."""
        ...


@runtime_checkable
class BundleDeployer(Protocol):
    def deploy(
        self,
        deployer: Path,
        bundle: Path,
        library_paths: list[Path],
        qml_dir: Path,
    ) -> int:
        """Run the deployer and return its exit status (advisory only)."""
        ...


@runtime_checkable
class BuildSystem(Protocol):
    def configure(
        self,
        source_root: Path,
        build_dir: Path,
        options: dict[str, str],
        generator: str | None = None,
    ) -> None:
        ...

    def build(self, build_dir: Path, target: str) -> None:
        ...


@runtime_checkable
class SourceFetcher(Protocol):
    def fetch(self, url: str, destination: Path) -> None:
        ...


@runtime_checkable
class ArchiveBuilder(Protocol):
    def create(self, source_dir: Path, destination: Path, volume_name: str) -> None:
        ...


@runtime_checkable
class LaunchProbe(Protocol):
    def probe(self, executable: Path) -> bool:
        """Return True if *executable* launched and exited cleanly."""
        ...


@runtime_checkable
class PackageManager(Protocol):
    def available(self) -> bool:
        ...

    def installed_prefix(self, package: str) -> Path | None:
        ...


# ---------------------------------------------------------------------------
# Subprocess-backed implementations
# ---------------------------------------------------------------------------


def parse_load_commands(output: str) -> list[str]:
    """Extract dependency paths from ``otool -l`` output.

    Only the ``name`` field of dylib load commands is kept, so a library's
    own install name (``LC_ID_DYLIB``) never counts as a dependency.
    """
    references: list[str] = []
    pending = False
    for raw in output.splitlines():
        line = raw.strip()
        if line.startswith("cmd "):
            pending = line.split(None, 1)[1] in _LOAD_COMMANDS
        elif pending and line.startswith("name "):
            name = line[len("name "):]
            offset = name.rfind(" (offset")
            references.append(name[:offset] if offset != -1 else name)
            pending = False
    return references


class OtoolInspector:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def linked_libraries(self, binary: Path) -> list[str]:
        result = run_command(
            ["otool", "-l", str(binary)], timeout=self.timeout, check=False
        )
        if result.returncode != 0:
            # Not a Mach-O image (scripts, resources with +x, ...)
            return []
        return parse_load_commands(result.stdout)


class InstallNameTool:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def change(self, binary: Path, old: str, new: str) -> None:
        run_command(
            ["install_name_tool", "-change", old, new, str(binary)],
            timeout=self.timeout,
        )


class AdHocCodesign:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def sign(self, bundle: Path) -> None:
        run_command(
            ["codesign", "--force", "--sign", "-", "--timestamp=none", "--deep", str(bundle)],
            timeout=self.timeout,
        )

    def validate(self, bundle: Path) -> None:
        run_command(
            ["codesign", "-vvv", "--deep", "--strict", str(bundle)],
            timeout=self.timeout,
        )


class MacDeployQt:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def deploy(
        self,
        deployer: Path,
        bundle: Path,
        library_paths: list[Path],
        qml_dir: Path,
    ) -> int:
        command = [str(deployer), str(bundle), "-always-overwrite", f"-qmldir={qml_dir}"]
        command += [f"-libpath={p}" for p in library_paths]
        result = run_command(command, timeout=self.timeout, check=False, capture=False)
        return result.returncode


class CMake:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def configure(
        self,
        source_root: Path,
        build_dir: Path,
        options: dict[str, str],
        generator: str | None = None,
    ) -> None:
        command = ["cmake", "-S", str(source_root), "-B", str(build_dir)]
        if generator:
            command += ["-G", generator]
        command += [f"-D{key}={value}" for key, value in options.items()]
        run_command(command, timeout=self.timeout, capture=False)

    def build(self, build_dir: Path, target: str) -> None:
        run_command(
            ["cmake", "--build", str(build_dir), "--parallel", "--target", target],
            timeout=self.timeout,
            capture=False,
        )


class GitFetcher:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def fetch(self, url: str, destination: Path) -> None:
        run_command(
            ["git", "clone", "--depth", "1", url, str(destination)],
            timeout=self.timeout,
        )


class Hdiutil:
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def create(self, source_dir: Path, destination: Path, volume_name: str) -> None:
        run_command(
            [
                "hdiutil", "create",
                "-volname", volume_name,
                "-srcfolder", str(source_dir),
                "-ov", "-format", "UDZO",
                str(destination),
            ],
            timeout=self.timeout,
        )


class HelpFlagProbe:
    """Runs ``<executable> --help``; a GUI app may fail without a display."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    def probe(self, executable: Path) -> bool:
        try:
            result = run_command(
                [str(executable), "--help"], timeout=self.timeout, check=False
            )
        except (CommandError, CommandTimeoutError) as exc:
            logger.debug("launch probe failed: %s", exc)
            return False
        return result.returncode == 0


class Homebrew:
    def __init__(self, timeout: float, which: Callable[[str], str | None] = shutil.which) -> None:
        self.timeout = timeout
        self._which = which

    def available(self) -> bool:
        return self._which("brew") is not None

    def installed_prefix(self, package: str) -> Path | None:
        if not self.available():
            return None
        result = run_command(
            ["brew", "--prefix", "--installed", package],
            timeout=self.timeout,
            check=False,
        )
        prefix = result.stdout.strip() if result.returncode == 0 else ""
        return Path(prefix) if prefix else None


# ---------------------------------------------------------------------------
# Toolchain
# ---------------------------------------------------------------------------


class Toolchain:
    """One implementation of every tool capability used by the pipeline.

    Parameters are keyword-only so tests can replace any subset.
    """

    def __init__(
        self,
        *,
        inspector: BinaryInspector,
        rewriter: ReferenceRewriter,
        signer: CodeSigner,
        deployer: BundleDeployer,
        build_system: BuildSystem,
        fetcher: SourceFetcher,
        archiver: ArchiveBuilder,
        probe: LaunchProbe,
        package_manager: PackageManager,
        find_tool: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.inspector = inspector
        self.rewriter = rewriter
        self.signer = signer
        self.deployer = deployer
        self.build_system = build_system
        self.fetcher = fetcher
        self.archiver = archiver
        self.probe = probe
        self.package_manager = package_manager
        self.find_tool = find_tool

    @classmethod
    def system(cls, config: BuildConfig) -> "Toolchain":
        """Subprocess-backed toolchain using the host's macOS tools."""
        timeout = config.tool_timeout_seconds
        return cls(
            inspector=OtoolInspector(timeout),
            rewriter=InstallNameTool(timeout),
            signer=AdHocCodesign(timeout),
            deployer=MacDeployQt(config.build_timeout_seconds),
            build_system=CMake(config.build_timeout_seconds),
            fetcher=GitFetcher(config.fetch_timeout_seconds),
            archiver=Hdiutil(timeout),
            probe=HelpFlagProbe(config.smoke_timeout_seconds),
            package_manager=Homebrew(timeout),
        )
