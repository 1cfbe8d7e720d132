"""Toolkit locator — resolve exactly one usable SDK root or fail.

Resolution order (first match wins):

1. Explicit override (``--qt-root`` / ``QT_ROOT``), used verbatim.
2. The pinned package-manager install known to work; its trust tier is
   auto-upgraded to ``ALLOWED``.
3. The highest-versioned ``macos`` kit under the user's ``~/Qt``
   directory, found by a bounded-depth walk and natural version sort.
4. The package manager's installed ``qt`` prefix, if it exposes the
   CMake package layout.

After resolution, ``validate_toolkit`` checks the kit's internal layout
and ``enforce_trust`` gates distrusted layouts on the opt-in flag.  Both
run before anything is built.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from bundleforge.core.errors import (
    MissingPrerequisiteError,
    ToolkitUnresolvedError,
    UntrustedLayoutError,
)
from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.tools import PackageManager
from bundleforge.models.config import BuildConfig
from bundleforge.models.toolkit import LayoutClass, ToolkitOrigin, ToolkitRoot, TrustTier

logger = logging.getLogger(__name__)

# Marker directory proving a root ships Qt's CMake package files.
_CMAKE_PACKAGE = Path("lib") / "cmake" / "Qt6"


def natural_version_key(text: str) -> tuple[tuple[int, int, str], ...]:
    """Sort key that orders digit runs numerically (``6.10.0`` after ``6.9.0``)."""
    return tuple(
        (0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk)
        for chunk in re.split(r"(\d+)", text)
        if chunk
    )


def find_versioned_dirs(base: Path, leaf_name: str, max_depth: int) -> list[Path]:
    """Directories named *leaf_name* at most *max_depth* levels below *base*.

    Returned in ascending natural version order of their full path.
    Symlinked directories are not followed.
    """
    if not base.is_dir():
        return []
    found: list[Path] = []
    for dirpath, dirnames, _filenames in os.walk(base):
        current = Path(dirpath)
        depth = len(current.relative_to(base).parts)
        dirnames[:] = [d for d in dirnames if not (current / d).is_symlink()]
        for name in dirnames:
            if name == leaf_name:
                found.append(current / name)
        if depth + 1 >= max_depth:
            dirnames[:] = []
    return sorted(found, key=lambda p: natural_version_key(str(p)))


class ToolkitLocator:
    """Resolve a ``ToolkitRoot`` from the configured sources."""

    def __init__(
        self,
        config: BuildConfig,
        classifier: LayoutClassifier,
        package_manager: PackageManager,
    ) -> None:
        self.config = config
        self.classifier = classifier
        self.package_manager = package_manager

    def resolve(self) -> ToolkitRoot:
        attempted: list[str] = []

        # 1. Explicit override
        if self.config.qt_root is not None:
            path = self.config.qt_root
            if not path.exists():
                raise ToolkitUnresolvedError(
                    f"Qt root given explicitly does not exist: {path}",
                    attempted=[f"explicit override: {path}"],
                )
            return self._make_root(path, ToolkitOrigin.EXPLICIT)

        # 2. Pinned package-manager install
        pinned = self.config.pinned_toolkit
        attempted.append(f"pinned install: {pinned}")
        if (pinned / _CMAKE_PACKAGE).is_dir():
            logger.info("Using pinned Qt install %s", pinned)
            return ToolkitRoot(
                path=pinned,
                origin=ToolkitOrigin.PINNED,
                layout=self.classifier.classify(pinned),
                trust=TrustTier.ALLOWED,
            )

        # 3. Highest-versioned installer kit under ~/Qt
        base = self.config.user_toolkit_dir
        attempted.append(
            f"installer kits: {base}/**/{self.config.toolkit_leaf_name} "
            f"(depth <= {self.config.toolkit_search_depth})"
        )
        candidates = find_versioned_dirs(
            base, self.config.toolkit_leaf_name, self.config.toolkit_search_depth
        )
        if candidates:
            logger.debug("Installer kit candidates: %s", [str(c) for c in candidates])
            return self._make_root(candidates[-1], ToolkitOrigin.USER_INSTALL)

        # 4. Package-manager query
        if self.package_manager.available():
            prefix = self.package_manager.installed_prefix("qt")
            attempted.append(f"package manager prefix: {prefix or 'not installed'}")
            if prefix is not None and (prefix / _CMAKE_PACKAGE).is_dir():
                return self._make_root(prefix, ToolkitOrigin.PACKAGE_MANAGER)
        else:
            attempted.append("package manager: not available")

        raise ToolkitUnresolvedError("Qt macOS kit not found.", attempted=attempted)

    def _make_root(self, path: Path, origin: ToolkitOrigin) -> ToolkitRoot:
        layout = self.classifier.classify(path)
        trust = (
            TrustTier.PREFERRED
            if layout == LayoutClass.PREFERRED
            else TrustTier.OPT_IN_REQUIRED
        )
        return ToolkitRoot(path=path, origin=origin, layout=layout, trust=trust)


def validate_toolkit(root: ToolkitRoot) -> None:
    """Check the kit exposes the CMake package directory."""
    if not root.cmake_dir.is_dir():
        raise ToolkitUnresolvedError(
            f"Qt CMake directory not found: {root.cmake_dir}",
            attempted=[f"{root.origin.value}: {root.path}"],
        )


def validate_deployer(root: ToolkitRoot) -> Path:
    """Return the kit's bundle deployer, which must be executable."""
    deployer = root.deployer
    if not (deployer.is_file() and os.access(deployer, os.X_OK)):
        raise MissingPrerequisiteError(
            f"macdeployqt not found at {deployer}",
            remediation="Install full Qt tools, then rerun.",
        )
    return deployer


def enforce_trust(root: ToolkitRoot, allow_distrusted: bool) -> ToolkitRoot:
    """Refuse distrusted layouts unless opted in.

    Returns the root the pipeline should use; an opted-in root is
    re-tagged ``ALLOWED``.
    """
    if root.layout == LayoutClass.UNSUPPORTED:
        raise UntrustedLayoutError(
            f"Qt at {root.path} uses an unsupported installation layout."
        )
    if root.trust != TrustTier.OPT_IN_REQUIRED:
        return root
    if not allow_distrusted:
        raise UntrustedLayoutError(
            f"Homebrew Qt at {root.path} is not supported because macdeployqt "
            "fails on Homebrew-symlinked frameworks."
        )
    logger.warning("Using distrusted Qt layout at %s by explicit opt-in", root.path)
    return root.model_copy(update={"trust": TrustTier.ALLOWED})
