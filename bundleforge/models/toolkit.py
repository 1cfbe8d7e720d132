"""Toolkit root models — where the SDK came from and how far it is trusted."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ToolkitOrigin(str, Enum):
    """Which resolution source produced a toolkit root."""

    EXPLICIT = "explicit"  # --qt-root flag or QT_ROOT
    PINNED = "pinned"  # known-good package-manager install at a fixed version
    USER_INSTALL = "user_install"  # installer kit under ~/Qt
    PACKAGE_MANAGER = "package_manager"  # `brew --prefix --installed qt`


class LayoutClass(str, Enum):
    """Structural classification of an installation layout."""

    PREFERRED = "preferred"
    ALLOWED_WITH_OVERRIDE = "allowed_with_override"
    UNSUPPORTED = "unsupported"


class TrustTier(str, Enum):
    """Whether a resolved root may be used without an explicit opt-in."""

    PREFERRED = "preferred"
    ALLOWED = "allowed"  # distrusted layout, auto-upgraded or opted in
    OPT_IN_REQUIRED = "opt_in_required"


class ToolkitRoot(BaseModel):
    """A filesystem path believed to contain a compatible SDK.

    Resolved once per run and immutable thereafter.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    origin: ToolkitOrigin
    layout: LayoutClass
    trust: TrustTier

    @property
    def cmake_dir(self) -> Path:
        return self.path / "lib" / "cmake"

    @property
    def deployer(self) -> Path:
        return self.path / "bin" / "macdeployqt"
