"""Run configuration model — built once at startup, passed to every stage."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from bundleforge.models.versioning import ProjectVersion

if TYPE_CHECKING:
    from bundleforge.config import ForgeSettings


class BuildConfig(BaseModel):
    """Immutable configuration for one pipeline run.

    Environment values come in through ``ForgeSettings``; CLI flags are
    applied as overrides in ``from_settings``.  Nothing reads the
    environment after this object exists.
    """

    model_config = ConfigDict(frozen=True)

    source_root: Path = Path(".")
    app_name: str = "gcompris-qt"
    volume_name: str = "GCompris"
    target_arch: str = "arm64"
    platform_tag: str = "macos-arm64"
    archive_extension: str = "dmg"

    # Feature toggles
    with_translations: bool = False
    build_server: bool = False
    run_self_checks: bool = True

    # Toolkit resolution
    qt_root: Path | None = None
    allow_distrusted_toolkit: bool = False
    distrusted_prefix: str = "/opt/homebrew/"
    pinned_toolkit: Path = Path("/opt/homebrew/Cellar/qt/6.10.2")
    user_toolkit_dir: Path = Field(default_factory=lambda: Path.home() / "Qt")
    toolkit_search_depth: int = 3
    toolkit_leaf_name: str = "macos"
    package_manager_opt_dir: Path = Path("/opt/homebrew/opt")

    # Prerequisites and external sources
    required_tools: tuple[str, ...] = ("xcodebuild", "cmake", "hdiutil", "git")
    external_module_name: str = "qml-box2d"
    external_module_url: str = "https://github.com/qml-box2d/qml-box2d.git"
    version_variable_prefix: str = "GCOMPRIS"

    # Packaging
    install_location: Path = Path("/Applications")

    # Timeouts (seconds) for external tool invocations
    tool_timeout_seconds: float = 600.0
    build_timeout_seconds: float = 7200.0
    fetch_timeout_seconds: float = 300.0
    smoke_timeout_seconds: float = 30.0

    @classmethod
    def from_settings(
        cls, settings: "ForgeSettings", **overrides: Any
    ) -> "BuildConfig":
        """Merge environment settings with CLI overrides.

        Overrides whose value is ``None`` were not given on the command
        line and fall back to the environment.
        """
        values: dict[str, Any] = {
            "source_root": settings.source_root,
            "qt_root": settings.qt_root,
            "allow_distrusted_toolkit": settings.allow_homebrew_qt,
            "with_translations": settings.with_translations,
            "build_server": settings.build_server,
            "run_self_checks": settings.run_self_checks,
            "tool_timeout_seconds": settings.tool_timeout_seconds,
            "build_timeout_seconds": settings.build_timeout_seconds,
            "fetch_timeout_seconds": settings.fetch_timeout_seconds,
            "smoke_timeout_seconds": settings.smoke_timeout_seconds,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def build_dir(self) -> Path:
        return self.source_root / f"build-{self.platform_tag}-release"

    @property
    def dist_dir(self) -> Path:
        return self.source_root / "dist"

    @property
    def stage_dir(self) -> Path:
        return self.source_root / "dmg-stage"

    @property
    def app_path(self) -> Path:
        return self.build_dir / "bin" / f"{self.app_name}.app"

    @property
    def frameworks_dir(self) -> Path:
        return self.app_path / "Contents" / "Frameworks"

    @property
    def main_binary(self) -> Path:
        return self.app_path / "Contents" / "MacOS" / self.app_name

    @property
    def qml_dir(self) -> Path:
        return self.source_root / "src"

    @property
    def external_module_dir(self) -> Path:
        return self.source_root / "external" / self.external_module_name

    @property
    def cmake_lists(self) -> Path:
        return self.source_root / "CMakeLists.txt"

    def bundle_relative_locator(self, basename: str) -> str:
        """Load-time path to an in-bundle library, relative to the executable."""
        return f"@executable_path/../Frameworks/{basename}"

    def archive_path(self, version: ProjectVersion) -> Path:
        name = (
            f"{self.app_name}-{version.label}-{self.platform_tag}"
            f"-internal.{self.archive_extension}"
        )
        return self.dist_dir / name
