"""Unit tests for the toolkit locator, its natural version sort and trust gate."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakePackageManager, make_kit

from bundleforge.core.errors import (
    MissingPrerequisiteError,
    ToolkitUnresolvedError,
    UntrustedLayoutError,
)
from bundleforge.core.layout import LayoutClassifier
from bundleforge.core.locator import (
    ToolkitLocator,
    enforce_trust,
    find_versioned_dirs,
    natural_version_key,
    validate_deployer,
    validate_toolkit,
)
from bundleforge.models.config import BuildConfig
from bundleforge.models.toolkit import LayoutClass, ToolkitOrigin, ToolkitRoot, TrustTier


def _locator(config: BuildConfig, pm: FakePackageManager | None = None) -> ToolkitLocator:
    return ToolkitLocator(config, LayoutClassifier.from_config(config), pm or FakePackageManager())


# ---------------------------------------------------------------------------
# Test: version discovery
# ---------------------------------------------------------------------------


class TestNaturalVersionSort:
    def test_numeric_components_compare_as_numbers(self):
        versions = ["6.9.0", "6.10.0", "6.2.1"]
        assert sorted(versions, key=natural_version_key) == ["6.2.1", "6.9.0", "6.10.0"]

    def test_mixed_text(self):
        versions = ["6.10.0-beta", "6.10.0", "6.9.3"]
        ordered = sorted(versions, key=natural_version_key)
        assert ordered[0] == "6.9.3"


class TestFindVersionedDirs:
    def test_highest_version_is_last(self, tmp_path: Path):
        for version in ("6.9.0", "6.10.0", "6.2.1"):
            (tmp_path / version / "macos").mkdir(parents=True)
        found = find_versioned_dirs(tmp_path, "macos", 3)
        assert [p.parent.name for p in found] == ["6.2.1", "6.9.0", "6.10.0"]

    def test_depth_is_bounded(self, tmp_path: Path):
        (tmp_path / "a" / "b" / "macos").mkdir(parents=True)
        (tmp_path / "a" / "b" / "c" / "macos").mkdir(parents=True)
        found = find_versioned_dirs(tmp_path, "macos", 3)
        assert found == [tmp_path / "a" / "b" / "macos"]

    def test_symlinked_directories_are_not_followed(self, tmp_path: Path):
        real = tmp_path / "elsewhere" / "6.8.0"
        (real / "macos").mkdir(parents=True)
        base = tmp_path / "Qt"
        base.mkdir()
        (base / "6.8.0").symlink_to(real, target_is_directory=True)
        assert find_versioned_dirs(base, "macos", 3) == []

    def test_missing_base(self, tmp_path: Path):
        assert find_versioned_dirs(tmp_path / "nope", "macos", 3) == []


# ---------------------------------------------------------------------------
# Test: resolution order
# ---------------------------------------------------------------------------


class TestResolve:
    def test_user_install_picks_highest_version(self, build_config: BuildConfig, qt_home: Path):
        make_kit(qt_home / "6.9.0" / "macos")
        make_kit(qt_home / "6.2.1" / "macos")
        root = _locator(build_config).resolve()
        assert root.path == qt_home / "6.10.0" / "macos"
        assert root.origin == ToolkitOrigin.USER_INSTALL
        assert root.trust == TrustTier.PREFERRED

    def test_explicit_override_wins(self, build_config: BuildConfig, tmp_path: Path):
        kit = make_kit(tmp_path / "custom" / "qt")
        config = build_config.model_copy(update={"qt_root": kit})
        root = _locator(config).resolve()
        assert root.path == kit
        assert root.origin == ToolkitOrigin.EXPLICIT

    def test_explicit_override_must_exist(self, build_config: BuildConfig, tmp_path: Path):
        config = build_config.model_copy(update={"qt_root": tmp_path / "missing"})
        with pytest.raises(ToolkitUnresolvedError, match="does not exist"):
            _locator(config).resolve()

    def test_pinned_install_is_auto_allowed(self, tmp_path: Path, build_config: BuildConfig):
        pinned = make_kit(tmp_path / "brew" / "Cellar" / "qt" / "6.10.2")
        config = build_config.model_copy(
            update={"pinned_toolkit": pinned, "distrusted_prefix": str(tmp_path / "brew")}
        )
        root = _locator(config).resolve()
        assert root.origin == ToolkitOrigin.PINNED
        assert root.layout == LayoutClass.ALLOWED_WITH_OVERRIDE
        assert root.trust == TrustTier.ALLOWED
        assert enforce_trust(root, allow_distrusted=False) == root

    def test_pinned_beats_user_install(self, tmp_path: Path, build_config: BuildConfig):
        pinned = make_kit(tmp_path / "pinned")
        config = build_config.model_copy(update={"pinned_toolkit": pinned})
        assert _locator(config).resolve().origin == ToolkitOrigin.PINNED

    def test_package_manager_fallback(self, tmp_path: Path, build_config: BuildConfig):
        prefix = make_kit(tmp_path / "brew" / "opt" / "qt")
        config = build_config.model_copy(
            update={"user_toolkit_dir": tmp_path / "no-qt", "distrusted_prefix": str(tmp_path / "brew")}
        )
        root = _locator(config, FakePackageManager(prefix=prefix)).resolve()
        assert root.origin == ToolkitOrigin.PACKAGE_MANAGER
        assert root.trust == TrustTier.OPT_IN_REQUIRED

    def test_package_manager_prefix_without_cmake_files(self, tmp_path: Path, build_config: BuildConfig):
        prefix = tmp_path / "brew" / "opt" / "qt"
        prefix.mkdir(parents=True)
        config = build_config.model_copy(update={"user_toolkit_dir": tmp_path / "no-qt"})
        with pytest.raises(ToolkitUnresolvedError):
            _locator(config, FakePackageManager(prefix=prefix)).resolve()

    def test_nothing_found_lists_every_attempt(self, tmp_path: Path, build_config: BuildConfig):
        config = build_config.model_copy(update={"user_toolkit_dir": tmp_path / "no-qt"})
        with pytest.raises(ToolkitUnresolvedError) as info:
            _locator(config).resolve()
        assert len(info.value.attempted) == 3
        assert "package manager: not available" in info.value.attempted
        assert "Attempted:" in str(info.value)
        assert info.value.remediation


# ---------------------------------------------------------------------------
# Test: validation and trust gate
# ---------------------------------------------------------------------------


def _root(path: Path, layout: LayoutClass, trust: TrustTier) -> ToolkitRoot:
    return ToolkitRoot(path=path, origin=ToolkitOrigin.EXPLICIT, layout=layout, trust=trust)


class TestValidation:
    def test_kit_without_cmake_dir(self, tmp_path: Path):
        root = _root(tmp_path, LayoutClass.PREFERRED, TrustTier.PREFERRED)
        with pytest.raises(ToolkitUnresolvedError, match="CMake directory"):
            validate_toolkit(root)

    def test_deployer_must_be_executable(self, tmp_path: Path):
        kit = make_kit(tmp_path / "kit")
        (kit / "bin" / "macdeployqt").chmod(0o644)
        root = _root(kit, LayoutClass.PREFERRED, TrustTier.PREFERRED)
        with pytest.raises(MissingPrerequisiteError, match="macdeployqt"):
            validate_deployer(root)

    def test_deployer_found(self, tmp_path: Path):
        kit = make_kit(tmp_path / "kit")
        root = _root(kit, LayoutClass.PREFERRED, TrustTier.PREFERRED)
        validate_toolkit(root)
        assert validate_deployer(root) == kit / "bin" / "macdeployqt"


class TestTrustGate:
    def test_opt_in_required_without_flag_refused(self, tmp_path: Path):
        root = _root(tmp_path, LayoutClass.ALLOWED_WITH_OVERRIDE, TrustTier.OPT_IN_REQUIRED)
        with pytest.raises(UntrustedLayoutError) as info:
            enforce_trust(root, allow_distrusted=False)
        assert "ALLOW_HOMEBREW_QT" in info.value.remediation

    def test_opt_in_upgrades_to_allowed(self, tmp_path: Path):
        root = _root(tmp_path, LayoutClass.ALLOWED_WITH_OVERRIDE, TrustTier.OPT_IN_REQUIRED)
        accepted = enforce_trust(root, allow_distrusted=True)
        assert accepted.trust == TrustTier.ALLOWED
        assert accepted.path == root.path

    def test_unsupported_is_refused_even_with_flag(self, tmp_path: Path):
        root = _root(tmp_path, LayoutClass.UNSUPPORTED, TrustTier.OPT_IN_REQUIRED)
        with pytest.raises(UntrustedLayoutError):
            enforce_trust(root, allow_distrusted=True)

    def test_preferred_passes_untouched(self, tmp_path: Path):
        root = _root(tmp_path, LayoutClass.PREFERRED, TrustTier.PREFERRED)
        assert enforce_trust(root, allow_distrusted=False) is root
