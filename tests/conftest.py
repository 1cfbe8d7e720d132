"""Shared test fixtures for bundleforge.

The external macOS tools are replaced by in-memory fakes.  A fake
"binary" is a text file whose ``LINK <path>`` lines are its linked-library
references; ``FakeInspector`` reads them and ``FakeRewriter`` edits them
in place, so rewrites change real bytes on disk.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from bundleforge.core.errors import CommandError
from bundleforge.core.tools import Toolchain
from bundleforge.models.bundle import BundleArtifact
from bundleforge.models.config import BuildConfig

DISTRUSTED = "/distrusted/"
APP_NAME = "gcompris-qt"


# ---------------------------------------------------------------------------
# Fake binaries
# ---------------------------------------------------------------------------


def write_binary(path: Path, links: list[str], *, executable: bool = True) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    body = "FAKE-MACHO\n" + "".join(f"LINK {link}\n" for link in links)
    path.write_text(body, encoding="utf-8")
    path.chmod(0o755 if executable else 0o644)
    return path


def read_links(path: Path) -> list[str]:
    return [
        line[len("LINK "):]
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.startswith("LINK ")
    ]


def make_bundle(
    root: Path,
    *,
    main_links: list[str] | None = None,
    frameworks: dict[str, list[str]] | None = None,
    app_name: str = APP_NAME,
) -> BundleArtifact:
    """Create a minimal ``.app`` tree with a main executable and libraries."""
    write_binary(
        root / "Contents" / "MacOS" / app_name,
        main_links if main_links is not None else [],
    )
    for name, links in (frameworks or {}).items():
        write_binary(root / "Contents" / "Frameworks" / name, links, executable=False)
    resources = root / "Contents" / "Resources"
    resources.mkdir(parents=True, exist_ok=True)
    (resources / "qt.conf").write_text("[Paths]\nPlugins = PlugIns\n", encoding="utf-8")
    return BundleArtifact(root=root)


# ---------------------------------------------------------------------------
# Fake tools
# ---------------------------------------------------------------------------


class FakeInspector:
    def __init__(self) -> None:
        self.calls: list[Path] = []

    def linked_libraries(self, binary: Path) -> list[str]:
        self.calls.append(binary)
        text = binary.read_text(encoding="utf-8", errors="ignore")
        if not text.startswith("FAKE-MACHO"):
            return []
        return read_links(binary)


class FakeRewriter:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[tuple[Path, str, str]] = []

    def change(self, binary: Path, old: str, new: str) -> None:
        self.calls.append((binary, old, new))
        if old in self.fail_on:
            raise CommandError(["install_name_tool", "-change", old, new, str(binary)], 1, "error")
        text = binary.read_text(encoding="utf-8")
        binary.write_text(text.replace(f"LINK {old}\n", f"LINK {new}\n"), encoding="utf-8")


class FakeSigner:
    def __init__(self, fail_sign: bool = False, fail_validate: bool = False) -> None:
        self.fail_sign = fail_sign
        self.fail_validate = fail_validate
        self.signed: list[Path] = []

    def _seal(self, bundle: Path) -> Path:
        return bundle / "Contents" / "_CodeSignature" / "CodeResources"

    def sign(self, bundle: Path) -> None:
        if self.fail_sign:
            raise CommandError(["codesign", "--sign", "-", str(bundle)], 1, "signing failed")
        seal = self._seal(bundle)
        seal.parent.mkdir(parents=True, exist_ok=True)
        seal.write_text("adhoc", encoding="utf-8")
        self.signed.append(bundle)

    def validate(self, bundle: Path) -> None:
        if self.fail_validate or not self._seal(bundle).is_file():
            raise CommandError(["codesign", "-vvv", str(bundle)], 1, "invalid signature")


class FakeDeployer:
    """Copies the given libraries into ``Contents/Frameworks``."""

    def __init__(
        self,
        libraries: dict[str, list[str]] | None = None,
        exit_status: int = 0,
        remove_bundle: bool = False,
    ) -> None:
        self.libraries = libraries if libraries is not None else {"libfoo.dylib": []}
        self.exit_status = exit_status
        self.remove_bundle = remove_bundle
        self.calls: list[dict[str, object]] = []

    def deploy(self, deployer: Path, bundle: Path, library_paths: list[Path], qml_dir: Path) -> int:
        self.calls.append({
            "deployer": deployer,
            "bundle": bundle,
            "library_paths": list(library_paths),
            "qml_dir": qml_dir,
        })
        for name, links in self.libraries.items():
            write_binary(bundle / "Contents" / "Frameworks" / name, links, executable=False)
        if self.remove_bundle:
            shutil.rmtree(bundle)
        return self.exit_status


class FakeBuildSystem:
    """Produces a bundle whose main binary links into the distrusted layout."""

    def __init__(
        self,
        main_links: list[str] | None = None,
        produce_bundle: bool = True,
        fail_configure: bool = False,
        fail_build: bool = False,
    ) -> None:
        self.main_links = main_links if main_links is not None else [
            "/distrusted/lib/libfoo.dylib",
            "/usr/lib/libSystem.B.dylib",
        ]
        self.produce_bundle = produce_bundle
        self.fail_configure = fail_configure
        self.fail_build = fail_build
        self.configured: list[dict[str, object]] = []
        self.built: list[tuple[Path, str]] = []

    def configure(self, source_root, build_dir, options, generator=None) -> None:
        self.configured.append({
            "source_root": source_root,
            "build_dir": build_dir,
            "options": dict(options),
            "generator": generator,
        })
        if self.fail_configure:
            raise CommandError(["cmake", "-S", str(source_root)], 1, "CMake Error")

    def build(self, build_dir: Path, target: str) -> None:
        self.built.append((build_dir, target))
        if self.fail_build:
            raise CommandError(["cmake", "--build", str(build_dir)], 2, "compile error")
        if self.produce_bundle:
            make_bundle(build_dir / "bin" / f"{target}.app", main_links=self.main_links, app_name=target)


class FakeFetcher:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, Path]] = []

    def fetch(self, url: str, destination: Path) -> None:
        self.calls.append((url, destination))
        if self.fail:
            raise CommandError(["git", "clone", url], 128, "Could not resolve host")
        destination.mkdir(parents=True)
        (destination / "CMakeLists.txt").write_text("project(box2d)\n", encoding="utf-8")


class FakeArchiver:
    """Writes the sorted staging listing into the 'disk image'."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[Path, Path, str]] = []

    def create(self, source_dir: Path, destination: Path, volume_name: str) -> None:
        self.calls.append((source_dir, destination, volume_name))
        if self.fail:
            raise CommandError(["hdiutil", "create"], 1, "hdiutil: create failed")
        listing = sorted(p.name for p in source_dir.iterdir())
        destination.write_text("\n".join(listing), encoding="utf-8")


class FakeProbe:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: list[Path] = []

    def probe(self, executable: Path) -> bool:
        self.calls.append(executable)
        return self.result


class FakePackageManager:
    def __init__(self, prefix: Path | None = None, available: bool = False) -> None:
        self.prefix = prefix
        self._available = available or prefix is not None

    def available(self) -> bool:
        return self._available

    def installed_prefix(self, package: str) -> Path | None:
        return self.prefix


def fake_which(present: set[str]) -> Callable[[str], str | None]:
    def _which(name: str) -> str | None:
        return f"/usr/bin/{name}" if name in present else None

    return _which


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_kit(path: Path) -> Path:
    """Create a Qt kit layout with CMake packages and an executable deployer."""
    (path / "lib" / "cmake" / "Qt6").mkdir(parents=True)
    deployer = path / "bin" / "macdeployqt"
    deployer.parent.mkdir(parents=True)
    deployer.write_text("#!/bin/sh\n", encoding="utf-8")
    deployer.chmod(0o755)
    return path


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    root = tmp_path / "gcompris"
    (root / "src").mkdir(parents=True)
    (root / "CMakeLists.txt").write_text(
        "cmake_minimum_required(VERSION 3.16)\n"
        "set(GCOMPRIS_MAJOR_VERSION 25)\n"
        "set(GCOMPRIS_MINOR_VERSION 1)\n"
        "set(GCOMPRIS_PATCH_VERSION 0)\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def qt_home(tmp_path: Path) -> Path:
    """An installer-style ~/Qt directory with one kit."""
    home = tmp_path / "Qt"
    make_kit(home / "6.10.0" / "macos")
    return home


@pytest.fixture
def build_config(tmp_path: Path, source_root: Path, qt_home: Path) -> BuildConfig:
    return BuildConfig(
        source_root=source_root,
        user_toolkit_dir=qt_home,
        pinned_toolkit=tmp_path / "Cellar" / "qt" / "6.10.2",
        package_manager_opt_dir=tmp_path / "opt",
        distrusted_prefix=DISTRUSTED,
        install_location=Path("/Applications"),
    )


@pytest.fixture
def toolchain() -> Toolchain:
    return Toolchain(
        inspector=FakeInspector(),
        rewriter=FakeRewriter(),
        signer=FakeSigner(),
        deployer=FakeDeployer(),
        build_system=FakeBuildSystem(),
        fetcher=FakeFetcher(),
        archiver=FakeArchiver(),
        probe=FakeProbe(),
        package_manager=FakePackageManager(),
        find_tool=fake_which({"xcodebuild", "cmake", "hdiutil", "git"}),
    )


@pytest.fixture
def run_context(build_config: BuildConfig, toolchain: Toolchain) -> dict:
    """A bare run_context with no prerequisites declared."""
    return {
        "run_id": "bf-test-run-001",
        "config": build_config,
        "toolchain": toolchain,
        "stage_states": {},
        "stage_definitions": {},
        "stage_results": {},
        "warnings": [],
    }


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove pipeline variables from the environment and any .env lookup."""
    for name in list(os.environ):
        if name.startswith("BUNDLEFORGE_") or name in {
            "QT_ROOT",
            "ALLOW_HOMEBREW_QT",
            "WITH_TRANSLATIONS",
            "BUILD_SERVER",
            "RUN_SELF_CHECKS",
        }:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
