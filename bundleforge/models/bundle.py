"""Bundle artifact models — the directory tree mutated stage by stage."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from pydantic import BaseModel, ConfigDict

# Shared-library suffixes; anything else counts only when executable.
LIBRARY_SUFFIXES: frozenset[str] = frozenset({".dylib", ".so"})

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class DependencyReference(BaseModel):
    """One linked-library edge read from a binary's load commands.

    Recomputed on every scan and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    binary: Path
    referenced_path: str

    @property
    def basename(self) -> str:
        return self.referenced_path.rsplit("/", 1)[-1]


class RewriteRecord(BaseModel):
    """A reference that the closure rewriter replaced in place."""

    model_config = ConfigDict(frozen=True)

    binary: Path
    old_reference: str
    new_reference: str


class BundleArtifact(BaseModel):
    """The application bundle directory produced by the build.

    Binaries are discovered from the filesystem on every call, never from
    a manifest, because each stage may add or replace files.
    """

    model_config = ConfigDict(frozen=True)

    root: Path

    @property
    def contents_dir(self) -> Path:
        return self.root / "Contents"

    @property
    def frameworks_dir(self) -> Path:
        return self.contents_dir / "Frameworks"

    def exists(self) -> bool:
        return self.root.is_dir()

    def binaries(self) -> list[Path]:
        """Return every executable or shared library under ``Contents``.

        Symlinks are skipped so that framework ``Versions/Current`` aliases
        are inspected once, through their real file.
        """
        found: list[Path] = []
        if not self.contents_dir.is_dir():
            return found
        for dirpath, _dirnames, filenames in os.walk(self.contents_dir):
            for name in filenames:
                path = Path(dirpath) / name
                if path.is_symlink() or not path.is_file():
                    continue
                if path.suffix in LIBRARY_SUFFIXES or _is_executable(path):
                    found.append(path)
        return sorted(found)

    def bundled_library(self, basename: str) -> Path | None:
        """Return the in-bundle copy of *basename*, if one was deployed."""
        candidate = self.frameworks_dir / basename
        return candidate if candidate.is_file() else None


def _is_executable(path: Path) -> bool:
    """True when user, group and other execute bits are all set."""
    return path.stat().st_mode & _EXEC_BITS == _EXEC_BITS
