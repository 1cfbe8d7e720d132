"""Layout classifier — decides how far an installation path is trusted.

The rule is a path-prefix match.  Callers only see the ``LayoutClass``
tag, never the prefixes.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

from bundleforge.models.config import BuildConfig
from bundleforge.models.toolkit import LayoutClass


def _as_dir_prefix(prefix: str) -> str:
    return prefix if prefix.endswith("/") else prefix + "/"


class LayoutClassifier:
    """Classify installation roots and library references by path prefix.

    Parameters
    ----------
    distrusted_prefixes:
        Layouts that break dependency walking (symlink farms, split kegs).
        Usable only with an explicit opt-in.
    unsupported_prefixes:
        Layouts that are refused outright.
    """

    def __init__(
        self,
        distrusted_prefixes: Sequence[str],
        unsupported_prefixes: Sequence[str] = (),
    ) -> None:
        self._distrusted = tuple(_as_dir_prefix(p) for p in distrusted_prefixes)
        self._unsupported = tuple(_as_dir_prefix(p) for p in unsupported_prefixes)

    @classmethod
    def from_config(cls, config: BuildConfig) -> "LayoutClassifier":
        return cls([config.distrusted_prefix])

    @property
    def distrusted_prefixes(self) -> tuple[str, ...]:
        return self._distrusted

    def classify(self, path: Path) -> LayoutClass:
        """Classify where *path* lives.

        Both the absolute spelling and the symlink-resolved location are
        matched, so a relative path or a link into a distrusted layout is
        tagged like the layout itself.
        """
        texts = {
            _as_dir_prefix(os.path.abspath(path)),
            _as_dir_prefix(os.path.realpath(path)),
        }
        if any(t.startswith(self._unsupported) for t in texts):
            return LayoutClass.UNSUPPORTED
        if any(t.startswith(self._distrusted) for t in texts):
            return LayoutClass.ALLOWED_WITH_OVERRIDE
        return LayoutClass.PREFERRED

    def is_distrusted_reference(self, reference: str) -> bool:
        """True if a linked-library reference points into a distrusted layout."""
        return reference.startswith(self._distrusted)
