"""Best-effort permission fixes before tools mutate files in place.

A failed chmod is logged and ignored: some files stay read-only and the
following rewrite or copy still succeeds.  Whatever really breaks is
caught later by the verifier's scan.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_user_writable(path: Path) -> bool:
    """Add ``u+w`` to *path*.  Returns False if the chmod failed."""
    try:
        mode = path.stat().st_mode
        if not mode & stat.S_IWUSR:
            os.chmod(path, mode | stat.S_IWUSR)
    except OSError as exc:
        logger.debug("chmod u+w %s failed: %s", path, exc)
        return False
    return True


def make_tree_writable(root: Path) -> int:
    """Recursive ``chmod -R u+w``; returns the number of entries that failed."""
    failures = 0
    if not ensure_user_writable(root):
        failures += 1
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = Path(dirpath) / name
            if path.is_symlink():
                continue
            if not ensure_user_writable(path):
                failures += 1
    return failures
