"""Subprocess execution for external tools.

Every external invocation goes through ``run_command`` so that each one
is bounded by a timeout and fails with a ``CommandError`` carrying the
command line, status and stderr.  ``shell=False`` throughout.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from bundleforge.core.errors import CommandError, CommandTimeoutError

logger = logging.getLogger(__name__)


def run_command(
    command: list[str],
    *,
    timeout: float,
    cwd: Path | None = None,
    check: bool = True,
    capture: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run *command* and return the completed process.

    With ``capture=False`` the tool writes straight to the terminal, which
    is what long builds want.  With ``check=False`` a non-zero status is
    returned to the caller instead of raised.
    """
    logger.debug("$ %s", " ".join(command))
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            shell=False,
            check=False,
            text=True,
            capture_output=capture,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(command, timeout) from exc
    except FileNotFoundError as exc:
        raise CommandError(command, 127, str(exc)) from exc

    if check and result.returncode != 0:
        raise CommandError(command, result.returncode, result.stderr or "")
    return result
