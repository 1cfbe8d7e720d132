"""Cooperative cancellation, checked between stages and between binaries."""

from __future__ import annotations

import threading

from bundleforge.core.errors import PipelineCancelledError


class CancellationToken:
    """A one-shot flag that long-running loops poll.

    ``cancel`` may be called from a signal handler or another thread;
    the pipeline notices at its next checkpoint and raises
    ``PipelineCancelledError``.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self, checkpoint: str = "") -> None:
        if self._event.is_set():
            where = f" at {checkpoint}" if checkpoint else ""
            raise PipelineCancelledError(f"Pipeline {self._reason}{where}")
