"""Abstract base stage with an enforced lifecycle.

Every concrete stage inherits from BaseStage and implements only
``execute()``.  The ``run_stage()`` wrapper is **not overridable** — it
enforces the canonical ordering:

    validate_prerequisites -> cancellation checkpoint -> execute
        -> compute_output_hash -> record

Stages share state through ``run_context``, a dict carrying the frozen
``BuildConfig`` (``config``), the ``Toolchain`` (``toolchain``), the
``CancellationToken`` (``cancel_token``), the objects produced so far
(``toolkit``, ``bundle``, ``verification``, ``archive_path``), the
accumulated ``warnings`` and every prior stage's result dict.
"""

from __future__ import annotations

import abc
import logging
from datetime import datetime, timezone
from typing import Any, final

from bundleforge.core.cancellation import CancellationToken
from bundleforge.core.errors import PipelineCancelledError, PipelineError
from bundleforge.core.hasher import compute_input_hash, compute_output_hash
from bundleforge.models.reports import PipelineWarning, WarningKind
from bundleforge.models.stages import StageState

logger = logging.getLogger(__name__)


class StagePrerequisiteError(PipelineError):
    """Raised when a stage's prerequisites are not satisfied."""


class StageExecutionError(PipelineError):
    """Raised when execute() fails with something other than a PipelineError."""


class BaseStage(abc.ABC):
    """Abstract base for all pipeline stages.

    Subclasses **must** implement:
        * ``stage_id``     — unique identifier (e.g. ``"s5_rewrite"``).
        * ``display_name`` — human-readable name for reports.
        * ``execute(run_context)`` — the stage's core logic, returning a
          JSON-serialisable result dict.

    Subclasses **must not** override ``run_stage()``.
    """

    @property
    @abc.abstractmethod
    def stage_id(self) -> str:
        ...

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        ...

    @abc.abstractmethod
    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        ...

    # ------------------------------------------------------------------
    # Lifecycle (not overridable)
    # ------------------------------------------------------------------

    @final
    def run_stage(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Execute the full stage lifecycle.  **Do not override.**

        ``PipelineError`` subclasses propagate untouched so the caller
        sees the precise failure class; anything else is wrapped in
        ``StageExecutionError``.  Any failure raised after the token was
        cancelled surfaces as ``PipelineCancelledError``.
        """
        self.validate_prerequisites(run_context)

        token: CancellationToken | None = run_context.get("cancel_token")
        if token is not None:
            token.raise_if_cancelled(self.stage_id)

        input_hash = self._compute_input_hash(run_context)
        logger.info("%s [%s] starting", self.display_name, self.stage_id)

        try:
            result = self.execute(run_context)
        except PipelineCancelledError:
            raise
        except Exception as exc:
            if token is not None and token.cancelled:
                # An interrupted child tool exits non-zero; report the interrupt.
                logger.warning("%s [%s] interrupted: %s", self.display_name, self.stage_id, exc)
                raise PipelineCancelledError(
                    f"Pipeline {token.reason} at {self.stage_id}"
                ) from exc
            if isinstance(exc, PipelineError):
                logger.error("%s [%s] failed: %s", self.display_name, self.stage_id, exc)
                raise
            logger.error("%s [%s] execution failed: %s", self.display_name, self.stage_id, exc)
            raise StageExecutionError(f"Stage {self.stage_id} failed: {exc}") from exc

        output_hash = self._compute_output_hash(result)
        self._record(run_context, result, input_hash, output_hash)

        result["_input_hash"] = input_hash
        result["_output_hash"] = output_hash
        return result

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    @final
    def validate_prerequisites(self, run_context: dict[str, Any]) -> None:
        """Ensure every prerequisite stage has PASSED."""
        stage_states: dict[str, StageState] = run_context.get("stage_states", {})
        prerequisites: list[str] = run_context.get(
            "stage_definitions", {}
        ).get(self.stage_id, {}).get("prerequisites", [])

        blocking: list[str] = []
        for prereq_id in prerequisites:
            state = stage_states.get(prereq_id, StageState.NOT_STARTED)
            if state != StageState.PASSED:
                blocking.append(f"{prereq_id} is {state.value}")

        if blocking:
            raise StagePrerequisiteError(
                f"Cannot run {self.stage_id}: prerequisites not met — "
                + "; ".join(blocking)
            )

    @final
    def _compute_input_hash(self, run_context: dict[str, Any]) -> str:
        inputs: dict[str, Any] = {
            "run_id": run_context.get("run_id", ""),
            "prior_output_hashes": {
                sid: res.get("_output_hash", "")
                for sid, res in run_context.get("stage_results", {}).items()
            },
        }
        return compute_input_hash(self.stage_id, inputs)

    @final
    def _compute_output_hash(self, result: dict[str, Any]) -> str:
        hashable = {k: v for k, v in result.items() if not k.startswith("_")}
        return compute_output_hash(self.stage_id, hashable)

    @final
    def _record(
        self,
        run_context: dict[str, Any],
        result: dict[str, Any],
        input_hash: str,
        output_hash: str,
    ) -> None:
        run_context.setdefault("stage_results", {})[self.stage_id] = result
        run_context.setdefault("stage_log", []).append({
            "stage_id": self.stage_id,
            "input_hash": input_hash,
            "output_hash": output_hash,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        })
        logger.info(
            "%s [%s] recorded — output=%s",
            self.display_name,
            self.stage_id,
            output_hash[:12],
        )

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def warn(self, run_context: dict[str, Any], kind: WarningKind, message: str) -> None:
        """Record a non-fatal condition for the final report."""
        logger.warning("%s", message)
        run_context.setdefault("warnings", []).append(
            PipelineWarning(kind=kind, stage_id=self.stage_id, message=message)
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage_id={self.stage_id!r}>"
