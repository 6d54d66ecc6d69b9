"""Orchestration State Tracker - per-step status for the active plan.

Steps move through ``pending -> processing -> (completed | error)``. Each
update replaces the whole steps tuple, so a snapshot handed to a reader is
never changed underneath it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from nexus.models import OrchestrationPlan, OrchestrationStep, StepOutcome, StepStatus
from nexus.utils.exceptions import StepTransitionError
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

_ALLOWED_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.PENDING: frozenset({StepStatus.PROCESSING}),
    StepStatus.PROCESSING: frozenset({StepStatus.COMPLETED, StepStatus.ERROR}),
    StepStatus.COMPLETED: frozenset(),
    StepStatus.ERROR: frozenset(),
}

StepsListener = Callable[[tuple[OrchestrationStep, ...]], None]


class OrchestrationStateTracker:
    """Holds the steps of one plan and applies status transitions by index."""

    def __init__(self, steps: OrchestrationPlan | Iterable[OrchestrationStep]) -> None:
        """Initialize with every step reset to pending.

        Args:
            steps: The plan, or its steps in execution order.
        """
        if isinstance(steps, OrchestrationPlan):
            steps = steps.steps
        self._steps: tuple[OrchestrationStep, ...] = tuple(
            step.model_copy(
                update={"status": StepStatus.PENDING, "result": None, "error": None}
            )
            for step in steps
        )
        self._listeners: list[StepsListener] = []

    @property
    def steps(self) -> tuple[OrchestrationStep, ...]:
        """Current immutable snapshot of all steps."""
        return self._steps

    def snapshot(self) -> tuple[OrchestrationStep, ...]:
        return self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def __getitem__(self, index: int) -> OrchestrationStep:
        return self._steps[index]

    @property
    def is_finished(self) -> bool:
        """Whether every step reached a terminal status."""
        return all(step.status.is_terminal for step in self._steps)

    def subscribe(self, listener: StepsListener) -> None:
        """Register a callback that receives every new snapshot."""
        self._listeners.append(listener)

    def mark_processing(self, index: int) -> OrchestrationStep:
        """Move a pending step to processing."""
        return self._transition(index, StepStatus.PROCESSING)

    def complete(self, index: int, result: str | None = None) -> OrchestrationStep:
        """Move a processing step to completed with its result payload."""
        return self._transition(index, StepStatus.COMPLETED, result=result)

    def fail(self, index: int, error: str) -> OrchestrationStep:
        """Move a processing step to error with its message."""
        return self._transition(index, StepStatus.ERROR, error=error)

    def record(self, index: int, outcome: StepOutcome) -> OrchestrationStep:
        """Apply a step outcome as the matching terminal transition."""
        if outcome.is_error:
            return self.fail(index, outcome.error or outcome.text)
        return self.complete(index, outcome.result)

    def _transition(
        self, index: int, target: StepStatus, **changes: str | None
    ) -> OrchestrationStep:
        if not 0 <= index < len(self._steps):
            raise IndexError(f"Step index out of range: {index}")

        current = self._steps[index]
        if target not in _ALLOWED_TRANSITIONS[current.status]:
            raise StepTransitionError(index, current.status.value, target.value)

        updated = current.model_copy(update={"status": target, **changes})
        steps = list(self._steps)
        steps[index] = updated
        self._steps = tuple(steps)

        logger.debug(
            "Step status changed",
            step_index=index,
            from_status=current.status.value,
            to_status=target.value,
        )
        for listener in self._listeners:
            try:
                listener(self._steps)
            except Exception as e:
                logger.exception("Steps listener failed", step_index=index, error=str(e))
        return updated
