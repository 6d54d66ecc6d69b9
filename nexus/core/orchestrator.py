"""Orchestrator - runs one orchestration cycle end to end.

A cycle appends the user entry, asks the planner for a plan, executes every
step strictly in order, and reconciles each event into the transcript. When
the cycle settles, a delayed history save is scheduled.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from nexus.models import (
    AUTO_DETECT,
    ChatMessage,
    DirectAnswer,
    HistoryEntry,
    OrchestrationPlan,
    OrchestrationStep,
    OutputPreference,
    PlanOutcome,
    StepOutcome,
)
from nexus.utils.config import AppConfig
from nexus.utils.logging import clear_correlation_id, get_cycle_logger, set_correlation_id
from nexus.utils.observability import LangfuseClient, get_observability_client

from .catalog import AgentCatalog
from .executor import StepExecutor
from .planner import PlanRequester, preference_value
from .tracker import OrchestrationStateTracker
from .transcript import HistorySink, Transcript, TranscriptReconciler

CatalogSource = AgentCatalog | Callable[[], AgentCatalog]


@dataclass
class CycleResult:
    """Summary of one finished orchestration cycle."""

    cycle_id: str
    outcome: PlanOutcome | None = None
    steps: tuple[OrchestrationStep, ...] = ()
    step_outcomes: tuple[StepOutcome, ...] = ()
    messages: tuple[ChatMessage, ...] = ()
    error: Exception | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        """Whether the cycle got past planning. Step errors do not count."""
        return self.error is None

    @property
    def is_direct_answer(self) -> bool:
        return isinstance(self.outcome, DirectAnswer)


class Orchestrator:
    """Central coordinator for one chat session.

    Owns the transcript and the tracker of the active plan. The running
    cycle is the only writer; readers get immutable snapshots through
    ``messages`` and ``active_steps``.
    """

    def __init__(
        self,
        planner: PlanRequester,
        executor: StepExecutor,
        catalog: CatalogSource | None = None,
        history: HistorySink | None = None,
        transcript: Transcript | None = None,
        save_delay: float = 0.5,
        title_length: int = 50,
        observability: LangfuseClient | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            planner: Plan requester.
            executor: Step executor.
            catalog: Agent catalog, or a callable returning a fresh snapshot.
            history: Durable history sink. If None, cycles are not saved.
            transcript: Existing transcript to continue. Defaults to an empty one.
            save_delay: Seconds to wait before a settled cycle is saved.
            title_length: Maximum length of history titles.
            observability: Langfuse client. Defaults to the global client.
        """
        self.planner = planner
        self.executor = executor
        self._catalog_source: CatalogSource = (
            catalog if catalog is not None else AgentCatalog.empty()
        )
        self.transcript = transcript or Transcript()
        self.reconciler = TranscriptReconciler(
            self.transcript,
            history=history,
            save_delay=save_delay,
            title_length=title_length,
        )
        self._observability = observability
        self._tracker: OrchestrationStateTracker | None = None

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        planner: PlanRequester | None = None,
        executor: StepExecutor | None = None,
        catalog: CatalogSource | None = None,
        history: HistorySink | None = None,
    ) -> Orchestrator:
        """Build an orchestrator with components configured from AppConfig."""
        return cls(
            planner or PlanRequester.from_config(config),
            executor or StepExecutor.from_config(config),
            catalog=catalog,
            history=history,
            save_delay=config.history.save_delay,
            title_length=config.history.title_length,
        )

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Immutable snapshot of the transcript."""
        return self.transcript.messages

    @property
    def active_steps(self) -> tuple[OrchestrationStep, ...] | None:
        """Immutable snapshot of the current plan's steps, if any."""
        if self._tracker is None:
            return None
        return self._tracker.steps

    @property
    def tracker(self) -> OrchestrationStateTracker | None:
        return self._tracker

    def new_conversation(self) -> None:
        """Start over with an empty transcript and no active plan.

        A cycle still running keeps going, but its entries no longer reach
        the transcript and its history save is skipped.
        """
        self._tracker = None
        self.transcript.reset()

    def load_history(self, entry: HistoryEntry) -> None:
        """Replace the transcript with a saved history snapshot."""
        self._tracker = None
        self.transcript.reset(entry.messages)

    async def wait_for_pending_saves(self) -> None:
        await self.reconciler.wait_for_pending_saves()

    def _snapshot_catalog(self) -> AgentCatalog:
        source = self._catalog_source
        if isinstance(source, AgentCatalog):
            return source
        return source()

    @property
    def observability(self) -> LangfuseClient:
        return self._observability or get_observability_client()

    async def send_message(
        self,
        text: str,
        output_type: OutputPreference | str = AUTO_DETECT,
    ) -> CycleResult:
        """Run one full orchestration cycle for a user message.

        Planning failures are recorded on the acknowledgment entry and returned
        in ``CycleResult.error``; they are not raised. Step failures never stop
        the remaining steps.

        Args:
            text: The user message.
            output_type: Desired capability or "auto-detect".

        Returns:
            CycleResult describing the cycle.

        Raises:
            ValueError: If the message is blank.
        """
        if not text or not text.strip():
            raise ValueError("Message must not be empty")
        message_text = text.strip()

        reconciler = self.reconciler.for_cycle()
        user_message = reconciler.add_user_message(message_text)
        cycle_id = user_message.id
        origin = self.transcript.first
        origin_id = origin.id if origin else cycle_id

        set_correlation_id(cycle_id)
        log = get_cycle_logger(cycle_id)
        self._tracker = None
        result = CycleResult(cycle_id=cycle_id)

        observability = self.observability
        observability.start_trace(
            trace_id=cycle_id,
            name="orchestration_cycle",
            input_data={"message": message_text, "output_type": preference_value(output_type)},
        )

        placeholder = reconciler.add_acknowledgment_placeholder()
        log.info("Cycle started")

        try:
            catalog = self._snapshot_catalog()
            outcome = await self._request_plan(message_text, catalog, output_type, cycle_id)
        except Exception as e:
            log.error("Planning failed", error=str(e), error_type=e.__class__.__name__)
            reconciler.fail_cycle(placeholder.id, e)
            result.error = e
        else:
            result.outcome = outcome
            if isinstance(outcome, DirectAnswer):
                reconciler.resolve_direct_answer(placeholder.id, outcome)
            else:
                tracker = OrchestrationStateTracker(outcome)
                result.step_outcomes = await self._execute_plan(
                    outcome, tracker, placeholder.id, catalog, reconciler, cycle_id
                )
                result.steps = tracker.steps
        finally:
            reconciler.schedule_history_save(origin_id, cycle_id)
            observability.end_trace(
                cycle_id,
                output={"steps": len(result.step_outcomes)},
                status="error" if result.error else "success",
            )
            clear_correlation_id()

        if reconciler.is_current:
            result.messages = self.transcript.messages
        else:
            log.info("Cycle outlived its conversation, its entries were dropped")
        log.info(
            "Cycle finished",
            succeeded=result.succeeded,
            failed_steps=sum(1 for o in result.step_outcomes if o.is_error),
        )
        return result

    async def _request_plan(
        self,
        message_text: str,
        catalog: AgentCatalog,
        output_type: OutputPreference | str,
        cycle_id: str,
    ) -> PlanOutcome:
        span_id = str(uuid.uuid4())
        self.observability.start_span(
            span_id=span_id,
            trace_id=cycle_id,
            name="plan_request",
            input_data={"catalog_size": len(catalog)},
        )
        try:
            outcome = await self.planner.request_plan(message_text, catalog, output_type)
        except Exception as e:
            self.observability.end_span(span_id, output={"error": str(e)}, status="error")
            raise
        kind = "direct_answer" if isinstance(outcome, DirectAnswer) else "plan"
        self.observability.end_span(span_id, output={"kind": kind})
        return outcome

    async def _execute_plan(
        self,
        plan: OrchestrationPlan,
        tracker: OrchestrationStateTracker,
        placeholder_id: str,
        catalog: AgentCatalog,
        reconciler: TranscriptReconciler,
        cycle_id: str,
    ) -> tuple[StepOutcome, ...]:
        """Execute every step in plan order, then append the closing entry."""
        reconciler.resolve_plan(placeholder_id, plan)
        if reconciler.is_current:
            self._tracker = tracker

        outcomes: list[StepOutcome] = []
        for index in range(len(tracker)):
            step = tracker[index]
            span_id = str(uuid.uuid4())
            self.observability.start_span(
                span_id=span_id,
                trace_id=cycle_id,
                name=f"step_{index + 1}",
                input_data={"agent_id": step.agent_id, "output_type": step.output_type.value},
            )
            outcome = await self.executor.run(
                index, catalog, tracker, reconciler, cycle_id=cycle_id
            )
            self.observability.end_span(
                span_id,
                output={"text": outcome.text},
                status="error" if outcome.is_error else "success",
            )
            outcomes.append(outcome)

        reconciler.all_steps_processed()
        return tuple(outcomes)
