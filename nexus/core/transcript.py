"""Transcript and Transcript Reconciler.

The Transcript is the in-memory ordered list of chat entries. The reconciler
turns the events of one orchestration cycle (request, plan, step start and
finish, failure) into transcript entries, then schedules a guarded, delayed
save of the settled transcript to history.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Protocol

from nexus.models import (
    ChatMessage,
    DirectAnswer,
    HistoryEntry,
    OrchestrationPlan,
    OrchestrationStep,
    SenderRole,
    StepOutcome,
)
from nexus.utils.exceptions import RecordNotFoundError
from nexus.utils.logging import get_logger

logger = get_logger(__name__)

ANALYZING_TEXT = "Nexus Core is analyzing your request..."
ALL_STEPS_PROCESSED_TEXT = "All planned agent tasks have been processed."
ERROR_PREFIX = "Nexus Core Error: "
UNKNOWN_ERROR_TEXT = "An unexpected error occurred with Nexus Core."

MessagesListener = Callable[[tuple[ChatMessage, ...]], None]


class HistorySink(Protocol):
    """Anything that can durably store a transcript snapshot."""

    def save(
        self,
        title: str,
        messages: Iterable[ChatMessage],
        conversation_id: str | None = None,
    ) -> HistoryEntry: ...


class Transcript:
    """Ordered chat entries, replaced as a whole tuple on every change.

    Every ``reset`` starts a new generation. Writers that pass the generation
    they started on have their writes dropped once the transcript has moved
    on, so a cycle still running for a replaced conversation cannot touch
    the new one.
    """

    def __init__(self, messages: Iterable[ChatMessage] = ()) -> None:
        self._messages: tuple[ChatMessage, ...] = tuple(messages)
        self._listeners: list[MessagesListener] = []
        self._generation = 0

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self._messages

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)

    @property
    def first(self) -> ChatMessage | None:
        return self._messages[0] if self._messages else None

    @property
    def has_loading(self) -> bool:
        """Whether any entry is still a loading placeholder."""
        return any(message.is_loading for message in self._messages)

    def latest_user_message(self) -> ChatMessage | None:
        for message in reversed(self._messages):
            if message.sender == SenderRole.USER:
                return message
        return None

    def get(self, message_id: str) -> ChatMessage:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise RecordNotFoundError("ChatMessage", message_id)

    def subscribe(self, listener: MessagesListener) -> None:
        self._listeners.append(listener)

    def is_current(self, generation: int | None) -> bool:
        """Whether a writer bound to ``generation`` may still write. None is always current."""
        return generation is None or generation == self._generation

    def append(self, message: ChatMessage, generation: int | None = None) -> ChatMessage:
        """Append an entry.

        The entry is returned even when the write is dropped for a stale
        generation.
        """
        if self._drop_stale(generation, message.id):
            return message
        self._replace((*self._messages, message))
        return message

    def finalize(
        self, message_id: str, generation: int | None = None, **changes: Any
    ) -> ChatMessage | None:
        """Apply changes to one entry and clear its loading flag.

        Returns:
            The updated entry, or None when the write was dropped for a
            stale generation.

        Raises:
            RecordNotFoundError: If no entry has this ID.
        """
        if self._drop_stale(generation, message_id):
            return None
        messages = list(self._messages)
        for i, message in enumerate(messages):
            if message.id == message_id:
                messages[i] = message.finalized(**changes)
                self._replace(tuple(messages))
                return messages[i]
        raise RecordNotFoundError("ChatMessage", message_id)

    def reset(self, messages: Iterable[ChatMessage] = ()) -> None:
        """Replace all entries, e.g. for a new conversation or a loaded history."""
        self._generation += 1
        self._replace(tuple(messages))

    def _drop_stale(self, generation: int | None, message_id: str) -> bool:
        if self.is_current(generation):
            return False
        logger.info(
            "Dropping write for a replaced conversation",
            message_id=message_id,
            generation=generation,
            current_generation=self._generation,
        )
        return True

    def _replace(self, messages: tuple[ChatMessage, ...]) -> None:
        self._messages = messages
        for listener in self._listeners:
            try:
                listener(messages)
            except Exception as e:
                logger.exception("Transcript listener failed", error=str(e))


class TranscriptReconciler:
    """Writes the entries of orchestration cycles into a Transcript."""

    def __init__(
        self,
        transcript: Transcript,
        history: HistorySink | None = None,
        save_delay: float = 0.5,
        title_length: int = 50,
        generation: int | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            transcript: The transcript to write into.
            history: Durable history sink. If None, nothing is saved.
            save_delay: Seconds to wait before saving a settled cycle.
            title_length: Maximum length of a history entry title.
            generation: Transcript generation this reconciler writes to. If
                None, writes always go to the current conversation.
        """
        self._transcript = transcript
        self._history = history
        self._save_delay = save_delay
        self._title_length = title_length
        self._generation = generation
        self._pending_saves: set[asyncio.Task[HistoryEntry | None]] = set()

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def is_current(self) -> bool:
        """Whether writes still reach the conversation this reconciler was bound to."""
        return self._transcript.is_current(self._generation)

    def for_cycle(self) -> TranscriptReconciler:
        """Return a reconciler bound to the transcript's current conversation.

        Once the transcript is reset, writes made through the bound
        reconciler are dropped. Scheduled history saves are shared with
        this reconciler.
        """
        bound = TranscriptReconciler(
            self._transcript,
            history=self._history,
            save_delay=self._save_delay,
            title_length=self._title_length,
            generation=self._transcript.generation,
        )
        bound._pending_saves = self._pending_saves
        return bound

    # ------------------------------------------------------------------
    # Cycle events
    # ------------------------------------------------------------------

    def add_user_message(self, text: str) -> ChatMessage:
        return self._append(ChatMessage.user(text))

    def add_acknowledgment_placeholder(self) -> ChatMessage:
        return self._append(ChatMessage.orchestrator(ANALYZING_TEXT, is_loading=True))

    def resolve_direct_answer(
        self, placeholder_id: str, answer: DirectAnswer
    ) -> ChatMessage | None:
        return self._finalize(placeholder_id, text=answer.text)

    def resolve_plan(self, placeholder_id: str, plan: OrchestrationPlan) -> ChatMessage:
        """Finalize the acknowledgment and append the plan entry.

        Returns:
            The entry embedding the plan steps.
        """
        self._finalize(placeholder_id, text=plan.acknowledgment)
        return self._append(
            ChatMessage.orchestrator(plan.summary, orchestration_plan=plan.steps)
        )

    def step_started(self, step: OrchestrationStep) -> ChatMessage:
        """Append the loading placeholder for a step about to run."""
        return self._append(
            ChatMessage.agent(
                step.agent_id,
                f"Agent '{step.agent_id}' starting task: {step.task_description[:50]}...",
                is_loading=True,
            )
        )

    def step_finished(self, placeholder_id: str, outcome: StepOutcome) -> ChatMessage | None:
        """Replace a step placeholder with the step's final outcome."""
        return self._finalize(
            placeholder_id,
            text=outcome.text,
            image_url=outcome.image_url,
            audio_text=outcome.audio_text,
            is_error=outcome.is_error,
            agent_id=outcome.agent_id,
        )

    def all_steps_processed(self) -> ChatMessage:
        return self._append(ChatMessage.orchestrator(ALL_STEPS_PROCESSED_TEXT))

    def fail_cycle(self, placeholder_id: str, error: BaseException) -> ChatMessage | None:
        """Mark the acknowledgment entry as a top-level failure."""
        detail = getattr(error, "message", None) or str(error) or UNKNOWN_ERROR_TEXT
        return self._finalize(placeholder_id, text=f"{ERROR_PREFIX}{detail}", is_error=True)

    def _append(self, message: ChatMessage) -> ChatMessage:
        return self._transcript.append(message, generation=self._generation)

    def _finalize(self, message_id: str, **changes: Any) -> ChatMessage | None:
        return self._transcript.finalize(message_id, generation=self._generation, **changes)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def schedule_history_save(
        self, origin_id: str, cycle_user_id: str
    ) -> asyncio.Task[HistoryEntry | None] | None:
        """Save the transcript after the configured delay, if still current.

        Args:
            origin_id: ID of the first entry of the conversation.
            cycle_user_id: ID of the user entry that started this cycle.

        Returns:
            The scheduled task, or None when there is no history sink.
        """
        if self._history is None:
            return None

        task = asyncio.create_task(self._save_after_delay(origin_id, cycle_user_id))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)
        return task

    async def _save_after_delay(
        self, origin_id: str, cycle_user_id: str
    ) -> HistoryEntry | None:
        await asyncio.sleep(self._save_delay)
        try:
            return self.save_if_current(origin_id, cycle_user_id)
        except Exception as e:
            logger.exception("History save failed", cycle_id=cycle_user_id, error=str(e))
            return None

    def save_if_current(self, origin_id: str, cycle_user_id: str) -> HistoryEntry | None:
        """Commit the transcript to history only if it belongs to this cycle.

        The save is skipped when the transcript no longer starts with the
        cycle's originating entry, when a newer user message has been sent,
        or while any entry is still loading.
        """
        if self._history is None:
            return None

        messages = self._transcript.messages
        if not messages or messages[0].id != origin_id:
            logger.info("Skipping stale history save", origin_id=origin_id)
            return None

        latest_user = self._transcript.latest_user_message()
        if latest_user is None or latest_user.id != cycle_user_id:
            logger.info("Skipping history save superseded by a newer cycle", cycle_id=cycle_user_id)
            return None

        if self._transcript.has_loading:
            logger.warning("Skipping history save while entries are loading", cycle_id=cycle_user_id)
            return None

        title = HistoryEntry.title_from(messages, limit=self._title_length)
        entry = self._history.save(title, messages, conversation_id=origin_id)
        logger.info("History saved", history_id=entry.id, messages=len(messages))
        return entry

    async def wait_for_pending_saves(self) -> None:
        """Wait until every scheduled history save has run."""
        if self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)
