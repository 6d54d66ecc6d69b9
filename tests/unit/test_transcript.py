"""Tests for the transcript and its reconciler."""

from unittest.mock import MagicMock

import pytest

from nexus.core import ALL_STEPS_PROCESSED_TEXT, ANALYZING_TEXT, Transcript, TranscriptReconciler
from nexus.models import (
    ChatMessage,
    DirectAnswer,
    OrchestrationPlan,
    OrchestrationStep,
    SenderRole,
    StepOutcome,
)
from nexus.storage import HistoryStore
from nexus.utils.exceptions import PlanTimeoutError, RecordNotFoundError


def _plan() -> OrchestrationPlan:
    return OrchestrationPlan(
        summary="Write then narrate",
        steps=(
            OrchestrationStep(agent_id="a1", task_description="write", output_type="text"),
        ),
        acknowledgment="Working on it",
    )


class TestTranscript:
    """Tests for Transcript."""

    def test_append_and_get(self):
        """Test entries are appended in order and found by ID."""
        transcript = Transcript()
        first = transcript.append(ChatMessage.user("hi"))
        second = transcript.append(ChatMessage.orchestrator("hello"))

        assert transcript.messages == (first, second)
        assert transcript.first is first
        assert transcript.get(second.id) is second

    def test_get_missing(self):
        """Test unknown IDs raise RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            Transcript().get("missing")

    def test_finalize_replaces_entry(self):
        """Test finalize swaps the entry and clears loading."""
        transcript = Transcript()
        placeholder = transcript.append(ChatMessage.orchestrator("...", is_loading=True))
        before = transcript.messages

        final = transcript.finalize(placeholder.id, text="done")

        assert final.id == placeholder.id
        assert transcript.messages[0].text == "done"
        assert not transcript.has_loading
        assert before[0].is_loading

    def test_finalize_missing(self):
        """Test finalizing an unknown entry raises."""
        with pytest.raises(RecordNotFoundError):
            Transcript().finalize("missing", text="x")

    def test_latest_user_message(self):
        """Test the most recent user entry is found."""
        transcript = Transcript()
        transcript.append(ChatMessage.user("one"))
        latest = transcript.append(ChatMessage.user("two"))
        transcript.append(ChatMessage.orchestrator("reply"))

        assert transcript.latest_user_message() is latest

    def test_listeners(self):
        """Test subscribers receive every new snapshot."""
        transcript = Transcript()
        sizes = []
        transcript.subscribe(lambda messages: sizes.append(len(messages)))

        transcript.append(ChatMessage.user("hi"))
        transcript.reset()

        assert sizes == [1, 0]

    def test_stale_generation_writes_are_dropped(self):
        """Test writes bound to a replaced conversation do not land."""
        transcript = Transcript()
        placeholder = transcript.append(ChatMessage.orchestrator("...", is_loading=True))
        generation = transcript.generation

        transcript.reset([ChatMessage.user("new conversation")])
        current = transcript.messages

        assert transcript.finalize(placeholder.id, generation=generation, text="done") is None
        transcript.append(ChatMessage.orchestrator("late"), generation=generation)

        assert transcript.messages == current
        assert transcript.generation == generation + 1

    def test_failing_listener_does_not_block_others(self):
        """Test a raising listener is logged and later listeners still run."""
        transcript = Transcript()
        sizes = []

        def broken(_):
            raise RuntimeError("display gone")

        transcript.subscribe(broken)
        transcript.subscribe(lambda messages: sizes.append(len(messages)))

        transcript.append(ChatMessage.user("hi"))

        assert sizes == [1]
        assert len(transcript) == 1


class TestCycleBinding:
    """Tests for reconcilers bound to one conversation."""

    def test_bound_reconciler_writes_while_current(self):
        """Test a bound reconciler behaves normally until a reset."""
        reconciler = TranscriptReconciler(Transcript()).for_cycle()

        placeholder = reconciler.add_acknowledgment_placeholder()
        final = reconciler.resolve_direct_answer(placeholder.id, DirectAnswer(text="Hello!"))

        assert reconciler.is_current
        assert final.text == "Hello!"

    def test_bound_reconciler_after_reset(self):
        """Test every event of a replaced cycle is a no-op."""
        transcript = Transcript()
        reconciler = TranscriptReconciler(transcript).for_cycle()
        placeholder = reconciler.add_acknowledgment_placeholder()

        transcript.reset()

        assert not reconciler.is_current
        assert reconciler.resolve_plan(placeholder.id, _plan()) is not None
        step_placeholder = reconciler.step_started(_plan().steps[0])
        outcome = StepOutcome(agent_id="a1", text="done")
        assert reconciler.step_finished(step_placeholder.id, outcome) is None
        reconciler.all_steps_processed()
        assert reconciler.fail_cycle(placeholder.id, RuntimeError("boom")) is None
        assert transcript.messages == ()

    def test_unbound_reconciler_follows_resets(self):
        """Test a reconciler created without a generation writes to the new conversation."""
        transcript = Transcript()
        reconciler = TranscriptReconciler(transcript)

        transcript.reset()
        reconciler.add_user_message("hi")

        assert reconciler.is_current
        assert len(transcript) == 1

    @pytest.mark.asyncio
    async def test_bound_reconciler_shares_pending_saves(self, tmp_path):
        """Test saves scheduled by a bound reconciler are awaited through the original."""
        history = HistoryStore(tmp_path)
        base = TranscriptReconciler(Transcript(), history, save_delay=0.01)
        reconciler = base.for_cycle()
        user = reconciler.add_user_message("hello")

        reconciler.schedule_history_save(user.id, user.id)
        await base.wait_for_pending_saves()

        assert len(history.list()) == 1


class TestReconcilerEvents:
    """Tests for the cycle events of TranscriptReconciler."""

    def test_direct_answer(self):
        """Test a direct answer replaces the placeholder text."""
        reconciler = TranscriptReconciler(Transcript())
        reconciler.add_user_message("hello")
        placeholder = reconciler.add_acknowledgment_placeholder()

        assert placeholder.text == ANALYZING_TEXT
        assert placeholder.is_loading

        reconciler.resolve_direct_answer(placeholder.id, DirectAnswer(text="Hello!"))

        messages = reconciler.transcript.messages
        assert len(messages) == 2
        assert messages[1].text == "Hello!"
        assert messages[1].is_loading is False

    def test_resolve_plan(self):
        """Test a plan finalizes the acknowledgment and adds the plan entry."""
        reconciler = TranscriptReconciler(Transcript())
        placeholder = reconciler.add_acknowledgment_placeholder()
        plan = _plan()

        entry = reconciler.resolve_plan(placeholder.id, plan)

        messages = reconciler.transcript.messages
        assert messages[0].text == "Working on it"
        assert entry is messages[1]
        assert entry.text == "Write then narrate"
        assert entry.orchestration_plan == plan.steps

    def test_step_placeholder_text(self):
        """Test the step placeholder truncates the task to 50 characters."""
        reconciler = TranscriptReconciler(Transcript())
        step = OrchestrationStep(agent_id="a1", task_description="x" * 80, output_type="text")

        placeholder = reconciler.step_started(step)

        assert placeholder.text == f"Agent 'a1' starting task: {'x' * 50}..."
        assert placeholder.sender == SenderRole.AGENT
        assert placeholder.is_loading

    def test_step_finished(self):
        """Test the outcome fields are copied onto the placeholder."""
        reconciler = TranscriptReconciler(Transcript())
        step = OrchestrationStep(agent_id="a1", task_description="draw", output_type="image")
        placeholder = reconciler.step_started(step)
        outcome = StepOutcome(
            agent_id="a1", text="image ready", image_url="data:image/png;base64,AA", result="x"
        )

        final = reconciler.step_finished(placeholder.id, outcome)

        assert final.id == placeholder.id
        assert final.text == "image ready"
        assert final.image_url == "data:image/png;base64,AA"
        assert final.is_error is False
        assert final.is_loading is False

    def test_all_steps_processed(self):
        """Test the closing entry."""
        reconciler = TranscriptReconciler(Transcript())

        entry = reconciler.all_steps_processed()

        assert entry.text == ALL_STEPS_PROCESSED_TEXT
        assert entry.sender == SenderRole.ORCHESTRATOR

    def test_fail_cycle(self):
        """Test a top-level failure is shown on the acknowledgment entry."""
        reconciler = TranscriptReconciler(Transcript())
        placeholder = reconciler.add_acknowledgment_placeholder()

        entry = reconciler.fail_cycle(placeholder.id, PlanTimeoutError(30))

        assert entry.text == "Nexus Core Error: Planning request timed out after 30s"
        assert entry.is_error
        assert not entry.is_loading

    def test_fail_cycle_without_message(self):
        """Test an error without text uses the generic message."""
        reconciler = TranscriptReconciler(Transcript())
        placeholder = reconciler.add_acknowledgment_placeholder()

        entry = reconciler.fail_cycle(placeholder.id, RuntimeError())

        assert entry.text == "Nexus Core Error: An unexpected error occurred with Nexus Core."


class TestHistorySave:
    """Tests for the guarded history save."""

    def _settled(self, history, save_delay=0.0):
        reconciler = TranscriptReconciler(Transcript(), history, save_delay=save_delay)
        user = reconciler.add_user_message("write me a haiku about autumn")
        placeholder = reconciler.add_acknowledgment_placeholder()
        reconciler.resolve_direct_answer(placeholder.id, DirectAnswer(text="Leaves fall"))
        return reconciler, user

    def test_saves_current_transcript(self, tmp_path):
        """Test a settled cycle is committed."""
        history = HistoryStore(tmp_path)
        reconciler, user = self._settled(history)

        entry = reconciler.save_if_current(user.id, user.id)

        assert entry is not None
        assert entry.title == "write me a haiku about autumn"
        assert entry.conversation_id == user.id
        assert history.list() == [entry]

    def test_skips_replaced_transcript(self):
        """Test a save for a cleared conversation is skipped."""
        history = MagicMock()
        reconciler, user = self._settled(history)
        reconciler.transcript.reset([ChatMessage.user("new conversation")])

        assert reconciler.save_if_current(user.id, user.id) is None
        history.save.assert_not_called()

    def test_skips_superseded_cycle(self):
        """Test a save is skipped once a newer message was sent."""
        history = MagicMock()
        reconciler, user = self._settled(history)
        reconciler.add_user_message("another one")

        assert reconciler.save_if_current(user.id, user.id) is None
        history.save.assert_not_called()

    def test_skips_while_loading(self):
        """Test a save is skipped while placeholders are unresolved."""
        history = MagicMock()
        reconciler, user = self._settled(history)
        reconciler.add_acknowledgment_placeholder()

        assert reconciler.save_if_current(user.id, user.id) is None
        history.save.assert_not_called()

    def test_no_history_sink(self):
        """Test nothing is scheduled without a history sink."""
        reconciler, user = self._settled(None)

        assert reconciler.schedule_history_save(user.id, user.id) is None

    @pytest.mark.asyncio
    async def test_scheduled_save_runs_after_delay(self, tmp_path):
        """Test the scheduled save commits once the delay passes."""
        history = HistoryStore(tmp_path)
        reconciler, user = self._settled(history, save_delay=0.01)

        task = reconciler.schedule_history_save(user.id, user.id)
        assert history.list() == []
        await reconciler.wait_for_pending_saves()

        assert task.result() is not None
        assert len(history.list()) == 1

    @pytest.mark.asyncio
    async def test_scheduled_save_sees_later_state(self):
        """Test the guard is evaluated when the delay ends."""
        history = MagicMock()
        reconciler, user = self._settled(history, save_delay=0.01)

        reconciler.schedule_history_save(user.id, user.id)
        reconciler.transcript.reset()
        await reconciler.wait_for_pending_saves()

        history.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_failure_is_logged(self):
        """Test a failing sink does not raise out of the save task."""
        history = MagicMock()
        history.save.side_effect = OSError("disk full")
        reconciler, user = self._settled(history)

        task = reconciler.schedule_history_save(user.id, user.id)
        await reconciler.wait_for_pending_saves()

        assert task.result() is None
        history.save.assert_called_once()
