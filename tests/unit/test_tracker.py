"""단계 상태 추적기 단위 테스트."""

import pytest

from nexus.core import OrchestrationStateTracker
from nexus.models import OrchestrationPlan, OrchestrationStep, StepOutcome, StepStatus
from nexus.utils.exceptions import StepTransitionError


def _steps(count: int = 3) -> list[OrchestrationStep]:
    return [
        OrchestrationStep(agent_id="a1", task_description=f"task {i}", output_type="text")
        for i in range(count)
    ]


class TestOrchestrationStateTracker:
    """OrchestrationStateTracker 테스트."""

    def test_steps_start_pending(self):
        """모든 단계가 pending으로 시작하는지 테스트."""
        done = _steps(1)[0].model_copy(update={"status": StepStatus.COMPLETED, "result": "x"})

        tracker = OrchestrationStateTracker([done])

        assert tracker[0].status == StepStatus.PENDING
        assert tracker[0].result is None

    def test_accepts_plan(self):
        """계획 객체로 생성 테스트."""
        plan = OrchestrationPlan(summary="s", steps=tuple(_steps(2)))

        tracker = OrchestrationStateTracker(plan)

        assert len(tracker) == 2

    def test_full_lifecycle(self):
        """pending -> processing -> completed 전이 테스트."""
        tracker = OrchestrationStateTracker(_steps(2))

        tracker.mark_processing(0)
        assert tracker[0].status == StepStatus.PROCESSING
        tracker.complete(0, "result text")
        tracker.mark_processing(1)
        tracker.fail(1, "boom")

        assert tracker[0].status == StepStatus.COMPLETED
        assert tracker[0].result == "result text"
        assert tracker[1].status == StepStatus.ERROR
        assert tracker[1].error == "boom"
        assert tracker.is_finished

    def test_snapshots_are_not_mutated(self):
        """이전 스냅샷이 변경되지 않는지 테스트."""
        tracker = OrchestrationStateTracker(_steps(1))
        before = tracker.snapshot()

        tracker.mark_processing(0)

        assert before[0].status == StepStatus.PENDING
        assert tracker.steps is not before

    def test_other_steps_untouched(self):
        """다른 단계는 그대로 유지되는지 테스트."""
        tracker = OrchestrationStateTracker(_steps(3))
        before = tracker.steps

        tracker.mark_processing(1)

        assert tracker.steps[0] is before[0]
        assert tracker.steps[2] is before[2]

    def test_cannot_skip_processing(self):
        """pending에서 completed로 바로 갈 수 없음 테스트."""
        tracker = OrchestrationStateTracker(_steps(1))

        with pytest.raises(StepTransitionError) as exc_info:
            tracker.complete(0, "x")

        assert exc_info.value.current == "pending"
        assert exc_info.value.target == "completed"

    def test_terminal_is_final(self):
        """종료 상태에서 재전이 불가 테스트."""
        tracker = OrchestrationStateTracker(_steps(1))
        tracker.mark_processing(0)
        tracker.fail(0, "boom")

        with pytest.raises(StepTransitionError):
            tracker.mark_processing(0)

    def test_index_out_of_range(self):
        """범위 밖 인덱스 테스트."""
        tracker = OrchestrationStateTracker(_steps(1))

        with pytest.raises(IndexError):
            tracker.mark_processing(5)

    def test_record_outcome(self):
        """StepOutcome 적용 테스트."""
        tracker = OrchestrationStateTracker(_steps(2))
        tracker.mark_processing(0)
        tracker.mark_processing(1)

        tracker.record(0, StepOutcome(agent_id="a1", text="ok", result="payload"))
        tracker.record(
            1, StepOutcome(agent_id="a1", text="failed", is_error=True, error="bad")
        )

        assert tracker[0].status == StepStatus.COMPLETED
        assert tracker[0].result == "payload"
        assert tracker[1].status == StepStatus.ERROR
        assert tracker[1].error == "bad"

    def test_listeners_receive_snapshots(self):
        """구독자 알림 테스트."""
        tracker = OrchestrationStateTracker(_steps(1))
        seen = []
        tracker.subscribe(lambda steps: seen.append(steps[0].status))

        tracker.mark_processing(0)
        tracker.complete(0)

        assert seen == [StepStatus.PROCESSING, StepStatus.COMPLETED]

    def test_failing_listener_does_not_stop_transition(self):
        """예외를 던지는 구독자가 있어도 상태 전이가 계속되는지 테스트."""
        tracker = OrchestrationStateTracker(_steps(1))
        seen = []

        def broken(_):
            raise RuntimeError("display gone")

        tracker.subscribe(broken)
        tracker.subscribe(lambda steps: seen.append(steps[0].status))

        tracker.mark_processing(0)
        tracker.complete(0)

        assert tracker[0].status == StepStatus.COMPLETED
        assert seen == [StepStatus.PROCESSING, StepStatus.COMPLETED]

    def test_empty_tracker_is_finished(self):
        """빈 추적기 테스트."""
        tracker = OrchestrationStateTracker([])

        assert len(tracker) == 0
        assert tracker.is_finished
