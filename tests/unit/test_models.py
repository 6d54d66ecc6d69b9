"""데이터 모델 단위 테스트."""

import pytest
from pydantic import ValidationError

from nexus.models import (
    # Agent models
    Agent,
    AgentSuggestion,
    Capability,
    # Message models
    ChatMessage,
    # Plan models
    DirectAnswer,
    # Stored records
    DEFAULT_HISTORY_TITLE,
    HistoryEntry,
    OrchestrationPlan,
    OrchestrationStep,
    SavedPrompt,
    SenderRole,
    StepOutcome,
    StepOutputType,
    StepStatus,
)


class TestAgentModels:
    """Agent 모델 테스트."""

    def test_capability_values(self):
        """Capability 값 목록 테스트."""
        assert Capability.values() == ["text", "image", "audio", "code"]

    def test_agent_creation(self):
        """Agent 생성 테스트."""
        agent = Agent(
            name="Poet",
            system_prompt="You write haiku.",
            capabilities=[Capability.TEXT],
        )

        assert agent.id
        assert agent.name == "Poet"
        assert agent.description == ""
        assert agent.created_at is not None

    def test_agent_requires_name(self):
        """빈 이름 거부 테스트."""
        with pytest.raises(ValidationError):
            Agent(name="")

    def test_agent_rejects_unknown_capability(self):
        """알 수 없는 capability 거부 테스트."""
        with pytest.raises(ValidationError):
            Agent(name="Bad", capabilities=["video"])

    def test_has_capability(self):
        """capability 보유 확인 테스트."""
        agent = Agent(name="Coder", capabilities=[Capability.CODE])

        assert agent.has_capability(Capability.CODE)
        assert agent.has_capability("code")
        assert not agent.has_capability(Capability.AUDIO)

    def test_matches_id_or_name(self):
        """ID 또는 이름 매칭 테스트."""
        agent = Agent(id="a1", name="Poet")

        assert agent.matches("a1")
        assert agent.matches("Poet")
        assert not agent.matches("poet")

    def test_to_catalog_entry(self):
        """카탈로그 항목 변환 테스트."""
        agent = Agent(
            id="a1",
            name="Poet",
            system_prompt="You write haiku.",
            capabilities=[Capability.TEXT, Capability.AUDIO],
        )

        assert agent.to_catalog_entry() == {
            "id": "a1",
            "name": "Poet",
            "capabilities": ["text", "audio"],
            "agentSystemPrompt": "You write haiku.",
        }

    def test_suggestion_to_agent(self):
        """제안으로부터 Agent 생성 테스트."""
        suggestion = AgentSuggestion(
            name="SQL Helper",
            description="Writes SQL",
            system_prompt="You are a SQL expert.",
            capabilities=[Capability.CODE],
        )

        agent = suggestion.to_agent()

        assert agent.name == "SQL Helper"
        assert agent.system_prompt == "You are a SQL expert."
        assert agent.capabilities == [Capability.CODE]


class TestPlanModels:
    """계획 모델 테스트."""

    def test_step_defaults_to_pending(self):
        """단계 기본 상태 테스트."""
        step = OrchestrationStep(
            agent_id="a1", task_description="write a haiku", output_type="text"
        )

        assert step.status == StepStatus.PENDING
        assert step.output_type == StepOutputType.TEXT
        assert step.requested_output_type == "text"
        assert step.result is None
        assert step.error is None

    def test_step_normalizes_case(self):
        """outputType 대소문자 정규화 테스트."""
        step = OrchestrationStep(
            agent_id="a1", task_description="draw", output_type=" IMAGE "
        )

        assert step.output_type == StepOutputType.IMAGE

    def test_unknown_output_type_is_unsupported(self):
        """알 수 없는 outputType 정규화 테스트."""
        step = OrchestrationStep(
            agent_id="a1", task_description="film it", output_type="video"
        )

        assert step.output_type == StepOutputType.UNSUPPORTED
        assert step.requested_output_type == "video"

    def test_missing_output_type_is_unsupported(self):
        """outputType 누락 테스트."""
        step = OrchestrationStep(agent_id="a1", task_description="x", output_type="")

        assert step.output_type == StepOutputType.UNSUPPORTED

    def test_step_is_frozen(self):
        """단계 불변성 테스트."""
        step = OrchestrationStep(agent_id="a1", task_description="x", output_type="text")

        with pytest.raises(ValidationError):
            step.status = StepStatus.COMPLETED

    def test_model_copy_keeps_requested_type(self):
        """상태 갱신 시 원래 outputType 보존 테스트."""
        step = OrchestrationStep(agent_id="a1", task_description="x", output_type="video")

        updated = step.model_copy(update={"status": StepStatus.PROCESSING})

        assert updated.status == StepStatus.PROCESSING
        assert updated.requested_output_type == "video"
        assert step.status == StepStatus.PENDING

    def test_is_generic(self):
        """generic placeholder 판별 테스트."""
        generic = OrchestrationStep(
            agent_id="generic-text-agent", task_description="x", output_type="text"
        )
        named = OrchestrationStep(agent_id="a1", task_description="x", output_type="text")

        assert generic.is_generic
        assert not named.is_generic

    def test_to_wire(self):
        """camelCase 변환 테스트."""
        step = OrchestrationStep(
            agent_id="a1", task_description="write", output_type="text"
        ).model_copy(update={"status": StepStatus.COMPLETED, "result": "done"})

        assert step.to_wire() == {
            "agentId": "a1",
            "taskDescription": "write",
            "outputType": "text",
            "status": "completed",
            "result": "done",
        }

    def test_terminal_statuses(self):
        """종료 상태 판별 테스트."""
        assert StepStatus.COMPLETED.is_terminal
        assert StepStatus.ERROR.is_terminal
        assert not StepStatus.PENDING.is_terminal
        assert not StepStatus.PROCESSING.is_terminal

    def test_plan_requires_steps(self):
        """단계 없는 계획 거부 테스트."""
        with pytest.raises(ValidationError):
            OrchestrationPlan(summary="empty", steps=())

    def test_plan_default_acknowledgment(self):
        """계획 기본 응답 테스트."""
        plan = OrchestrationPlan(
            summary="s",
            steps=(OrchestrationStep(agent_id="a1", task_description="x", output_type="text"),),
        )

        assert plan.acknowledgment == "Received plan."

    def test_direct_answer(self):
        """직접 응답 테스트."""
        assert DirectAnswer(text="Hello!").text == "Hello!"

    def test_step_outcome_defaults(self):
        """단계 결과 기본값 테스트."""
        outcome = StepOutcome(agent_id="a1", text="ok")

        assert outcome.is_error is False
        assert outcome.image_url is None
        assert outcome.audio_text is None


class TestMessageModels:
    """메시지 모델 테스트."""

    def test_user_message(self):
        """사용자 메시지 생성 테스트."""
        message = ChatMessage.user("hello")

        assert message.sender == SenderRole.USER
        assert message.text == "hello"
        assert message.is_loading is False

    def test_agent_message(self):
        """Agent 메시지 생성 테스트."""
        message = ChatMessage.agent("a1", "working", is_loading=True)

        assert message.sender == SenderRole.AGENT
        assert message.agent_id == "a1"
        assert message.is_loading is True

    def test_finalized_clears_loading(self):
        """로딩 해제 테스트."""
        message = ChatMessage.orchestrator("thinking", is_loading=True)

        final = message.finalized(text="done", is_error=True)

        assert final.id == message.id
        assert final.text == "done"
        assert final.is_error is True
        assert final.is_loading is False
        assert message.is_loading is True

    def test_orchestrator_message_with_plan(self):
        """계획 포함 메시지 테스트."""
        steps = (OrchestrationStep(agent_id="a1", task_description="x", output_type="text"),)
        message = ChatMessage.orchestrator("summary", orchestration_plan=steps)

        assert message.orchestration_plan == steps


class TestHistoryModels:
    """저장 레코드 모델 테스트."""

    def test_title_from_first_user_message(self):
        """첫 사용자 메시지 제목 테스트."""
        messages = [
            ChatMessage.orchestrator("welcome"),
            ChatMessage.user("x" * 80),
            ChatMessage.user("second"),
        ]

        assert HistoryEntry.title_from(messages) == "x" * 50

    def test_title_default(self):
        """기본 제목 테스트."""
        assert HistoryEntry.title_from([ChatMessage.orchestrator("hi")]) == DEFAULT_HISTORY_TITLE

    def test_history_entry_snapshot(self):
        """이력 스냅샷 테스트."""
        messages = (ChatMessage.user("hi"),)
        entry = HistoryEntry(title="hi", messages=messages, conversation_id=messages[0].id)

        assert entry.messages == messages
        assert entry.starred is False

    def test_saved_prompt(self):
        """저장 프롬프트 테스트."""
        prompt = SavedPrompt(title="Haiku", prompt_text="Write a haiku", tags=["poem"])

        assert prompt.id
        assert prompt.tags == ["poem"]
