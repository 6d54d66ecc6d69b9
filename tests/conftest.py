"""테스트 공통 설정 및 fixtures."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from nexus.core import AgentCatalog, StepExecutor
from nexus.llm import BaseImageProvider, BaseLLMProvider, GeneratedImage, LLMResponse
from nexus.models import Agent, Capability
from nexus.utils.logging import clear_correlation_id
from nexus.utils.observability import reset_observability


class FakeTextProvider(BaseLLMProvider):
    """미리 정해둔 응답을 순서대로 돌려주는 텍스트 provider.

    응답 항목이 예외이면 그 예외를 발생시킵니다.
    """

    def __init__(
        self,
        responses: list[Any] | None = None,
        api_key: str = "test-key",
        delay: float = 0.0,
    ) -> None:
        super().__init__(api_key=api_key)
        self.responses = list(responses or [])
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def default_model(self) -> str:
        return "fake-model"

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.calls.append(
            {
                "messages": messages,
                "model": model,
                "temperature": temperature,
                "system_prompt": system_prompt,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            raise AssertionError("Unexpected chat call")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return LLMResponse(content=item, model=model or self.default_model)


class FakeImageProvider(BaseImageProvider):
    """고정된 base64 이미지를 돌려주는 이미지 provider."""

    def __init__(
        self,
        error: Exception | None = None,
        api_key: str = "test-key",
    ) -> None:
        super().__init__(api_key=api_key)
        self.error = error
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "fake-image"

    async def generate_image(
        self,
        prompt: str,
        model: str | None = None,
        size: str | None = None,
        **kwargs: Any,
    ) -> GeneratedImage:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return GeneratedImage(data="aW1hZ2U=", mime_type="image/png", model=model)


class RecordingSpeechCue:
    """speak 호출을 기록하는 speech cue."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.spoken: list[tuple[str, str]] = []

    async def speak(self, text: str, agent_id: str) -> None:
        self.spoken.append((text, agent_id))
        if self.error is not None:
            raise self.error


@pytest.fixture(autouse=True)
def _reset_globals():
    """전역 상태 초기화."""
    yield
    clear_correlation_id()
    reset_observability()


@pytest.fixture
def poet_agent() -> Agent:
    """텍스트 Agent fixture."""
    return Agent(
        id="a1",
        name="Poet",
        description="Writes short poems",
        system_prompt="You write haiku.",
        capabilities=[Capability.TEXT],
    )


@pytest.fixture
def narrator_agent() -> Agent:
    """오디오 Agent fixture."""
    return Agent(
        id="a2",
        name="Narrator",
        system_prompt="You narrate stories.",
        capabilities=[Capability.AUDIO, Capability.TEXT],
    )


@pytest.fixture
def catalog(poet_agent: Agent, narrator_agent: Agent) -> AgentCatalog:
    """Agent 카탈로그 fixture."""
    return AgentCatalog([poet_agent, narrator_agent])


@pytest.fixture
def make_text_provider() -> type[FakeTextProvider]:
    """응답을 지정해 텍스트 provider를 만드는 fixture."""
    return FakeTextProvider


@pytest.fixture
def make_image_provider() -> type[FakeImageProvider]:
    """이미지 provider 생성 fixture."""
    return FakeImageProvider


@pytest.fixture
def make_speech_cue() -> type[RecordingSpeechCue]:
    """speech cue 생성 fixture."""
    return RecordingSpeechCue


@pytest.fixture
def text_provider() -> FakeTextProvider:
    """빈 응답 목록을 가진 텍스트 provider fixture."""
    return FakeTextProvider()


@pytest.fixture
def image_provider() -> FakeImageProvider:
    """이미지 provider fixture."""
    return FakeImageProvider()


@pytest.fixture
def speech_cue() -> RecordingSpeechCue:
    """speech cue fixture."""
    return RecordingSpeechCue()


@pytest.fixture
def executor(
    text_provider: FakeTextProvider,
    image_provider: FakeImageProvider,
    speech_cue: RecordingSpeechCue,
) -> StepExecutor:
    """StepExecutor fixture."""
    return StepExecutor(
        text_provider,
        image_provider,
        step_timeout=5,
        speech_cue=speech_cue,
    )


@pytest.fixture
def plan_json() -> Callable[..., str]:
    """플래너 응답 JSON을 만드는 헬퍼 fixture."""

    def build(
        steps: list[tuple[str, str, str]],
        summary: str = "Plan summary",
        initial: str | None = "On it!",
    ) -> str:
        payload: dict[str, Any] = {
            "orchestrationPlan": {
                "summary": summary,
                "steps": [
                    {
                        "agentId": agent_id,
                        "taskDescription": task,
                        "outputType": output_type,
                        "status": "pending",
                    }
                    for agent_id, task, output_type in steps
                ],
            }
        }
        if initial is not None:
            payload["initialNexusResponse"] = initial
        return json.dumps(payload)

    return build
