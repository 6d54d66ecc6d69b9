"""오케스트레이션 계획(plan) 관련 데이터 모델 정의.

플래너 응답은 DirectAnswer 또는 OrchestrationPlan 둘 중 하나로 정규화됩니다.
단계(step)의 구조는 계획 이후 변경되지 않으며 status/result/error만 갱신됩니다.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from .agent import Capability

AUTO_DETECT = "auto-detect"

# 사용자가 선택한 출력 종류
OutputPreference = Capability | Literal["auto-detect"]


class StepStatus(str, Enum):
    """단계 상태. pending -> processing -> (completed | error)."""

    PENDING = "pending"  # 계획 생성 직후
    PROCESSING = "processing"  # 실행 중
    COMPLETED = "completed"  # 성공
    ERROR = "error"  # 실패

    @property
    def is_terminal(self) -> bool:
        """종료 상태 여부."""
        return self in (StepStatus.COMPLETED, StepStatus.ERROR)


class StepOutputType(str, Enum):
    """단계 실행 경로. 알 수 없는 값은 UNSUPPORTED로 정규화됩니다."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    CODE = "code"
    UNSUPPORTED = "unsupported"


class OrchestrationStep(BaseModel):
    """계획 내 하나의 위임 작업."""

    agent_id: str = Field(
        ..., description="Agent ID, Agent 이름, 또는 generic capability placeholder"
    )
    task_description: str = Field(..., description="해당 Agent에게 전달할 완결된 작업 지시")
    output_type: StepOutputType = Field(..., description="실행 경로")
    requested_output_type: str = Field(
        default="", description="플래너가 보낸 원래 outputType 문자열"
    )
    status: StepStatus = Field(default=StepStatus.PENDING, description="단계 상태")
    result: str | None = Field(default=None, description="결과 (텍스트 또는 이미지 참조)")
    error: str | None = Field(default=None, description="에러 메시지 (실패 시)")

    model_config = {"extra": "forbid", "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def normalize_output_type(cls, data: Any) -> Any:
        """outputType을 정규화하고 원래 값을 보존."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw = data.get("output_type")
        raw_str = raw.value if isinstance(raw, Enum) else str(raw or "").strip()
        if not data.get("requested_output_type"):
            data["requested_output_type"] = raw_str
        if raw_str.lower() in Capability.values():
            data["output_type"] = raw_str.lower()
        else:
            data["output_type"] = StepOutputType.UNSUPPORTED
        return data

    @property
    def is_generic(self) -> bool:
        """generic capability placeholder 대상 여부."""
        return self.agent_id.startswith("generic-")

    def to_wire(self) -> dict[str, Any]:
        """플래너 응답과 같은 camelCase 형식으로 변환."""
        data: dict[str, Any] = {
            "agentId": self.agent_id,
            "taskDescription": self.task_description,
            "outputType": self.requested_output_type or self.output_type.value,
            "status": self.status.value,
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data


class OrchestrationPlan(BaseModel):
    """순서가 있는 단계 목록과 요약. 최소 1개 단계를 가집니다."""

    summary: str = Field(default="", description="계획 요약")
    steps: tuple[OrchestrationStep, ...] = Field(
        ..., min_length=1, description="순차 실행될 단계 목록"
    )
    acknowledgment: str = Field(
        default="Received plan.", description="사용자에게 보여줄 초기 응답"
    )

    model_config = {"extra": "forbid", "frozen": True}


class DirectAnswer(BaseModel):
    """위임 없이 바로 답하는 플래너 응답."""

    text: str = Field(..., description="직접 응답 텍스트")

    model_config = {"extra": "forbid", "frozen": True}


PlanOutcome = OrchestrationPlan | DirectAnswer


class StepOutcome(BaseModel):
    """단계 하나의 실행 결과 (성공 또는 실패)."""

    agent_id: str = Field(..., description="단계 대상 참조")
    text: str = Field(..., description="대화 기록에 표시될 텍스트")
    image_url: str | None = Field(default=None, description="이미지 참조 (data URI)")
    audio_text: str | None = Field(default=None, description="오디오 작업 텍스트")
    is_error: bool = Field(default=False, description="실패 여부")
    result: str | None = Field(default=None, description="상태 추적기에 기록될 결과")
    error: str | None = Field(default=None, description="상태 추적기에 기록될 에러")

    model_config = {"extra": "forbid", "frozen": True}
