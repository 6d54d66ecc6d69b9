"""대화 기록(transcript) 메시지 모델 정의.

is_loading=True인 메시지는 저장되기 전에 반드시 한 번의 최종 갱신
(is_loading=False)으로 대체됩니다.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .plan import OrchestrationStep


class SenderRole(str, Enum):
    """메시지 발신자 역할."""

    USER = "user"  # 사용자 입력
    ORCHESTRATOR = "orchestrator"  # 오케스트레이터 응답
    AGENT = "agent"  # 위임된 Agent 결과


class ChatMessage(BaseModel):
    """대화 기록의 한 항목."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), description="메시지 고유 식별자"
    )
    text: str = Field(default="", description="표시 텍스트")
    sender: SenderRole = Field(..., description="발신자 역할")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="메시지 생성 시간"
    )
    is_error: bool = Field(default=False, description="에러 메시지 여부")
    is_loading: bool = Field(default=False, description="로딩 placeholder 여부")
    image_url: str | None = Field(default=None, description="이미지 참조")
    audio_text: str | None = Field(default=None, description="오디오 작업 텍스트")
    agent_id: str | None = Field(default=None, description="결과를 만든 Agent 참조")
    orchestration_plan: tuple[OrchestrationStep, ...] | None = Field(
        default=None, description="표시용으로 포함된 계획 단계"
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="추가 메타데이터")

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def user(cls, text: str) -> "ChatMessage":
        """사용자 메시지 생성 헬퍼."""
        return cls(text=text, sender=SenderRole.USER)

    @classmethod
    def orchestrator(cls, text: str, **kwargs: Any) -> "ChatMessage":
        """오케스트레이터 메시지 생성 헬퍼."""
        return cls(text=text, sender=SenderRole.ORCHESTRATOR, **kwargs)

    @classmethod
    def agent(cls, agent_id: str, text: str, **kwargs: Any) -> "ChatMessage":
        """Agent 메시지 생성 헬퍼."""
        return cls(text=text, sender=SenderRole.AGENT, agent_id=agent_id, **kwargs)

    def finalized(self, **changes: Any) -> "ChatMessage":
        """변경 사항을 적용하고 로딩 상태를 해제한 사본 반환."""
        changes["is_loading"] = False
        return self.model_copy(update=changes)
