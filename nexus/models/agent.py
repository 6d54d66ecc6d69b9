"""Agent 관련 데이터 모델 정의.

이 모듈은 사용자가 정의한 Agent 페르소나와 Capability 열거형을 정의합니다.
Agent 레코드 자체는 저장소(storage)가 소유하며, 오케스트레이션 엔진은 읽기만 합니다.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Capability(str, Enum):
    """Agent 또는 단계(step)의 출력 종류."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    CODE = "code"

    @classmethod
    def values(cls) -> list[str]:
        """허용되는 capability 문자열 목록 반환."""
        return [member.value for member in cls]


class Agent(BaseModel):
    """사용자 정의 Agent 페르소나.

    위임된 작업을 수행할 때 system_prompt가 Agent의 행동을 결정합니다.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), description="Agent 고유 식별자"
    )
    name: str = Field(..., min_length=1, description="Agent 표시 이름")
    description: str = Field(default="", description="Agent 설명")
    system_prompt: str = Field(
        default="", description="위임된 작업 수행 시 적용되는 지시문"
    )
    icon: str | None = Field(default=None, description="아이콘 이름 또는 URL")
    capabilities: list[Capability] = Field(
        default_factory=list, description="Agent가 선언한 capability 목록"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="생성 시간"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="수정 시간"
    )

    model_config = {"extra": "forbid"}

    def has_capability(self, capability: Capability | str) -> bool:
        """특정 capability 보유 여부 확인."""
        return Capability(capability) in self.capabilities

    def matches(self, reference: str) -> bool:
        """ID 또는 이름이 참조 문자열과 일치하는지 확인."""
        return reference == self.id or reference == self.name

    def to_catalog_entry(self) -> dict[str, Any]:
        """플래너에 전달되는 카탈로그 항목 형식으로 변환."""
        return {
            "id": self.id,
            "name": self.name,
            "capabilities": [cap.value for cap in self.capabilities],
            "agentSystemPrompt": self.system_prompt,
        }


class AgentSuggestion(BaseModel):
    """자연어 설명으로부터 제안된 Agent 설정."""

    name: str = Field(..., description="제안된 Agent 이름")
    description: str = Field(default="", description="제안된 설명")
    system_prompt: str = Field(..., description="제안된 지시문")
    capabilities: list[Capability] = Field(
        default_factory=list, description="제안된 capability 목록"
    )

    model_config = {"extra": "forbid"}

    def to_agent(self) -> Agent:
        """제안 내용으로 새 Agent 생성."""
        return Agent(
            name=self.name,
            description=self.description,
            system_prompt=self.system_prompt,
            capabilities=list(self.capabilities),
        )
