"""저장 레코드 모델 정의 (대화 이력, 저장된 프롬프트)."""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .message import ChatMessage, SenderRole

DEFAULT_HISTORY_TITLE = "Chat Session"


class HistoryEntry(BaseModel):
    """완료된 상호작용 주기의 대화 기록 스냅샷.

    생성 후에는 삭제와 별표 표시 외에 변경되지 않습니다.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), description="이력 고유 식별자"
    )
    title: str = Field(..., description="첫 사용자 메시지에서 만든 제목")
    messages: tuple[ChatMessage, ...] = Field(
        default_factory=tuple, description="저장 시점의 메시지 스냅샷"
    )
    conversation_id: str | None = Field(
        default=None, description="대화를 시작한 첫 메시지 ID"
    )
    starred: bool = Field(default=False, description="즐겨찾기 여부")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="생성 시간"
    )

    model_config = {"extra": "forbid", "frozen": True}

    @staticmethod
    def title_from(messages: tuple[ChatMessage, ...] | list[ChatMessage], limit: int = 50) -> str:
        """첫 사용자 메시지로부터 제목 생성."""
        for message in messages:
            if message.sender == SenderRole.USER and message.text:
                return message.text[:limit]
        return DEFAULT_HISTORY_TITLE


class SavedPrompt(BaseModel):
    """재사용을 위해 저장한 프롬프트."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), description="프롬프트 고유 식별자"
    )
    title: str = Field(..., min_length=1, description="프롬프트 제목")
    prompt_text: str = Field(..., description="프롬프트 본문")
    tags: list[str] = Field(default_factory=list, description="태그 목록")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="생성 시간"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="수정 시간"
    )

    model_config = {"extra": "forbid"}
