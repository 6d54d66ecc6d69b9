"""Data models package.

This module defines all data models used by the Nexus orchestration engine.
"""

from .agent import (
    Agent,
    AgentSuggestion,
    Capability,
)
from .history import (
    DEFAULT_HISTORY_TITLE,
    HistoryEntry,
    SavedPrompt,
)
from .message import (
    ChatMessage,
    SenderRole,
)
from .plan import (
    AUTO_DETECT,
    DirectAnswer,
    OrchestrationPlan,
    OrchestrationStep,
    OutputPreference,
    PlanOutcome,
    StepOutcome,
    StepOutputType,
    StepStatus,
)

__all__ = [
    # Agent models
    "Agent",
    "AgentSuggestion",
    "Capability",
    # Plan models
    "AUTO_DETECT",
    "DirectAnswer",
    "OrchestrationPlan",
    "OrchestrationStep",
    "OutputPreference",
    "PlanOutcome",
    "StepOutcome",
    "StepOutputType",
    "StepStatus",
    # Message models
    "ChatMessage",
    "SenderRole",
    # Stored records
    "DEFAULT_HISTORY_TITLE",
    "HistoryEntry",
    "SavedPrompt",
]
