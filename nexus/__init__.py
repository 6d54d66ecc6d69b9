"""Nexus Agent Kit - plan-and-delegate orchestration over user-defined agents."""

from nexus.core import (
    AgentCatalog,
    AgentSuggester,
    CycleResult,
    OrchestrationStateTracker,
    Orchestrator,
    PlanRequester,
    StepExecutor,
    Transcript,
    TranscriptReconciler,
)

__version__ = "0.1.0"

__all__ = [
    "AgentCatalog",
    "AgentSuggester",
    "CycleResult",
    "OrchestrationStateTracker",
    "Orchestrator",
    "PlanRequester",
    "StepExecutor",
    "Transcript",
    "TranscriptReconciler",
    "__version__",
]
