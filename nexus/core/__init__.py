"""Core components package.

This package contains the orchestration engine: catalog access, planning,
step execution, state tracking and transcript reconciliation.
"""

from .catalog import AgentCatalog
from .executor import LoggingSpeechCue, SpeechCue, StepExecutor
from .orchestrator import CycleResult, Orchestrator
from .parsing import parse_json_object, strip_code_fence
from .planner import (
    ORCHESTRATOR_SYSTEM_INSTRUCTION,
    PlanRequester,
)
from .suggestions import AgentSuggester
from .tracker import OrchestrationStateTracker
from .transcript import (
    ALL_STEPS_PROCESSED_TEXT,
    ANALYZING_TEXT,
    HistorySink,
    Transcript,
    TranscriptReconciler,
)

__all__ = [
    # Catalog
    "AgentCatalog",
    # Planning
    "PlanRequester",
    "ORCHESTRATOR_SYSTEM_INSTRUCTION",
    "AgentSuggester",
    "parse_json_object",
    "strip_code_fence",
    # Execution
    "StepExecutor",
    "SpeechCue",
    "LoggingSpeechCue",
    "OrchestrationStateTracker",
    # Transcript
    "Transcript",
    "TranscriptReconciler",
    "HistorySink",
    "ANALYZING_TEXT",
    "ALL_STEPS_PROCESSED_TEXT",
    # Orchestrator
    "Orchestrator",
    "CycleResult",
]
