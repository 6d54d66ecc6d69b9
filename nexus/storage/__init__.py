"""Local persistence for agents, saved prompts and history."""

from .base import JsonRecordStore
from .stores import AgentStore, HistoryStore, PromptStore

__all__ = [
    "JsonRecordStore",
    "AgentStore",
    "PromptStore",
    "HistoryStore",
]
