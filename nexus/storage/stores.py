"""Stores for agents, saved prompts and history entries."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from nexus.core.catalog import AgentCatalog
from nexus.models import Agent, ChatMessage, HistoryEntry, SavedPrompt
from nexus.utils.exceptions import RecordNotFoundError
from nexus.utils.logging import get_logger

from .base import JsonRecordStore

logger = get_logger(__name__)


class AgentStore:
    """Persisted agent definitions. The engine reads them through ``catalog()``."""

    FILENAME = "agents.json"

    def __init__(self, data_dir: str | Path) -> None:
        self._records = JsonRecordStore(Path(data_dir).expanduser() / self.FILENAME, Agent)

    def list(self) -> list[Agent]:
        return self._records.load()

    def get(self, agent_id: str) -> Agent:
        """Get an agent by ID.

        Raises:
            RecordNotFoundError: If no agent has this ID.
        """
        agent = self._records.find(agent_id)
        if agent is None:
            raise RecordNotFoundError("Agent", agent_id)
        return agent

    def save(self, agent: Agent) -> Agent:
        """Create the agent, or update it if its ID already exists."""
        agents = self._records.load()
        for i, existing in enumerate(agents):
            if existing.id == agent.id:
                updated = agent.model_copy(
                    update={"created_at": existing.created_at, "updated_at": datetime.now(UTC)}
                )
                agents[i] = updated
                self._records.write(agents)
                logger.info("Agent updated", agent_id=agent.id, name=agent.name)
                return updated

        agents.append(agent)
        self._records.write(agents)
        logger.info("Agent created", agent_id=agent.id, name=agent.name)
        return agent

    def delete(self, agent_id: str) -> None:
        if not self._records.remove(agent_id):
            raise RecordNotFoundError("Agent", agent_id)
        logger.info("Agent deleted", agent_id=agent_id)

    def catalog(self) -> AgentCatalog:
        """Snapshot of the current agents for one orchestration cycle."""
        return AgentCatalog(self._records.load())


class PromptStore:
    """Saved prompts, newest first."""

    FILENAME = "prompts.json"

    def __init__(self, data_dir: str | Path) -> None:
        self._records = JsonRecordStore(
            Path(data_dir).expanduser() / self.FILENAME, SavedPrompt
        )

    def list(self) -> list[SavedPrompt]:
        return self._records.load()

    def create(
        self, title: str, prompt_text: str, tags: Iterable[str] = ()
    ) -> SavedPrompt:
        prompt = SavedPrompt(title=title, prompt_text=prompt_text, tags=list(tags))
        self._records.write([prompt, *self._records.load()])
        return prompt

    def update(self, prompt: SavedPrompt) -> SavedPrompt:
        """Replace a stored prompt and bump its ``updated_at``.

        Raises:
            RecordNotFoundError: If the prompt does not exist.
        """
        prompts = self._records.load()
        for i, existing in enumerate(prompts):
            if existing.id == prompt.id:
                updated = prompt.model_copy(
                    update={"created_at": existing.created_at, "updated_at": datetime.now(UTC)}
                )
                prompts[i] = updated
                self._records.write(prompts)
                return updated
        raise RecordNotFoundError("SavedPrompt", prompt.id)

    def delete(self, prompt_id: str) -> None:
        if not self._records.remove(prompt_id):
            raise RecordNotFoundError("SavedPrompt", prompt_id)


class HistoryStore:
    """Saved conversation snapshots, newest first and capped in number."""

    FILENAME = "history.json"

    def __init__(self, data_dir: str | Path, max_entries: int = 50) -> None:
        self._records = JsonRecordStore(
            Path(data_dir).expanduser() / self.FILENAME, HistoryEntry
        )
        self._max_entries = max_entries

    def list(self) -> list[HistoryEntry]:
        return self._records.load()

    def get(self, entry_id: str) -> HistoryEntry:
        entry = self._records.find(entry_id)
        if entry is None:
            raise RecordNotFoundError("HistoryEntry", entry_id)
        return entry

    def save(
        self,
        title: str,
        messages: Iterable[ChatMessage],
        conversation_id: str | None = None,
    ) -> HistoryEntry:
        """Store a transcript snapshot.

        An older entry for the same conversation is replaced, keeping its
        starred flag.
        """
        entries = self._records.load()
        starred = False
        if conversation_id is not None:
            for existing in entries:
                if existing.conversation_id == conversation_id:
                    starred = starred or existing.starred
            entries = [e for e in entries if e.conversation_id != conversation_id]

        entry = HistoryEntry(
            title=title,
            messages=tuple(messages),
            conversation_id=conversation_id,
            starred=starred,
        )
        self._records.write([entry, *entries][: self._max_entries])
        return entry

    def delete(self, entry_id: str) -> None:
        if not self._records.remove(entry_id):
            raise RecordNotFoundError("HistoryEntry", entry_id)

    def star(self, entry_id: str, starred: bool = True) -> HistoryEntry:
        entries = self._records.load()
        for i, existing in enumerate(entries):
            if existing.id == entry_id:
                entries[i] = existing.model_copy(update={"starred": starred})
                self._records.write(entries)
                return entries[i]
        raise RecordNotFoundError("HistoryEntry", entry_id)
