"""Agent Suggester - drafts an agent definition from a plain description."""

from __future__ import annotations

from pydantic import BaseModel, ValidationError, field_validator

from nexus.llm import BaseLLMProvider, LLMProviderFactory
from nexus.models import AgentSuggestion, Capability
from nexus.utils.config import AppConfig
from nexus.utils.exceptions import InvalidResponseStructureError, MissingConfigurationError
from nexus.utils.logging import get_logger

from .parsing import parse_json_object

logger = get_logger(__name__)

SUGGESTER_SOURCE = "Agent Setup Assistant"

AGENT_SETUP_SYSTEM_INSTRUCTION = """You are an Agent Setup Assistant.
You help users configure new AI agents by proposing a name, a description, a system prompt and a
set of capabilities from their plain-language description of the agent they want.
The available capabilities are 'text', 'image', 'audio' and 'code'.

For each description:
1. Work out the agent's core function and specialty.
2. Propose a short, descriptive name.
3. Write a one or two sentence description of its purpose.
4. Write a system prompt in the agent's own voice (for example "You are a Python expert who...").
5. Choose one or more relevant capabilities from the list above.

Respond with a single valid JSON object and nothing else, without markdown fences:
{
  "suggestedName": "A concise agent name",
  "suggestedDescription": "A brief description of the agent.",
  "suggestedSystemPrompt": "A detailed system prompt for the agent's behavior.",
  "suggestedCapabilities": ["text", "code"]
}
"""


class _WireSuggestion(BaseModel):
    suggestedName: str
    suggestedDescription: str = ""
    suggestedSystemPrompt: str
    suggestedCapabilities: list[str]

    @field_validator("suggestedName", "suggestedSystemPrompt")
    @classmethod
    def require_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class AgentSuggester:
    """Asks a text provider for an agent configuration draft."""

    def __init__(
        self,
        provider: BaseLLMProvider,
        model: str | None = None,
        temperature: float = 0.5,
        max_tokens: int = 2048,
    ) -> None:
        self._provider = provider
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    @classmethod
    def from_config(
        cls, config: AppConfig, provider: BaseLLMProvider | None = None
    ) -> AgentSuggester:
        if provider is None:
            provider = LLMProviderFactory.create(
                provider=config.planner.provider,
                **config.provider_options(config.planner.provider),
            )
        return cls(provider, model=config.planner.model)

    async def suggest(self, description: str) -> AgentSuggestion:
        """Draft an agent from a natural-language description.

        Args:
            description: What the user wants the agent to do.

        Returns:
            AgentSuggestion ready to be turned into an Agent.

        Raises:
            ValueError: If the description is blank.
            MissingConfigurationError: No credential is configured.
            LLMAPIError: The provider rejected or failed the call.
            EmptyResponseError, ResponseParseError, InvalidResponseStructureError:
                The response could not be used.
        """
        if not description or not description.strip():
            raise ValueError("Agent description must not be empty")

        if not self._provider.has_credentials:
            raise MissingConfigurationError(
                f"{self._provider.provider_name}.api_key",
                f"API key for {self._provider.provider_name} is not configured.",
            )

        response = await self._provider.chat(
            messages=[{"role": "user", "content": description}],
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system_prompt=AGENT_SETUP_SYSTEM_INSTRUCTION,
        )
        return self.interpret(response.content)

    @staticmethod
    def interpret(raw_text: str | None) -> AgentSuggestion:
        """Validate a raw suggestion response."""
        data = parse_json_object(raw_text, SUGGESTER_SOURCE)

        try:
            wire = _WireSuggestion.model_validate(data)
        except ValidationError as e:
            logger.error("Suggestion response missing critical fields", raw_payload=data)
            raise InvalidResponseStructureError(
                f"{SUGGESTER_SOURCE} returned an invalid structure for suggestions.",
                raw_payload=data,
                cause=e,
            ) from e

        capabilities: list[Capability] = []
        for value in wire.suggestedCapabilities:
            normalized = value.strip().lower()
            if normalized not in Capability.values():
                logger.warning("Dropping unknown suggested capability", capability=value)
                continue
            capability = Capability(normalized)
            if capability not in capabilities:
                capabilities.append(capability)

        return AgentSuggestion(
            name=wire.suggestedName.strip(),
            description=wire.suggestedDescription,
            system_prompt=wire.suggestedSystemPrompt,
            capabilities=capabilities,
        )
