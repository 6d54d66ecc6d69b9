"""Plan Requester - turns a user request into a plan or a direct answer.

The planning capability receives the raw user message, the desired output
type and the agent catalog, and must answer with a single JSON object that
either carries an ``orchestrationPlan`` or a ``directResponse``.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable

from pydantic import BaseModel, Field, ValidationError, field_validator

from nexus.llm import BaseLLMProvider, LLMProviderFactory
from nexus.models import (
    AUTO_DETECT,
    Agent,
    Capability,
    DirectAnswer,
    OrchestrationPlan,
    OrchestrationStep,
    OutputPreference,
    PlanOutcome,
)
from nexus.utils.config import AppConfig
from nexus.utils.exceptions import (
    InvalidResponseStructureError,
    MissingConfigurationError,
    PlanTimeoutError,
)
from nexus.utils.logging import get_logger

from .catalog import AgentCatalog
from .parsing import parse_json_object

logger = get_logger(__name__)

PLANNER_SOURCE = "Orchestrator"
DEFAULT_ACKNOWLEDGMENT = "Received plan."
NO_AGENTS_TEXT = "No user-defined agents available."

ORCHESTRATOR_SYSTEM_INSTRUCTION = """You are Nexus Core, the orchestrator of a team of specialised AI agents.
Read the user's request and the output type they want, then decide how the work should be delegated.

Agents can have the capabilities 'text', 'image', 'audio' and 'code'. Every user-defined agent
carries its own system prompt, which governs how it performs the tasks you hand to it.

Planning rules:
- If the desired output type is 'auto-detect' or the request needs several steps, split it into
  an ordered list of sub-tasks.
- For each sub-task pick the most suitable agent. When a user-defined agent from the catalog has the
  required capability you MUST use its id. Otherwise use one of the generic placeholders:
  'generic-text-agent', 'generic-image-agent', 'generic-audio-agent', 'generic-code-agent'.
- Every taskDescription must be a precise, self-contained prompt for that agent. The agent runs it
  under its OWN system prompt; do not assume these instructions apply to it.
- image steps: the taskDescription is the image generation prompt.
- audio steps: the taskDescription is the text to narrate.
- code steps: the taskDescription holds the full requirements, or the code to analyse together with
  the analysis instructions.

Respond with a single valid JSON object and nothing else, without markdown fences:
{
  "orchestrationPlan": {
    "summary": "A short summary of the plan.",
    "steps": [
      {
        "agentId": "agent id or generic placeholder",
        "taskDescription": "The complete prompt for this step.",
        "outputType": "text" | "image" | "audio" | "code",
        "status": "pending"
      }
    ]
  },
  "initialNexusResponse": "A brief, friendly acknowledgment for the user."
}

If the request is simple (a greeting, a short factual question) and needs nothing but text, you may
answer directly instead:
{
  "directResponse": "Your concise answer."
}
"""


class _WireStep(BaseModel):
    agentId: str
    taskDescription: str
    outputType: str | None = None
    status: str | None = None


class _WirePlan(BaseModel):
    summary: str = ""
    steps: list[_WireStep] = Field(default_factory=list)

    @field_validator("summary", mode="before")
    @classmethod
    def _null_summary(cls, v: object) -> object:
        return "" if v is None else v


class _WirePlanResponse(BaseModel):
    orchestrationPlan: _WirePlan | None = None
    initialNexusResponse: str | None = None
    directResponse: str | None = None


class PlanRequester:
    """Sends planning requests and normalizes the answers.

    Transport errors from the provider propagate unchanged; every other
    failure raises a distinct PlanningError subclass. Nothing is retried.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 4096,
        timeout: float = 120,
    ) -> None:
        """Initialize the requester.

        Args:
            provider: Text-generation provider used for planning.
            model: Model override. If None, uses the provider's default.
            temperature: Sampling temperature for the planning call.
            max_tokens: Maximum tokens in the planning response.
            timeout: Seconds to wait for the planning call. 0 disables the bound.
        """
        self._provider = provider
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout

    @classmethod
    def from_config(
        cls, config: AppConfig, provider: BaseLLMProvider | None = None
    ) -> PlanRequester:
        """Build a requester from the application configuration."""
        if provider is None:
            provider = LLMProviderFactory.create(
                provider=config.planner.provider,
                **config.provider_options(config.planner.provider),
            )
        return cls(
            provider,
            model=config.planner.model,
            temperature=config.planner.temperature,
            max_tokens=config.planner.max_tokens,
            timeout=config.timeout.plan,
        )

    @property
    def provider(self) -> BaseLLMProvider:
        return self._provider

    async def request_plan(
        self,
        user_message: str,
        catalog: AgentCatalog | Iterable[Agent],
        desired_output_type: OutputPreference | str = AUTO_DETECT,
    ) -> PlanOutcome:
        """Ask the planning capability how to handle a user message.

        Args:
            user_message: The trimmed user request.
            catalog: Agents the planner may delegate to. May be empty.
            desired_output_type: Capability value or "auto-detect".

        Returns:
            A DirectAnswer or an OrchestrationPlan with at least one step.

        Raises:
            MissingConfigurationError: No credential is configured; nothing is sent.
            PlanTimeoutError: The planning call exceeded its time limit.
            LLMAPIError: The provider rejected or failed the call.
            EmptyResponseError: The response text was blank.
            ResponseParseError: The response was not valid JSON.
            InvalidResponseStructureError: Neither a plan nor a direct answer was present.
        """
        if not self._provider.has_credentials:
            raise MissingConfigurationError(
                f"{self._provider.provider_name}.api_key",
                f"API key for {self._provider.provider_name} is not configured.",
            )

        if not isinstance(catalog, AgentCatalog):
            catalog = AgentCatalog(catalog)

        prompt = self.build_request(user_message, catalog, desired_output_type)
        logger.info(
            "Requesting orchestration plan",
            provider=self._provider.provider_name,
            catalog_size=len(catalog),
            desired_output_type=preference_value(desired_output_type),
        )

        call = self._provider.chat(
            messages=[{"role": "user", "content": prompt}],
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system_prompt=ORCHESTRATOR_SYSTEM_INSTRUCTION,
        )
        try:
            if self._timeout > 0:
                response = await asyncio.wait_for(call, timeout=self._timeout)
            else:
                response = await call
        except TimeoutError as e:
            logger.error("Planning request timed out", timeout=self._timeout)
            raise PlanTimeoutError(self._timeout) from e

        outcome = self.interpret(response.content)
        if isinstance(outcome, OrchestrationPlan):
            logger.info("Orchestration plan received", steps=len(outcome.steps))
        else:
            logger.info("Direct answer received")
        return outcome

    @staticmethod
    def build_request(
        user_message: str,
        catalog: AgentCatalog,
        desired_output_type: OutputPreference | str = AUTO_DETECT,
    ) -> str:
        """Build the user turn sent to the planning capability."""
        if len(catalog):
            agents_text = json.dumps(catalog.entries(), ensure_ascii=False)
        else:
            agents_text = NO_AGENTS_TEXT

        return (
            f'User Query: "{user_message}"\n'
            f'User\'s Desired Output Type: "{preference_value(desired_output_type)}"\n\n'
            "Available User-Defined Agents (use their 'id' in the plan if suitable; "
            "each agent's 'agentSystemPrompt' guides how it executes your 'taskDescription'):\n"
            f"{agents_text}\n\n"
            "Please formulate a plan. Remember to respond ONLY with the JSON structure specified."
        )

    @staticmethod
    def interpret(raw_text: str | None) -> PlanOutcome:
        """Normalize a raw planning response into a PlanOutcome.

        A direct answer wins over a plan. A plan without steps collapses to a
        direct answer built from the best available text.
        """
        data = parse_json_object(raw_text, PLANNER_SOURCE)

        try:
            wire = _WirePlanResponse.model_validate(data)
        except ValidationError as e:
            logger.error("Invalid plan structure", raw_payload=data, error=str(e))
            raise InvalidResponseStructureError(
                f"{PLANNER_SOURCE} returned an invalid plan structure.",
                raw_payload=data,
                cause=e,
            ) from e

        if wire.directResponse:
            return DirectAnswer(text=wire.directResponse)

        if wire.orchestrationPlan is None:
            logger.error("Plan response missing critical fields", raw_payload=data)
            raise InvalidResponseStructureError(
                f"{PLANNER_SOURCE} returned an invalid plan structure.", raw_payload=data
            )

        plan = wire.orchestrationPlan
        if not plan.steps:
            fallback = wire.initialNexusResponse or plan.summary
            if not fallback:
                logger.error("Plan has no steps and no answer text", raw_payload=data)
                raise InvalidResponseStructureError(
                    f"{PLANNER_SOURCE} returned a plan without steps.", raw_payload=data
                )
            logger.warning("Plan has no steps, treating it as a direct answer")
            return DirectAnswer(text=fallback)

        steps = tuple(
            OrchestrationStep(
                agent_id=step.agentId,
                task_description=step.taskDescription,
                output_type=step.outputType or "",
            )
            for step in plan.steps
        )
        return OrchestrationPlan(
            summary=plan.summary,
            steps=steps,
            acknowledgment=wire.initialNexusResponse or DEFAULT_ACKNOWLEDGMENT,
        )


def preference_value(preference: OutputPreference | str) -> str:
    if isinstance(preference, Capability):
        return preference.value
    return str(preference)
