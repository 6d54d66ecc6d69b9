"""Step Executor - runs one plan step against the right capability.

Dispatch is keyed on the step's output type. Every failure of a downstream
call, including a timeout, becomes an error StepOutcome at the step boundary;
nothing raised by a capability escapes ``execute_step``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

from nexus.llm import BaseImageProvider, BaseLLMProvider, LLMProviderFactory
from nexus.models import Agent, Capability, OrchestrationStep, StepOutcome, StepOutputType
from nexus.utils.config import DEFAULT_CODE_INSTRUCTION, AppConfig
from nexus.utils.exceptions import (
    EmptyGenerationError,
    MissingConfigurationError,
    StepTimeoutError,
)
from nexus.utils.logging import get_logger, get_step_logger

from .catalog import AgentCatalog
from .tracker import OrchestrationStateTracker
from .transcript import TranscriptReconciler

logger = get_logger(__name__)

AUDIO_RESULT_TEXT = "Audio task processed"


class SpeechCue(Protocol):
    """Best-effort local speech output for audio steps."""

    async def speak(self, text: str, agent_id: str) -> None: ...


class LoggingSpeechCue:
    """Speech cue that only records what would have been spoken."""

    async def speak(self, text: str, agent_id: str) -> None:
        logger.info("Speech cue", agent_id=agent_id, text=text)


class StepExecutor:
    """Executes plan steps one at a time.

    Attributes:
        step_timeout: Seconds allowed per step. 0 disables the bound.
    """

    def __init__(
        self,
        text_provider: BaseLLMProvider,
        image_provider: BaseImageProvider | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        code_instruction: str = DEFAULT_CODE_INSTRUCTION,
        image_model: str | None = None,
        image_size: str | None = None,
        step_timeout: float = 120,
        speech_cue: SpeechCue | None = None,
    ) -> None:
        self._text_provider = text_provider
        self._image_provider = image_provider
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._code_instruction = code_instruction
        self._image_model = image_model
        self._image_size = image_size
        self.step_timeout = step_timeout
        self._speech_cue = speech_cue
        self._speech_tasks: set[asyncio.Task[None]] = set()

        self._handlers: dict[
            StepOutputType,
            Callable[[OrchestrationStep, Agent | None], Awaitable[StepOutcome]],
        ] = {
            StepOutputType.TEXT: self._run_text,
            StepOutputType.CODE: self._run_code,
            StepOutputType.IMAGE: self._run_image,
            StepOutputType.AUDIO: self._run_audio,
        }

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        text_provider: BaseLLMProvider | None = None,
        image_provider: BaseImageProvider | None = None,
        speech_cue: SpeechCue | None = None,
    ) -> StepExecutor:
        """Build an executor from the application configuration."""
        defaults = config.agent_defaults
        if text_provider is None:
            text_provider = LLMProviderFactory.create(
                provider=defaults.provider,
                **config.provider_options(defaults.provider),
            )
        if image_provider is None:
            image_provider = LLMProviderFactory.create_image_provider(
                provider=config.image.provider,
                **config.provider_options(config.image.provider),
            )
        return cls(
            text_provider,
            image_provider,
            model=defaults.model,
            max_tokens=defaults.max_tokens,
            temperature=defaults.temperature,
            code_instruction=defaults.code_instruction,
            image_model=config.image.model,
            image_size=config.image.size,
            step_timeout=config.timeout.step,
            speech_cue=speech_cue or LoggingSpeechCue(),
        )

    async def execute_step(
        self,
        step: OrchestrationStep,
        catalog: AgentCatalog,
        step_index: int = 0,
        cycle_id: str | None = None,
    ) -> StepOutcome:
        """Execute one step and return its outcome.

        Args:
            step: The step to execute.
            catalog: Agents available for resolution by ID or name.
            step_index: Position of the step in its plan.
            cycle_id: Owning cycle, for log context.

        Returns:
            StepOutcome, with is_error set when the step failed.
        """
        log = get_step_logger(cycle_id, step_index, step.agent_id)
        agent = catalog.resolve(step.agent_id)

        if step.output_type is StepOutputType.UNSUPPORTED:
            message = (
                f"Agent '{step.agent_id}' task type "
                f"'{step.requested_output_type}' not supported."
            )
            log.warning("Unsupported step type", output_type=step.requested_output_type)
            return StepOutcome(agent_id=step.agent_id, text=message, is_error=True, error=message)

        log.info(
            "Executing step",
            output_type=step.output_type.value,
            resolved_agent=agent.name if agent else None,
        )

        call = self._handlers[step.output_type](step, agent)
        try:
            if self.step_timeout > 0:
                outcome = await asyncio.wait_for(call, timeout=self.step_timeout)
            else:
                outcome = await call
        except TimeoutError:
            error = StepTimeoutError(step_index, self.step_timeout)
            log.error("Step timed out", timeout=self.step_timeout)
            return self._failure(step, error.message)
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or e.__class__.__name__
            log.error("Step failed", error=message, error_type=e.__class__.__name__)
            return self._failure(step, message)

        log.info("Step completed")
        return outcome

    async def run(
        self,
        step_index: int,
        catalog: AgentCatalog,
        tracker: OrchestrationStateTracker,
        reconciler: TranscriptReconciler,
        cycle_id: str | None = None,
    ) -> StepOutcome:
        """Run a tracked step and reconcile it into the transcript.

        The step moves to processing, a loading placeholder is appended, and
        once the outcome resolves the placeholder and the step status are
        updated.
        """
        step = tracker.mark_processing(step_index)
        placeholder = reconciler.step_started(step)

        outcome = await self.execute_step(step, catalog, step_index, cycle_id)

        tracker.record(step_index, outcome)
        reconciler.step_finished(placeholder.id, outcome)
        return outcome

    async def wait_for_speech_cues(self) -> None:
        """Wait for any speech cue still in flight."""
        if self._speech_tasks:
            await asyncio.gather(*list(self._speech_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Capability paths
    # ------------------------------------------------------------------

    async def _run_text(self, step: OrchestrationStep, agent: Agent | None) -> StepOutcome:
        instruction = agent.system_prompt if agent and agent.system_prompt else None
        text = await self._generate_text(step.task_description, instruction)
        return StepOutcome(agent_id=step.agent_id, text=text, result=text)

    async def _run_code(self, step: OrchestrationStep, agent: Agent | None) -> StepOutcome:
        instruction = agent.system_prompt if agent and agent.system_prompt else None
        text = await self._generate_text(
            step.task_description, instruction or self._code_instruction
        )
        return StepOutcome(agent_id=step.agent_id, text=text, result=text)

    async def _run_image(self, step: OrchestrationStep, agent: Agent | None) -> StepOutcome:
        if self._image_provider is None:
            raise MissingConfigurationError(
                "image.provider", "No image generation provider is configured."
            )
        if not self._image_provider.has_credentials:
            raise MissingConfigurationError(
                f"{self._image_provider.provider_name}.api_key",
                f"API key for {self._image_provider.provider_name} is not configured.",
            )

        image = await self._image_provider.generate_image(
            step.task_description,
            model=self._image_model,
            size=self._image_size,
        )
        image_url = image.to_data_uri()
        return StepOutcome(
            agent_id=step.agent_id,
            text=f"Agent '{step.agent_id}' generated an image for: {step.task_description}",
            image_url=image_url,
            result=image_url,
        )

    async def _run_audio(self, step: OrchestrationStep, agent: Agent | None) -> StepOutcome:
        if agent is not None and agent.has_capability(Capability.AUDIO):
            self._fire_speech_cue(step.task_description, step.agent_id)
        return StepOutcome(
            agent_id=step.agent_id,
            text=(
                f"Agent '{step.agent_id}' processed audio task: {step.task_description}. "
                "No audio was synthesized."
            ),
            audio_text=step.task_description,
            result=AUDIO_RESULT_TEXT,
        )

    async def _generate_text(self, task: str, instruction: str | None) -> str:
        if not self._text_provider.has_credentials:
            raise MissingConfigurationError(
                f"{self._text_provider.provider_name}.api_key",
                f"API key for {self._text_provider.provider_name} is not configured.",
            )

        response = await self._text_provider.chat(
            messages=[{"role": "user", "content": task}],
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system_prompt=instruction,
        )
        if not response.content or not response.content.strip():
            raise EmptyGenerationError()
        return response.content

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fire_speech_cue(self, text: str, agent_id: str) -> None:
        if self._speech_cue is None:
            return
        task = asyncio.create_task(self._speech_cue.speak(text, agent_id))
        self._speech_tasks.add(task)
        task.add_done_callback(self._speech_cue_done)

    def _speech_cue_done(self, task: asyncio.Task[None]) -> None:
        self._speech_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Speech cue failed", error=str(error))

    @staticmethod
    def _failure(step: OrchestrationStep, message: str) -> StepOutcome:
        return StepOutcome(
            agent_id=step.agent_id,
            text=f"Agent '{step.agent_id}' failed: {message}",
            is_error=True,
            error=message,
        )

