"""Exception hierarchy for the Nexus orchestration engine.

Top-level failures (configuration, planning transport, parse and structure
errors) propagate to the caller of a cycle. Step-level failures are caught at
the step boundary and turned into error outcomes instead of being raised.
"""

from typing import Any


class NexusError(Exception):
    """Base exception for all Nexus errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
            cause: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(NexusError):
    """Raised when there's a configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Raised when a required configuration (usually a credential) is missing."""

    def __init__(self, config_key: str, message: str | None = None):
        self.config_key = config_key
        msg = message or f"Missing required configuration: {config_key}"
        super().__init__(msg, details={"config_key": config_key})


# ============================================================================
# External Service Errors
# ============================================================================


class ExternalServiceError(NexusError):
    """Base class for downstream capability errors."""

    pass


class LLMAPIError(ExternalServiceError):
    """Raised when a call to a model provider fails."""

    def __init__(
        self,
        message: str,
        provider: str = "anthropic",
        model: str | None = None,
        cause: Exception | None = None,
    ):
        details = {"provider": provider}
        if model:
            details["model"] = model
        super().__init__(message, details=details, cause=cause)
        self.provider = provider
        self.model = model


class EmptyGenerationError(ExternalServiceError):
    """Raised when a text generation call returns no usable text."""

    def __init__(self, message: str = "Agent received an empty response."):
        super().__init__(message)


class ImageGenerationError(ExternalServiceError):
    """Raised when the image capability returns no image data."""

    def __init__(
        self,
        message: str = "Failed to generate image or no image data received.",
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)


class PlanningError(ExternalServiceError):
    """Base class for failures of a structured planning-style request."""

    pass


class EmptyResponseError(PlanningError):
    """Raised when the planner returns empty or blank text."""

    def __init__(self, source: str = "Orchestrator"):
        super().__init__(
            f"{source} returned an empty or invalid response.",
            details={"source": source},
        )
        self.source = source


class ResponseParseError(PlanningError):
    """Raised when the planner response is not valid structured data."""

    def __init__(self, raw_text: str, source: str = "Orchestrator", cause: Exception | None = None):
        super().__init__(
            f"Failed to parse the {source.lower()} response. "
            f"The response was not valid JSON. Raw text: {raw_text}",
            details={"source": source},
            cause=cause,
        )
        self.raw_text = raw_text
        self.source = source


class InvalidResponseStructureError(PlanningError):
    """Raised when a parsed response lacks the required fields."""

    def __init__(
        self,
        message: str,
        raw_payload: Any = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.raw_payload = raw_payload


# ============================================================================
# Timeout Errors
# ============================================================================


class NexusTimeoutError(NexusError):
    """Base class for timeout errors."""

    def __init__(
        self,
        message: str,
        timeout_seconds: float,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details["timeout_seconds"] = timeout_seconds
        super().__init__(message, details=details)
        self.timeout_seconds = timeout_seconds


class StepTimeoutError(NexusTimeoutError):
    """Raised when a single step's downstream call exceeds its time limit."""

    def __init__(self, step_index: int, timeout_seconds: float):
        super().__init__(
            f"Step {step_index + 1} timed out after {timeout_seconds}s",
            timeout_seconds=timeout_seconds,
            details={"step_index": step_index},
        )
        self.step_index = step_index


class PlanTimeoutError(NexusTimeoutError):
    """Raised when the planning request exceeds its time limit."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            f"Planning request timed out after {timeout_seconds}s",
            timeout_seconds=timeout_seconds,
        )


# ============================================================================
# State Errors
# ============================================================================


class StepTransitionError(NexusError):
    """Raised when a step status change violates the step lifecycle."""

    def __init__(self, step_index: int, current: str, target: str):
        super().__init__(
            f"Cannot move step {step_index} from {current} to {target}",
            details={"step_index": step_index, "current": current, "target": target},
        )
        self.step_index = step_index
        self.current = current
        self.target = target


class RecordNotFoundError(NexusError):
    """Raised when a persisted record does not exist."""

    def __init__(self, record_type: str, record_id: str):
        super().__init__(
            f"{record_type} not found: {record_id}",
            details={"record_type": record_type, "record_id": record_id},
        )
        self.record_type = record_type
        self.record_id = record_id
