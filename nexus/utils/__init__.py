"""Utility modules for Nexus.

This package provides utility functions and classes for:
- Configuration management
- Structured logging
- Exception handling
- LLM observability (Langfuse)
"""

from .config import (
    AgentDefaults,
    AnthropicConfig,
    AppConfig,
    AppSettings,
    HistoryConfig,
    ImageConfig,
    LangfuseConfig,
    LogFormat,
    LoggingConfig,
    OpenAIConfig,
    PlannerConfig,
    StorageConfig,
    TimeoutConfig,
    get_config,
    init_config,
    reset_config,
)
from .exceptions import (
    ConfigurationError,
    EmptyGenerationError,
    EmptyResponseError,
    ExternalServiceError,
    ImageGenerationError,
    InvalidResponseStructureError,
    LLMAPIError,
    MissingConfigurationError,
    NexusError,
    NexusTimeoutError,
    PlanningError,
    PlanTimeoutError,
    RecordNotFoundError,
    ResponseParseError,
    StepTimeoutError,
    StepTransitionError,
)
from .logging import (
    LoggerAdapter,
    clear_correlation_id,
    get_correlation_id,
    get_cycle_logger,
    get_logger,
    get_step_logger,
    set_correlation_id,
    setup_logging,
)
from .observability import (
    LangfuseClient,
    get_observability_client,
    init_observability,
    reset_observability,
    shutdown_observability,
)

__all__ = [
    # Config
    "AppConfig",
    "AppSettings",
    "AnthropicConfig",
    "OpenAIConfig",
    "PlannerConfig",
    "AgentDefaults",
    "ImageConfig",
    "TimeoutConfig",
    "HistoryConfig",
    "StorageConfig",
    "LoggingConfig",
    "LangfuseConfig",
    "LogFormat",
    "get_config",
    "init_config",
    "reset_config",
    # Logging
    "setup_logging",
    "get_logger",
    "LoggerAdapter",
    "get_cycle_logger",
    "get_step_logger",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    # Exceptions
    "NexusError",
    "ConfigurationError",
    "MissingConfigurationError",
    "ExternalServiceError",
    "LLMAPIError",
    "EmptyGenerationError",
    "ImageGenerationError",
    "PlanningError",
    "EmptyResponseError",
    "ResponseParseError",
    "InvalidResponseStructureError",
    "NexusTimeoutError",
    "StepTimeoutError",
    "PlanTimeoutError",
    "StepTransitionError",
    "RecordNotFoundError",
    # Observability
    "LangfuseClient",
    "get_observability_client",
    "init_observability",
    "shutdown_observability",
    "reset_observability",
]
