"""Application configuration management.

This module provides configuration loading from environment variables and YAML files.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_CODE_INSTRUCTION = "You are a helpful code assistant."


class LogFormat(str, Enum):
    """Log output format types."""

    JSON = "json"
    CONSOLE = "console"


class AppSettings(BaseModel):
    """Application settings."""

    name: str = Field(default="nexus", description="Application name tagged on log events")


class AnthropicConfig(BaseModel):
    """Anthropic API configuration."""

    api_key: str = Field(default="", description="Anthropic API key")


class OpenAIConfig(BaseModel):
    """OpenAI (or OpenAI-compatible) API configuration."""

    api_key: str = Field(default="", description="OpenAI API key")
    base_url: str | None = Field(
        default=None, description="Custom base URL for compatible endpoints"
    )


def _check_temperature(v: float) -> float:
    if not 0.0 <= v <= 2.0:
        raise ValueError("Temperature must be between 0.0 and 2.0")
    return v


def _check_max_tokens(v: int) -> int:
    if v <= 0:
        raise ValueError("max_tokens must be positive")
    return v


class PlannerConfig(BaseModel):
    """Settings for the planning request."""

    provider: str = Field(default="anthropic", description="Planner provider name")
    model: str | None = Field(default=None, description="Planner model")
    temperature: float = Field(default=0.3, description="Planner temperature")
    max_tokens: int = Field(default=4096, description="Planner max tokens")

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        return _check_temperature(v)

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        return _check_max_tokens(v)


class AgentDefaults(BaseModel):
    """Default settings for delegated text and code steps."""

    provider: str = Field(default="anthropic", description="Agent provider name")
    model: str | None = Field(default=None, description="Agent model")
    max_tokens: int = Field(default=4096, description="Default max tokens")
    temperature: float = Field(default=0.7, description="Default temperature")
    code_instruction: str = Field(
        default=DEFAULT_CODE_INSTRUCTION,
        description="Instruction used for code steps without a resolved agent",
    )

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        return _check_temperature(v)

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        return _check_max_tokens(v)


class ImageConfig(BaseModel):
    """Image capability settings."""

    provider: str = Field(default="openai", description="Image provider name")
    model: str = Field(default="gpt-image-1", description="Image model")
    size: str = Field(default="1024x1024", description="Generated image size")


class TimeoutConfig(BaseModel):
    """Timeout configuration. Zero disables a bound."""

    step: float = Field(default=120, description="Per-step timeout in seconds")
    plan: float = Field(default=120, description="Planning request timeout in seconds")

    @field_validator("step", "plan")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Timeout must not be negative")
        return v


class HistoryConfig(BaseModel):
    """History snapshot settings."""

    save_delay: float = Field(
        default=0.5, description="Delay before a finished cycle is saved (seconds)"
    )
    max_entries: int = Field(default=50, description="Maximum stored history entries")
    title_length: int = Field(default=50, description="History title truncation length")

    @field_validator("save_delay")
    @classmethod
    def validate_save_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("save_delay must not be negative")
        return v

    @field_validator("max_entries", "title_length")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


class StorageConfig(BaseModel):
    """Local record storage settings."""

    data_dir: str = Field(default="~/.nexus", description="Directory for JSON records")

    @property
    def path(self) -> Path:
        return Path(self.data_dir).expanduser()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: LogFormat = Field(default=LogFormat.JSON, description="Log format")
    file: str | None = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


class LangfuseConfig(BaseModel):
    """Langfuse observability configuration."""

    enabled: bool = Field(default=False, description="Enable Langfuse")
    public_key: str = Field(default="", description="Langfuse public key")
    secret_key: str = Field(default="", description="Langfuse secret key")
    host: str = Field(
        default="https://cloud.langfuse.com", description="Langfuse host URL"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    app: AppSettings = Field(default_factory=AppSettings)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    planner: PlannerConfig = Field(default_factory=PlannerConfig)
    agent_defaults: AgentDefaults = Field(default_factory=AgentDefaults)
    image: ImageConfig = Field(default_factory=ImageConfig)
    timeout: TimeoutConfig = Field(default_factory=TimeoutConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = Field(default_factory=LangfuseConfig)

    def api_key_for(self, provider: str) -> str:
        """Return the configured API key for a provider name."""
        if provider == "anthropic":
            return self.anthropic.api_key
        if provider == "openai":
            return self.openai.api_key
        return ""

    def provider_options(self, provider: str) -> dict[str, Any]:
        """Keyword arguments for LLMProviderFactory for a provider name."""
        options: dict[str, Any] = {"api_key": self.api_key_for(provider) or None}
        if provider == "openai" and self.openai.base_url:
            options["base_url"] = self.openai.base_url
        return options

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "AppConfig":
        """Load configuration from environment variables only.

        Args:
            env_file: Optional path to .env file

        Returns:
            AppConfig instance populated from environment
        """
        return cls.load(yaml_path=None, env_file=env_file)

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "AppConfig":
        """Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            AppConfig instance populated from YAML

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If YAML content is invalid
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError("YAML content must be a dictionary")

        return cls.model_validate(data)

    @classmethod
    def load(
        cls,
        yaml_path: str | Path | None = None,
        env_file: str | Path | None = None,
    ) -> "AppConfig":
        """Load configuration with YAML as base and environment overrides.

        Environment variables take precedence over YAML settings.

        Args:
            yaml_path: Optional path to YAML configuration file
            env_file: Optional path to .env file

        Returns:
            AppConfig instance with merged configuration
        """
        config = cls.from_yaml(yaml_path) if yaml_path else cls()

        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls._apply_env_overrides(config)

    @classmethod
    def _apply_env_overrides(cls, config: "AppConfig") -> "AppConfig":
        """Apply environment variable overrides to existing config."""
        data = config.model_dump()

        # (env var, section, key, converter)
        overrides: list[tuple[str, str, str, Any]] = [
            ("APP_NAME", "app", "name", str),
            ("ANTHROPIC_API_KEY", "anthropic", "api_key", str),
            ("OPENAI_API_KEY", "openai", "api_key", str),
            ("OPENAI_BASE_URL", "openai", "base_url", str),
            ("PLANNER_PROVIDER", "planner", "provider", str),
            ("PLANNER_MODEL", "planner", "model", str),
            ("AGENT_PROVIDER", "agent_defaults", "provider", str),
            ("DEFAULT_MODEL", "agent_defaults", "model", str),
            ("DEFAULT_MAX_TOKENS", "agent_defaults", "max_tokens", int),
            ("DEFAULT_TEMPERATURE", "agent_defaults", "temperature", float),
            ("IMAGE_PROVIDER", "image", "provider", str),
            ("IMAGE_MODEL", "image", "model", str),
            ("STEP_TIMEOUT", "timeout", "step", float),
            ("PLAN_TIMEOUT", "timeout", "plan", float),
            ("HISTORY_SAVE_DELAY", "history", "save_delay", float),
            ("NEXUS_DATA_DIR", "storage", "data_dir", str),
            ("LOG_LEVEL", "logging", "level", str),
            ("LOG_FORMAT", "logging", "format", str),
            ("LOG_FILE", "logging", "file", str),
            ("LANGFUSE_ENABLED", "langfuse", "enabled", _as_bool),
            ("LANGFUSE_PUBLIC_KEY", "langfuse", "public_key", str),
            ("LANGFUSE_SECRET_KEY", "langfuse", "secret_key", str),
            ("LANGFUSE_HOST", "langfuse", "host", str),
        ]

        for env_var, section, key, convert in overrides:
            value = os.getenv(env_var)
            if value:
                data[section][key] = convert(value)

        return cls.model_validate(data)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance.

    Returns:
        The global AppConfig instance

    Raises:
        RuntimeError: If configuration has not been initialized
    """
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call init_config() first.")
    return _config


def init_config(
    yaml_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> AppConfig:
    """Initialize the global configuration.

    Args:
        yaml_path: Optional path to YAML configuration file
        env_file: Optional path to .env file

    Returns:
        The initialized AppConfig instance
    """
    global _config
    _config = AppConfig.load(yaml_path=yaml_path, env_file=env_file)
    return _config


def reset_config() -> None:
    """Reset the global configuration (mainly for testing)."""
    global _config
    _config = None
