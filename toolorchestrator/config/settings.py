"""Environment-bound configuration objects.

Settings are loaded from environment variables and an optional ``.env`` file
through pydantic ``BaseSettings``. Several fields accept more than one variable
name so deployments that already export the provider SDK names keep working.

Example:
    from toolorchestrator.config.settings import get_settings

    settings = get_settings()  # Cached singleton
    max_steps = settings.governance.max_steps
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class ProviderSettings(BaseSettings):
    """Completion provider credentials and model defaults.

    - OPENAI_API_KEY / OPENAI_BASE_URL: primary provider
    - OPENROUTER_API_KEY / OPENROUTER_BASE_URL: alternate provider for namespaced model ids
    - ORCHESTRATOR_DEFAULT_MODEL: model used when the caller passes none
    - ORCHESTRATOR_VALIDATION_MODEL: model for the format-validation stage
    """

    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "ORCHESTRATOR_OPENAI_API_KEY"),
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_BASE_URL", "ORCHESTRATOR_OPENAI_BASE_URL"),
    )
    openrouter_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OPENROUTER_API_KEY", "ORCHESTRATOR_OPENROUTER_API_KEY"),
    )
    openrouter_base_url: str = Field(
        default=OPENROUTER_BASE_URL,
        validation_alias=AliasChoices("OPENROUTER_BASE_URL", "ORCHESTRATOR_OPENROUTER_BASE_URL"),
    )
    default_model: str = Field(
        default="gpt-4.1-mini",
        validation_alias=AliasChoices("ORCHESTRATOR_DEFAULT_MODEL", "ORCHESTRATOR_MODEL"),
    )
    validation_model: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ORCHESTRATOR_VALIDATION_MODEL"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class GovernanceSettings(BaseSettings):
    """Budget and behaviour limits applied when the caller passes no config.

    - max_steps: step-log size that stops the plan/execute/evaluate loop (default: 10)
    - max_tool_calls: tool executions per orchestration (default: 5)
    - development_mode: return the full step log (default: False)
    - deadline_seconds: optional wall-clock budget per orchestration
    """

    max_steps: int = Field(default=10, ge=1, le=200, validation_alias=AliasChoices("ORCHESTRATOR_MAX_STEPS"))
    max_tool_calls: int = Field(default=5, ge=1, le=100, validation_alias=AliasChoices("ORCHESTRATOR_MAX_TOOL_CALLS"))
    development_mode: bool = Field(
        default=False,
        validation_alias=AliasChoices("ORCHESTRATOR_DEV_MODE", "ORCHESTRATOR_DEVELOPMENT_MODE"),
    )
    deadline_seconds: Optional[float] = Field(
        default=None, gt=0, validation_alias=AliasChoices("ORCHESTRATOR_DEADLINE_SECONDS")
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class KnowledgeSettings(BaseSettings):
    """Locations of the local configuration files read at assembly time."""

    vector_search_config: str = Field(
        default="settings/vector-search.json",
        validation_alias=AliasChoices("VECTOR_SEARCH_CONFIG"),
    )
    tool_categories_config: str = Field(
        default="settings/enabled-tools-categories.yaml",
        validation_alias=AliasChoices("TOOL_CATEGORIES_CONFIG"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ObservabilitySettings(BaseSettings):
    """Tracing and logging configuration.

    - LangSmith tracing (LANGCHAIN_TRACING_V2, LANGCHAIN_PROJECT, LANGCHAIN_API_KEY)
    - LOG_LEVEL / LOG_DIR for the file and console handlers
    - LOG_PROMPT_MAX_LENGTH caps prompt previews in debug logs
    """

    langsmith_project: Optional[str] = Field(default=None, validation_alias=AliasChoices("LANGCHAIN_PROJECT"))
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, validation_alias=AliasChoices("LANGCHAIN_ENDPOINT"))
    tracing_enabled: bool = Field(default=False, validation_alias=AliasChoices("LANGCHAIN_TRACING_V2"))

    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))
    log_dir: Optional[str] = Field(default=None, validation_alias=AliasChoices("LOG_DIR"))
    log_prompt_max_length: int = Field(default=500, ge=100, le=5000, validation_alias=AliasChoices("LOG_PROMPT_MAX_LENGTH"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class Settings(BaseSettings):
    """Root settings with four groups: providers, governance, knowledge, observability.

    Use get_settings() to obtain a cached singleton instance.
    """

    environment: str = Field(default="dev", validation_alias=AliasChoices("APP_ENV"))
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    governance: GovernanceSettings = Field(default_factory=GovernanceSettings)
    knowledge: KnowledgeSettings = Field(default_factory=KnowledgeSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance."""
    return Settings()
