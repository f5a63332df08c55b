from functools import lru_cache
from typing import Literal
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Add new settings here following this pattern:
    - Use type hints
    - Provide sensible defaults for optional settings
    - Use SecretStr for sensitive values
    - Add validation where needed
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Agent Orchestrator"
    app_version: str = "0.1.0"
    environment: Literal["local", "dev", "staging", "prod"] = "local"
    debug: bool = False

    # Database
    database_url: SecretStr | None = None
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo_sql: bool = False

    # Observability
    log_level: int = 20  # INFO by default (DEBUG=10, INFO=20, WARNING=30, ERROR=40)
    log_format: Literal["json", "console"] = "json"

    # Language model backend
    llm_provider: Literal["anthropic", "openai"] = "anthropic"
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_api_key: SecretStr | None = None
    llm_base_url: str | None = None  # e.g. https://openrouter.ai/api/v1 for OpenAI-compatible gateways
    llm_max_tokens: int = 8192
    llm_temperature: float | None = None

    # Agent loop
    agent_max_iterations: int = Field(default=15, ge=1)
    agent_history_window: int = Field(default=200, ge=0)  # replayed history messages, 0 = no history

    # Cross-agent aggregation
    aggregator_messages_per_agent: int = 10
    aggregator_recent_files: int = 20
    aggregator_recent_errors: int = 10

    # Prompt rendering
    prompt_activity_items: int = 5
    prompt_activity_chars: int = 200
    prompt_error_items: int = 3
    prompt_error_chars: int = 150
    prompt_file_items: int = 10
    prompt_retrieval_results: int = 3
    prompt_retrieval_chars: int = 500


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
