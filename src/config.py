"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import PostgresDsn, RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_env: Literal["development", "production", "test"] = "development"
    app_name: str = "Moodwatch"

    # Database
    database_url: PostgresDsn

    # Redis
    redis_url: RedisDsn

    # Auth (tokens are issued by the external identity provider)
    auth_jwt_secret: str
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_audience: str = "authenticated"

    @field_validator("auth_jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure the shared token secret is strong enough."""
        if len(v) < 32:
            raise ValueError("AUTH_JWT_SECRET must be at least 32 characters long")
        return v

    # Generative provider (OpenAI-compatible chat completions)
    llm_api_key: str = ""
    llm_base_url: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_timeout: float = 30.0
    llm_temperature: float = 0.7

    # Embedding provider
    embedding_api_key: str = ""
    embedding_base_url: str | None = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536

    # Questionnaire policy
    questionnaire_ready_threshold: int = 90
    questionnaire_min_questions: int = 7
    questionnaire_max_questions: int = 13

    # Embedding retrieval
    retrieval_seed_count: int = 10
    retrieval_match_count: int = 20
    retrieval_match_threshold: float = 0.70
    retrieval_candidate_cap: int = 30

    # Preference-pattern analysis
    pattern_history_limit: int = 30

    # Synthesis
    synthesis_repair_rounds: int = 2
    regional_exclusions: dict[str, list[str]] = {}

    # Embedding worker
    embedding_queue_size: int = 100
    embedding_retry_attempts: int = 3

    @field_validator("questionnaire_ready_threshold")
    @classmethod
    def validate_ready_threshold(cls, v: int) -> int:
        """Readiness is expressed on the 0-100 confidence scale."""
        if not 0 < v <= 100:
            raise ValueError("QUESTIONNAIRE_READY_THRESHOLD must be within 1-100")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def database_url_async(self) -> str:
        """Get async database URL (postgresql+asyncpg)."""
        url = str(self.database_url)
        return url.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def embedding_key(self) -> str:
        """API key for the embedding provider, falling back to the LLM key."""
        return self.embedding_api_key or self.llm_api_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]
