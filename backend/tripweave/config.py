"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Document store
    database_url: str | None = None

    # Recommendation / judgment oracle
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7

    # Callers enforce this on every oracle call (milliseconds)
    oracle_timeout_ms: int = 20000

    # Sanity bound for date -> day resolution (misparsed years)
    max_resolvable_day: int = 30

    # Most recent confirmations shown to the duplicate judge
    duplicate_sample_size: int = 50

    # Seed for the deterministic regeneration fallback
    fallback_rng_seed: int = 42

    # Trip window defaults
    default_trip_days: int = 4
    undated_trip_lead_days: int = 14

    @property
    def oracle_timeout_s(self) -> float:
        """Oracle timeout in seconds."""
        return self.oracle_timeout_ms / 1000.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
