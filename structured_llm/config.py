"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Provider credentials come from environment variables (never hardcoded)
    - A missing credential disables only its own tier (CONFIG at call time)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Empty-string credentials normalized to None so "set but blank" counts as absent
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Providers — HIGH tier (ChatGPT)
    chatgpt_api_key: str | None = None
    chatgpt_base_url: str = "https://api.openai.com/v1"
    chatgpt_model: str = "gpt-4o"

    # Providers — LOW tier (DeepSeek)
    deepseek_api_key: str | None = None
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-chat"

    @field_validator("chatgpt_api_key", "deepseek_api_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # Transport
    llm_timeout_ms: int = 20_000
    llm_max_retries: int = 2
    llm_base_delay_ms: int = 500

    # Rate limiting (per caller)
    rate_limit_window_seconds: float = 60.0
    rate_limit_max_requests: int = 12

    # Input caps per complexity tier
    max_input_chars_high: int = 12_000
    max_input_chars_low: int = 4_000

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
