# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env")

    # ── Infrastructure ───────────────────────────────────────────────────────
    database_url: str = "sqlite:///./contract_forge.db"
    contracts_dir: str = "./generated_contracts"
    port: int = 8080
    allowed_origins: str = ""

    # ── LLM backend (OpenAI-compatible /chat/completions) ───────────────────
    llm_base_url: str = "http://localhost:1234/v1"
    llm_api_key: SecretStr = SecretStr("")
    llm_model: str = "default"
    llm_temperature: float = 0.2
    llm_request_timeout_seconds: float = 120.0

    # ── Limits ───────────────────────────────────────────────────────────────
    # Shared by generation and persistence for a single request.
    generation_timeout_seconds: float = 60.0

    # ── Logging / tracing ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True
    otel_exporter: str = ""


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
