"""
Application settings, read from the environment and the project .env file.

Field names map to upper-case env vars (``LLM_PROVIDER``, ``QUERY_TIMEOUT_MS``...).
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(_PROJECT_ROOT / ".env")

DEFAULT_SCHEMA_PATH = _PROJECT_ROOT / "schema" / "schema.sql"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ── Postgres ─────────────────────────────────────────
    postgres_user: str = "reports"
    postgres_password: str = "reports_pw"
    postgres_db: str = "analytics"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    # ── LLM ──────────────────────────────────────────────
    llm_provider: str = "mock"  # mock | anthropic | openai
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    generation_model: str = ""
    verification_model: str = ""
    modification_model: str = ""
    llm_max_tokens: int = 2000
    verify_reports: bool = True  # second-pass semantic check on generated reports

    # ── Query execution ──────────────────────────────────
    schema_path: str = str(DEFAULT_SCHEMA_PATH)
    query_timeout_ms: int = 10_000
    query_max_workers: int = 8

    # ── App ──────────────────────────────────────────────
    api_port: int = 8000
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
