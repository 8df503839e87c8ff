from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional
import os

from pydantic_settings import BaseSettings


ROOT_DIR = Path(__file__).resolve().parents[3]


class BackendMode(str, Enum):
    demo = "demo"
    live = "live"


class ProviderName(str, Enum):
    anthropic = "anthropic"
    openai = "openai"


def _default_data_dir() -> Path:
    if (
        os.getenv("VERCEL")
        or os.getenv("VERCEL_ENV")
        or os.getenv("VERCEL_URL")
        or os.getenv("AWS_LAMBDA_FUNCTION_NAME")
    ):
        return Path("/tmp/missionrooms")
    return ROOT_DIR / "data"


class Settings(BaseSettings):
    app_name: str = "Mission Rooms API"
    environment: str = "development"
    backend_mode: BackendMode = BackendMode.demo
    log_level: str = "INFO"

    data_dir: Path = _default_data_dir()
    database_url: Optional[str] = None

    primary_provider: ProviderName = ProviderName.anthropic
    secondary_provider: ProviderName = ProviderName.openai
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-haiku-20240307"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 60.0
    llm_max_tokens: int = 3000
    llm_temperature: float = 0.7

    claim_ttl_seconds: int = 600

    fetch_url_sources: bool = True
    source_max_chars: int = 8000
    http_timeout: float = 20.0
    user_agent: str = "MissionRoomsBot/0.1 (+local)"

    class Config:
        env_file = (
            ".env",
            str(ROOT_DIR / ".env"),
            str(ROOT_DIR / "apps" / "api" / ".env"),
        )
        env_prefix = ""

    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'missions.db'}"

    def is_production(self) -> bool:
        return self.environment.lower().strip() in {"production", "prod"}


def clean_api_key(value: str) -> str:
    cleaned = value.strip().strip('"').strip("'")
    if cleaned.lower().startswith("bearer "):
        cleaned = cleaned.split(" ", 1)[1].strip()
    return cleaned


def load_settings(**overrides) -> Settings:
    loaded = Settings(**overrides)
    if loaded.anthropic_api_key:
        loaded.anthropic_api_key = clean_api_key(loaded.anthropic_api_key)
    if loaded.openai_api_key:
        loaded.openai_api_key = clean_api_key(loaded.openai_api_key)
    if loaded.database_url is None:
        try:
            loaded.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            loaded.data_dir = Path("/tmp/missionrooms")
            loaded.data_dir.mkdir(parents=True, exist_ok=True)
    return loaded
