"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Task Planner Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://postgres@localhost:5432/taskplanner"
    openai_api_key: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 2000
    llm_temperature: float = 0.7
    llm_timeout_seconds: float = 30.0
    default_max_hours_per_day: int = 8
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "taskplanner"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
