"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Habit Architect Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://habit@localhost:5432/habit_architect"
    cors_origins: str = "http://localhost:19000"
    openai_enabled: bool = True
    openai_api_key: str | None = None
    openai_model: str = "gpt-3.5-turbo"
    openai_max_tokens: int = 2048
    openai_timeout_seconds: float = 30.0
    openai_max_retries: int = 0
    use_mock_ai: bool = False
    auth_jwt_secret: str | None = None
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_audience: str | None = None
    placeholder_email_domain: str = "habit-ai.local"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "habit-architect"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
