"""
Configuration management for the AI visibility tracker
Environment-based settings with local development defaults
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "ai-visibility-tracker"
    APP_ENV: str = "development"  # development, staging, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_VERSION: str = "v1"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 6879
    WORKERS: int = 1

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./visibility.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # AI provider (Gemini with Google Search grounding)
    GOOGLE_API_KEY: Optional[str] = None
    GOOGLE_DEFAULT_MODEL: str = "gemini-2.5-flash"

    # LLM Execution Settings
    LLM_DEFAULT_TEMPERATURE: float = 0.7
    LLM_REQUEST_TIMEOUT: int = 60  # seconds

    # Analysis pipeline
    ANALYSIS_REQUEST_DELAY_SECONDS: float = 1.5  # pause between prompts
    ANALYSIS_CONTEXT_WINDOW: int = 150  # characters around first mention
    ANALYSIS_ESTIMATED_SECONDS_PER_PROMPT: int = 2

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return str(v).upper()

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings loader"""
    return Settings()
