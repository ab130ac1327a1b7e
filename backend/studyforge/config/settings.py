"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from studyforge.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    keys = settings.api_keys
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "StudyForge"
    DEBUG: bool = False

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "studyforge"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "studyforge"

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # File uploads - content-addressed blob store for uploaded documents.
    # Flow: Upload → UPLOAD_DIR/<sha256>.<ext> → Pipeline reads by reference
    UPLOAD_DIR: str = "/tmp/studyforge_uploads"
    MAX_UPLOAD_SIZE_MB: int = 50

    # Generation service credentials.
    # Comma-separated list, one API key per entry; calls rotate across them.
    GEMINI_API_KEYS: str = ""

    # Model for all generation calls (model-agnostic via LiteLLM)
    # Format: provider/model-name
    GENERATION_MODEL: str = "gemini/gemini-2.5-flash"

    @property
    def api_keys(self) -> list[str]:
        """Configured API keys, blanks dropped, in declaration order."""
        return [key.strip() for key in self.GEMINI_API_KEYS.split(",") if key.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
