"""
Unit tests for application and generation settings.
"""

from studyforge.config.generation import GenerationSettings
from studyforge.config.settings import Settings, load_yaml_config


class TestSettings:
    """Tests for application settings."""

    def test_api_keys_split_and_trimmed(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEYS", " key-a, ,key-b ,")

        assert Settings().api_keys == ["key-a", "key-b"]

    def test_no_keys(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEYS", "")

        assert Settings().api_keys == []

    def test_postgres_url(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_USER", "u")
        monkeypatch.setenv("POSTGRES_PASSWORD", "p")
        monkeypatch.setenv("POSTGRES_HOST", "db")
        monkeypatch.setenv("POSTGRES_DB", "forge")

        assert Settings().POSTGRES_URL == "postgresql+asyncpg://u:p@db:5432/forge"

    def test_broker_urls_only(self, monkeypatch):
        monkeypatch.setenv("CELERY_BROKER_URL", "redis://broker:6379/0")

        config = Settings()

        assert config.CELERY_BROKER_URL == "redis://broker:6379/0"
        assert "REDIS_URL" not in Settings.model_fields

    def test_yaml_config_loaded(self):
        config = load_yaml_config()

        assert config["database"]["pool_size"] == 5
        assert config["celery"]["task_time_limit"] == 1800


class TestGenerationSettings:
    """Tests for generation settings."""

    def test_defaults(self):
        config = GenerationSettings()

        assert config.RETRY_MAX_ATTEMPTS == 3
        assert config.RETRY_BACKOFF_BASE_SECONDS == 2.0
        assert config.SUMMARY_MIN_CHARS == 200
        assert config.QUESTIONS_TOTAL == 70
        assert config.QUESTIONS_BATCH_SIZE == 20
        assert config.QUESTIONS_MAX_CONSECUTIVE_FAILURES == 3
        assert config.ORIGINALITY_MIN_WORDS == 50

    def test_env_prefix_override(self, monkeypatch):
        monkeypatch.setenv("GENERATION_QUESTIONS_TOTAL", "20")

        assert GenerationSettings().QUESTIONS_TOTAL == 20
